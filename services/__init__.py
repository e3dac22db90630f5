"""
Services for stock market calculations: input normalization, formula
evaluation and the calculator facade.

The facade lives in services.calculator_service and is imported from there
directly, since it depends on the db package.
"""

from .errors import (
    CalculatorError,
    InvalidInputError,
    CalculationValidationError,
    CalculationError,
)
from .input_normalizer import FieldRule, normalize, normalize_form, try_normalize

__all__ = [
    "CalculatorError",
    "InvalidInputError",
    "CalculationValidationError",
    "CalculationError",
    "FieldRule",
    "normalize",
    "normalize_form",
    "try_normalize",
]
