"""
Error taxonomy shared by the input normalizer and the calculators.

All of these are recoverable at the caller: they are reported per field or as
a general message and never abort the process.
"""

from typing import Dict, Optional


class CalculatorError(Exception):
    """Base exception for calculator failures."""
    pass


class InvalidInputError(CalculatorError):
    """Raised when one or more fields fail to parse or fall outside their range."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None
    ):
        self.field = field
        self.field_errors = dict(field_errors or {})
        if field and field not in self.field_errors:
            self.field_errors[field] = message
        super().__init__(message)


class CalculationValidationError(CalculatorError):
    """Raised when a cross-field constraint is violated (e.g. recovery >= loss)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class CalculationError(CalculatorError):
    """Raised when an intermediate result is not finite."""
    pass
