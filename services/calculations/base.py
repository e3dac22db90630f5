"""
Base class and shared helpers for the calculator formula evaluators.

Every calculator is a pure function of its inputs: no hidden state, no I/O.
Inputs arrive either as the calculator's pydantic input model or as a plain
dict, which is validated into that model first.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Mapping, Type, Union
import logging

from pydantic import ValidationError as PydanticValidationError

from models.calculations import CalculatorInputs, CalculatorKind, CalculatorResult
from services.errors import (
    CalculationError,
    CalculationValidationError,
    CalculatorError,
    InvalidInputError,
)
from services.input_normalizer import normalize_form

logger = logging.getLogger(__name__)

CURRENCY_PLACES = Decimal("0.01")
SHARE_PLACES = Decimal("0.001")
WORKING_PRECISION = 28


def quantize(value: Decimal, places: Decimal = CURRENCY_PLACES) -> Decimal:
    """Round half-up to the given number of places."""
    return value.quantize(places, rounding=ROUND_HALF_UP)


def ensure_finite(value: Decimal, label: str) -> Decimal:
    """Reject NaN/Infinity intermediates."""
    if not value.is_finite():
        raise CalculationError(f"{label} is not a finite number")
    return value


@contextmanager
def guarded_arithmetic(label: str):
    """
    Run Decimal arithmetic under a fixed precision, translating division by
    zero, invalid operations and overflow into CalculationError.
    """
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        try:
            yield ctx
        except ArithmeticError as e:
            raise CalculationError(f"{label}: {e.__class__.__name__}") from e


class BaseCalculator(ABC):
    """
    Abstract base for calculator formula evaluators.

    Subclasses declare:
        kind: the CalculatorKind they implement
        input_model: pydantic model for validated inputs
        result_model: pydantic model returned by calculate()
        FIELD_RULES: normalizer rules for raw form text (see input_normalizer)
    """

    kind: CalculatorKind
    input_model: Type[CalculatorInputs]
    result_model: Type[CalculatorResult]
    FIELD_RULES: Dict[str, Any] = {}

    def parse_form(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Normalize raw form text into input-model values using FIELD_RULES.

        Fields without a rule (flags, enum choices) pass through untouched.
        """
        values: Dict[str, Any] = normalize_form(form, self.FIELD_RULES)
        for name, value in form.items():
            if name not in self.FIELD_RULES:
                values[name] = value
        return values

    def evaluate(self, inputs: Union[CalculatorInputs, Mapping[str, Any]]) -> CalculatorResult:
        """
        Validate inputs and compute the result.

        Raises:
            InvalidInputError: a field is missing or out of range
            CalculationValidationError: cross-field constraint violated
            CalculationError: non-finite intermediate
        """
        validated = self.coerce_inputs(inputs)
        with guarded_arithmetic(self.kind.value):
            result = self.calculate(validated)
        logger.debug(f"Evaluated {self.kind.value}: {result}")
        return result

    def coerce_inputs(self, inputs: Union[CalculatorInputs, Mapping[str, Any]]) -> CalculatorInputs:
        """Turn a dict into the calculator's input model."""
        if isinstance(inputs, self.input_model):
            return inputs
        if isinstance(inputs, CalculatorInputs):
            raise InvalidInputError(
                f"{self.kind.value} expects {self.input_model.__name__}, "
                f"got {type(inputs).__name__}"
            )
        try:
            return self.input_model.model_validate(dict(inputs))
        except PydanticValidationError as e:
            field_errors = {
                ".".join(str(p) for p in err["loc"]) or "__root__": err["msg"]
                for err in e.errors()
            }
            logger.warning(f"Rejected {self.kind.value} inputs: {field_errors}")
            raise InvalidInputError(
                "Please enter valid values for all fields.",
                field_errors=field_errors
            ) from e

    @abstractmethod
    def calculate(self, inputs: CalculatorInputs) -> CalculatorResult:
        """Compute the result from validated inputs."""
        pass
