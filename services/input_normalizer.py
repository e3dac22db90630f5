"""
Numeric input normalization for calculator forms.

Converts free-text numeric values (locale formatted, with grouping separators,
currency symbols or a trailing percent sign) into validated Decimals.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional
import logging
import re

from services.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Currency markers stripped before parsing
CURRENCY_TOKENS = ("₹", "$", "rs.", "rs", "inr")

# Grouping characters: space, no-break space, thin space, apostrophe, underscore
GROUPING_CHARS = (" ", "\u00a0", "\u2009", "\u202f", "'", "_")

NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


@dataclass(frozen=True)
class FieldRule:
    """
    Constraints for a single form field.

    must_exceed names another field in the same form whose value this one
    must be strictly greater than.
    """

    must_be_positive: bool = False
    must_be_non_negative: bool = False
    must_exceed: Optional[str] = None
    minimum: Optional[Decimal] = None
    maximum: Optional[Decimal] = None
    integral: bool = False
    optional: bool = False


POSITIVE = FieldRule(must_be_positive=True)
NON_NEGATIVE = FieldRule(must_be_non_negative=True)
OPTIONAL_POSITIVE = FieldRule(must_be_positive=True, optional=True)


def _strip_text(text: str, decimal_separator: str) -> str:
    """Remove currency markers, percent signs and grouping separators."""
    cleaned = text.strip().lower()
    # -₹100 / +$5: keep the sign, strip the symbol behind it
    sign = ""
    if cleaned[:1] in ("-", "+"):
        sign, cleaned = cleaned[0], cleaned[1:].lstrip()
    for token in CURRENCY_TOKENS:
        if cleaned.startswith(token):
            cleaned = cleaned[len(token):]
        if cleaned.endswith(token):
            cleaned = cleaned[:-len(token)]
    cleaned = cleaned.strip().rstrip("%").strip()
    if sign and cleaned:
        cleaned = sign + cleaned

    for ch in GROUPING_CHARS:
        cleaned = cleaned.replace(ch, "")

    if decimal_separator == ",":
        # 1.234.567,89 -> 1234567.89
        cleaned = cleaned.replace(".", "").replace(",", ".")
    else:
        # 10,00,000.50 (Indian) and 1,000,000.50 both collapse the same way
        cleaned = cleaned.replace(",", "")
    return cleaned


def _parse(value: Any, decimal_separator: str) -> Decimal:
    """Parse without applying any rule. Raises InvalidInputError."""
    if value is None:
        raise InvalidInputError("This field is required.")
    if isinstance(value, bool):
        raise InvalidInputError("Please enter a number.")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        number = Decimal(str(value))
    else:
        cleaned = _strip_text(str(value), decimal_separator)
        if not cleaned:
            raise InvalidInputError("This field is required.")
        if not NUMBER_PATTERN.match(cleaned):
            raise InvalidInputError("Please enter a valid number.")
        try:
            number = Decimal(cleaned)
        except InvalidOperation:
            raise InvalidInputError("Please enter a valid number.")

    if not number.is_finite():
        raise InvalidInputError("Please enter a finite number.")
    return number


def _check_rule(number: Decimal, rule: FieldRule) -> None:
    if rule.must_be_positive and number <= 0:
        raise InvalidInputError("Please enter a valid positive number.")
    if rule.must_be_non_negative and number < 0:
        raise InvalidInputError("Value cannot be negative.")
    if rule.minimum is not None and number < rule.minimum:
        raise InvalidInputError(f"Value must be at least {rule.minimum}.")
    if rule.maximum is not None and number > rule.maximum:
        raise InvalidInputError(f"Value must be at most {rule.maximum}.")
    if rule.integral and number != number.to_integral_value():
        raise InvalidInputError("Please enter a whole number.")


def normalize(
    value: Any,
    rule: Optional[FieldRule] = None,
    field: Optional[str] = None,
    decimal_separator: str = "."
) -> Decimal:
    """
    Parse one free-text value into a Decimal and apply its rule.

    ``must_exceed`` cannot be checked for a single value; use
    normalize_form() for cross-field rules.

    Args:
        value: Raw text (or an already numeric value)
        rule: Optional constraints
        field: Field name reported on failure
        decimal_separator: "." (default) or "," for European formatting

    Raises:
        InvalidInputError: empty, non-numeric, non-finite or out of range
    """
    try:
        number = _parse(value, decimal_separator)
        if rule is not None:
            _check_rule(number, rule)
    except InvalidInputError as e:
        raise InvalidInputError(str(e), field=field) from None
    return number


def try_normalize(value: Any, decimal_separator: str = ".") -> Optional[Decimal]:
    """Lenient variant: returns None instead of raising."""
    try:
        return _parse(value, decimal_separator)
    except InvalidInputError:
        return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_form(
    form: Mapping[str, Any],
    rules: Mapping[str, FieldRule],
    decimal_separator: str = "."
) -> Dict[str, Decimal]:
    """
    Normalize every field named in ``rules``.

    Blank optional fields are omitted from the result. All per-field failures
    are collected and raised together.

    Returns:
        Dict of field name -> Decimal

    Raises:
        InvalidInputError: with field_errors for each failing field
    """
    values: Dict[str, Decimal] = {}
    errors: Dict[str, str] = {}

    for name, rule in rules.items():
        raw = form.get(name)
        if rule.optional and _is_blank(raw):
            continue
        try:
            values[name] = normalize(raw, rule, field=name, decimal_separator=decimal_separator)
        except InvalidInputError as e:
            errors[name] = str(e)

    for name, rule in rules.items():
        ref = rule.must_exceed
        if not ref or name not in values or ref not in values:
            continue
        if values[name] <= values[ref]:
            errors[name] = f"Must be greater than {ref} ({values[ref]})."

    if errors:
        logger.warning(f"Form normalization failed for fields: {sorted(errors)}")
        first = next(iter(errors))
        raise InvalidInputError(errors[first], field=first, field_errors=errors)

    return values
