"""
Cost-averaging calculators.

- AverageBuyCalculator: weighted average cost basis over several purchases
- LossRecoveryCalculator: shares to buy at the current price so the loss on
  the whole position shrinks by a chosen number of percentage points
- SharePriceMatchCalculator: shares to buy at the current price to bring the
  average cost down to a target
"""

from decimal import Decimal, ROUND_CEILING
from typing import Any, Dict, Mapping
import logging

from models.calculations import (
    AverageBuyInputs,
    AverageBuyResult,
    CalculatorKind,
    LossRecoveryInputs,
    LossRecoveryResult,
    PurchaseLot,
    SharePriceMatchInputs,
    SharePriceMatchResult,
)
from services.calculations.base import (
    SHARE_PLACES,
    BaseCalculator,
    CalculationValidationError,
    ensure_finite,
    quantize,
)
from services.input_normalizer import OPTIONAL_POSITIVE, POSITIVE, normalize_form

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
MIN_VALID_PURCHASES = 2


class AverageBuyCalculator(BaseCalculator):
    """
    Average Price = Total Investment / Total Quantity
    Total Investment = sum(quantity x price)

    Purchase rows with a missing or non-positive quantity or price are dropped
    before aggregation, then at least two rows must remain.
    """

    kind = CalculatorKind.AVERAGE_BUY
    input_model = AverageBuyInputs
    result_model = AverageBuyResult
    FIELD_RULES = {
        'current_price': OPTIONAL_POSITIVE,
    }

    def parse_form(self, form: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = normalize_form(form, self.FIELD_RULES)
        values['purchases'] = [
            PurchaseLot.model_validate(row) for row in form.get('purchases') or []
        ]
        return values

    def calculate(self, inputs: AverageBuyInputs) -> AverageBuyResult:
        valid = [lot for lot in inputs.purchases if lot.is_valid]
        dropped = len(inputs.purchases) - len(valid)
        if dropped:
            logger.debug(f"Average buy: dropped {dropped} invalid purchase rows")

        if len(valid) < MIN_VALID_PURCHASES:
            raise CalculationValidationError(
                "Please enter valid quantity and price for at least two purchases.",
                field='purchases'
            )

        total_investment = sum((lot.quantity * lot.price for lot in valid), Decimal("0"))
        total_quantity = sum((lot.quantity for lot in valid), Decimal("0"))
        average_price = ensure_finite(total_investment / total_quantity, "Average price")

        current_value = profit_loss = profit_loss_pct = None
        if inputs.current_price is not None:
            current_value = total_quantity * inputs.current_price
            profit_loss = current_value - total_investment
            profit_loss_pct = quantize(profit_loss / total_investment * HUNDRED)
            current_value = quantize(current_value)
            profit_loss = quantize(profit_loss)

        return AverageBuyResult(
            average_price=quantize(average_price),
            total_investment=quantize(total_investment),
            total_quantity=quantize(total_quantity),
            number_of_purchases=len(valid),
            current_value=current_value,
            profit_loss=profit_loss,
            profit_loss_pct=profit_loss_pct,
        )


class LossRecoveryCalculator(BaseCalculator):
    """
    Loss cover from a recovery percentage.

        P2   = P1 x (1 - L / 100)            current price
        T    = L - R                         loss % after averaging
        Pavg = P2 / (1 - T / 100)            required average price
        Q2   = Q1 x (P1 - Pavg) / (Pavg - P2)
        investment = Q2 x P2
    """

    kind = CalculatorKind.LOSS_RECOVERY
    input_model = LossRecoveryInputs
    result_model = LossRecoveryResult
    FIELD_RULES = {
        'shares_owned': POSITIVE,
        'average_price': POSITIVE,
        'current_loss_pct': POSITIVE,
        'recovery_pct': POSITIVE,
    }

    def calculate(self, inputs: LossRecoveryInputs) -> LossRecoveryResult:
        q1 = inputs.shares_owned
        p1 = inputs.average_price
        loss = inputs.current_loss_pct
        recovery = inputs.recovery_pct

        if recovery >= loss:
            raise CalculationValidationError(
                f"Recovery percentage ({recovery}%) must be less than "
                f"current loss percentage ({loss}%)",
                field='recovery_pct'
            )
        if loss >= HUNDRED:
            raise CalculationValidationError(
                "Current loss percentage cannot be 100% or more",
                field='current_loss_pct'
            )

        target_loss = loss - recovery
        p2 = ensure_finite(p1 * (1 - loss / HUNDRED), "Current price")
        p_avg = ensure_finite(p2 / (1 - target_loss / HUNDRED), "Target average price")
        q2 = ensure_finite(q1 * (p1 - p_avg) / (p_avg - p2), "Additional shares")
        investment = ensure_finite(q2 * p2, "Investment amount")

        return LossRecoveryResult(
            current_price=quantize(p2),
            new_average_price=quantize(p_avg),
            final_loss_pct=quantize(target_loss),
            additional_shares=quantize(q2, SHARE_PLACES),
            investment_amount=quantize(investment),
        )


class SharePriceMatchCalculator(BaseCalculator):
    """
    Additional shares needed to reach a target average price.

    Solving (owned x avg + x x current) / (owned + x) = target for x:
        x = owned x (avg - target) / (target - current)

    Requires current < target < avg.
    """

    kind = CalculatorKind.SHARE_PRICE_MATCH
    input_model = SharePriceMatchInputs
    result_model = SharePriceMatchResult
    FIELD_RULES = {
        'shares_owned': POSITIVE,
        'average_price': POSITIVE,
        'current_price': POSITIVE,
        'target_average_price': POSITIVE,
    }

    def calculate(self, inputs: SharePriceMatchInputs) -> SharePriceMatchResult:
        owned = inputs.shares_owned
        avg_price = inputs.average_price
        current = inputs.current_price
        target = inputs.target_average_price

        if target >= avg_price:
            raise CalculationValidationError(
                f"Target ({target}) must be less than current average ({avg_price})",
                field='target_average_price'
            )
        if target <= current:
            raise CalculationValidationError(
                f"Target ({target}) must be greater than current price ({current})",
                field='target_average_price'
            )

        additional = ensure_finite(
            owned * (avg_price - target) / (target - current), "Additional shares"
        )
        investment = additional * current
        total_after = owned + additional
        new_average = ensure_finite(
            (owned * avg_price + investment) / total_after, "New average price"
        )

        return SharePriceMatchResult(
            additional_shares_exact=quantize(additional, SHARE_PLACES),
            additional_shares=int(additional.to_integral_value(rounding=ROUND_CEILING)),
            investment_needed=quantize(investment),
            total_shares_after=int(total_after.to_integral_value(rounding=ROUND_CEILING)),
            new_average_price=quantize(new_average),
            price_reduction_pct=quantize((avg_price - target) / avg_price * HUNDRED),
            cost_reduction=quantize((avg_price - target) * owned),
        )
