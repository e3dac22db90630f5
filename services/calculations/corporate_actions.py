"""
Corporate action and income calculators: stock split / bonus issue and
dividend yield.
"""

from decimal import Decimal, ROUND_FLOOR
import logging

from models.calculations import (
    CalculatorKind,
    CorporateAction,
    DividendYieldInputs,
    DividendYieldResult,
    StockSplitInputs,
    StockSplitResult,
)
from services.calculations.base import (
    BaseCalculator,
    CalculationValidationError,
    quantize,
)
from services.input_normalizer import NON_NEGATIVE, OPTIONAL_POSITIVE, POSITIVE, FieldRule

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
EXAMPLE_HOLDINGS = (10, 100, 1000)


def _plain(value: Decimal) -> str:
    """Render 2.0 / 10 / 1.50 as '2' / '10' / '1.5'."""
    return format(value.normalize(), 'f')


def _floor(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_FLOOR)


class StockSplitCalculator(BaseCalculator):
    """
    Split (num:den, num > den):
        new shares = shares x num / den, new price = price x den / num
        total value is unchanged
    Bonus (num:den = num bonus shares for every den held):
        extra = shares x num / den, whole part is credited, the fractional
        entitlement is reported separately; price is unchanged

    total_shares is the whole-share count in both cases (floored, not rounded
    to nearest); fractional_shares carries the remainder, which brokers
    usually settle in cash.
    """

    kind = CalculatorKind.STOCK_SPLIT
    input_model = StockSplitInputs
    result_model = StockSplitResult
    FIELD_RULES = {
        'current_shares': FieldRule(must_be_positive=True, integral=True),
        'current_price': POSITIVE,
        'ratio_numerator': POSITIVE,
        'ratio_denominator': POSITIVE,
    }

    def calculate(self, inputs: StockSplitInputs) -> StockSplitResult:
        if inputs.action == CorporateAction.SPLIT:
            return self._split(inputs)
        return self._bonus(inputs)

    def _split(self, inputs: StockSplitInputs) -> StockSplitResult:
        num = inputs.ratio_numerator
        den = inputs.ratio_denominator
        if num == den:
            raise CalculationValidationError(
                "1:1 split has no effect. Consider using a bonus share instead.",
                field='ratio_numerator'
            )
        if num < den:
            raise CalculationValidationError(
                "Split ratio numerator must be greater than the denominator.",
                field='ratio_numerator'
            )

        shares = inputs.current_shares
        new_shares = shares * num / den
        whole = _floor(new_shares)

        return StockSplitResult(
            action=CorporateAction.SPLIT,
            ratio=f"{_plain(num)}:{_plain(den)}",
            extra_shares=quantize(new_shares - shares),
            fractional_shares=quantize(new_shares - whole),
            total_shares=int(whole),
            new_price=quantize(inputs.current_price * den / num),
            total_value=quantize(shares * inputs.current_price),
        )

    def _bonus(self, inputs: StockSplitInputs) -> StockSplitResult:
        num = inputs.ratio_numerator
        den = inputs.ratio_denominator
        shares = inputs.current_shares

        extra = shares * num / den
        credited = _floor(extra)
        total_shares = _floor(shares + credited)

        return StockSplitResult(
            action=CorporateAction.BONUS,
            ratio=f"{_plain(num)}:{_plain(den)}",
            extra_shares=quantize(extra),
            fractional_shares=quantize(extra - credited),
            total_shares=int(total_shares),
            new_price=quantize(inputs.current_price),
            total_value=quantize(total_shares * inputs.current_price),
        )


class DividendYieldCalculator(BaseCalculator):
    """Dividend Amount = (Dividend Yield / 100) x Share Price, per share per year."""

    kind = CalculatorKind.DIVIDEND_YIELD
    input_model = DividendYieldInputs
    result_model = DividendYieldResult
    FIELD_RULES = {
        'share_price': POSITIVE,
        'dividend_yield_pct': NON_NEGATIVE,
        'shares_held': OPTIONAL_POSITIVE,
    }

    def calculate(self, inputs: DividendYieldInputs) -> DividendYieldResult:
        per_share = inputs.dividend_yield_pct / HUNDRED * inputs.share_price

        total = None
        if inputs.shares_held is not None:
            total = quantize(per_share * inputs.shares_held)

        return DividendYieldResult(
            dividend_per_share=quantize(per_share),
            annual_dividend=quantize(per_share),
            examples={n: quantize(per_share * n) for n in EXAMPLE_HOLDINGS},
            total_dividend=total,
        )
