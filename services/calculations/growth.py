"""
Growth calculators: CAGR and SIP.

CAGR = (final / initial)^(1 / years) - 1
SIP future value = P x ((1 + r)^n - 1) / r, r = monthly rate, n = months

Both expose a restartable year-by-year breakdown that applies the computed
rate uniformly (it does not model actual interim cash flows).
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Iterator
import logging

import pandas as pd

from models.calculations import (
    CagrInputs,
    CagrResult,
    CalculatorKind,
    SipInputs,
    SipResult,
    SipYearRow,
    YearlyGrowthRow,
)
from services.calculations.base import (
    BaseCalculator,
    CalculationValidationError,
    ensure_finite,
    guarded_arithmetic,
    quantize,
)
from services.input_normalizer import NON_NEGATIVE, POSITIVE

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12


class CagrCalculator(BaseCalculator):
    """
    Compound Annual Growth Rate.

    Inputs: initial value, final value, years (all > 0, final > initial).
    Outputs: CAGR %, total return %, absolute gain.
    """

    kind = CalculatorKind.CAGR
    input_model = CagrInputs
    result_model = CagrResult
    FIELD_RULES = {
        'initial_value': POSITIVE,
        'final_value': POSITIVE,
        'years': POSITIVE,
    }

    def calculate(self, inputs: CagrInputs) -> CagrResult:
        initial = inputs.initial_value
        final = inputs.final_value
        years = inputs.years

        if initial >= final:
            raise CalculationValidationError(
                "Final value must be greater than initial value for positive returns.",
                field='final_value'
            )

        rate = self.growth_rate(inputs)
        total_return = (final - initial) / initial * HUNDRED

        return CagrResult(
            cagr_pct=quantize(rate * HUNDRED),
            total_return_pct=quantize(total_return),
            absolute_gain=quantize(final - initial),
            initial_value=quantize(initial),
            final_value=quantize(final),
            years=years,
        )

    @staticmethod
    def growth_rate(inputs: CagrInputs) -> Decimal:
        """Unrounded annual growth rate as a fraction."""
        ratio = inputs.final_value / inputs.initial_value
        rate = ratio ** (Decimal(1) / inputs.years) - 1
        return ensure_finite(rate, "CAGR")

    def breakdown(self, inputs) -> "CagrBreakdown":
        """Year-by-year compounding at the computed CAGR."""
        validated = self.coerce_inputs(inputs)
        # Validates the same constraints calculate() does
        self.evaluate(validated)
        with guarded_arithmetic(self.kind.value):
            rate = self.growth_rate(validated)
        return CagrBreakdown(validated.initial_value, rate, validated.years)


class CagrBreakdown:
    """
    Finite, restartable sequence of YearlyGrowthRow for years 1..floor(years).

    Rows are produced lazily; each iteration starts again from year 1.
    """

    def __init__(self, initial_value: Decimal, rate: Decimal, years: Decimal):
        self.initial_value = initial_value
        self.rate = rate
        self.years = int(years.to_integral_value(rounding=ROUND_FLOOR))

    def __len__(self) -> int:
        return self.years

    def __iter__(self) -> Iterator[YearlyGrowthRow]:
        opening = self.initial_value
        for year in range(1, self.years + 1):
            with guarded_arithmetic("CAGR breakdown"):
                growth = opening * self.rate
                closing = opening + growth
                row = YearlyGrowthRow(
                    year=year,
                    opening_value=quantize(opening),
                    growth=quantize(growth),
                    closing_value=quantize(closing),
                )
            yield row
            opening = closing

    def to_frame(self) -> pd.DataFrame:
        """Rows as a DataFrame indexed by year."""
        rows = [row.model_dump() for row in self]
        return pd.DataFrame(
            rows, columns=['year', 'opening_value', 'growth', 'closing_value']
        ).set_index('year')


class SipCalculator(BaseCalculator):
    """
    Systematic Investment Plan projection.

    Monthly contributions compounded monthly at annual_return_pct / 12.
    """

    kind = CalculatorKind.SIP
    input_model = SipInputs
    result_model = SipResult
    FIELD_RULES = {
        'monthly_investment': POSITIVE,
        'annual_return_pct': NON_NEGATIVE,
        'years': POSITIVE,
    }

    def calculate(self, inputs: SipInputs) -> SipResult:
        months = self.total_months(inputs)
        rate = self.monthly_rate(inputs)
        future_value = self.future_value(inputs.monthly_investment, rate, months)
        invested = inputs.monthly_investment * months

        return SipResult(
            invested_amount=quantize(invested),
            estimated_returns=quantize(future_value - invested),
            future_value=quantize(future_value),
            months=months,
        )

    @staticmethod
    def total_months(inputs: SipInputs) -> int:
        months = int((inputs.years * MONTHS_PER_YEAR).to_integral_value(rounding=ROUND_FLOOR))
        if months < 1:
            raise CalculationValidationError(
                "Investment period must cover at least one month.",
                field='years'
            )
        return months

    @staticmethod
    def monthly_rate(inputs: SipInputs) -> Decimal:
        return inputs.annual_return_pct / MONTHS_PER_YEAR / HUNDRED

    @staticmethod
    def future_value(monthly: Decimal, rate: Decimal, months: int) -> Decimal:
        if rate == 0:
            return monthly * months
        value = monthly * ((1 + rate) ** months - 1) / rate
        return ensure_finite(value, "SIP future value")

    def schedule(self, inputs) -> "SipSchedule":
        """Year-end snapshots of invested amount and projected value."""
        validated = self.coerce_inputs(inputs)
        # Validates the same constraints calculate() does
        result = self.evaluate(validated)
        return SipSchedule(
            validated.monthly_investment, self.monthly_rate(validated), result.months
        )


class SipSchedule:
    """Restartable sequence of SipYearRow; a partial final year is included."""

    def __init__(self, monthly_investment: Decimal, rate: Decimal, months: int):
        self.monthly_investment = monthly_investment
        self.rate = rate
        self.months = months

    def __len__(self) -> int:
        return -(-self.months // MONTHS_PER_YEAR)

    def __iter__(self) -> Iterator[SipYearRow]:
        for year in range(1, len(self) + 1):
            elapsed = min(year * MONTHS_PER_YEAR, self.months)
            with guarded_arithmetic("SIP schedule"):
                value = SipCalculator.future_value(self.monthly_investment, self.rate, elapsed)
                invested = self.monthly_investment * elapsed
                row = SipYearRow(
                    year=year,
                    months=elapsed,
                    invested_amount=quantize(invested),
                    estimated_value=quantize(value),
                    estimated_returns=quantize(value - invested),
                )
            yield row

    def to_frame(self) -> pd.DataFrame:
        rows = [row.model_dump() for row in self]
        return pd.DataFrame(
            rows,
            columns=['year', 'months', 'invested_amount', 'estimated_value', 'estimated_returns'],
        ).set_index('year')
