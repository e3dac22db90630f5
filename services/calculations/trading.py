"""
Trade-level calculators: profit/loss, intraday P&L, options P&L,
stop-loss/target levels and margin (delivery vs intraday leverage).
"""

from decimal import Decimal, ROUND_FLOOR
from typing import Optional
import logging

from models.calculations import (
    CalculatorKind,
    IntradayPnlInputs,
    IntradayPnlResult,
    MarginInputs,
    MarginModeResult,
    MarginResult,
    OptionsPnlInputs,
    OptionsPnlResult,
    OptionType,
    PositionSide,
    ProfitLossInputs,
    ProfitLossResult,
    StopLossTargetInputs,
    StopLossTargetResult,
    TradeOutcome,
)
from services.calculations.base import (
    BaseCalculator,
    CalculationValidationError,
    ensure_finite,
    quantize,
)
from services.input_normalizer import (
    NON_NEGATIVE,
    OPTIONAL_POSITIVE,
    POSITIVE,
    FieldRule,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
DELIVERY_LEVERAGE = Decimal("1")


def classify(value: Decimal) -> TradeOutcome:
    """Profit / Loss / Breakeven by sign."""
    if value > 0:
        return TradeOutcome.PROFIT
    if value < 0:
        return TradeOutcome.LOSS
    return TradeOutcome.BREAKEVEN


class ProfitLossCalculator(BaseCalculator):
    """P&L = (sell - buy) x quantity; % = (sell - buy) / buy x 100."""

    kind = CalculatorKind.PROFIT_LOSS
    input_model = ProfitLossInputs
    result_model = ProfitLossResult
    FIELD_RULES = {
        'buy_price': POSITIVE,
        'sell_price': POSITIVE,
        'quantity': POSITIVE,
    }

    def calculate(self, inputs: ProfitLossInputs) -> ProfitLossResult:
        pnl = (inputs.sell_price - inputs.buy_price) * inputs.quantity
        percentage = (inputs.sell_price - inputs.buy_price) / inputs.buy_price * HUNDRED

        return ProfitLossResult(
            outcome=classify(pnl),
            profit_loss=quantize(pnl),
            amount=quantize(abs(pnl)),
            percentage=quantize(percentage),
            total_buy_value=quantize(inputs.buy_price * inputs.quantity),
            total_sell_value=quantize(inputs.sell_price * inputs.quantity),
        )


class IntradayPnlCalculator(BaseCalculator):
    """P&L = (sell - buy) x quantity - charges."""

    kind = CalculatorKind.INTRADAY_PNL
    input_model = IntradayPnlInputs
    result_model = IntradayPnlResult
    FIELD_RULES = {
        'buy_price': POSITIVE,
        'sell_price': POSITIVE,
        'quantity': POSITIVE,
        'charges': FieldRule(must_be_non_negative=True, optional=True),
    }

    def calculate(self, inputs: IntradayPnlInputs) -> IntradayPnlResult:
        gross = (inputs.sell_price - inputs.buy_price) * inputs.quantity
        net = gross - inputs.charges
        buy_value = inputs.buy_price * inputs.quantity

        return IntradayPnlResult(
            outcome=classify(net),
            gross_pnl=quantize(gross),
            charges=quantize(inputs.charges),
            net_pnl=quantize(net),
            turnover=quantize((inputs.buy_price + inputs.sell_price) * inputs.quantity),
            net_pnl_pct=quantize(net / buy_value * HUNDRED),
        )


class OptionsPnlCalculator(BaseCalculator):
    """
    Long option P&L at expiry/exit.

        call intrinsic = max(spot - strike, 0)
        put intrinsic  = max(strike - spot, 0)
        P&L = (intrinsic - premium) x lot_size x lots
    """

    kind = CalculatorKind.OPTIONS_PNL
    input_model = OptionsPnlInputs
    result_model = OptionsPnlResult
    FIELD_RULES = {
        'strike_price': POSITIVE,
        'premium': NON_NEGATIVE,
        'spot_price': POSITIVE,
        'lot_size': POSITIVE,
        'lots': OPTIONAL_POSITIVE,
    }

    def calculate(self, inputs: OptionsPnlInputs) -> OptionsPnlResult:
        if inputs.option_type == OptionType.CALL:
            intrinsic = max(inputs.spot_price - inputs.strike_price, Decimal("0"))
            breakeven = inputs.strike_price + inputs.premium
        else:
            intrinsic = max(inputs.strike_price - inputs.spot_price, Decimal("0"))
            breakeven = inputs.strike_price - inputs.premium

        units = inputs.lot_size * inputs.lots
        pnl_per_unit = intrinsic - inputs.premium
        premium_paid = inputs.premium * units
        net = pnl_per_unit * units

        return_on_premium: Optional[Decimal] = None
        if premium_paid > 0:
            return_on_premium = quantize(net / premium_paid * HUNDRED)

        return OptionsPnlResult(
            outcome=classify(net),
            intrinsic_value=quantize(intrinsic),
            pnl_per_unit=quantize(pnl_per_unit),
            total_units=units,
            premium_paid=quantize(premium_paid),
            net_pnl=quantize(net),
            breakeven_price=quantize(breakeven),
            return_on_premium_pct=return_on_premium,
        )


class StopLossTargetCalculator(BaseCalculator):
    """
    Stop Loss = Entry - (Entry x Risk %)
    Target    = Entry + (Entry x Reward %)

    Mirrored for short positions.
    """

    kind = CalculatorKind.STOP_LOSS_TARGET
    input_model = StopLossTargetInputs
    result_model = StopLossTargetResult
    FIELD_RULES = {
        'entry_price': POSITIVE,
        'risk_pct': FieldRule(must_be_positive=True, maximum=Decimal("99.99")),
        'reward_pct': POSITIVE,
        'quantity': OPTIONAL_POSITIVE,
    }

    def calculate(self, inputs: StopLossTargetInputs) -> StopLossTargetResult:
        entry = inputs.entry_price
        risk = entry * inputs.risk_pct / HUNDRED
        reward = entry * inputs.reward_pct / HUNDRED

        if inputs.side == PositionSide.LONG:
            stop_loss = entry - risk
            target = entry + reward
        else:
            if inputs.reward_pct >= HUNDRED:
                raise CalculationValidationError(
                    "Reward percentage must be below 100% for a short position",
                    field='reward_pct'
                )
            stop_loss = entry + risk
            target = entry - reward

        ratio = ensure_finite(reward / risk, "Risk/reward ratio")

        total_risk = total_reward = None
        if inputs.quantity is not None:
            total_risk = quantize(risk * inputs.quantity)
            total_reward = quantize(reward * inputs.quantity)

        return StopLossTargetResult(
            stop_loss_price=quantize(stop_loss),
            target_price=quantize(target),
            risk_per_share=quantize(risk),
            reward_per_share=quantize(reward),
            risk_reward_ratio=quantize(ratio),
            total_risk=total_risk,
            total_reward=total_reward,
        )


class MarginCalculator(BaseCalculator):
    """
    Shares affordable per trading mode.

        buying power = amount x leverage      (delivery: 1x, intraday: custom)
        shares       = floor(buying power / price)
        value bought = shares x price
        remaining    = buying power - value bought

    Margin used is the capital actually blocked: shares x price / leverage.
    """

    kind = CalculatorKind.MARGIN
    input_model = MarginInputs
    result_model = MarginResult
    FIELD_RULES = {
        'amount': POSITIVE,
        'share_price': POSITIVE,
        'intraday_leverage': OPTIONAL_POSITIVE,
    }

    def calculate(self, inputs: MarginInputs) -> MarginResult:
        if not inputs.delivery and not inputs.intraday:
            raise CalculationValidationError(
                "Please select at least one option (Intraday or Delivery).",
                field='mode'
            )
        leverage = inputs.intraday_leverage
        if inputs.intraday and (leverage is None or leverage <= 0):
            raise CalculationValidationError(
                "Please enter a valid leverage value for Intraday trading.",
                field='intraday_leverage'
            )

        delivery = intraday = None
        if inputs.delivery:
            delivery = self._mode(inputs.amount, inputs.share_price, DELIVERY_LEVERAGE)
        if inputs.intraday:
            intraday = self._mode(inputs.amount, inputs.share_price, leverage)

        return MarginResult(delivery=delivery, intraday=intraday)

    @staticmethod
    def _mode(amount: Decimal, price: Decimal, leverage: Decimal) -> MarginModeResult:
        buying_power = amount * leverage
        shares = int((buying_power / price).to_integral_value(rounding=ROUND_FLOOR))
        value_bought = shares * price
        margin_per_share = ensure_finite(price / leverage, "Margin per share")
        margin_used = shares * margin_per_share

        return MarginModeResult(
            leverage=leverage,
            buying_power=quantize(buying_power),
            shares=shares,
            value_bought=quantize(value_bought),
            remaining=quantize(buying_power - value_bought),
            margin_per_share=quantize(margin_per_share),
            margin_used=quantize(margin_used),
            margin_remaining=quantize(amount - margin_used),
        )
