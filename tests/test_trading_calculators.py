"""
Unit tests for profit/loss, intraday P&L, options P&L, stop-loss/target
and margin calculators.
"""

import pytest
from decimal import Decimal

from models.calculations import (
    OptionsPnlInputs,
    OptionType,
    PositionSide,
    StopLossTargetInputs,
    TradeOutcome,
)
from services.calculations import (
    IntradayPnlCalculator,
    MarginCalculator,
    OptionsPnlCalculator,
    ProfitLossCalculator,
    StopLossTargetCalculator,
)
from services.calculations.trading import classify
from services.errors import CalculationValidationError, InvalidInputError


def test_classify():
    assert classify(Decimal("0.01")) == TradeOutcome.PROFIT
    assert classify(Decimal("-3")) == TradeOutcome.LOSS
    assert classify(Decimal("0")) == TradeOutcome.BREAKEVEN


# Profit / loss

def test_profit():
    result = ProfitLossCalculator().evaluate({'buy_price': '100', 'sell_price': '120', 'quantity': '10'})

    assert result.outcome == TradeOutcome.PROFIT
    assert result.profit_loss == Decimal("200.00")
    assert result.amount == Decimal("200.00")
    assert result.percentage == Decimal("20.00")
    assert result.total_buy_value == Decimal("1000.00")
    assert result.total_sell_value == Decimal("1200.00")


def test_loss():
    result = ProfitLossCalculator().evaluate({'buy_price': '100', 'sell_price': '90', 'quantity': '10'})

    assert result.outcome == TradeOutcome.LOSS
    assert result.profit_loss == Decimal("-100.00")
    assert result.amount == Decimal("100.00")
    assert result.percentage == Decimal("-10.00")


def test_breakeven():
    result = ProfitLossCalculator().evaluate({'buy_price': '75.5', 'sell_price': '75.5', 'quantity': '3'})

    assert result.outcome == TradeOutcome.BREAKEVEN
    assert result.profit_loss == Decimal("0.00")


def test_profit_loss_rejects_zero_quantity():
    with pytest.raises(InvalidInputError) as exc:
        ProfitLossCalculator().evaluate({'buy_price': '100', 'sell_price': '120', 'quantity': '0'})

    assert 'quantity' in exc.value.field_errors


# Intraday

def test_intraday_net_of_charges():
    result = IntradayPnlCalculator().evaluate({
        'buy_price': '500', 'sell_price': '510', 'quantity': '100', 'charges': '150'
    })

    assert result.outcome == TradeOutcome.PROFIT
    assert result.gross_pnl == Decimal("1000.00")
    assert result.net_pnl == Decimal("850.00")
    assert result.turnover == Decimal("101000.00")
    assert result.net_pnl_pct == Decimal("1.70")


def test_intraday_charges_turn_profit_into_loss():
    result = IntradayPnlCalculator().evaluate({
        'buy_price': '500', 'sell_price': '501', 'quantity': '10', 'charges': '25'
    })

    assert result.gross_pnl == Decimal("10.00")
    assert result.net_pnl == Decimal("-15.00")
    assert result.outcome == TradeOutcome.LOSS


def test_intraday_charges_default_to_zero():
    calculator = IntradayPnlCalculator()
    values = calculator.parse_form({'buy_price': '100', 'sell_price': '101', 'quantity': '5', 'charges': ''})

    result = calculator.evaluate(values)

    assert result.charges == Decimal("0.00")
    assert result.net_pnl == result.gross_pnl


# Options

def test_call_in_the_money():
    result = OptionsPnlCalculator().evaluate(OptionsPnlInputs(
        option_type=OptionType.CALL,
        strike_price=Decimal("100"),
        premium=Decimal("5"),
        spot_price=Decimal("112"),
        lot_size=Decimal("50"),
        lots=Decimal("2"),
    ))

    assert result.outcome == TradeOutcome.PROFIT
    assert result.intrinsic_value == Decimal("12.00")
    assert result.pnl_per_unit == Decimal("7.00")
    assert result.total_units == Decimal("100")
    assert result.premium_paid == Decimal("500.00")
    assert result.net_pnl == Decimal("700.00")
    assert result.breakeven_price == Decimal("105.00")
    assert result.return_on_premium_pct == Decimal("140.00")


def test_put_expires_worthless():
    result = OptionsPnlCalculator().evaluate({
        'option_type': 'put',
        'strike_price': '100',
        'premium': '4',
        'spot_price': '110',
        'lot_size': '25',
    })

    assert result.outcome == TradeOutcome.LOSS
    assert result.intrinsic_value == Decimal("0.00")
    assert result.net_pnl == Decimal("-100.00")
    assert result.breakeven_price == Decimal("96.00")
    assert result.return_on_premium_pct == Decimal("-100.00")


def test_zero_premium_has_no_return_on_premium():
    result = OptionsPnlCalculator().evaluate({
        'option_type': 'call', 'strike_price': '100', 'premium': '0',
        'spot_price': '101', 'lot_size': '10',
    })

    assert result.net_pnl == Decimal("10.00")
    assert result.return_on_premium_pct is None


# Stop loss / target

def test_long_stop_loss_and_target():
    result = StopLossTargetCalculator().evaluate(StopLossTargetInputs(
        entry_price=Decimal("200"),
        risk_pct=Decimal("5"),
        reward_pct=Decimal("10"),
        quantity=Decimal("50"),
    ))

    assert result.stop_loss_price == Decimal("190.00")
    assert result.target_price == Decimal("220.00")
    assert result.risk_per_share == Decimal("10.00")
    assert result.reward_per_share == Decimal("20.00")
    assert result.risk_reward_ratio == Decimal("2.00")
    assert result.total_risk == Decimal("500.00")
    assert result.total_reward == Decimal("1000.00")


def test_short_stop_loss_and_target():
    result = StopLossTargetCalculator().evaluate({
        'entry_price': '200', 'risk_pct': '5', 'reward_pct': '10', 'side': PositionSide.SHORT,
    })

    assert result.stop_loss_price == Decimal("210.00")
    assert result.target_price == Decimal("180.00")
    assert result.total_risk is None


def test_short_reward_must_stay_below_100():
    with pytest.raises(CalculationValidationError) as exc:
        StopLossTargetCalculator().evaluate({
            'entry_price': '200', 'risk_pct': '5', 'reward_pct': '100', 'side': 'short',
        })

    assert exc.value.field == 'reward_pct'


def test_risk_pct_must_be_below_100():
    with pytest.raises(InvalidInputError) as exc:
        StopLossTargetCalculator().evaluate({'entry_price': '200', 'risk_pct': '100', 'reward_pct': '10'})

    assert 'risk_pct' in exc.value.field_errors


# Margin

def test_margin_both_modes():
    result = MarginCalculator().evaluate({
        'amount': '10000',
        'share_price': '300',
        'delivery': True,
        'intraday': True,
        'intraday_leverage': '5',
    })

    delivery = result.delivery
    assert delivery.leverage == Decimal("1")
    assert delivery.buying_power == Decimal("10000.00")
    assert delivery.shares == 33
    assert delivery.value_bought == Decimal("9900.00")
    assert delivery.remaining == Decimal("100.00")
    assert delivery.margin_per_share == Decimal("300.00")

    intraday = result.intraday
    assert intraday.buying_power == Decimal("50000.00")
    assert intraday.shares == 166
    assert intraday.value_bought == Decimal("49800.00")
    assert intraday.remaining == Decimal("200.00")
    assert intraday.margin_per_share == Decimal("60.00")
    assert intraday.margin_used == Decimal("9960.00")
    assert intraday.margin_remaining == Decimal("40.00")


def test_margin_delivery_only():
    result = MarginCalculator().evaluate({'amount': '5000', 'share_price': '1000', 'delivery': True})

    assert result.delivery.shares == 5
    assert result.intraday is None


def test_margin_requires_a_mode():
    with pytest.raises(CalculationValidationError) as exc:
        MarginCalculator().evaluate({'amount': '5000', 'share_price': '100'})

    assert exc.value.field == 'mode'


@pytest.mark.parametrize("leverage", [None, '0', '-2'])
def test_margin_intraday_requires_leverage(leverage):
    inputs = {'amount': '5000', 'share_price': '100', 'intraday': True}
    if leverage is not None:
        inputs['intraday_leverage'] = leverage

    with pytest.raises(CalculationValidationError) as exc:
        MarginCalculator().evaluate(inputs)

    assert exc.value.field == 'intraday_leverage'


def test_margin_form_passes_flags_through():
    calculator = MarginCalculator()
    values = calculator.parse_form({
        'amount': '₹10,000', 'share_price': '300', 'delivery': True, 'intraday': False,
        'intraday_leverage': '',
    })

    result = calculator.evaluate(values)

    assert result.delivery.shares == 33
    assert result.intraday is None
