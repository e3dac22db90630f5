"""
Unit tests for the tax / brokerage charges calculator.
"""

import pytest
from decimal import Decimal

from models.calculations import ChargeSchedule, TaxBrokerageInputs, TradeType
from services.calculations import TaxBrokerageCalculator
from services.calculations.charges import DEFAULT_SCHEDULES


@pytest.fixture
def calculator():
    return TaxBrokerageCalculator()


def test_delivery_charges(calculator):
    result = calculator.evaluate({
        'buy_price': '100', 'sell_price': '110', 'quantity': '100', 'trade_type': 'delivery'
    })

    assert result.turnover == Decimal("21000.00")
    assert result.brokerage == Decimal("0.00")
    assert result.stt == Decimal("21.00")
    assert result.exchange_txn_charges == Decimal("0.62")
    assert result.sebi_fees == Decimal("0.02")
    assert result.stamp_duty == Decimal("1.50")
    assert result.gst == Decimal("0.12")
    assert result.total_charges == Decimal("23.26")
    assert result.gross_pnl == Decimal("1000.00")
    assert result.net_pnl == Decimal("976.74")
    assert result.breakeven_points == Decimal("0.23")


def test_intraday_brokerage_is_capped_per_order(calculator):
    result = calculator.evaluate(TaxBrokerageInputs(
        buy_price=Decimal("1000"),
        sell_price=Decimal("1010"),
        quantity=Decimal("500"),
        trade_type=TradeType.INTRADAY,
    ))

    assert result.brokerage == Decimal("40.00")
    assert result.stt == Decimal("126.25")
    assert result.exchange_txn_charges == Decimal("29.85")
    assert result.sebi_fees == Decimal("1.01")
    assert result.stamp_duty == Decimal("15.00")
    assert result.gst == Decimal("12.75")
    assert result.total_charges == Decimal("224.86")
    assert result.net_pnl == Decimal("4775.14")
    assert result.breakeven_points == Decimal("0.45")


def test_small_intraday_order_below_cap(calculator):
    result = calculator.evaluate({
        'buy_price': '100', 'sell_price': '101', 'quantity': '10', 'trade_type': 'intraday'
    })

    assert result.brokerage == Decimal("0.60")


def test_total_is_sum_of_components(calculator):
    result = calculator.evaluate({'buy_price': '2345.6', 'sell_price': '2290.15', 'quantity': '37'})

    components = (
        result.brokerage + result.stt + result.exchange_txn_charges
        + result.sebi_fees + result.stamp_duty + result.gst
    )
    assert result.total_charges == components
    assert result.net_pnl == result.gross_pnl - result.total_charges


def test_schedule_override(calculator):
    free = ChargeSchedule(exchange_txn_pct=Decimal("0"), sebi_fee_pct=Decimal("0"), gst_pct=Decimal("0"))

    result = calculator.evaluate({
        'buy_price': '100', 'sell_price': '110', 'quantity': '10', 'schedule': free
    })

    assert result.total_charges == Decimal("0.00")
    assert result.net_pnl == result.gross_pnl


def test_default_schedules_cover_trade_types():
    assert set(DEFAULT_SCHEDULES) == set(TradeType)
    assert DEFAULT_SCHEDULES[TradeType.INTRADAY].brokerage_cap == Decimal("20")
