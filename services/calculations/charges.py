"""
Tax / brokerage charges for an equity round trip (one buy order, one sell order).

Total Charges = Brokerage + STT + Exchange txn + SEBI fee + Stamp duty + GST
GST applies to brokerage, exchange transaction charges and the SEBI fee.

Default rates follow the usual Indian equity schedule for each segment and can
be overridden per calculation with a ChargeSchedule.
"""

from decimal import Decimal
from typing import Dict
import logging

from models.calculations import (
    CalculatorKind,
    ChargeSchedule,
    TaxBrokerageInputs,
    TaxBrokerageResult,
    TradeType,
)
from services.calculations.base import BaseCalculator, quantize
from services.input_normalizer import POSITIVE

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")

DEFAULT_SCHEDULES: Dict[TradeType, ChargeSchedule] = {
    TradeType.DELIVERY: ChargeSchedule(
        brokerage_pct=Decimal("0"),
        stt_buy_pct=Decimal("0.1"),
        stt_sell_pct=Decimal("0.1"),
        stamp_duty_buy_pct=Decimal("0.015"),
    ),
    TradeType.INTRADAY: ChargeSchedule(
        brokerage_pct=Decimal("0.03"),
        brokerage_cap=Decimal("20"),
        stt_sell_pct=Decimal("0.025"),
        stamp_duty_buy_pct=Decimal("0.003"),
    ),
}


def _pct(value: Decimal, rate: Decimal) -> Decimal:
    return value * rate / HUNDRED


class TaxBrokerageCalculator(BaseCalculator):
    """Itemized round-trip charges and net P&L after charges."""

    kind = CalculatorKind.TAX_BROKERAGE
    input_model = TaxBrokerageInputs
    result_model = TaxBrokerageResult
    FIELD_RULES = {
        'buy_price': POSITIVE,
        'sell_price': POSITIVE,
        'quantity': POSITIVE,
    }

    def calculate(self, inputs: TaxBrokerageInputs) -> TaxBrokerageResult:
        schedule = inputs.schedule or DEFAULT_SCHEDULES[inputs.trade_type]

        buy_value = inputs.buy_price * inputs.quantity
        sell_value = inputs.sell_price * inputs.quantity
        turnover = buy_value + sell_value

        brokerage = quantize(
            self._order_brokerage(buy_value, schedule)
            + self._order_brokerage(sell_value, schedule)
        )
        stt = quantize(
            _pct(buy_value, schedule.stt_buy_pct) + _pct(sell_value, schedule.stt_sell_pct)
        )
        exchange = quantize(_pct(turnover, schedule.exchange_txn_pct))
        sebi = quantize(_pct(turnover, schedule.sebi_fee_pct))
        stamp = quantize(_pct(buy_value, schedule.stamp_duty_buy_pct))
        gst = quantize(_pct(brokerage + exchange + sebi, schedule.gst_pct))

        # Sum of the displayed (rounded) components
        total = brokerage + stt + exchange + sebi + stamp + gst
        gross = sell_value - buy_value

        logger.debug(
            f"Charges ({inputs.trade_type.value}): turnover={turnover:.2f}, "
            f"total={total:.2f}"
        )

        return TaxBrokerageResult(
            turnover=quantize(turnover),
            brokerage=brokerage,
            stt=stt,
            exchange_txn_charges=exchange,
            sebi_fees=sebi,
            stamp_duty=stamp,
            gst=gst,
            total_charges=total,
            gross_pnl=quantize(gross),
            net_pnl=quantize(gross - total),
            breakeven_points=quantize(total / inputs.quantity),
        )

    @staticmethod
    def _order_brokerage(order_value: Decimal, schedule: ChargeSchedule) -> Decimal:
        brokerage = _pct(order_value, schedule.brokerage_pct)
        if schedule.brokerage_cap is not None and brokerage > schedule.brokerage_cap:
            return schedule.brokerage_cap
        return brokerage
