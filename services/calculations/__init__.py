"""
Stock market calculator formula evaluators.

Named Calculator Registry pattern: each calculator is a separate class,
dispatched via a registry dict keyed by the CalculatorKind stored on every
saved record.
"""

from typing import Any, Dict, Mapping, Union
import logging

from models.calculations import CalculatorInputs, CalculatorKind, CalculatorResult
from services.calculations.averaging import (
    AverageBuyCalculator,
    LossRecoveryCalculator,
    SharePriceMatchCalculator,
)
from services.calculations.base import BaseCalculator
from services.calculations.charges import TaxBrokerageCalculator
from services.calculations.corporate_actions import (
    DividendYieldCalculator,
    StockSplitCalculator,
)
from services.calculations.growth import (
    CagrBreakdown,
    CagrCalculator,
    SipCalculator,
    SipSchedule,
)
from services.calculations.trading import (
    IntradayPnlCalculator,
    MarginCalculator,
    OptionsPnlCalculator,
    ProfitLossCalculator,
    StopLossTargetCalculator,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Calculator Registry
# =============================================================================

CALCULATORS: Dict[CalculatorKind, type] = {
    CalculatorKind.CAGR: CagrCalculator,
    CalculatorKind.SIP: SipCalculator,
    CalculatorKind.INTRADAY_PNL: IntradayPnlCalculator,
    CalculatorKind.AVERAGE_BUY: AverageBuyCalculator,
    CalculatorKind.OPTIONS_PNL: OptionsPnlCalculator,
    CalculatorKind.DIVIDEND_YIELD: DividendYieldCalculator,
    CalculatorKind.STOP_LOSS_TARGET: StopLossTargetCalculator,
    CalculatorKind.MARGIN: MarginCalculator,
    CalculatorKind.TAX_BROKERAGE: TaxBrokerageCalculator,
    CalculatorKind.STOCK_SPLIT: StockSplitCalculator,
    CalculatorKind.LOSS_RECOVERY: LossRecoveryCalculator,
    CalculatorKind.SHARE_PRICE_MATCH: SharePriceMatchCalculator,
    CalculatorKind.PROFIT_LOSS: ProfitLossCalculator,
}


def get_calculator(kind: Union[CalculatorKind, str]) -> BaseCalculator:
    """
    Instantiate the calculator registered for a kind.

    Args:
        kind: CalculatorKind or its wire value (e.g. "loss-recovery")

    Raises:
        ValueError: If the kind is not registered
    """
    try:
        kind = CalculatorKind(kind)
    except ValueError:
        raise ValueError(f"Unknown calculator kind: {kind}")

    calculator_class = CALCULATORS.get(kind)
    if not calculator_class:
        raise ValueError(f"Unknown calculator kind: {kind.value}")

    return calculator_class()


def evaluate(
    kind: Union[CalculatorKind, str],
    inputs: Union[CalculatorInputs, Mapping[str, Any]]
) -> CalculatorResult:
    """
    Dispatch to the correct calculator and evaluate validated inputs.

    Args:
        kind: Calculator to run.
        inputs: The calculator's input model, or a dict of already-numeric
                values. Raw form text goes through parse_form() first.

    Returns:
        The calculator's result model.
    """
    return get_calculator(kind).evaluate(inputs)


__all__ = [
    "CALCULATORS",
    "get_calculator",
    "evaluate",
    "BaseCalculator",
    "CagrCalculator",
    "CagrBreakdown",
    "SipCalculator",
    "SipSchedule",
    "AverageBuyCalculator",
    "LossRecoveryCalculator",
    "SharePriceMatchCalculator",
    "DividendYieldCalculator",
    "StockSplitCalculator",
    "ProfitLossCalculator",
    "IntradayPnlCalculator",
    "OptionsPnlCalculator",
    "StopLossTargetCalculator",
    "MarginCalculator",
    "TaxBrokerageCalculator",
]
