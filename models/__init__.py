"""
Pydantic models for the stock market calculators.

This module exports the calculator kinds, per-kind input and result models,
and the saved record types that make up the persisted history.
"""

from .calculations import (
    # Enums
    CalculatorKind,
    TradeOutcome,
    CorporateAction,
    OptionType,
    PositionSide,
    TradeType,
    # Inputs
    CalculatorInputs,
    CagrInputs,
    SipInputs,
    PurchaseLot,
    AverageBuyInputs,
    LossRecoveryInputs,
    SharePriceMatchInputs,
    DividendYieldInputs,
    MarginInputs,
    ProfitLossInputs,
    IntradayPnlInputs,
    OptionsPnlInputs,
    StopLossTargetInputs,
    ChargeSchedule,
    TaxBrokerageInputs,
    StockSplitInputs,
    # Results
    CalculatorResult,
    CagrResult,
    SipResult,
    AverageBuyResult,
    LossRecoveryResult,
    SharePriceMatchResult,
    DividendYieldResult,
    MarginModeResult,
    MarginResult,
    ProfitLossResult,
    IntradayPnlResult,
    OptionsPnlResult,
    StopLossTargetResult,
    TaxBrokerageResult,
    StockSplitResult,
    YearlyGrowthRow,
    SipYearRow,
    # Records
    CalculationRecord,
    RECORD_MODELS,
    CalculationStoreState,
)

__all__ = [
    # Enums
    "CalculatorKind",
    "TradeOutcome",
    "CorporateAction",
    "OptionType",
    "PositionSide",
    "TradeType",
    # Inputs
    "CalculatorInputs",
    "CagrInputs",
    "SipInputs",
    "PurchaseLot",
    "AverageBuyInputs",
    "LossRecoveryInputs",
    "SharePriceMatchInputs",
    "DividendYieldInputs",
    "MarginInputs",
    "ProfitLossInputs",
    "IntradayPnlInputs",
    "OptionsPnlInputs",
    "StopLossTargetInputs",
    "ChargeSchedule",
    "TaxBrokerageInputs",
    "StockSplitInputs",
    # Results
    "CalculatorResult",
    "CagrResult",
    "SipResult",
    "AverageBuyResult",
    "LossRecoveryResult",
    "SharePriceMatchResult",
    "DividendYieldResult",
    "MarginModeResult",
    "MarginResult",
    "ProfitLossResult",
    "IntradayPnlResult",
    "OptionsPnlResult",
    "StopLossTargetResult",
    "TaxBrokerageResult",
    "StockSplitResult",
    "YearlyGrowthRow",
    "SipYearRow",
    # Records
    "CalculationRecord",
    "RECORD_MODELS",
    "CalculationStoreState",
]
