"""
Pydantic models for the stock market calculators.

Defines the closed set of calculator kinds, the typed input and result model
for each kind, and the saved calculation records that make up the persisted
history blob.

Records are a tagged union keyed by ``kind``: every variant carries its own
statically typed ``inputs`` and ``outputs`` shape.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.input_normalizer import try_normalize


# =============================================================================
# ENUMS
# =============================================================================

class CalculatorKind(str, Enum):
    """Calculator kinds (wire values match the persisted blob)."""
    CAGR = "cagr"
    SIP = "sip"
    INTRADAY_PNL = "intraday-pnl"
    AVERAGE_BUY = "average-buy"
    OPTIONS_PNL = "options-pnl"
    DIVIDEND_YIELD = "dividend-yield"
    STOP_LOSS_TARGET = "stop-loss-target"
    MARGIN = "margin"
    TAX_BROKERAGE = "tax-brokerage"
    STOCK_SPLIT = "stock-split"
    LOSS_RECOVERY = "loss-recovery"
    SHARE_PRICE_MATCH = "share-price-match"
    PROFIT_LOSS = "profit-loss"


class TradeOutcome(str, Enum):
    """Sign classification of a profit/loss figure."""
    PROFIT = "Profit"
    LOSS = "Loss"
    BREAKEVEN = "Breakeven"


class CorporateAction(str, Enum):
    SPLIT = "split"
    BONUS = "bonus"


class OptionType(str, Enum):
    CALL = "call"
    PUT = "put"


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class TradeType(str, Enum):
    """Equity segment used to pick a charge schedule."""
    DELIVERY = "delivery"
    INTRADAY = "intraday"


# =============================================================================
# INPUT MODELS
# =============================================================================

class CalculatorInputs(BaseModel):
    """Base class for calculator inputs."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class CagrInputs(CalculatorInputs):
    initial_value: Decimal = Field(..., gt=0, description="Initial investment value")
    final_value: Decimal = Field(..., gt=0, description="Final investment value")
    years: Decimal = Field(..., gt=0, description="Investment period in years")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {"initial_value": "10000", "final_value": "15000", "years": "5"}
        },
    )


class SipInputs(CalculatorInputs):
    monthly_investment: Decimal = Field(..., gt=0)
    annual_return_pct: Decimal = Field(..., ge=0, description="Expected annual return (%)")
    years: Decimal = Field(..., gt=0)


class PurchaseLot(BaseModel):
    """
    One purchase row of the average buy calculator.

    Accepts a mapping or a (quantity, price) pair. Values are unconstrained:
    unparseable text becomes None, and rows with a missing or non-positive
    quantity/price are dropped before aggregation instead of failing the form.
    """

    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def coerce_row(cls, data: Any) -> Any:
        if isinstance(data, PurchaseLot):
            return data
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                return {}
            data = {"quantity": data[0], "price": data[1]}
        if not isinstance(data, Mapping):
            return {}
        return {
            "quantity": try_normalize(data.get("quantity")),
            "price": try_normalize(data.get("price")),
        }

    @property
    def is_valid(self) -> bool:
        return (
            self.quantity is not None
            and self.price is not None
            and self.quantity.is_finite()
            and self.price.is_finite()
            and self.quantity > 0
            and self.price > 0
        )


class AverageBuyInputs(CalculatorInputs):
    purchases: List[PurchaseLot] = Field(default_factory=list)
    current_price: Optional[Decimal] = Field(None, gt=0, description="Current market price")


class LossRecoveryInputs(CalculatorInputs):
    shares_owned: Decimal = Field(..., gt=0)
    average_price: Decimal = Field(..., gt=0)
    current_loss_pct: Decimal = Field(..., gt=0)
    recovery_pct: Decimal = Field(..., gt=0)


class SharePriceMatchInputs(CalculatorInputs):
    shares_owned: Decimal = Field(..., gt=0)
    average_price: Decimal = Field(..., gt=0)
    current_price: Decimal = Field(..., gt=0)
    target_average_price: Decimal = Field(..., gt=0)


class DividendYieldInputs(CalculatorInputs):
    share_price: Decimal = Field(..., gt=0)
    dividend_yield_pct: Decimal = Field(..., ge=0)
    shares_held: Optional[Decimal] = Field(None, gt=0)


class MarginInputs(CalculatorInputs):
    amount: Decimal = Field(..., gt=0)
    share_price: Decimal = Field(..., gt=0)
    delivery: bool = False
    intraday: bool = False
    intraday_leverage: Optional[Decimal] = Field(None, description="Leverage multiple for intraday")


class ProfitLossInputs(CalculatorInputs):
    buy_price: Decimal = Field(..., gt=0)
    sell_price: Decimal = Field(..., gt=0)
    quantity: Decimal = Field(..., gt=0)


class IntradayPnlInputs(CalculatorInputs):
    buy_price: Decimal = Field(..., gt=0)
    sell_price: Decimal = Field(..., gt=0)
    quantity: Decimal = Field(..., gt=0)
    charges: Decimal = Field(Decimal("0"), ge=0, description="Total brokerage and taxes")


class OptionsPnlInputs(CalculatorInputs):
    option_type: OptionType = OptionType.CALL
    strike_price: Decimal = Field(..., gt=0)
    premium: Decimal = Field(..., ge=0, description="Premium paid per unit")
    spot_price: Decimal = Field(..., gt=0, description="Underlying price at expiry/exit")
    lot_size: Decimal = Field(..., gt=0)
    lots: Decimal = Field(Decimal("1"), gt=0)


class StopLossTargetInputs(CalculatorInputs):
    entry_price: Decimal = Field(..., gt=0)
    risk_pct: Decimal = Field(..., gt=0, lt=100)
    reward_pct: Decimal = Field(..., gt=0)
    side: PositionSide = PositionSide.LONG
    quantity: Optional[Decimal] = Field(None, gt=0)


class ChargeSchedule(BaseModel):
    """
    Statutory and broker charge rates, all expressed as percentages of value.

    ``brokerage_cap`` is the flat per-order ceiling (None = uncapped).
    """

    brokerage_pct: Decimal = Decimal("0")
    brokerage_cap: Optional[Decimal] = None
    stt_buy_pct: Decimal = Decimal("0")
    stt_sell_pct: Decimal = Decimal("0")
    exchange_txn_pct: Decimal = Decimal("0.00297")
    sebi_fee_pct: Decimal = Decimal("0.0001")
    stamp_duty_buy_pct: Decimal = Decimal("0")
    gst_pct: Decimal = Decimal("18")

    model_config = ConfigDict(frozen=True)


class TaxBrokerageInputs(CalculatorInputs):
    buy_price: Decimal = Field(..., gt=0)
    sell_price: Decimal = Field(..., gt=0)
    quantity: Decimal = Field(..., gt=0)
    trade_type: TradeType = TradeType.DELIVERY
    schedule: Optional[ChargeSchedule] = Field(
        None, description="Override the default schedule for trade_type"
    )


class StockSplitInputs(CalculatorInputs):
    current_shares: Decimal = Field(..., gt=0)
    current_price: Decimal = Field(..., gt=0)
    ratio_numerator: Decimal = Field(..., gt=0)
    ratio_denominator: Decimal = Field(..., gt=0)
    action: CorporateAction = CorporateAction.SPLIT


# =============================================================================
# RESULT MODELS
# =============================================================================

class CalculatorResult(BaseModel):
    """Base class for calculator results."""

    model_config = ConfigDict(frozen=True)


class CagrResult(CalculatorResult):
    cagr_pct: Decimal = Field(..., description="Compound annual growth rate (%)")
    total_return_pct: Decimal
    absolute_gain: Decimal
    initial_value: Decimal
    final_value: Decimal
    years: Decimal


class SipResult(CalculatorResult):
    invested_amount: Decimal
    estimated_returns: Decimal
    future_value: Decimal
    months: int


class AverageBuyResult(CalculatorResult):
    average_price: Decimal
    total_investment: Decimal
    total_quantity: Decimal
    number_of_purchases: int
    current_value: Optional[Decimal] = None
    profit_loss: Optional[Decimal] = None
    profit_loss_pct: Optional[Decimal] = None


class LossRecoveryResult(CalculatorResult):
    current_price: Decimal
    new_average_price: Decimal
    final_loss_pct: Decimal
    additional_shares: Decimal
    investment_amount: Decimal


class SharePriceMatchResult(CalculatorResult):
    additional_shares_exact: Decimal
    additional_shares: int = Field(..., description="Rounded up to the next whole share")
    investment_needed: Decimal
    total_shares_after: int
    new_average_price: Decimal
    price_reduction_pct: Decimal
    cost_reduction: Decimal


class DividendYieldResult(CalculatorResult):
    dividend_per_share: Decimal
    annual_dividend: Decimal
    examples: Dict[int, Decimal] = Field(
        default_factory=dict, description="Annual dividend for sample holdings"
    )
    total_dividend: Optional[Decimal] = None


class MarginModeResult(CalculatorResult):
    leverage: Decimal
    buying_power: Decimal
    shares: int
    value_bought: Decimal
    remaining: Decimal
    margin_per_share: Decimal
    margin_used: Decimal
    margin_remaining: Decimal


class MarginResult(CalculatorResult):
    delivery: Optional[MarginModeResult] = None
    intraday: Optional[MarginModeResult] = None


class ProfitLossResult(CalculatorResult):
    outcome: TradeOutcome
    profit_loss: Decimal = Field(..., description="Signed P&L")
    amount: Decimal = Field(..., description="Absolute P&L")
    percentage: Decimal
    total_buy_value: Decimal
    total_sell_value: Decimal


class IntradayPnlResult(CalculatorResult):
    outcome: TradeOutcome
    gross_pnl: Decimal
    charges: Decimal
    net_pnl: Decimal
    turnover: Decimal
    net_pnl_pct: Decimal


class OptionsPnlResult(CalculatorResult):
    outcome: TradeOutcome
    intrinsic_value: Decimal
    pnl_per_unit: Decimal
    total_units: Decimal
    premium_paid: Decimal
    net_pnl: Decimal
    breakeven_price: Decimal
    return_on_premium_pct: Optional[Decimal] = None


class StopLossTargetResult(CalculatorResult):
    stop_loss_price: Decimal
    target_price: Decimal
    risk_per_share: Decimal
    reward_per_share: Decimal
    risk_reward_ratio: Decimal
    total_risk: Optional[Decimal] = None
    total_reward: Optional[Decimal] = None


class TaxBrokerageResult(CalculatorResult):
    turnover: Decimal
    brokerage: Decimal
    stt: Decimal
    exchange_txn_charges: Decimal
    sebi_fees: Decimal
    stamp_duty: Decimal
    gst: Decimal
    total_charges: Decimal
    gross_pnl: Decimal
    net_pnl: Decimal
    breakeven_points: Decimal


class StockSplitResult(CalculatorResult):
    action: CorporateAction
    ratio: str
    extra_shares: Decimal
    fractional_shares: Decimal
    total_shares: int
    new_price: Decimal
    total_value: Decimal


class YearlyGrowthRow(BaseModel):
    """One year of a compounding breakdown."""

    year: int
    opening_value: Decimal
    growth: Decimal
    closing_value: Decimal

    model_config = ConfigDict(frozen=True)


class SipYearRow(BaseModel):
    """Cumulative SIP position at the end of a year."""

    year: int
    months: int
    invested_amount: Decimal
    estimated_value: Decimal
    estimated_returns: Decimal

    model_config = ConfigDict(frozen=True)


# =============================================================================
# SAVED RECORDS (tagged union keyed by kind)
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RecordBase(BaseModel):
    """Fields shared by every saved calculation record."""

    id: str = Field(default_factory=lambda: uuid4().hex, frozen=True)
    label: Optional[str] = Field(None, max_length=255, description="User supplied name")
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt", frozen=True)
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class CagrRecord(_RecordBase):
    kind: Literal[CalculatorKind.CAGR] = CalculatorKind.CAGR
    inputs: CagrInputs
    outputs: CagrResult


class SipRecord(_RecordBase):
    kind: Literal[CalculatorKind.SIP] = CalculatorKind.SIP
    inputs: SipInputs
    outputs: SipResult


class IntradayPnlRecord(_RecordBase):
    kind: Literal[CalculatorKind.INTRADAY_PNL] = CalculatorKind.INTRADAY_PNL
    inputs: IntradayPnlInputs
    outputs: IntradayPnlResult


class AverageBuyRecord(_RecordBase):
    kind: Literal[CalculatorKind.AVERAGE_BUY] = CalculatorKind.AVERAGE_BUY
    inputs: AverageBuyInputs
    outputs: AverageBuyResult


class OptionsPnlRecord(_RecordBase):
    kind: Literal[CalculatorKind.OPTIONS_PNL] = CalculatorKind.OPTIONS_PNL
    inputs: OptionsPnlInputs
    outputs: OptionsPnlResult


class DividendYieldRecord(_RecordBase):
    kind: Literal[CalculatorKind.DIVIDEND_YIELD] = CalculatorKind.DIVIDEND_YIELD
    inputs: DividendYieldInputs
    outputs: DividendYieldResult


class StopLossTargetRecord(_RecordBase):
    kind: Literal[CalculatorKind.STOP_LOSS_TARGET] = CalculatorKind.STOP_LOSS_TARGET
    inputs: StopLossTargetInputs
    outputs: StopLossTargetResult


class MarginRecord(_RecordBase):
    kind: Literal[CalculatorKind.MARGIN] = CalculatorKind.MARGIN
    inputs: MarginInputs
    outputs: MarginResult


class TaxBrokerageRecord(_RecordBase):
    kind: Literal[CalculatorKind.TAX_BROKERAGE] = CalculatorKind.TAX_BROKERAGE
    inputs: TaxBrokerageInputs
    outputs: TaxBrokerageResult


class StockSplitRecord(_RecordBase):
    kind: Literal[CalculatorKind.STOCK_SPLIT] = CalculatorKind.STOCK_SPLIT
    inputs: StockSplitInputs
    outputs: StockSplitResult


class LossRecoveryRecord(_RecordBase):
    kind: Literal[CalculatorKind.LOSS_RECOVERY] = CalculatorKind.LOSS_RECOVERY
    inputs: LossRecoveryInputs
    outputs: LossRecoveryResult


class SharePriceMatchRecord(_RecordBase):
    kind: Literal[CalculatorKind.SHARE_PRICE_MATCH] = CalculatorKind.SHARE_PRICE_MATCH
    inputs: SharePriceMatchInputs
    outputs: SharePriceMatchResult


class ProfitLossRecord(_RecordBase):
    kind: Literal[CalculatorKind.PROFIT_LOSS] = CalculatorKind.PROFIT_LOSS
    inputs: ProfitLossInputs
    outputs: ProfitLossResult


CalculationRecord = Annotated[
    Union[
        CagrRecord,
        SipRecord,
        IntradayPnlRecord,
        AverageBuyRecord,
        OptionsPnlRecord,
        DividendYieldRecord,
        StopLossTargetRecord,
        MarginRecord,
        TaxBrokerageRecord,
        StockSplitRecord,
        LossRecoveryRecord,
        SharePriceMatchRecord,
        ProfitLossRecord,
    ],
    Field(discriminator="kind"),
]

RECORD_MODELS: Dict[CalculatorKind, type] = {
    CalculatorKind.CAGR: CagrRecord,
    CalculatorKind.SIP: SipRecord,
    CalculatorKind.INTRADAY_PNL: IntradayPnlRecord,
    CalculatorKind.AVERAGE_BUY: AverageBuyRecord,
    CalculatorKind.OPTIONS_PNL: OptionsPnlRecord,
    CalculatorKind.DIVIDEND_YIELD: DividendYieldRecord,
    CalculatorKind.STOP_LOSS_TARGET: StopLossTargetRecord,
    CalculatorKind.MARGIN: MarginRecord,
    CalculatorKind.TAX_BROKERAGE: TaxBrokerageRecord,
    CalculatorKind.STOCK_SPLIT: StockSplitRecord,
    CalculatorKind.LOSS_RECOVERY: LossRecoveryRecord,
    CalculatorKind.SHARE_PRICE_MATCH: SharePriceMatchRecord,
    CalculatorKind.PROFIT_LOSS: ProfitLossRecord,
}


class CalculationStoreState(BaseModel):
    """
    The persisted blob: the selected calculator plus saved records.

    Only these two fields are serialized; transient UI state (loading flags,
    modal visibility) is rebuilt fresh by the caller on load.
    """

    selected_calculator: Optional[CalculatorKind] = Field(None, alias="selectedCalculator")
    saved_calculations: List[CalculationRecord] = Field(
        default_factory=list, alias="savedCalculations"
    )

    model_config = ConfigDict(populate_by_name=True)
