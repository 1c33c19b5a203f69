"""Order and execution models: TradeOrder, Trade, TradeResult."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator


class TradeSide(str, Enum):
    """Direction of an order."""

    BUY = "buy"
    SELL = "sell"


class TradeStatus(str, Enum):
    """Lifecycle status of a recorded trade (only executed trades are recorded)."""

    EXECUTED = "executed"


RejectionReason = Literal["invalid_quantity", "insufficient_funds", "insufficient_shares"]


class TradeOrder(BaseModel):
    """Single order: symbol, side, quantity.

    Symbols are upper-cased on construction so ``"aapl"`` and ``"AAPL"`` address
    the same position.  Quantity is *not* validated here; a non-positive quantity
    is a business rejection reported by the ledger, not a construction error.
    """

    symbol: str
    side: TradeSide
    quantity: Decimal

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        return value.strip().upper()


class Trade(BaseModel):
    """Immutable record of one executed fill. Produced only by the ledger."""

    model_config = ConfigDict(frozen=True)

    trade_id: str
    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    total_value: Decimal
    executed_at: datetime
    status: TradeStatus = TradeStatus.EXECUTED


class TradeResult(BaseModel):
    """Ledger response to ``execute_trade``.

    A failed result never mutates the ledger.  ``rejection`` carries a machine
    readable reason so callers can tell "no funds" from "no shares" without
    parsing ``error_message``.
    """

    success: bool
    error_message: str = ""
    rejection: RejectionReason | None = None
    trade: Trade | None = None
    executed_quantity: Decimal = Decimal("0")
    execution_price: Decimal = Decimal("0")
    total_value: Decimal = Decimal("0")

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> TradeResult:
        return cls(success=False, rejection=reason, error_message=message)


class FeasibilityReport(BaseModel):
    """Dry-run check of an order against the current ledger state."""

    symbol: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    total_value: Decimal
    cash_available: Decimal
    shares_available: Decimal
    feasible: bool
    shortfall: Decimal = Decimal("0")  # Cash (buy) or shares (sell) still missing
    portfolio_impact_percent: Decimal | None = None


class PositionSizing(BaseModel):
    """Share count that fits a risk budget expressed as a share of portfolio value."""

    symbol: str
    price: Decimal
    risk_percent: Decimal
    risk_budget: Decimal
    recommended_shares: Decimal
    position_value: Decimal
    cash_available: Decimal
    affordable: bool
