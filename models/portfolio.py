"""Portfolio state models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class Position(BaseModel):
    """Aggregated holding of one symbol.

    ``average_price`` is the volume-weighted cost of the shares still held.
    Positions are frozen; the ledger replaces them on every change so snapshots
    handed out earlier never observe later trades.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    quantity: Decimal
    average_price: Decimal
    last_updated: datetime

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity * self.average_price


class PortfolioSummary(BaseModel):
    """Valuation of the account at a point in time."""

    total_value: Decimal
    cash_balance: Decimal
    initial_value: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    position_count: int
    position_values: dict[str, Decimal]
    last_updated: datetime


class PerformanceMetrics(BaseModel):
    """Return and activity over a trailing window of days."""

    period_days: int
    total_return: Decimal
    total_return_percent: Decimal
    total_trades: int
    total_volume: Decimal
    last_updated: datetime
