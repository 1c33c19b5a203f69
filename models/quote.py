"""Market data models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class Quote(BaseModel):
    """Point-in-time price snapshot for a symbol. Never cached by the ledger."""

    symbol: str
    price: Decimal = Field(gt=0)
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    volume: int = 0
    as_of: datetime


class MarketNews(BaseModel):
    """A market headline. Derived from trending symbols; there is no article body."""

    title: str
    summary: str
    symbol: str
    published_at: datetime
