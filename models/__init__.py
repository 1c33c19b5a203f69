"""Data models for the trading-desk discussion system.

The ledger, the participants and the discussion scheduler all import from models.
"""

from models.config import DeskConfig, LedgerConfig, OracleConfig, ParticipantConfig
from models.discussion import (
    DiscussionOutcome,
    DiscussionRequest,
    DiscussionResponse,
    DiscussionStatus,
    ParticipantInfo,
    Transcript,
    Turn,
)
from models.portfolio import PerformanceMetrics, PortfolioSummary, Position
from models.quote import MarketNews, Quote
from models.trade import (
    FeasibilityReport,
    PositionSizing,
    Trade,
    TradeOrder,
    TradeResult,
    TradeSide,
    TradeStatus,
)

__all__ = [
    # config
    "DeskConfig",
    "LedgerConfig",
    "OracleConfig",
    "ParticipantConfig",
    # discussion
    "DiscussionOutcome",
    "DiscussionRequest",
    "DiscussionResponse",
    "DiscussionStatus",
    "ParticipantInfo",
    "Transcript",
    "Turn",
    # portfolio
    "PerformanceMetrics",
    "PortfolioSummary",
    "Position",
    # quote
    "MarketNews",
    "Quote",
    # trade
    "FeasibilityReport",
    "PositionSizing",
    "Trade",
    "TradeOrder",
    "TradeResult",
    "TradeSide",
    "TradeStatus",
]
