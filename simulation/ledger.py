"""In-process ledger: account state, valuation and trade execution.

The ledger owns the single simulated account (cash, positions, trade history)
shared by every discussion in the process.  Trades execute at the current quote;
business-rule violations come back as failed ``TradeResult`` objects and only a
missing quote surfaces as an exception.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable

from models.config import LedgerConfig
from models.portfolio import PerformanceMetrics, PortfolioSummary, Position
from models.trade import FeasibilityReport, Trade, TradeOrder, TradeResult, TradeSide
from simulation.quotes import QuoteProvider, QuoteUnavailableError

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ledger:
    """Stateful account that validates, executes, and records trades.

    Instantiate one ``Ledger`` per process and share it.  The check-and-mutate
    section of ``execute_trade`` runs under an ``asyncio.Lock`` so concurrent
    discussions cannot both spend the same cash or sell the same shares.
    """

    def __init__(
        self,
        config: LedgerConfig,
        quotes: QuoteProvider,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._quotes = quotes
        self._clock = clock
        self._initial_cash: Decimal = config.initial_cash
        self._cash: Decimal = config.initial_cash
        self._positions: dict[str, Position] = {}
        self._trade_history: list[Trade] = []
        self._lock = asyncio.Lock()

        logger.info("Initialized ledger with $%s cash.", f"{self._initial_cash:,.2f}")

    @property
    def quotes(self) -> QuoteProvider:
        return self._quotes

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cash_balance(self) -> Decimal:
        return self._cash

    def get_positions(self) -> dict[str, Position]:
        """Return a snapshot of the current positions (symbol -> Position)."""
        return dict(self._positions)

    def get_history(self, window_days: int = 30) -> list[Trade]:
        """Return trades executed in the last *window_days*, most recent first."""
        cutoff = self._clock() - timedelta(days=window_days)
        recent = [t for t in self._trade_history if t.executed_at >= cutoff]
        return list(reversed(recent))

    async def get_summary(self) -> PortfolioSummary:
        """Value the account at current quotes.

        A symbol whose quote cannot be fetched is valued at its average cost,
        so one unavailable quote never fails the whole valuation.
        """
        cash = self._cash
        positions = self.get_positions()

        symbols = list(positions)
        results = await asyncio.gather(
            *(self._quotes.get_quote(s) for s in symbols),
            return_exceptions=True,
        )

        total_value = cash
        position_values: dict[str, Decimal] = {}
        for symbol, result in zip(symbols, results):
            position = positions[symbol]
            if isinstance(result, QuoteUnavailableError):
                logger.warning(
                    "Quote unavailable for %s, valuing at average cost: %s",
                    symbol,
                    result.reason,
                )
                value = position.cost_basis
            elif isinstance(result, BaseException):
                raise result
            else:
                value = position.quantity * result.price
            position_values[symbol] = value
            total_value += value

        total_return = total_value - self._initial_cash
        return PortfolioSummary(
            total_value=total_value,
            cash_balance=cash,
            initial_value=self._initial_cash,
            total_return=total_return,
            total_return_percent=total_return / self._initial_cash * 100,
            position_count=len(positions),
            position_values=position_values,
            last_updated=self._clock(),
        )

    async def calculate_performance(self, days: int = 30) -> PerformanceMetrics:
        """Return and traded volume over the trailing *days*."""
        trades = self.get_history(days)
        summary = await self.get_summary()
        return PerformanceMetrics(
            period_days=days,
            total_return=summary.total_return,
            total_return_percent=summary.total_return_percent,
            total_trades=len(trades),
            total_volume=sum((t.total_value for t in trades), _ZERO),
            last_updated=self._clock(),
        )

    async def check_feasibility(
        self,
        symbol: str,
        side: TradeSide | str,
        quantity: Decimal | int | str,
    ) -> FeasibilityReport:
        """Dry-run an order at the current quote without touching the account."""
        order = TradeOrder(symbol=symbol, side=side, quantity=quantity)
        quote = await self._quotes.get_quote(order.symbol)
        total_value = order.quantity * quote.price
        cash = self._cash
        position = self._positions.get(order.symbol)
        held = position.quantity if position is not None else _ZERO

        if order.side == TradeSide.BUY:
            feasible = order.quantity > 0 and total_value <= cash
            shortfall = max(total_value - cash, _ZERO)
            summary = await self.get_summary()
            impact = (
                total_value / summary.total_value * 100 if summary.total_value else None
            )
        else:
            feasible = _ZERO < order.quantity <= held
            shortfall = max(order.quantity - held, _ZERO)
            impact = None

        return FeasibilityReport(
            symbol=order.symbol,
            side=order.side,
            quantity=order.quantity,
            price=quote.price,
            total_value=total_value,
            cash_available=cash,
            shares_available=held,
            feasible=feasible,
            shortfall=shortfall,
            portfolio_impact_percent=impact,
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_trade(self, order: TradeOrder) -> TradeResult:
        """Validate and execute *order* at the current market price.

        Returns a failed ``TradeResult`` (ledger untouched) for a non-positive
        quantity, insufficient cash or insufficient shares.  Raises
        ``QuoteUnavailableError`` when no price can be obtained.
        """
        if order.quantity <= 0:
            return TradeResult.rejected(
                "invalid_quantity",
                f"Order quantity must be positive, got {order.quantity} for {order.symbol}.",
            )

        quote = await self._quotes.get_quote(order.symbol)
        price = quote.price
        total_value = order.quantity * price

        async with self._lock:
            if order.side == TradeSide.BUY:
                rejection = self._apply_buy(order, price, total_value)
            else:
                rejection = self._apply_sell(order, total_value)

            if rejection is not None:
                logger.info(
                    "Rejected %s %s %s: %s",
                    order.side.value,
                    order.quantity,
                    order.symbol,
                    rejection.error_message,
                )
                return rejection

            trade = Trade(
                trade_id=uuid.uuid4().hex,
                symbol=order.symbol,
                side=order.side,
                quantity=order.quantity,
                price=price,
                total_value=total_value,
                executed_at=self._clock(),
            )
            self._trade_history.append(trade)

        logger.info(
            "Executed %s %s %s @ $%s (total $%s). Cash now $%s.",
            order.side.value,
            order.quantity,
            order.symbol,
            price,
            total_value,
            self._cash,
        )
        return TradeResult(
            success=True,
            trade=trade,
            executed_quantity=order.quantity,
            execution_price=price,
            total_value=total_value,
        )

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _apply_buy(
        self,
        order: TradeOrder,
        price: Decimal,
        total_value: Decimal,
    ) -> TradeResult | None:
        if total_value > self._cash:
            return TradeResult.rejected(
                "insufficient_funds",
                f"Insufficient funds. Required: ${total_value:,.2f}, "
                f"Available: ${self._cash:,.2f}",
            )

        self._cash -= total_value
        existing = self._positions.get(order.symbol)
        if existing is None:
            quantity = order.quantity
            average_price = price
        else:
            quantity = existing.quantity + order.quantity
            average_price = (existing.cost_basis + total_value) / quantity

        self._positions[order.symbol] = Position(
            symbol=order.symbol,
            quantity=quantity,
            average_price=average_price,
            last_updated=self._clock(),
        )
        return None

    def _apply_sell(self, order: TradeOrder, total_value: Decimal) -> TradeResult | None:
        existing = self._positions.get(order.symbol)
        held = existing.quantity if existing is not None else _ZERO
        if existing is None or held < order.quantity:
            return TradeResult.rejected(
                "insufficient_shares",
                f"Insufficient shares. Requested: {order.quantity}, Available: {held}",
            )

        self._cash += total_value
        remaining = existing.quantity - order.quantity
        if remaining == 0:
            del self._positions[order.symbol]
        else:
            self._positions[order.symbol] = existing.model_copy(
                update={"quantity": remaining, "last_updated": self._clock()}
            )
        return None
