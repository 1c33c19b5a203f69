"""Deterministic participant for offline runs and tests.

A scripted participant makes no model calls.  Each turn it reports what its
capabilities let it see and, if it can trade, executes its next queued order.
"""

from __future__ import annotations

import logging
from typing import Iterable

from agents.base import Capability, Participant, ParticipantSpec
from agents.tools import ParticipantActions, format_quote, format_summary, format_trade_result
from models.discussion import Transcript, Turn
from models.trade import TradeOrder
from simulation.quotes import QuoteUnavailableError

logger = logging.getLogger(__name__)


class ScriptedParticipant(Participant):
    """Participant whose turns are computed from the ledger and a fixed script."""

    def __init__(
        self,
        spec: ParticipantSpec,
        actions: ParticipantActions,
        orders: Iterable[TradeOrder] = (),
        watchlist: Iterable[str] = (),
    ) -> None:
        super().__init__(spec)
        self._actions = actions
        self._pending = list(orders) if actions.allows(Capability.TRADING) else []
        self._watchlist = list(watchlist)

    @property
    def pending_orders(self) -> list[TradeOrder]:
        return list(self._pending)

    async def take_turn(self, transcript: Transcript) -> Turn:
        sections = [f"{self.description} On '{transcript.topic}':"]

        if self._watchlist and self._actions.allows(Capability.MARKET_DATA):
            quotes = await self._actions.get_quotes(self._watchlist)
            if quotes:
                sections.append("\n".join(format_quote(q) for q in quotes))

        if self._pending:
            order = self._pending.pop(0)
            try:
                result = await self._actions.execute_trade(order.symbol, order.side, order.quantity)
            except QuoteUnavailableError as exc:
                logger.warning("%s could not execute %s %s: %s", self.name, order.side.value, order.symbol, exc)
                sections.append(f"{order.side.value.upper()} ORDER FAILED: {exc}")
            else:
                sections.append(format_trade_result(result, order.side, order.symbol))

        if self._actions.allows(Capability.PORTFOLIO):
            sections.append(format_summary(await self._actions.get_summary()))

        return Turn(speaker=self.name, content="\n\n".join(sections))
