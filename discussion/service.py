"""Client-facing entry point: turn a ``DiscussionRequest`` into a ``DiscussionResponse``.

``DiscussionService`` wires the pieces from a ``DeskConfig``: the shared ledger
and its quote provider, the roster, the oracle, the runtime and the optional
trace writer.  Each ``discuss`` call is one independent run over the shared
ledger.
"""

from __future__ import annotations

import asyncio
import logging

from agents.base import Participant
from agents.registry import create_roster
from discussion.errors import DiscussionError
from discussion.oracle import DecisionOracle, create_oracle
from discussion.runtime import DiscussionRuntime
from discussion.scheduler import DiscussionScheduler
from discussion.trace_logging import DiscussionTraceWriter, build_trace_record
from models.config import DeskConfig
from models.discussion import (
    DiscussionOutcome,
    DiscussionRequest,
    DiscussionResponse,
    DiscussionStatus,
    ParticipantInfo,
    Transcript,
)
from simulation.ledger import Ledger
from simulation.quotes import create_quote_provider

logger = logging.getLogger(__name__)


class DiscussionService:
    """Runs desk discussions for clients.

    Use as an async context manager (or call ``start``/``stop``) so the
    runtime is up while discussions run::

        async with DiscussionService(config) as service:
            response = await service.discuss(DiscussionRequest(topic="..."))
    """

    def __init__(
        self,
        config: DeskConfig,
        *,
        ledger: Ledger | None = None,
        participants: list[Participant] | None = None,
        oracle: DecisionOracle | None = None,
        runtime: DiscussionRuntime | None = None,
        run_name: str = "discussion",
    ) -> None:
        self.config = config
        self.ledger = ledger if ledger is not None else Ledger(
            config.ledger, create_quote_provider(config.ledger)
        )
        self.participants = (
            participants
            if participants is not None
            else create_roster(config.roster, self.ledger, config.participants)
        )
        self.oracle = oracle if oracle is not None else create_oracle(
            config.oracle, {p.name: p.description for p in self.participants}
        )
        self.runtime = runtime if runtime is not None else DiscussionRuntime()
        self._scheduler = DiscussionScheduler(self.oracle, self.runtime)
        self._trace = (
            DiscussionTraceWriter(config.trace_dir, run_name) if config.trace_dir else None
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.runtime.start()

    async def stop(self) -> None:
        await self.runtime.stop()

    async def __aenter__(self) -> DiscussionService:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def list_participants(self) -> list[ParticipantInfo]:
        """Name and role of every participant on this service's roster."""
        return [ParticipantInfo(name=p.name, description=p.description) for p in self.participants]

    async def discuss(
        self,
        request: DiscussionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> DiscussionResponse:
        """Run one discussion and return its result.

        Discussion failures are logged, traced and re-raised.  In-flight
        runtime work is drained before returning or raising.
        """
        try:
            outcome = await self._scheduler.run(
                request.topic,
                request.round_budget,
                self.participants,
                cancel_event=cancel_event,
                timeout=self.config.timeout_seconds,
            )
        except DiscussionError as exc:
            logger.exception("Discussion on '%s' failed", request.topic)
            self._submit_trace(request, exc.status, exc.transcript, error=str(exc))
            await self.runtime.run_until_idle()
            raise

        self._submit_trace(request, outcome.status, outcome.transcript, outcome=outcome)
        await self.runtime.run_until_idle()
        return DiscussionResponse.from_outcome(outcome)

    # ------------------------------------------------------------------
    # Tracing
    # ------------------------------------------------------------------

    def _submit_trace(
        self,
        request: DiscussionRequest,
        status: DiscussionStatus,
        transcript: Transcript | None,
        outcome: DiscussionOutcome | None = None,
        error: str | None = None,
    ) -> None:
        if self._trace is None:
            return
        self.runtime.submit(self._write_trace(request, status, transcript, outcome, error))

    async def _write_trace(
        self,
        request: DiscussionRequest,
        status: DiscussionStatus,
        transcript: Transcript | None,
        outcome: DiscussionOutcome | None,
        error: str | None,
    ) -> None:
        summary = await self.ledger.get_summary()
        record = build_trace_record(
            request,
            status,
            transcript,
            summary,
            self.ledger.get_history(),
            outcome=outcome,
            error=error,
        )
        await asyncio.to_thread(self._trace.write, record)
