"""Round-bounded discussion scheduler built on LangGraph.

Graph structure::

  [START]
    -> [select_speaker]     (oracle picks the next participant)
    -> [take_turn]          (participant speaks, may act on the ledger)
    -> [check_termination]  (oracle decides whether the team is done)
    -> continue?            (loop to select_speaker, or proceed)
    -> [summarize]          (oracle synthesizes the result)
  [END]

The loop ends when the oracle says so or the round budget is spent; a spent
budget is a normal completion.  A cancel event is checked at the top of every
round and before every oracle call.
"""

from __future__ import annotations

import asyncio
import logging
import operator
from typing import Annotated, Sequence, TypedDict

from langgraph.graph import END, START, StateGraph

from agents.base import Participant
from discussion.errors import (
    DiscussionCancelledError,
    DiscussionError,
    DiscussionTimeoutError,
    OracleContractError,
    ParticipantError,
)
from discussion.oracle import DecisionOracle
from discussion.runtime import DiscussionRuntime
from models.discussion import DiscussionOutcome, DiscussionStatus, Transcript, Turn

logger = logging.getLogger(__name__)


# =============================================================================
# STATE DEFINITION
# =============================================================================


class DiscussionState(TypedDict):
    """State that flows through the discussion graph."""

    topic: str
    round_budget: int
    status: DiscussionStatus

    # --- Set by select_speaker, consumed by take_turn ---
    speaker: str

    # --- Accumulated across all rounds (append-only) ---
    turns: Annotated[list, operator.add]
    rounds_used: int

    # --- Final outputs ---
    terminated_by_oracle: bool
    result: str


def _transcript(state: DiscussionState) -> Transcript:
    return Transcript(topic=state["topic"], turns=tuple(state["turns"]))


# =============================================================================
# SCHEDULER
# =============================================================================


class DiscussionScheduler:
    """Runs discussions against an oracle.

    One scheduler can serve many runs, sequentially or concurrently; each run
    owns its transcript and round counter.  When a *runtime* is given, turns
    execute as runtime tasks and the runtime must be started; a turn still in
    flight when the run times out keeps going until ``run_until_idle`` drains it.
    """

    def __init__(self, oracle: DecisionOracle, runtime: DiscussionRuntime | None = None) -> None:
        self.oracle = oracle
        self.runtime = runtime

    async def run(
        self,
        topic: str,
        round_budget: int,
        roster: Sequence[Participant],
        *,
        cancel_event: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> DiscussionOutcome:
        """Run one discussion on *topic* to completion and return its outcome.

        Raises ``ValueError`` for a non-positive budget or an empty or
        duplicated roster, and a ``DiscussionError`` subclass if the run fails.
        """
        if round_budget <= 0:
            raise ValueError(f"round_budget must be positive, got {round_budget}")
        if not roster:
            raise ValueError("Roster must contain at least one participant.")
        names = [p.name for p in roster]
        if len(set(names)) != len(names):
            raise ValueError(f"Roster contains duplicate names: {names}.")
        if self.runtime is not None and not self.runtime.is_running:
            raise RuntimeError("Runtime is not started; call start() first.")

        # Turns completed so far, kept outside the graph so failures can report them.
        progress: list[Turn] = []
        graph = self._build_graph(dict(zip(names, roster)), names, progress, cancel_event)

        initial: DiscussionState = {
            "topic": topic,
            "round_budget": round_budget,
            "status": DiscussionStatus.RUNNING,
            "speaker": "",
            "turns": [],
            "rounds_used": 0,
            "terminated_by_oracle": False,
            "result": "",
        }
        # Three graph steps per round, one for the summary, plus slack.
        config = {"recursion_limit": round_budget * 3 + 5}

        logger.info(
            "Discussion started on '%s' (budget %d, roster: %s)",
            topic,
            round_budget,
            ", ".join(names),
        )
        try:
            final = await asyncio.wait_for(graph.ainvoke(initial, config=config), timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Discussion on '%s' timed out after %s s", topic, timeout)
            raise DiscussionTimeoutError(
                f"Discussion exceeded its {timeout} s time limit after {len(progress)} turn(s).",
                Transcript(topic=topic, turns=tuple(progress)),
            ) from exc
        except DiscussionError as exc:
            if exc.transcript is None:
                exc.transcript = Transcript(topic=topic, turns=tuple(progress))
            raise

        outcome = DiscussionOutcome(
            topic=topic,
            round_budget=round_budget,
            transcript=_transcript(final),
            rounds_used=final["rounds_used"],
            status=final["status"],
            terminated_by_oracle=final["terminated_by_oracle"],
            result=final["result"],
        )
        logger.info(
            "Discussion on '%s' finished after %d round(s) (%s)",
            topic,
            outcome.rounds_used,
            outcome.ended_by.value,
        )
        return outcome

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def _build_graph(
        self,
        by_name: dict[str, Participant],
        names: list[str],
        progress: list[Turn],
        cancel_event: asyncio.Event | None,
    ):
        oracle = self.oracle

        def check_cancelled(state: DiscussionState) -> None:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Discussion on '%s' cancelled after %d turn(s)", state["topic"], len(progress))
                raise DiscussionCancelledError(
                    f"Discussion cancelled after {len(progress)} turn(s)."
                )

        async def select_speaker(state: DiscussionState) -> dict:
            check_cancelled(state)
            speaker = await oracle.select_next(_transcript(state), list(names))
            if not isinstance(speaker, str) or speaker not in by_name:
                raise OracleContractError(
                    f"Oracle selected {speaker!r}, which is not on the roster {names}."
                )
            logger.info("Round %d/%d: %s", state["rounds_used"] + 1, state["round_budget"], speaker)
            return {"speaker": speaker}

        async def take_turn(state: DiscussionState) -> dict:
            participant = by_name[state["speaker"]]
            turn = await self._take_turn(participant, _transcript(state))
            progress.append(turn)
            return {"turns": [turn], "rounds_used": state["rounds_used"] + 1}

        async def check_termination(state: DiscussionState) -> dict:
            check_cancelled(state)
            decision = await oracle.should_terminate(_transcript(state))
            if not isinstance(decision, bool):
                raise OracleContractError(
                    f"Oracle termination decision must be a bool, got {type(decision).__name__}."
                )
            if decision:
                return {"status": DiscussionStatus.TERMINATED, "terminated_by_oracle": True}
            if state["rounds_used"] >= state["round_budget"]:
                return {"status": DiscussionStatus.EXHAUSTED}
            return {"status": DiscussionStatus.RUNNING}

        def should_continue(state: DiscussionState) -> str:
            """Conditional edge: next round or summary."""
            if state["status"] == DiscussionStatus.RUNNING:
                return "select_speaker"
            return "summarize"

        async def summarize(state: DiscussionState) -> dict:
            check_cancelled(state)
            result = await oracle.summarize(_transcript(state))
            if not isinstance(result, str) or not result.strip():
                raise OracleContractError("Oracle returned an empty summary.")
            return {"result": result, "status": DiscussionStatus.SUMMARIZED}

        graph = StateGraph(DiscussionState)
        graph.add_node("select_speaker", select_speaker)
        graph.add_node("take_turn", take_turn)
        graph.add_node("check_termination", check_termination)
        graph.add_node("summarize", summarize)

        graph.add_edge(START, "select_speaker")
        graph.add_edge("select_speaker", "take_turn")
        graph.add_edge("take_turn", "check_termination")
        graph.add_conditional_edges(
            "check_termination",
            should_continue,
            {"select_speaker": "select_speaker", "summarize": "summarize"},
        )
        graph.add_edge("summarize", END)
        return graph.compile()

    async def _take_turn(self, participant: Participant, transcript: Transcript) -> Turn:
        try:
            if self.runtime is not None:
                # A run timeout must not abandon the turn; the runtime drains it.
                turn = await asyncio.shield(self.runtime.submit(participant.take_turn(transcript)))
            else:
                turn = await participant.take_turn(transcript)
        except DiscussionError:
            raise
        except Exception as exc:
            logger.error("Participant %s failed: %s: %s", participant.name, type(exc).__name__, exc)
            raise ParticipantError(participant.name, f"{type(exc).__name__}: {exc}") from exc

        if turn.speaker != participant.name:
            raise ParticipantError(
                participant.name,
                f"returned a turn attributed to '{turn.speaker}'",
            )
        return turn
