"""Decision oracle: the capability that steers a discussion.

The scheduler delegates every judgement call to an oracle: who speaks next,
whether the discussion is over, and how to summarize it.  The scheduler keeps
no oracle state between calls; an oracle sees only the transcript it is given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from models.config import OracleConfig
from models.discussion import Transcript


class DecisionOracle(ABC):
    """Interface every oracle implements."""

    @abstractmethod
    async def select_next(self, transcript: Transcript, roster: Sequence[str]) -> str:
        """Return the name of the next speaker.  Must be exactly one of *roster*."""

    @abstractmethod
    async def should_terminate(self, transcript: Transcript) -> bool:
        """Return ``True`` once the discussion has reached its conclusion."""

    @abstractmethod
    async def summarize(self, transcript: Transcript) -> str:
        """Return the final result of the discussion (non-empty)."""


class RoundRobinOracle(DecisionOracle):
    """Deterministic oracle: speakers take turns in roster order.

    With ``terminate_after=None`` it never ends a discussion early, so the run
    always uses its full round budget.
    """

    def __init__(self, terminate_after: int | None = None) -> None:
        if terminate_after is not None and terminate_after < 1:
            raise ValueError(f"terminate_after must be positive, got {terminate_after}")
        self.terminate_after = terminate_after

    async def select_next(self, transcript: Transcript, roster: Sequence[str]) -> str:
        return roster[len(transcript) % len(roster)]

    async def should_terminate(self, transcript: Transcript) -> bool:
        return self.terminate_after is not None and len(transcript) >= self.terminate_after

    async def summarize(self, transcript: Transcript) -> str:
        if not transcript.turns:
            return f"No contributions on '{transcript.topic}'."
        return "\n".join(f"{t.speaker}: {t.content}" for t in transcript.turns)


def create_oracle(config: OracleConfig, descriptions: Mapping[str, str]) -> DecisionOracle:
    """Build the oracle named in *config*.

    *descriptions* maps each roster name to its role description; the LLM
    oracle shows them to the model when choosing a speaker.
    """
    if config.oracle == "round_robin":
        return RoundRobinOracle(terminate_after=config.terminate_after)

    from discussion.llm_oracle import LLMDecisionOracle

    return LLMDecisionOracle(config, descriptions)
