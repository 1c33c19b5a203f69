"""Discussion models: turns, transcript, run outcome and the client contract."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DiscussionStatus(str, Enum):
    """States of a discussion run.

    A successful run goes ``idle -> running -> (terminated | exhausted) -> summarized``.
    ``cancelled``, ``timed_out`` and ``failed`` are the terminal failure states.
    """

    IDLE = "idle"
    RUNNING = "running"
    TERMINATED = "terminated"
    EXHAUSTED = "exhausted"
    SUMMARIZED = "summarized"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class Turn(BaseModel):
    """One participant contribution. Never edited once appended."""

    model_config = ConfigDict(frozen=True)

    speaker: str
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Transcript(BaseModel):
    """Read-only view of a run's turns, handed to the oracle and participants."""

    model_config = ConfigDict(frozen=True)

    topic: str
    turns: tuple[Turn, ...] = ()

    def __len__(self) -> int:
        return len(self.turns)

    @property
    def last(self) -> Turn | None:
        return self.turns[-1] if self.turns else None

    def render(self) -> str:
        """Plain-text rendering used in prompts and summaries."""
        return "\n\n".join(f"{t.speaker}: {t.content}" for t in self.turns)


class DiscussionOutcome(BaseModel):
    """Result of one completed discussion run (``status`` is ``summarized``)."""

    topic: str
    round_budget: int
    transcript: Transcript
    rounds_used: int
    status: DiscussionStatus
    terminated_by_oracle: bool
    result: str | None = None

    @property
    def ended_by(self) -> DiscussionStatus:
        """How the turn loop ended: ``terminated`` by the oracle or budget ``exhausted``."""
        return DiscussionStatus.TERMINATED if self.terminated_by_oracle else DiscussionStatus.EXHAUSTED


class ParticipantInfo(BaseModel):
    """Public view of a roster member."""

    name: str
    description: str


class DiscussionRequest(BaseModel):
    """Client request: a topic and the maximum number of rounds."""

    topic: str = Field(min_length=1)
    round_budget: int = Field(default=5, gt=0)

    @field_validator("topic")
    @classmethod
    def _reject_blank_topic(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic cannot be blank")
        return value.strip()


class DiscussionResponse(BaseModel):
    """Client response.  Budget exhaustion is a success (``terminated_by_oracle=False``)."""

    result: str
    rounds_used: int
    terminated_by_oracle: bool

    @classmethod
    def from_outcome(cls, outcome: DiscussionOutcome) -> DiscussionResponse:
        return cls(
            result=outcome.result or "",
            rounds_used=outcome.rounds_used,
            terminated_by_oracle=outcome.terminated_by_oracle,
        )
