"""Abstract base class for discussion participants.

Every participant (LLM-backed, scripted, etc.) implements this protocol so the
discussion scheduler can invoke them interchangeably.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from models.discussion import Transcript, Turn


class Capability(str, Enum):
    """Groups of ledger / market actions a participant may be granted."""

    PORTFOLIO = "portfolio"
    TRADING = "trading"
    MARKET_DATA = "market_data"


@dataclass(frozen=True)
class ParticipantSpec:
    """Static definition of a desk member: who they are and what they may do."""

    name: str
    description: str
    instructions: str
    capabilities: frozenset[Capability] = field(default_factory=frozenset)


class Participant(ABC):
    """Common interface for desk members.

    Lifecycle:
        1. ``__init__``: receive the spec and the capability-scoped actions.
        2. ``take_turn``: called once each time the oracle selects this
           participant; returns the ``Turn`` appended to the transcript.
    """

    def __init__(self, spec: ParticipantSpec) -> None:
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def description(self) -> str:
        return self.spec.description

    @abstractmethod
    async def take_turn(self, transcript: Transcript) -> Turn:
        """Contribute one turn given everything said so far.

        The participant may read or mutate the ledger through its actions
        before returning.  The returned turn's ``speaker`` must be ``self.name``.
        """
