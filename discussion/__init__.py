"""
Trading-desk discussion engine.

A round-bounded, oracle-steered discussion among desk participants who act on
a shared simulated ledger.  The scheduler is a LangGraph state machine; the
oracle deciding speaker order, termination and the final summary is pluggable.
"""

from .errors import (
    DiscussionCancelledError,
    DiscussionError,
    DiscussionTimeoutError,
    OracleContractError,
    OracleUnavailableError,
    ParticipantError,
)
from .oracle import DecisionOracle, RoundRobinOracle, create_oracle
from .runtime import DiscussionRuntime
from .scheduler import DiscussionScheduler
from .service import DiscussionService

__all__ = [
    "DecisionOracle", "RoundRobinOracle", "create_oracle",
    "DiscussionRuntime", "DiscussionScheduler", "DiscussionService",
    "DiscussionError", "OracleContractError", "OracleUnavailableError",
    "ParticipantError", "DiscussionCancelledError", "DiscussionTimeoutError",
]
