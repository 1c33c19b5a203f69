"""Participant registry: maps desk member names to their static definitions.

Usage::

    from agents.registry import create_roster

    roster = create_roster(["PortfolioManager", "TradingDesk"], ledger, config)
"""

from __future__ import annotations

from typing import Iterable

from agents.base import Participant, ParticipantSpec
from agents.tools import ParticipantActions
from models.config import ParticipantConfig
from simulation.ledger import Ledger

# ---------------------------------------------------------------------------
# Registry mapping
# ---------------------------------------------------------------------------
_REGISTRY: dict[str, ParticipantSpec] = {}


def register(spec: ParticipantSpec) -> ParticipantSpec:
    """Register *spec* under its name."""
    if spec.name in _REGISTRY:
        raise ValueError(f"Participant '{spec.name}' is already registered.")
    _REGISTRY[spec.name] = spec
    return spec


def get_spec(name: str) -> ParticipantSpec:
    """Return the registered spec for *name*.

    Raises ``KeyError`` if *name* is not registered.
    """
    _ensure_builtins_loaded()
    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY)) or "(none)"
        raise KeyError(f"Unknown participant '{name}'. Available: {available}.")
    return _REGISTRY[name]


def registered_names() -> list[str]:
    """Names of every registered participant, in registration order."""
    _ensure_builtins_loaded()
    return list(_REGISTRY)


def create_participant(
    name: str,
    ledger: Ledger,
    config: ParticipantConfig,
) -> Participant:
    """Instantiate the participant *name* with actions scoped to its capabilities."""
    spec = get_spec(name)
    actions = ParticipantActions(ledger, spec.capabilities)

    if config.mock:
        from agents.scripted import ScriptedParticipant

        return ScriptedParticipant(
            spec,
            actions,
            orders=config.scripted_orders,
            watchlist=config.watchlist,
        )

    from agents.llm_participant import LLMParticipant

    return LLMParticipant(spec, actions, config)


def create_roster(
    names: Iterable[str] | None,
    ledger: Ledger,
    config: ParticipantConfig,
) -> list[Participant]:
    """Build the participants for a discussion; ``None`` means the whole team."""
    selected = list(names) if names is not None else registered_names()
    if len(set(selected)) != len(selected):
        raise ValueError(f"Roster contains duplicate names: {selected}.")
    return [create_participant(name, ledger, config) for name in selected]


def _ensure_builtins_loaded() -> None:
    """Import the built-in roster module so its ``register`` calls execute."""
    import agents.roster  # noqa: F401
