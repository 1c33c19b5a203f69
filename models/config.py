"""Trading-desk configuration models, loaded from YAML.

These live in ``models/`` because they are shared data contracts used by the
ledger, the participants, the oracle and the discussion service.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from models.trade import TradeOrder


class OracleConfig(BaseModel):
    """Configuration for the decision oracle that steers the discussion."""

    oracle: Literal["round_robin", "llm"] = Field(
        default="round_robin",
        description="Oracle implementation: deterministic 'round_robin' or 'llm'.",
    )
    llm_provider: str = Field(
        default="openai",
        description="LLM provider identifier, e.g. 'openai', 'anthropic'.",
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model name, e.g. 'gpt-4o', 'claude-sonnet-4-20250514'.",
    )
    temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the oracle LLM.",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts per oracle call before the oracle is declared unavailable.",
    )
    terminate_after: int | None = Field(
        default=None,
        ge=1,
        description="Round-robin only: declare the discussion complete after this many turns.",
    )


class ParticipantConfig(BaseModel):
    """Configuration shared by every participant on the desk."""

    mock: bool = Field(
        default=False,
        description="Use scripted participants (no API calls, deterministic).",
    )
    llm_provider: str = Field(default="openai")
    llm_model: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tool_calls: int = Field(
        default=8,
        ge=0,
        description="Upper bound on tool invocations a participant may make in one turn.",
    )
    scripted_orders: list[TradeOrder] = Field(
        default_factory=list,
        description="Mock mode: orders a trading participant executes, one per turn.",
    )
    watchlist: list[str] = Field(
        default_factory=list,
        description="Mock mode: symbols a market-data participant quotes each turn.",
    )


class LedgerConfig(BaseModel):
    """Configuration for the simulated account and its quote source."""

    initial_cash: Decimal = Field(
        default=Decimal("10000"),
        gt=0,
        description="Starting cash balance for the account.",
    )
    quote_provider: Literal["static", "yahoo"] = Field(
        default="static",
        description="Quote source: in-memory 'static' table or live 'yahoo'.",
    )
    static_prices: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Symbol -> price table for the static quote provider.",
    )
    quote_timeout_seconds: float = Field(default=15.0, gt=0)

    @field_validator("static_prices")
    @classmethod
    def _positive_prices(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        for symbol, price in value.items():
            if not price.is_finite() or price <= 0:
                raise ValueError(f"Static price for {symbol} must be positive, got {price}")
        return value


class DeskConfig(BaseModel):
    """Top-level configuration for a discussion run, loaded from YAML.

    The run name is derived from the config file path at load time rather
    than being specified inside the YAML itself.
    """

    roster: list[str] | None = Field(
        default=None,
        description="Participant names taking part; defaults to the full registered team.",
    )
    round_budget: int = Field(default=5, gt=0, description="Maximum rounds per discussion.")
    timeout_seconds: float | None = Field(
        default=3600.0,
        gt=0,
        description="Upper bound on a whole run including the summary.",
    )
    trace_dir: str | None = Field(
        default=None,
        description="If set, each completed run writes its transcript under this directory.",
    )
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    participants: ParticipantConfig = Field(default_factory=ParticipantConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> DeskConfig:
        """Load and validate a ``DeskConfig`` from a YAML file.

        Raises ``FileNotFoundError`` if the file does not exist and
        ``ValueError`` if the content is not a valid YAML mapping.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with path.open(encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)

        if not isinstance(raw, dict):
            raise ValueError(
                f"Expected a YAML mapping in {path}, got {type(raw).__name__}."
            )

        return cls(**raw)
