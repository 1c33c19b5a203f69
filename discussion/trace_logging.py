"""Discussion trace output: persists each run's transcript and ledger state.

The output directory structure is::

    {trace_dir}/
    ├── {run_name}/
    │   └── discussion.json
    ├── {run_name}_001/
    │   └── discussion.json
    └── ...

One directory per discussion; ``discussion.json`` holds the request, the
outcome or the failure, the transcript and the ledger summary with its trades.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from models.discussion import DiscussionOutcome, DiscussionRequest, DiscussionStatus, Transcript
from models.portfolio import PortfolioSummary
from models.trade import Trade

logger = logging.getLogger(__name__)


def run_name_from_config_path(config_path: str | Path) -> str:
    """Derive a run name from the configuration file path (stem without extension)."""
    return Path(config_path).stem


class DiscussionTraceWriter:
    """Writes one ``discussion.json`` per run under *output_dir*."""

    def __init__(self, output_dir: str | Path, run_name: str) -> None:
        self._output_dir = Path(output_dir)
        self._run_name = run_name

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def write(self, record: dict[str, Any]) -> Path:
        """Persist *record* to a fresh run directory and return that directory."""
        self._output_dir.mkdir(parents=True, exist_ok=True)
        run_dir = _create_run_dir(self._output_dir, self._run_name)
        _write_json(run_dir / "discussion.json", record)
        logger.info("Wrote discussion trace to %s", run_dir)
        return run_dir


def build_trace_record(
    request: DiscussionRequest,
    status: DiscussionStatus,
    transcript: Transcript | None,
    summary: PortfolioSummary,
    trades: list[Trade],
    outcome: DiscussionOutcome | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    """Assemble the JSON-ready record for one run."""
    record: dict[str, Any] = {
        "topic": request.topic,
        "round_budget": request.round_budget,
        "status": status.value,
    }
    if outcome is not None:
        record["rounds_used"] = outcome.rounds_used
        record["terminated_by_oracle"] = outcome.terminated_by_oracle
        record["result"] = outcome.result
    if error is not None:
        record["error"] = error
    record["transcript"] = (
        [t.model_dump(mode="json") for t in transcript.turns] if transcript is not None else []
    )
    record["ledger"] = {
        "summary": summary.model_dump(mode="json"),
        "trades": [t.model_dump(mode="json") for t in trades],
    }
    return record


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _create_run_dir(output_dir: Path, run_name: str) -> Path:
    """Create and return ``output_dir/run_name``, or the first free ``run_name_NNN`` sibling.

    The first run keeps a clean name; ``mkdir`` claims the directory so concurrent
    writers never share one.
    """
    idx = 0
    while True:
        name = run_name if idx == 0 else f"{run_name}_{idx:03d}"
        candidate = output_dir / name
        try:
            candidate.mkdir()
        except FileExistsError:
            idx += 1
            continue
        return candidate


def _write_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
