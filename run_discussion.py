#!/usr/bin/env python3
"""CLI entrypoint for a trading-desk discussion.

Usage::

    python run_discussion.py --config config/example.yaml --topic "Daily portfolio review"
    python run_discussion.py --config config/example.yaml --topic "Trim tech exposure" --rounds 12

The desk loads a YAML configuration file, builds the ledger, roster and oracle,
then runs one discussion and prints the result.  Traces (when ``trace_dir`` is
configured) are named after the config file (``example.yaml`` -> ``example``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from discussion.errors import DiscussionError
from discussion.service import DiscussionService
from discussion.trace_logging import run_name_from_config_path
from models.config import DeskConfig
from models.discussion import DiscussionRequest


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a trading-desk discussion.",
    )
    parser.add_argument(
        "--config",
        required=True,
        type=str,
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--topic",
        required=True,
        type=str,
        help="What the desk should discuss.",
    )
    parser.add_argument(
        "--rounds",
        default=None,
        type=int,
        help="Round budget (default: the config's round_budget).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    return parser.parse_args(argv)


def _setup_logging(level: str) -> None:
    """Configure root logger with a clean format."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


async def _main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Loading config from '%s'...", args.config)

    config = DeskConfig.from_yaml(args.config)
    logger.info(
        "Config loaded: oracle='%s', mock participants=%s",
        config.oracle.oracle,
        config.participants.mock,
    )

    request = DiscussionRequest(
        topic=args.topic,
        round_budget=args.rounds if args.rounds is not None else config.round_budget,
    )
    service = DiscussionService(config, run_name=run_name_from_config_path(args.config))
    async with service:
        try:
            response = await service.discuss(request)
        except DiscussionError as exc:
            print(f"Discussion failed: {exc}", file=sys.stderr)
            return 1

    ending = "oracle ended the discussion" if response.terminated_by_oracle else "round budget used"
    print(f"=== Result ({response.rounds_used} round(s), {ending}) ===")
    print(response.result)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
