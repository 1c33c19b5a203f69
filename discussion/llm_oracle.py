"""Oracle backed by a chat model playing the CEO of the desk.

Each decision is a structured-output call so the scheduler always gets a typed
answer.  Transient model failures are retried with exponential backoff; a reply
that does not fit the expected shape is a contract violation and is not retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

from dotenv import load_dotenv
from langchain_core.exceptions import OutputParserException
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import BaseModel, Field, ValidationError

from agents.llm_participant import create_llm
from discussion.errors import OracleContractError, OracleUnavailableError
from discussion.oracle import DecisionOracle
from discussion.prompts import (
    build_selection_prompt,
    build_summary_prompt,
    build_termination_prompt,
    build_transcript_message,
)
from models.config import OracleConfig
from models.discussion import Transcript

load_dotenv()  # auto-load .env file if present

logger = logging.getLogger(__name__)


class SpeakerChoice(BaseModel):
    speaker: str = Field(description="Exact name of the next team member to speak.")
    reason: str = Field(default="", description="One sentence on why this member should speak now.")


class TerminationDecision(BaseModel):
    complete: bool = Field(description="True if the team has reached and executed its decision.")
    reason: str = Field(default="", description="One sentence justifying the decision.")


class DiscussionSummary(BaseModel):
    summary: str = Field(description="The executive briefing.")


class LLMDecisionOracle(DecisionOracle):
    """Chat-model oracle with CEO-style prompts."""

    def __init__(
        self,
        config: OracleConfig,
        descriptions: Mapping[str, str],
        llm=None,
        *,
        retry_delay: float = 1.0,
    ) -> None:
        self.config = config
        self._descriptions = dict(descriptions)
        self._llm = llm if llm is not None else create_llm(
            config.llm_provider, config.llm_model, config.temperature
        )
        self._retry_delay = retry_delay

    async def select_next(self, transcript: Transcript, roster: Sequence[str]) -> str:
        descriptions = {name: self._descriptions.get(name, "") for name in roster}
        choice = await self._decide(
            SpeakerChoice,
            build_selection_prompt(transcript.topic, descriptions),
            transcript,
        )
        logger.debug("Oracle selected %s: %s", choice.speaker, choice.reason)
        return choice.speaker.strip()

    async def should_terminate(self, transcript: Transcript) -> bool:
        decision = await self._decide(
            TerminationDecision,
            build_termination_prompt(transcript.topic),
            transcript,
        )
        logger.debug("Oracle termination decision %s: %s", decision.complete, decision.reason)
        return decision.complete

    async def summarize(self, transcript: Transcript) -> str:
        result = await self._decide(
            DiscussionSummary,
            build_summary_prompt(transcript.topic),
            transcript,
        )
        if not result.summary.strip():
            raise OracleContractError("Oracle returned an empty summary.")
        return result.summary.strip()

    async def _decide(self, schema: type[BaseModel], system_prompt: str, transcript: Transcript) -> Any:
        """Invoke the model for a *schema*-shaped answer, retrying transient failures."""
        structured = self._llm.with_structured_output(schema)
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=build_transcript_message(transcript.topic, transcript.render())),
        ]

        max_retries = self.config.max_retries
        for attempt in range(max_retries):
            try:
                result = await structured.ainvoke(messages)
            except (OutputParserException, ValidationError) as exc:
                raise OracleContractError(
                    f"Oracle reply did not match {schema.__name__}: {exc}"
                ) from exc
            except Exception as exc:
                if attempt == max_retries - 1:
                    raise OracleUnavailableError(
                        f"Oracle call failed after {max_retries} attempt(s): "
                        f"{type(exc).__name__}: {exc}"
                    ) from exc
                wait = self._retry_delay * 2 ** attempt
                logger.warning(
                    "Oracle call failed (%s), retrying in %.1fs (attempt %d/%d)",
                    type(exc).__name__,
                    wait,
                    attempt + 1,
                    max_retries,
                )
                await asyncio.sleep(wait)
                continue

            if not isinstance(result, schema):
                raise OracleContractError(
                    f"Oracle returned {type(result).__name__}, expected {schema.__name__}."
                )
            return result
