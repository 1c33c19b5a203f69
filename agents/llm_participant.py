"""LLM-backed desk member: a ReAct agent over the participant's capability tools.

Each turn the agent receives the topic and the transcript so far, may call the
tools its capabilities allow (quotes, portfolio queries, orders), and replies
with one contribution to the discussion.
"""

from __future__ import annotations

import json
import logging

from dotenv import load_dotenv
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from langgraph.prebuilt import create_react_agent

from agents.base import Participant, ParticipantSpec
from agents.tools import ParticipantActions, make_participant_tools
from models.config import ParticipantConfig
from models.discussion import Transcript, Turn

load_dotenv()  # auto-load .env file if present

logger = logging.getLogger(__name__)

_SYSTEM_TEMPLATE = """\
You are {name}, a member of an investment firm's trading desk. {description}

{instructions}
Use your tools to ground every claim in current data. Reply with a single \
contribution to the team discussion; do not speak for other members.
"""


def create_llm(provider: str, model: str, temperature: float):
    """Instantiate the appropriate LangChain chat model."""
    provider = provider.lower()

    if provider == "openai":
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(model=model, temperature=temperature)
    elif provider == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(model=model, temperature=temperature)
    else:
        raise ValueError(
            f"Unsupported LLM provider '{provider}'. "
            f"Supported: 'openai', 'anthropic'."
        )


class LLMParticipant(Participant):
    """ReAct agent using one chat model and the participant's tools."""

    def __init__(
        self,
        spec: ParticipantSpec,
        actions: ParticipantActions,
        config: ParticipantConfig,
        llm=None,
    ) -> None:
        super().__init__(spec)
        self.config = config
        self._llm = llm if llm is not None else create_llm(
            config.llm_provider, config.llm_model, config.temperature
        )
        self._tools = make_participant_tools(actions)
        self._system_prompt = _SYSTEM_TEMPLATE.format(
            name=spec.name,
            description=spec.description,
            instructions=spec.instructions,
        )

    async def take_turn(self, transcript: Transcript) -> Turn:
        agent_executor = create_react_agent(self._llm, tools=self._tools)

        history = transcript.render() or "(no contributions yet - you are opening the discussion)"
        human_content = (
            f"Discussion topic: {transcript.topic}\n\n"
            f"Conversation so far:\n\n{history}\n\n"
            f"Give your contribution as {self.name}."
        )
        messages = [
            SystemMessage(content=self._system_prompt),
            HumanMessage(content=human_content),
        ]

        # Each tool call costs two graph steps (model + tool).
        result = await agent_executor.ainvoke(
            {"messages": messages},
            config={"recursion_limit": self.config.max_tool_calls * 2 + 5},
        )

        output = result.get("messages", [])
        content = _final_reply(output)
        logger.info(
            "%s contributed %d chars after %d tool call(s)",
            self.name,
            len(content),
            _count_tool_calls(output),
        )
        logger.debug("%s trace:\n%s", self.name, _serialize_messages(output))
        return Turn(speaker=self.name, content=content)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _final_reply(messages: list) -> str:
    """Text of the last AI message, flattening content blocks if present."""
    for msg in reversed(messages):
        if isinstance(msg, AIMessage):
            content = msg.content
            if isinstance(content, list):
                content = "".join(
                    block.get("text", "") if isinstance(block, dict) else str(block)
                    for block in content
                )
            if content.strip():
                return content.strip()
    return "(no comment)"


def _count_tool_calls(messages: list) -> int:
    return sum(len(getattr(msg, "tool_calls", None) or []) for msg in messages)


def _serialize_messages(messages: list) -> str:
    """Convert LangChain message objects into a human-readable trace string."""
    parts: list[str] = []
    for msg in messages:
        parts.append(f"--- {msg.type.upper()} ---")
        content = getattr(msg, "content", "") or ""
        if content:
            parts.append(content if isinstance(content, str) else json.dumps(content))
        for tc in getattr(msg, "tool_calls", None) or []:
            parts.append(f"[tool_call: {tc.get('name', 'unknown')}({json.dumps(tc.get('args', {}))})]")
    return "\n".join(parts)
