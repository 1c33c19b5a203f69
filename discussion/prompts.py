"""Prompts for the LLM decision oracle.

The oracle plays the firm's CEO chairing the desk meeting: it picks who speaks
next, judges when the team has reached a decision, and writes the briefing.
"""

from __future__ import annotations

from typing import Mapping


def format_roster(descriptions: Mapping[str, str]) -> str:
    return "\n".join(f"- {name}: {description}" for name, description in descriptions.items())


def build_selection_prompt(topic: str, descriptions: Mapping[str, str]) -> str:
    return f"""\
You are the CEO facilitating a portfolio management discussion about '{topic}'.

Consider:
- which information or perspective the discussion needs right now
- who can best build on, or challenge, the last contribution
- whether the team needs more analysis or is ready to decide and execute

Team members and their roles:
{format_roster(descriptions)}

Pick the one team member whose input is most valuable at this point.
The speaker MUST be exactly one of the names listed above.
"""


def build_termination_prompt(topic: str) -> str:
    return f"""\
You are the CEO overseeing a portfolio management discussion about '{topic}'.
Decide whether the team has finished.

The discussion is complete when the team has reviewed market conditions and the
current portfolio, weighed the risk of candidate trades, reached a clear BUY, SELL
or HOLD decision, and actually executed any trade it decided to make.

Deciding not to trade is a valid conclusion. Mark the discussion incomplete only
if analysis is still under way, consensus is missing, or an agreed trade has not
been executed yet.
"""


def build_summary_prompt(topic: str) -> str:
    return f"""\
You are the CEO giving an executive briefing on today's portfolio decisions about '{topic}'.

Cover, in this order:
MARKET ASSESSMENT: the opportunities and conditions the team identified.
PORTFOLIO STATUS: current positions and cash.
DECISIONS MADE: trades executed (symbol, shares, price, rationale), positions held and why,
names being monitored.
FINANCIAL IMPACT: how the decisions changed portfolio value and risk.
NEXT STEPS: what to watch tomorrow.

Quote exact numbers for executed trades. If nothing was traded, explain why holding
was the prudent choice.
"""


def build_transcript_message(topic: str, transcript_text: str) -> str:
    body = transcript_text or "(no contributions yet)"
    return f"Discussion topic: {topic}\n\nTranscript:\n\n{body}"
