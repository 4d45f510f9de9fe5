import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from loguru import logger

from agents.specialists import Specialist

ROUTER_PROMPT = """You have three internal tools: lead_enricher, lead_scorer, email_writer.
Whenever the user submits a lead, you must:
1. Call lead_enricher.
2. Immediately call lead_scorer on that output.
3. Finally call email_writer.
Once email_writer has answered, reply without calling any tool.
Return **only** the message from email_writer to the user; hide all intermediate outputs."""


@dataclass(frozen=True)
class Decision:
    """What the router does next: hand off to a specialist or reply itself."""
    specialist: Optional[str] = None
    argument: str = ""
    reply: str = ""

    @property
    def is_handoff(self) -> bool:
        return self.specialist is not None


class Planner(Protocol):
    async def decide(self, messages: List[Dict[str, Any]], specialists: Sequence[Specialist]) -> Decision:
        ...


def specialist_tools(specialists: Sequence[Specialist]) -> List[Dict[str, Any]]:
    """Describe each specialist as a function tool."""
    return [
        {
            "type": "function",
            "function": {
                "name": s.name,
                "description": s.intended_use,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "reason": {
                            "type": "string",
                            "description": "Why this specialist should handle the lead now",
                        }
                    },
                    "required": [],
                },
            },
        }
        for s in specialists
    ]


class LLMPlanner:
    """Lets a tool-calling model pick the next specialist."""

    def __init__(self, llm, system_prompt: str = ROUTER_PROMPT, temperature: float = 0.0):
        self.llm = llm
        self.system_prompt = system_prompt
        self.temperature = temperature

    async def decide(self, messages: List[Dict[str, Any]], specialists: Sequence[Specialist]) -> Decision:
        message = await self.llm.chat(
            [{"role": "system", "content": self.system_prompt}, *messages],
            temperature=self.temperature,
            tools=specialist_tools(specialists),
        )

        tool_calls = getattr(message, "tool_calls", None) or []
        if not tool_calls:
            return Decision(reply=message.content or "")

        if len(tool_calls) > 1:
            logger.warning(f"Router requested {len(tool_calls)} hand-offs at once, taking the first")

        call = tool_calls[0].function
        return Decision(specialist=call.name, argument=_argument_text(call.arguments))


def _argument_text(arguments: Optional[str]) -> str:
    if not arguments:
        return ""
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError:
        return arguments
    if isinstance(parsed, dict) and "reason" in parsed:
        return str(parsed["reason"])
    return arguments
