import asyncio
import os
import sys
from typing import Dict, List, Optional, Union

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from graph.state import CandidateLead
from tools import prompts

PRODUCT = "ProcureFlow: procurement automation for mid-size manufacturers."

Reply = Union[str, Exception]


class FakeLLM:
    """Completion service double keyed by prompt template."""

    NAMES = {
        prompts.FILTER: "filter",
        prompts.SCORING: "scoring",
        prompts.EMAIL: "email",
    }

    def __init__(self, filter: Reply = "{}", scoring: Reply = "", email: Reply = "",
                 delays: Optional[Dict[str, float]] = None):
        self.replies = {"filter": filter, "scoring": scoring, "email": email}
        self.delays = delays or {}
        self.calls: List[tuple] = []
        self.events: List[tuple] = []

    async def complete(self, template, variables):
        name = self.NAMES[template]
        self.calls.append((name, dict(variables)))
        self.events.append(("start", name))
        await asyncio.sleep(self.delays.get(name, 0))
        self.events.append(("end", name))

        reply = self.replies[name]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def called(self, name: str) -> bool:
        return any(c[0] == name for c in self.calls)


class FakeStore:
    """Vector store double returning fixed candidates."""

    def __init__(self, results: Optional[List[CandidateLead]] = None, error: Optional[Exception] = None):
        self.results = results or []
        self.error = error
        self.queries: List[tuple] = []

    async def similarity_search(self, query, limit):
        self.queries.append((query, limit))
        if self.error:
            raise self.error
        return list(self.results[:limit])


def lead(score: float, text: str = "lead") -> CandidateLead:
    return CandidateLead(relevance_score=score, text=text)


@pytest.fixture
def acme_llm():
    return FakeLLM(
        filter='{"company": "Acme", "department": "procurement", "title_keywords": ["buyer"]}',
        scoring='{"score": 8, "justification": "decision-maker, mid-size firm"}',
        email=(
            "Hi Jane, as Head of Procurement at Acme you own supplier spend. "
            "Manual purchase approvals slow teams like yours down. "
            "ProcureFlow automates them end to end."
        ),
    )


@pytest.fixture
def acme_store():
    return FakeStore([lead(0.82, "Jane Doe, Acme Corp, Head of Procurement")])

