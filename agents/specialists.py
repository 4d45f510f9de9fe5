from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List

ENRICHER_PROMPT = """You are an AI CRM assistant. Given a lead with basic data like name, email, and company name, enrich it by researching:
- Job title or role (e.g. CEO, Developer)
- Company description
- Industry
- Estimated company size
- Company website (guess)
Return the enriched lead as a JSON object."""

SCORER_PROMPT = """You are a lead scoring agent. Based on the given lead details, score the quality of the lead from 1 to 10, and briefly explain why.
You are scoring based on these criteria:
- The lead's title and decision-making power
- Company size (ideal: 50-500 employees)
- Industry (ideal: SaaS, B2B tech)
- Relevance to our product (enterprise tools)

Respond in this format:
Score: <number from 1 to 10>
Reason: <short reason>"""

WRITER_PROMPT = """You are a helpful sales assistant.
Given an enriched lead profile, your job is to draft a professional, engaging, and brief email to initiate contact with the lead."""


@dataclass
class Specialist:
    """A single-purpose agent: one instruction, one narrow task."""
    name: str
    intended_use: str
    system_prompt: str
    llm: Any
    temperature: float = 0.7
    output_prefix: str = ""

    async def stream(self, messages: List[Dict[str, Any]]) -> AsyncIterator[str]:
        """Yield this specialist's reply to the conversation in increments."""
        conversation = [{"role": "system", "content": self.system_prompt}, *messages]
        if self.output_prefix:
            yield self.output_prefix
        async for delta in self.llm.stream(conversation, temperature=self.temperature):
            yield delta

    async def invoke(self, messages: List[Dict[str, Any]]) -> str:
        return "".join([chunk async for chunk in self.stream(messages)])


def new_lead_enricher(llm) -> Specialist:
    return Specialist(
        name="lead_enricher",
        intended_use="Enrich basic lead info with company details and role guesses",
        system_prompt=ENRICHER_PROMPT,
        llm=llm,
        temperature=0.7,
        output_prefix="Enriched Lead:\n",
    )


def new_lead_scorer(llm) -> Specialist:
    return Specialist(
        name="lead_scorer",
        intended_use="Evaluate and score a lead based on relevance, size, title, and industry",
        system_prompt=SCORER_PROMPT,
        llm=llm,
        temperature=0.2,
    )


def new_email_writer(llm) -> Specialist:
    return Specialist(
        name="email_writer",
        intended_use="Take an enriched lead profile and write an initial outreach email",
        system_prompt=WRITER_PROMPT,
        llm=llm,
        temperature=0.7,
    )


def default_specialists(llm) -> List[Specialist]:
    """The enrich, score and write specialists in their intended order."""
    return [new_lead_enricher(llm), new_lead_scorer(llm), new_email_writer(llm)]
