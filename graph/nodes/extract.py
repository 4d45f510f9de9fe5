import json

from loguru import logger
from pydantic import ValidationError

from graph.errors import MalformedExtraction
from graph.state import LeadFilter, PipelineState
from tools import prompts


def parse_lead_filter(content: str) -> LeadFilter:
    """Parse a model reply into a LeadFilter."""
    # models like to wrap JSON in prose or code fences
    start = content.find("{")
    end = content.rfind("}") + 1
    if start == -1 or end <= start:
        raise MalformedExtraction("Filter extraction returned no JSON object", raw=content)

    try:
        data = json.loads(content[start:end])
    except json.JSONDecodeError as e:
        raise MalformedExtraction(f"Filter extraction returned invalid JSON: {e}", raw=content) from e

    if not isinstance(data, dict):
        raise MalformedExtraction("Filter extraction did not return a JSON object", raw=content)

    try:
        return LeadFilter.model_validate(data)
    except ValidationError as e:
        raise MalformedExtraction(f"Filter extraction has the wrong shape: {e}", raw=content) from e


class FilterExtractor:
    """Turns a fuzzy lead description into structured search filters."""

    def __init__(self, llm):
        self.llm = llm

    async def extract(self, description: str) -> LeadFilter:
        content = await self.llm.complete(prompts.FILTER, {"input": description})
        return parse_lead_filter(content)


async def extract(state: PipelineState, config) -> PipelineState:
    """Extract search filters from the raw description."""
    extractor: FilterExtractor = config["configurable"]["extractor"]
    logger.info(f"Starting filter extraction for: {state.get('description', '')!r}")

    lead_filter = await extractor.extract(state["description"])

    logger.info(f"Extracted filter: {lead_filter.model_dump()}")
    return {"lead_filter": lead_filter}
