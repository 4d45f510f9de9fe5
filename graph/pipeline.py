import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Union

from langgraph.graph import StateGraph, START, END
from loguru import logger

from graph.errors import PipelineTimeout
from graph.nodes.extract import FilterExtractor, extract
from graph.nodes.qualify import Qualifier, qualify
from graph.nodes.retrieve import MAX_CANDIDATES, MIN_RELEVANCE, Retriever, retrieve
from graph.state import NoRelevantLead, PipelineState, QualificationResult


@dataclass(frozen=True)
class PipelineConfig:
    """Options injected into every run instead of being read from globals."""
    product_description: str
    min_relevance: float = MIN_RELEVANCE
    max_candidates: int = MAX_CANDIDATES


def build_workflow():
    """Build the lead qualification workflow."""
    workflow = StateGraph(PipelineState)

    workflow.add_node("extract", extract)
    workflow.add_node("retrieve", retrieve)
    workflow.add_node("qualify", qualify)

    workflow.add_edge(START, "extract")
    workflow.add_edge("extract", "retrieve")

    def branch_decision(state: PipelineState) -> str:
        if state.get("selected_lead") is None:
            return "no_relevant_lead"
        return "qualify"

    workflow.add_conditional_edges(
        "retrieve",
        branch_decision,
        {
            "qualify": "qualify",
            "no_relevant_lead": END,
        }
    )
    workflow.add_edge("qualify", END)

    return workflow.compile()


class Pipeline:
    """
    Sequences extraction, retrieval and qualification for one description.

    Extraction and retrieval errors stop the run and propagate to the caller.
    A description with no lead above the relevance threshold ends in
    NoRelevantLead without any scoring or drafting calls.
    """

    def __init__(self, llm, store, config: PipelineConfig,
                 extractor: Optional[FilterExtractor] = None,
                 retriever: Optional[Retriever] = None,
                 qualifier: Optional[Qualifier] = None):
        self.config = config
        self.extractor = extractor or FilterExtractor(llm)
        self.retriever = retriever or Retriever(
            store,
            max_candidates=config.max_candidates,
            min_relevance=config.min_relevance,
        )
        self.qualifier = qualifier or Qualifier(llm)
        self.graph = build_workflow()

    def _run_config(self):
        return {
            "configurable": {
                "extractor": self.extractor,
                "retriever": self.retriever,
                "qualifier": self.qualifier,
                "product_description": self.config.product_description,
            }
        }

    async def _invoke(self, description: str) -> PipelineState:
        initial_state: PipelineState = {"description": description, "errors": []}
        return await self.graph.ainvoke(initial_state, config=self._run_config())

    async def run(self, description: str,
                  timeout: Optional[float] = None) -> Union[QualificationResult, NoRelevantLead]:
        """
        Qualify the best stored lead for a free-text description.

        Args:
            description: Fuzzy lead description from the user
            timeout: Optional deadline in seconds for the whole run

        Returns:
            QualificationResult (possibly partial) or NoRelevantLead

        Raises:
            MalformedExtraction, CompletionError: extraction failed
            RetrievalUnavailable: the vector store failed
            PipelineTimeout: the deadline expired; in-flight calls are cancelled
        """
        start_time = time.monotonic()
        logger.info(f"Starting pipeline run for: {description!r}")

        try:
            async with asyncio.timeout(timeout) as deadline:
                result = await self._invoke(description)
        except TimeoutError as e:
            # a TimeoutError raised by a collaborator is not our deadline
            if not deadline.expired():
                raise
            logger.error(f"Pipeline run timed out after {timeout}s")
            raise PipelineTimeout(f"Pipeline run exceeded {timeout}s") from e

        elapsed = time.monotonic() - start_time

        if result.get("outcome") == "no_relevant_lead":
            logger.info(f"Pipeline finished without a relevant lead in {elapsed:.2f}s")
            return NoRelevantLead(
                search_query=result.get("search_query", ""),
                candidates_seen=result.get("candidates_seen", 0),
            )

        logger.info(f"Pipeline finished in {elapsed:.2f}s")
        return QualificationResult(
            selected_lead=result["selected_lead"],
            score_justification=result["score_justification"],
            draft_email=result["draft_email"],
            errors=result.get("errors", []),
        )
