from typing import List, Optional

from loguru import logger

from graph.errors import RetrievalUnavailable
from graph.state import CandidateLead, LeadFilter, PipelineState
from tools.pinecone_store import StoreError

MIN_RELEVANCE = 0.6
MAX_CANDIDATES = 3


def select_best(candidates: List[CandidateLead], min_relevance: float = MIN_RELEVANCE) -> Optional[CandidateLead]:
    """Highest-scoring candidate at or above min_relevance; first seen wins ties."""
    eligible = [c for c in candidates if c.relevance_score >= min_relevance]
    if not eligible:
        return None
    # max() keeps the first maximal element
    return max(eligible, key=lambda c: c.relevance_score)


class Retriever:
    """Finds the stored lead that best matches a LeadFilter."""

    def __init__(self, store, max_candidates: int = MAX_CANDIDATES, min_relevance: float = MIN_RELEVANCE):
        self.store = store
        self.max_candidates = max_candidates
        self.min_relevance = min_relevance

    async def search(self, lead_filter: LeadFilter, max_candidates: Optional[int] = None) -> List[CandidateLead]:
        """Query the store for candidates; an empty query yields none."""
        limit = self.max_candidates if max_candidates is None else max_candidates
        if limit < 1:
            raise ValueError(f"max_candidates must be at least 1, got {limit}")

        query = lead_filter.search_query()
        if not query:
            logger.warning("Lead filter is empty, skipping vector search")
            return []

        try:
            return await self.store.similarity_search(query, limit)
        except StoreError as e:
            logger.error(f"Vector search failed for '{query}': {e}")
            raise RetrievalUnavailable(str(e)) from e

    async def retrieve(
        self,
        lead_filter: LeadFilter,
        max_candidates: Optional[int] = None,
        min_relevance: Optional[float] = None,
    ) -> Optional[CandidateLead]:
        """
        Select the best matching lead.

        Returns:
            The selected lead, or None when no candidate clears the threshold

        Raises:
            RetrievalUnavailable: if the vector store call fails
        """
        threshold = self.min_relevance if min_relevance is None else min_relevance
        candidates = await self.search(lead_filter, max_candidates)
        return select_best(candidates, threshold)


async def retrieve(state: PipelineState, config) -> PipelineState:
    """Fetch candidates and pick the best lead above the relevance threshold."""
    retriever: Retriever = config["configurable"]["retriever"]
    lead_filter = state["lead_filter"]
    query = lead_filter.search_query()
    logger.info(f"Starting retrieval for query: '{query}'")

    candidates = await retriever.search(lead_filter)
    selected = select_best(candidates, retriever.min_relevance)

    update: PipelineState = {
        "search_query": query,
        "candidates_seen": len(candidates),
        "selected_lead": selected,
    }

    if selected is None:
        logger.info(f"No candidate out of {len(candidates)} reached {retriever.min_relevance}")
        update["outcome"] = "no_relevant_lead"
    else:
        logger.info(f"Selected lead with score {selected.relevance_score:.3f}")

    return update
