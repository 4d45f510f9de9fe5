import asyncio
import os
import uuid
from typing import Any, Dict, List, Optional

from loguru import logger

from graph.errors import LeadQualifierError
from graph.state import CandidateLead
from tools.llm import CompletionError, LLMClient

UPSERT_BATCH_SIZE = 100


class StoreError(LeadQualifierError):
    """The vector store backend failed."""


class PineconeStore:
    """Pinecone vector store holding one chunk of lead text per vector."""

    def __init__(
        self,
        embedder: LLMClient,
        api_key: Optional[str] = None,
        index_name: Optional[str] = None,
        namespace: Optional[str] = None,
        index: Any = None,
    ):
        self.embedder = embedder
        self.api_key = api_key or os.getenv("PINECONE_API_KEY")
        self.index_name = index_name or os.getenv("PINECONE_INDEX", "leads-demo")
        self.namespace = namespace or os.getenv("PINECONE_NAMESPACE", "leads-demo")
        self.index = index

        if self.index is None and self.api_key:
            try:
                from pinecone import Pinecone
                self.index = Pinecone(api_key=self.api_key).Index(self.index_name)
                logger.info(f"Pinecone index '{self.index_name}' connected successfully")
            except Exception as e:
                logger.error(f"Pinecone connection failed: {e}")
                self.index = None
        elif self.index is None:
            logger.warning("No Pinecone API key provided, vector search is unavailable")

    def _require_index(self):
        if self.index is None:
            raise StoreError(f"Pinecone index '{self.index_name}' is not connected")
        return self.index

    async def similarity_search(self, query: str, limit: int) -> List[CandidateLead]:
        """
        Find the stored leads closest to query.

        Args:
            query: Free-text search query
            limit: Maximum number of matches

        Returns:
            Candidates in the backend's ranking order
        """
        index = self._require_index()

        try:
            vector = (await self.embedder.embed([query]))[0]
            response = await asyncio.to_thread(
                index.query,
                vector=vector,
                top_k=limit,
                include_metadata=True,
                namespace=self.namespace,
            )
        except CompletionError as e:
            raise StoreError(f"Query embedding failed: {e}") from e
        except Exception as e:
            logger.error(f"Pinecone search failed: {e}")
            raise StoreError(f"Pinecone search failed: {e}") from e

        candidates = []
        for match in response.matches:
            metadata = match.metadata or {}
            candidates.append(
                CandidateLead(
                    relevance_score=float(match.score),
                    text=metadata.get("text", ""),
                    source=metadata.get("source"),
                )
            )

        logger.info(f"Found {len(candidates)} candidate leads for '{query}'")
        return candidates

    async def add_documents(self, docs: List[Dict[str, Any]]) -> int:
        """
        Embed and upsert documents.

        Args:
            docs: Items shaped ``{"text": str, "metadata": dict}``; empty texts are skipped

        Returns:
            Number of documents stored
        """
        index = self._require_index()
        docs = [d for d in docs if d.get("text", "").strip()]
        if not docs:
            logger.warning("No non-empty documents to store")
            return 0

        stored = 0
        for start in range(0, len(docs), UPSERT_BATCH_SIZE):
            batch = docs[start:start + UPSERT_BATCH_SIZE]
            try:
                vectors = await self.embedder.embed([d["text"] for d in batch])
                await asyncio.to_thread(
                    index.upsert,
                    vectors=[
                        {
                            "id": str(uuid.uuid4()),
                            "values": values,
                            "metadata": {**d.get("metadata", {}), "text": d["text"]},
                        }
                        for d, values in zip(batch, vectors)
                    ],
                    namespace=self.namespace,
                )
            except CompletionError as e:
                raise StoreError(f"Document embedding failed: {e}") from e
            except Exception as e:
                logger.error(f"Failed to store documents: {e}")
                raise StoreError(f"Failed to store documents: {e}") from e
            stored += len(batch)

        logger.info(f"Stored {stored} documents in namespace '{self.namespace}'")
        return stored

    async def remove_collection(self) -> None:
        """Delete every vector in the namespace."""
        index = self._require_index()
        try:
            await asyncio.to_thread(index.delete, delete_all=True, namespace=self.namespace)
        except Exception as e:
            logger.error(f"Failed to delete namespace '{self.namespace}': {e}")
            raise StoreError(f"Failed to delete namespace '{self.namespace}': {e}") from e

        logger.info(f"Deleted all vectors in namespace '{self.namespace}'")
