"""Wire collaborators together from Settings."""

from typing import Optional

from agents.planner import LLMPlanner
from agents.router import Router
from agents.specialists import default_specialists
from config import Settings
from graph.pipeline import Pipeline
from tools.llm import LLMClient
from tools.pinecone_store import PineconeStore


def build_llm(settings: Settings) -> LLMClient:
    return LLMClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        embedding_model=settings.embedding_model,
        timeout=settings.llm_timeout,
    )


def build_store(settings: Settings, llm: Optional[LLMClient] = None) -> PineconeStore:
    return PineconeStore(
        embedder=llm or build_llm(settings),
        api_key=settings.pinecone_api_key,
        index_name=settings.pinecone_index,
        namespace=settings.pinecone_namespace,
    )


def build_pipeline(settings: Settings, llm: Optional[LLMClient] = None) -> Pipeline:
    llm = llm or build_llm(settings)
    return Pipeline(llm, build_store(settings, llm), settings.pipeline_config())


def build_router(settings: Settings, llm: Optional[LLMClient] = None) -> Router:
    llm = llm or build_llm(settings)
    return Router(LLMPlanner(llm), default_specialists(llm), max_handoffs=settings.max_handoffs)
