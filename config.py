import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from graph.errors import LeadQualifierError
from graph.pipeline import PipelineConfig


class ConfigError(LeadQualifierError):
    """Required configuration is missing or unreadable."""


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class Settings:
    """Runtime settings, read from the environment (and .env)."""
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    embedding_model: str = "text-embedding-3-small"
    llm_timeout: float = 30.0
    pinecone_api_key: Optional[str] = None
    pinecone_index: str = "leads-demo"
    pinecone_namespace: str = "leads-demo"
    min_relevance: float = 0.6
    max_candidates: int = 3
    product_path: str = "product-example.md"
    leads_path: str = "leads-example.md"
    request_timeout: float = 60.0
    shutdown_timeout: int = 5
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    max_handoffs: int = 6
    log_file: str = "logs/app.log"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()

        origins = os.getenv("CORS_ORIGINS", "http://localhost:5173")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "text-embedding-3-small"),
            llm_timeout=_float("LLM_TIMEOUT", 30.0),
            pinecone_api_key=os.getenv("PINECONE_API_KEY"),
            pinecone_index=os.getenv("PINECONE_INDEX", "leads-demo"),
            pinecone_namespace=os.getenv("PINECONE_NAMESPACE", "leads-demo"),
            min_relevance=_float("MIN_RELEVANCE", 0.6),
            max_candidates=_int("MAX_CANDIDATES", 3),
            product_path=os.getenv("PRODUCT_PATH", "product-example.md"),
            leads_path=os.getenv("LEADS_PATH", "leads-example.md"),
            request_timeout=_float("REQUEST_TIMEOUT", 60.0),
            shutdown_timeout=_int("SHUTDOWN_TIMEOUT", 5),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            max_handoffs=_int("MAX_HANDOFFS", 6),
            log_file=os.getenv("LOG_FILE", "logs/app.log"),
        )

    def pipeline_config(self, product_description: Optional[str] = None) -> PipelineConfig:
        if product_description is None:
            product_description = load_product_description(self.product_path)
        return PipelineConfig(
            product_description=product_description,
            min_relevance=self.min_relevance,
            max_candidates=self.max_candidates,
        )


def load_product_description(path: str) -> str:
    """Read the product description that scoring and drafting are bound to."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read product description {path}: {e}") from e

    if not content.strip():
        logger.warning(f"Product description {path} is empty")
    return content
