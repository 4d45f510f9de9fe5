from config import Settings
from factory import build_llm, build_pipeline, build_router, build_store


def test_build_router_wires_default_specialists():
    router = build_router(Settings(openai_api_key="test-key", max_handoffs=4))

    assert list(router.specialists) == ["lead_enricher", "lead_scorer", "email_writer"]
    assert router.max_handoffs == 4


def test_build_pipeline_injects_settings(tmp_path, monkeypatch):
    monkeypatch.delenv("PINECONE_API_KEY", raising=False)
    product = tmp_path / "product.md"
    product.write_text("ProcureFlow", encoding="utf-8")
    settings = Settings(openai_api_key="test-key", product_path=str(product), max_candidates=5, min_relevance=0.7)

    pipeline = build_pipeline(settings)

    assert pipeline.config.product_description == "ProcureFlow"
    assert pipeline.retriever.max_candidates == 5
    assert pipeline.retriever.min_relevance == 0.7


def test_build_store_shares_llm(monkeypatch):
    monkeypatch.delenv("PINECONE_API_KEY", raising=False)
    settings = Settings(openai_api_key="test-key", pinecone_namespace="demo")
    llm = build_llm(settings)

    store = build_store(settings, llm)

    assert store.embedder is llm
    assert store.namespace == "demo"
    assert store.index is None
