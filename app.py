import time
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel

from config import Settings
from graph.errors import (
    LeadQualifierError,
    MalformedExtraction,
    PipelineTimeout,
    RetrievalUnavailable,
    UnknownSpecialist,
)
from graph.pipeline import Pipeline
from graph.state import NoRelevantLead
from tools.llm import CompletionError

VERSION = "1.0.0"

# first match wins, so subclasses go before their bases
ERROR_STATUS = [
    (MalformedExtraction, 502),
    (CompletionError, 502),
    (UnknownSpecialist, 502),
    (RetrievalUnavailable, 503),
    (PipelineTimeout, 504),
    (LeadQualifierError, 500),
]


class QueryRequest(BaseModel):
    query: str


class TopLead(BaseModel):
    score: float
    lead_text: str


class QueryResponse(BaseModel):
    top_lead: TopLead
    lead_score: str
    prospect_email: str
    errors: List[str] = []


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def status_for(exc: Exception) -> int:
    for exc_type, status_code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return status_code
    return 500


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[Pipeline] = None,
    router_factory: Optional[Callable[[], Any]] = None,
) -> FastAPI:
    """
    Build the API.

    Collaborators not passed in are built from settings on startup.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pipeline is None or app.state.router_factory is None:
            from factory import build_llm, build_pipeline, build_router
            llm = build_llm(settings)
            if app.state.pipeline is None:
                app.state.pipeline = build_pipeline(settings, llm)
            if app.state.router_factory is None:
                app.state.router_factory = lambda: build_router(settings, llm)
        logger.info("Lead qualifier API ready")
        yield
        logger.info("Lead qualifier API shutting down")

    app = FastAPI(
        title="Lead Qualifier",
        description="LLM-backed lead retrieval, scoring and outreach drafting",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.router_factory = router_factory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "GET", "OPTIONS", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        client = request.client.host if request.client else "unknown"
        logger.info(f"Started {request.method} {request.url.path} from {client}")
        response = await call_next(request)
        logger.info(f"Completed {request.url.path} in {time.time() - start_time:.3f}s")
        return response

    @app.post("/query")
    async def query_leads(body: QueryRequest, request: Request):
        """
        Qualify the best stored lead for a fuzzy description.

        Expected payload:
        {
            "query": "buyer at Acme in procurement"
        }
        """
        if not body.query.strip():
            return error_response(400, "query field cannot be empty")

        result = await request.app.state.pipeline.run(body.query, timeout=settings.request_timeout)

        if isinstance(result, NoRelevantLead):
            logger.info(f"No relevant lead for query: {body.query!r}")
            return error_response(404, "no highly relevant leads found")

        return QueryResponse(
            top_lead=TopLead(
                score=result.selected_lead.relevance_score,
                lead_text=result.selected_lead.text,
            ),
            lead_score=result.score_justification,
            prospect_email=result.draft_email,
            errors=result.errors,
        )

    @app.post("/agent")
    async def agent_query(body: QueryRequest, request: Request):
        """Run the multi-agent router and stream its final answer as plain text."""
        if not body.query.strip():
            return error_response(400, "query field cannot be empty")

        router = request.app.state.router_factory()
        chunks = router.stream(body.query, timeout=settings.request_timeout)

        # the router releases nothing until the turn is over, so waiting for
        # the first increment lets turn failures reach the exception handlers
        first = await anext(chunks, None)
        if first is None:
            return StreamingResponse(iter(()), media_type="text/plain")

        async def answer():
            yield first
            async for chunk in chunks:
                yield chunk

        return StreamingResponse(answer(), media_type="text/plain")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": VERSION,
        }

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
        return error_response(400, "invalid JSON payload")

    @app.exception_handler(LeadQualifierError)
    async def qualifier_exception_handler(request: Request, exc: LeadQualifierError):
        status_code = status_for(exc)
        logger.error(f"Request to {request.url.path} failed ({status_code}): {exc}")
        return error_response(status_code, str(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}")
        return error_response(500, "Internal server error")

    return app


def serve(host: str = "0.0.0.0", port: int = 8080, reload: bool = False, settings: Optional[Settings] = None):
    """Run the API with uvicorn."""
    import uvicorn

    settings = settings or Settings.from_env()
    logger.add(settings.log_file, rotation="1 day", retention="7 days", level="INFO")
    logger.info("Starting Lead Qualifier API")

    uvicorn.run(
        "app:create_app" if reload else create_app(settings),
        factory=reload,
        host=host,
        port=port,
        reload=reload,
        timeout_graceful_shutdown=settings.shutdown_timeout,
        log_level="info",
    )


if __name__ == "__main__":
    serve()
