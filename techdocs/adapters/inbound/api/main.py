"""FastAPI application for the tech docs knowledge base."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ....common.exception_handler import (
    format_exception_json,
    get_http_status_code,
    get_retry_after,
    log_exception,
)
from ....composition.container import (
    get_embedder,
    get_orchestrator,
    get_retriever,
    start_embedder_in_background,
)
from ....config import settings, setup_logging
from ....core.domain.exceptions import KnowledgeBaseError
from .routers import ask, documents, health, search

logger = logging.getLogger(__name__)

# Determine if we're in debug mode (shows full stack traces)
DEBUG_MODE = os.getenv("DEBUG", "false").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the embedding model in the background; release resources on shutdown."""
    setup_logging(level=settings.log_level, json_format=settings.log_json, log_file=settings.log_file)
    logger.info("Tech Docs KB API starting up...")
    logger.info("API docs available at /docs")
    logger.info("Debug mode: %s", "ENABLED" if DEBUG_MODE else "DISABLED")

    # Requests are served keyword-only until the model is loaded
    start_embedder_in_background()

    yield

    logger.info("Tech Docs KB API shutting down...")
    get_orchestrator().shutdown()
    get_retriever().shutdown()
    get_embedder().shutdown()


app = FastAPI(
    title="Tech Docs KB API",
    description=(
        "Technical documentation knowledge base. Hybrid (vector + keyword) search "
        "and grounded question answering with citations."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Local dev
        "http://localhost:5173",  # Vite dev server
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(documents.router)
app.include_router(search.router)
app.include_router(ask.router)


# =============================================================================
# Global Exception Handlers
# =============================================================================


def _error_response(exc: Exception, content: dict) -> JSONResponse:
    retry_after = get_retry_after(exc)
    return JSONResponse(
        status_code=get_http_status_code(exc),
        content=content,
        headers={"Retry-After": str(retry_after)} if retry_after is not None else None,
    )


@app.exception_handler(KnowledgeBaseError)
async def knowledge_base_error_handler(request: Request, exc: KnowledgeBaseError) -> JSONResponse:
    """Handle all KnowledgeBaseError exceptions with structured JSON response.

    Retryable errors (index or embedder unavailable, no working signal)
    carry a ``Retry-After`` header.

    Args:
        request: The incoming request.
        exc: The KnowledgeBaseError exception.

    Returns:
        JSONResponse with structured error details.
    """
    log_exception(exc, extra_context={"path": str(request.url.path), "method": request.method})
    return _error_response(exc, exc.to_dict(include_trace=DEBUG_MODE))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with structured JSON response.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with structured error details.
    """
    log_exception(exc, extra_context={"path": str(request.url.path), "method": request.method})

    return _error_response(exc, format_exception_json(exc, include_trace=DEBUG_MODE))


# Export for uvicorn
__all__ = ["app"]
