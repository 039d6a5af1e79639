"""Health check endpoints."""

from fastapi import APIRouter

from ..deps import get_embedder, get_index
from ..models import HealthResponse, ReadinessResponse

API_VERSION = "1.0.0"

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Basic liveness check."""
    return HealthResponse(status="healthy", version=API_VERSION)


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check() -> ReadinessResponse:
    """Readiness check for the embedder and the index.

    The service still answers with only the index available (keyword-only
    search), so that case reports ``degraded`` instead of failing.
    """
    embedder_ready = get_embedder().is_ready()
    index_available = get_index().is_available()

    return ReadinessResponse(
        status="ready" if embedder_ready and index_available else "degraded",
        version=API_VERSION,
        embedder_ready=embedder_ready,
        index_available=index_available,
    )
