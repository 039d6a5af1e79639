"""FastAPI dependencies: shared services from the composition root."""

from ....composition.container import (
    get_embedder,
    get_index,
    get_ingestion_service,
    get_orchestrator,
    get_retriever,
)

__all__ = [
    "get_embedder",
    "get_index",
    "get_ingestion_service",
    "get_orchestrator",
    "get_retriever",
]
