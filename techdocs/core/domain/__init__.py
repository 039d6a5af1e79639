"""Domain models for the tech docs knowledge base.

- document: Document, Chunk, SearchHit, FusedResult and ingestion models
- answer: RAGState, Citation and RAGAnswer

All models are re-exported here:

    from techdocs.core.domain import Chunk, FusedResult, RAGAnswer
"""

from .answer import Citation, RAGAnswer, RAGState
from .document import (
    Chunk,
    Document,
    DocumentMeta,
    FusedResult,
    IngestionRequest,
    IngestionResult,
    SearchFilters,
    SearchHit,
    SignalType,
    make_chunk_id,
)

__all__ = [
    # Document models
    "Document",
    "DocumentMeta",
    "Chunk",
    "SignalType",
    "SearchHit",
    "FusedResult",
    "SearchFilters",
    "IngestionRequest",
    "IngestionResult",
    "make_chunk_id",
    # Answer models
    "RAGState",
    "Citation",
    "RAGAnswer",
]
