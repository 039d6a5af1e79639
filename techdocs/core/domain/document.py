"""Document, chunk and search result models for the knowledge base."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class DocumentMeta:
    """Fields of the owning document, copied onto every chunk payload.

    Attributes:
        title: Document title (highest keyword weight).
        source_ref: Where the document came from (URL, file name, ...).
        technology: Technology tag (lowest keyword weight).
        created_at: ISO-8601 ingestion timestamp.
        metadata: Free-form fields supplied at ingestion.
    """

    title: str
    source_ref: str
    technology: str = "General"
    created_at: str = field(default_factory=utc_now_iso)
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Document:
    """An ingested document.

    Immutable once ingested; changed only by re-ingesting it under the same id.
    """

    id: str
    title: str
    source_ref: str
    technology: str
    created_at: str
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


def make_chunk_id(document_id: str, ordinal: int) -> str:
    """Deterministic chunk id so re-ingestion overwrites instead of duplicating."""
    return f"{document_id}:{ordinal}"


@dataclass
class Chunk:
    """A bounded, independently retrievable span of a document's text.

    A chunk without a vector only takes part in keyword search.

    Attributes:
        id: Chunk identifier, see ``make_chunk_id``.
        document_id: Owning document.
        ordinal: Position within the document (restores document order).
        text: Chunk text.
        vector: Normalized embedding, or None until embedding succeeds.
    """

    id: str
    document_id: str
    ordinal: int
    text: str
    vector: list[float] | None = None


class SignalType(Enum):
    """Retrieval signal that produced a hit."""

    VECTOR = "vector"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class SearchHit:
    """A signal-specific result before fusion.

    Attributes:
        chunk_id: Matched chunk.
        document_id: Owning document.
        raw_score: Score as reported by the signal (cosine or BM25).
        signal_type: Which signal produced the hit.
        text: Full chunk text.
        meta: Owning document fields.
        ordinal: Chunk position within its document.
        highlights: Highlighted spans (keyword hits only).
    """

    chunk_id: str
    document_id: str
    raw_score: float
    signal_type: SignalType
    text: str
    meta: DocumentMeta
    ordinal: int = 0
    highlights: tuple[str, ...] = ()


@dataclass(frozen=True)
class FusedResult:
    """The ranked unit returned to callers; unique per ``chunk_id``.

    Attributes:
        chunk_id: Matched chunk.
        document_id: Owning document.
        fused_score: Combined score in [0, 1].
        excerpt: Short query-relevant snippet of the chunk.
        document_meta: Owning document fields.
        text: Full chunk text, used to ground generated answers.
        vector_score: Normalized vector score, None if the signal missed.
        keyword_score: Normalized keyword score, None if the signal missed.
    """

    chunk_id: str
    document_id: str
    fused_score: float
    excerpt: str
    document_meta: DocumentMeta
    text: str
    vector_score: float | None = None
    keyword_score: float | None = None


@dataclass(frozen=True)
class SearchFilters:
    """Optional exact-match restrictions for search mode."""

    technology: str | None = None
    source_ref: str | None = None
    document_id: str | None = None


@dataclass
class IngestionRequest:
    """Plain text plus metadata handed over by the extraction collaborator."""

    title: str
    content: str
    source_ref: str = "Manual entry"
    technology: str = "General"
    metadata: dict[str, Any] = field(default_factory=dict)
    document_id: str | None = None


@dataclass
class IngestionResult:
    """Outcome of ingesting one document."""

    document_id: str
    chunk_count: int
    rejected_chunks: int = 0
