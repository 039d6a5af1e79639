"""Pydantic models for API requests and responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DocumentCreateRequest(BaseModel):
    """Request model for ingesting a document."""

    title: str = Field(..., min_length=1, max_length=500, description="Document title")
    content: str = Field(..., min_length=1, description="Plain text content of the document")
    source_ref: str = Field(
        default="Manual entry",
        description="Where the document came from (URL, file name, ...)",
        json_schema_extra={"example": "https://react.dev/reference/react/hooks"},
    )
    technology: str = Field(
        default="General",
        description="Technology tag used for filtering",
        json_schema_extra={"example": "React"},
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form metadata")
    document_id: str | None = Field(
        default=None,
        description="Existing document id to re-ingest; a new id is assigned when omitted",
    )


class DocumentCreateResponse(BaseModel):
    """Response model for an ingested document."""

    document_id: str = Field(..., description="Identifier of the ingested document")
    chunk_count: int = Field(..., ge=0, description="Number of chunks stored")
    rejected_chunks: int = Field(default=0, ge=0, description="Chunks rejected by the index")


class DocumentInfo(BaseModel):
    """An ingested document."""

    id: str
    title: str
    source_ref: str
    technology: str
    created_at: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentListResponse(BaseModel):
    """Response model for listing documents."""

    documents: list[DocumentInfo] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class DocumentDeleteResponse(BaseModel):
    """Response model for a deleted document."""

    document_id: str
    deleted_chunks: int = Field(..., ge=0)


class SearchFiltersModel(BaseModel):
    """Optional exact-match search filters."""

    technology: str | None = None
    source_ref: str | None = None
    document_id: str | None = None


class SearchRequest(BaseModel):
    """Request model for hybrid search."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Search query",
        json_schema_extra={"example": "How do hooks work"},
    )
    limit: int = Field(default=10, ge=1, le=50, description="Maximum number of results")
    filters: SearchFiltersModel | None = Field(default=None, description="Exact-match filters")


class SearchResultItem(BaseModel):
    """A single ranked search result."""

    chunk_id: str
    document_id: str
    score: float = Field(..., ge=0, le=1, description="Fused relevance score")
    excerpt: str = Field(..., description="Query-relevant snippet, highlights in <mark> tags")
    title: str
    source_ref: str
    technology: str
    vector_score: float | None = None
    keyword_score: float | None = None


class SearchResponse(BaseModel):
    """Response model for hybrid search."""

    query: str
    results: list[SearchResultItem] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class QuestionRequest(BaseModel):
    """Request model for asking a question."""

    question: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="The question to answer from the knowledge base",
        json_schema_extra={"example": "How do React hooks manage state?"},
    )


class CitationInfo(BaseModel):
    """A source used to answer the question."""

    title: str = Field(..., description="Title of the source document")
    source_ref: str = Field(..., description="Source reference (URL, file name, ...)")
    relevance_pct: int = Field(..., ge=0, le=100, description="Relevance as a percentage")


class AnswerResponse(BaseModel):
    """Response model for an answered question."""

    answer: str = Field(..., description="The generated (or fallback) answer")
    reasoning: str = Field(..., description="How the answer was produced")
    citations: list[CitationInfo] = Field(default_factory=list)
    question: str = Field(..., description="The original question asked")
    state: str = Field(..., description="Outcome: no_context, answered or fallback")
    is_fallback: bool = Field(default=False, description="True if generation failed")
    model_used: str = Field(..., description="LLM model configured for generation")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


class ReadinessResponse(BaseModel):
    """Response model for the readiness check."""

    status: str = Field(..., description="ready or degraded")
    version: str = Field(..., description="API version")
    embedder_ready: bool = Field(..., description="Embedding model loaded")
    index_available: bool = Field(..., description="Index reachable")


class ErrorDetail(BaseModel):
    """Structured error detail information."""

    type: str = Field(..., description="Exception type name")
    code: str = Field(..., description="Error code (e.g., KB_VAL_003)")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(False, description="Whether the same request may succeed later")


class ErrorLocation(BaseModel):
    """Source location where error occurred."""

    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(..., alias="class", description="Class name or <module>")
    method: str = Field(..., description="Method/function name")
    file: str = Field(..., description="Source file name")
    line: int = Field(..., description="Line number")
    timestamp: str | None = Field(None, description="When the error occurred")


class ErrorResponse(BaseModel):
    """Response model for structured errors.

    Example:
        {
            "error": {"type": "EmptyQueryError", "code": "KB_VAL_003", "message": "..."},
            "location": {"class": "HybridRetriever", "method": "retrieve", ...},
            "context": {"path": "/api/v1/search"},
            "stack_trace": ["Traceback...", ...]  # Only in debug mode
        }
    """

    error: ErrorDetail = Field(..., description="Error details including type, code, and message")
    location: ErrorLocation | None = Field(None, description="Source location of the error")
    context: dict | None = Field(None, description="Additional debugging context")
    cause: dict | None = Field(None, description="Underlying exception that caused this error")
    stack_trace: list[str] | None = Field(None, description="Stack trace (debug mode only)")
