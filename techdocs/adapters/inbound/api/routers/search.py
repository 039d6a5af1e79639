"""Hybrid search endpoint (non-RAG search mode)."""

from fastapi import APIRouter

from .....common.utils import normalize_text
from .....core.domain import SearchFilters
from ..deps import get_retriever
from ..models import ErrorResponse, SearchRequest, SearchResponse, SearchResultItem

router = APIRouter(prefix="/api/v1", tags=["search"])


@router.post(
    "/search",
    response_model=SearchResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Empty query"},
        503: {"model": ErrorResponse, "description": "Retrieval unavailable"},
    },
)
def search(request: SearchRequest) -> SearchResponse:
    """Rank chunks by fused vector and keyword relevance."""
    query = normalize_text(request.query)
    filters = SearchFilters(**request.filters.model_dump()) if request.filters else None

    results = get_retriever().retrieve(query, limit=request.limit, filters=filters)

    items = [
        SearchResultItem(
            chunk_id=result.chunk_id,
            document_id=result.document_id,
            score=result.fused_score,
            excerpt=result.excerpt,
            title=result.document_meta.title,
            source_ref=result.document_meta.source_ref,
            technology=result.document_meta.technology,
            vector_score=result.vector_score,
            keyword_score=result.keyword_score,
        )
        for result in results
    ]
    return SearchResponse(query=query, results=items, total=len(items))
