"""Document ingestion and management endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from .....common.utils import normalize_text
from .....core.domain import IngestionRequest
from ..deps import get_ingestion_service
from ..models import (
    DocumentCreateRequest,
    DocumentCreateResponse,
    DocumentDeleteResponse,
    DocumentInfo,
    DocumentListResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.post(
    "",
    response_model=DocumentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Empty title or content"},
        503: {"model": ErrorResponse, "description": "Index unavailable"},
    },
)
def create_document(request: DocumentCreateRequest) -> DocumentCreateResponse:
    """Ingest a document (or re-ingest it when ``document_id`` is given)."""
    service = get_ingestion_service()
    result = service.ingest(
        IngestionRequest(
            title=request.title,
            content=request.content,
            source_ref=request.source_ref,
            technology=request.technology,
            metadata=request.metadata,
            document_id=request.document_id,
        )
    )
    return DocumentCreateResponse(
        document_id=result.document_id,
        chunk_count=result.chunk_count,
        rejected_chunks=result.rejected_chunks,
    )


@router.get("", response_model=DocumentListResponse)
def list_documents() -> DocumentListResponse:
    """List ingested documents."""
    documents = [
        DocumentInfo(
            id=doc.id,
            title=doc.title,
            source_ref=doc.source_ref,
            technology=doc.technology,
            created_at=doc.created_at,
            metadata=doc.metadata,
        )
        for doc in get_ingestion_service().list_documents()
    ]
    return DocumentListResponse(documents=documents, total=len(documents))


@router.delete(
    "/{document_id}",
    response_model=DocumentDeleteResponse,
    responses={404: {"description": "Document not found"}},
)
def delete_document(document_id: str) -> DocumentDeleteResponse:
    """Delete a document and all of its chunks."""
    document_id = normalize_text(document_id)
    removed = get_ingestion_service().delete_document(document_id)
    if removed == 0:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return DocumentDeleteResponse(document_id=document_id, deleted_chunks=removed)
