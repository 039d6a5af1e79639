"""Ingestion exceptions."""

from .base import KnowledgeBaseError


class IngestionError(KnowledgeBaseError):
    """A document could not be stored in the index.

    Raised only when no chunk of the document survived; single rejected
    chunks are logged and reported on the ingestion result instead.
    """

    error_code = "KB_ING_001"
    http_status = 422
