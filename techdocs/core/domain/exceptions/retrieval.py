"""Retrieval exceptions."""

from .base import KnowledgeBaseError


class RetrievalError(KnowledgeBaseError):
    """Error during document retrieval."""

    error_code = "KB_RET_001"
    http_status = 503


class AllSignalsFailedError(RetrievalError):
    """Both the vector and the keyword signal failed for a query."""

    error_code = "KB_RET_002"
    retryable = True
