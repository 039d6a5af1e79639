"""Embedding exceptions."""

from .base import KnowledgeBaseError


class EmbeddingError(KnowledgeBaseError):
    """Failed to generate embeddings."""

    error_code = "KB_EMB_001"
    http_status = 503


class EmbedderNotReadyError(EmbeddingError):
    """Embedder was used before ``initialize()`` completed.

    Callers treat this as "vector signal unavailable" and fall back to
    keyword-only behaviour.
    """

    error_code = "KB_EMB_002"
    retryable = True


class EmbedderAlreadyInitializedError(EmbeddingError):
    """``initialize()`` was called a second time."""

    error_code = "KB_EMB_003"
    http_status = 500


class EmbeddingModelLoadError(EmbeddingError):
    """The embedding model could not be loaded."""

    error_code = "KB_EMB_004"
