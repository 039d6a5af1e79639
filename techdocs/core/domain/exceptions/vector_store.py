"""Index (vector store) exceptions."""

from .base import KnowledgeBaseError


class VectorStoreError(KnowledgeBaseError):
    """Base error for index operations."""

    error_code = "KB_VEC_001"
    http_status = 503


class IndexUnavailableError(VectorStoreError):
    """The index could not be reached after retrying.

    Common causes:
    - Invalid URL or API key
    - Network connectivity issues
    - Qdrant service is down
    """

    error_code = "KB_VEC_002"
    retryable = True


class DimensionMismatchError(VectorStoreError):
    """A vector does not match the dimension fixed at collection creation.

    A deployment error (model and collection disagree), not an outage.
    """

    error_code = "KB_VEC_003"
    http_status = 500

