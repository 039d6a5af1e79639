"""Custom exception hierarchy for the tech docs knowledge base.

Every exception declares an error code, the HTTP status it maps to and
whether retrying can help; see ``base`` for details.

Import from this package directly:

    from techdocs.core.domain.exceptions import KnowledgeBaseError, IndexUnavailableError
"""

# Base classes
from .base import ErrorLocation, KnowledgeBaseError

# Configuration exceptions
from .configuration import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingAPIKeyError,
)

# Embedding exceptions
from .embedding import (
    EmbedderAlreadyInitializedError,
    EmbedderNotReadyError,
    EmbeddingError,
    EmbeddingModelLoadError,
)

# Ingestion exceptions
from .ingestion import IngestionError

# LLM exceptions
from .llm import (
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMRateLimitError,
    LLMTimeoutError,
)

# Retrieval exceptions
from .retrieval import (
    AllSignalsFailedError,
    RetrievalError,
)

# Validation exceptions
from .validation import (
    EmptyContentError,
    EmptyQueryError,
    InvalidInputError,
    QueryTooLongError,
    ValidationError,
)

# Vector store exceptions
from .vector_store import (
    DimensionMismatchError,
    IndexUnavailableError,
    VectorStoreError,
)

__all__ = [
    # Base
    "ErrorLocation",
    "KnowledgeBaseError",
    # Configuration
    "ConfigurationError",
    "MissingAPIKeyError",
    "InvalidConfigurationError",
    # Vector Store
    "VectorStoreError",
    "IndexUnavailableError",
    "DimensionMismatchError",
    # Embedding
    "EmbeddingError",
    "EmbedderNotReadyError",
    "EmbedderAlreadyInitializedError",
    "EmbeddingModelLoadError",
    # LLM
    "LLMError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMGenerationError",
    "LLMTimeoutError",
    # Ingestion
    "IngestionError",
    # Validation
    "ValidationError",
    "InvalidInputError",
    "EmptyQueryError",
    "EmptyContentError",
    "QueryTooLongError",
    # Retrieval
    "RetrievalError",
    "AllSignalsFailedError",
]
