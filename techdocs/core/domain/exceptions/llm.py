"""Text generation exceptions.

None of these is fatal for a question: the orchestrator resolves every
``LLMError`` to a fallback answer.
"""

from .base import KnowledgeBaseError


class LLMError(KnowledgeBaseError):
    """Base error for text generation."""

    error_code = "KB_LLM_001"
    http_status = 502


class LLMConnectionError(LLMError):
    """Failed to connect to LLM provider.

    Common causes:
    - Invalid API key
    - Network issues
    - Service unavailable
    """

    error_code = "KB_LLM_002"
    retryable = True


class LLMRateLimitError(LLMError):
    """Rate limit or quota exceeded on LLM provider."""

    error_code = "KB_LLM_003"
    http_status = 429
    retryable = True


class LLMGenerationError(LLMError):
    """Failed to generate a usable response.

    Common causes:
    - Content filtered by safety settings
    - Empty or malformed response
    """

    error_code = "KB_LLM_004"


class LLMTimeoutError(LLMError):
    """Generation did not finish within the configured timeout."""

    error_code = "KB_LLM_005"
    http_status = 504
    retryable = True
