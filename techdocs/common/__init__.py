"""Common utilities shared across layers."""

from .exception_handler import (
    format_exception_json,
    get_http_status_code,
    get_retry_after,
    is_retryable,
    log_exception,
)
from .locks import KeyedLock
from .utils import clean_text, normalize_text, query_terms, tokenize

__all__ = [
    # Utilities
    "clean_text",
    "normalize_text",
    "tokenize",
    "query_terms",
    "KeyedLock",
    # Exception handlers
    "format_exception_json",
    "log_exception",
    "get_http_status_code",
    "get_retry_after",
    "is_retryable",
]
