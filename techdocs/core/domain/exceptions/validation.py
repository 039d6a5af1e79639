"""Validation exceptions."""

from .base import KnowledgeBaseError


class ValidationError(KnowledgeBaseError):
    """Input validation failed."""

    error_code = "KB_VAL_001"
    http_status = 400


class InvalidInputError(ValidationError):
    """Input rejected at the boundary; never retried."""

    error_code = "KB_VAL_002"


class EmptyQueryError(InvalidInputError):
    """Query cannot be empty or whitespace only."""

    error_code = "KB_VAL_003"


class EmptyContentError(InvalidInputError):
    """Document title or content is empty."""

    error_code = "KB_VAL_004"


class QueryTooLongError(ValidationError):
    """Query exceeds maximum allowed length."""

    error_code = "KB_VAL_005"
