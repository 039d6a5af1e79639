"""Error reporting shared by the API and the CLI.

Turns any exception into the structured error body, picks its HTTP status
and log level, and logs it so that degraded operation (index down, model
still loading) is told apart from genuine faults.
"""

import logging
import traceback
from typing import Any

from ..core.domain.exceptions import KnowledgeBaseError

logger = logging.getLogger(__name__)

FOREIGN_ERROR_CODE = "PYTHON_ERR"
RETRY_AFTER_SECONDS = 5


def format_exception_json(
    exc: Exception,
    include_trace: bool = False,
    extra_context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Structured error body for ``exc``.

    Knowledge base errors serialize themselves; anything else is located
    from the innermost traceback frame and reported as ``PYTHON_ERR``.

    Args:
        exc: The exception to format.
        include_trace: Include the stack trace.
        extra_context: Merged into the ``context`` section.
    """
    if isinstance(exc, KnowledgeBaseError):
        result = exc.to_dict(include_trace=include_trace)
        if extra_context:
            result.setdefault("context", {}).update(extra_context)
        return result

    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    innermost = frames[-1] if frames else None

    result: dict[str, Any] = {
        "error": {
            "type": type(exc).__name__,
            "code": FOREIGN_ERROR_CODE,
            "message": str(exc),
            "retryable": is_retryable(exc),
        },
        "location": {
            "class": "<unknown>",
            "method": innermost.name if innermost else "<unknown>",
            "file": (
                innermost.filename.replace("\\", "/").rsplit("/", 1)[-1]
                if innermost
                else "<unknown>"
            ),
            "line": innermost.lineno if innermost else 0,
        },
    }

    if extra_context:
        result["context"] = extra_context

    if include_trace:
        result["stack_trace"] = [
            line.strip()
            for line in traceback.format_exception(type(exc), exc, exc.__traceback__)
            if line.strip()
        ]

    return result


def get_http_status_code(exc: Exception) -> int:
    """HTTP status for ``exc``.

    Knowledge base errors carry their own status (validation 400, ingestion
    422, rate limit 429, LLM 502/504, unavailable index or embedder and
    retrieval with no working signal 503). Foreign errors fall back to 400
    for ``ValueError``, 503 for connection and timeout errors, 500 otherwise.
    """
    if isinstance(exc, KnowledgeBaseError):
        return exc.http_status
    if isinstance(exc, ValueError):
        return 400
    if isinstance(exc, ConnectionError | TimeoutError):
        return 503
    return 500


def is_retryable(exc: Exception) -> bool:
    """Whether repeating the same call later may succeed."""
    if isinstance(exc, KnowledgeBaseError):
        return exc.retryable
    return isinstance(exc, ConnectionError | TimeoutError)


def get_retry_after(exc: Exception) -> int | None:
    """Seconds a client should wait before retrying, or None if it should not."""
    return RETRY_AFTER_SECONDS if is_retryable(exc) else None


def log_level_for(exc: Exception) -> int:
    """Caller mistakes and transient outages log at WARNING, faults at ERROR."""
    if get_http_status_code(exc) < 500 or is_retryable(exc):
        return logging.WARNING
    return logging.ERROR


def log_exception(
    exc: Exception,
    log: logging.Logger | None = None,
    level: int | None = None,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """Log ``exc`` with its structured error body attached.

    The body travels in the record's ``error`` attribute, which the JSON
    formatter emits as is; the plain formatter shows the one-line message.

    Args:
        exc: The exception to log.
        log: Logger to use (defaults to this module's).
        level: Overrides the level picked by ``log_level_for``.
        extra_context: Merged into the ``context`` section.
    """
    body = format_exception_json(exc, include_trace=True, extra_context=extra_context)
    error = body["error"]
    (log or logger).log(
        level if level is not None else log_level_for(exc),
        "%s [%s]: %s",
        error["type"],
        error["code"],
        error["message"],
        extra={"error": body},
    )
