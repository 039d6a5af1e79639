"""Base exception for the tech docs knowledge base.

Every error the core raises is a ``KnowledgeBaseError`` subclass that
declares three class attributes:

- ``error_code``: stable ``KB_<AREA>_<NNN>`` identifier shown by the API and CLI
- ``http_status``: status the HTTP layer answers with
- ``retryable``: the same call may succeed later with no change on the
  caller's side (index down, model still loading, quota exhausted)

Instances record where they were raised, the underlying cause and free-form
context, and serialize to the JSON error body with ``to_dict``.
"""

import inspect
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class ErrorLocation:
    """Raise site of an error."""

    class_name: str
    method_name: str
    file_name: str
    line_number: int
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "class": self.class_name,
            "method": self.method_name,
            "file": self.file_name,
            "line": self.line_number,
            "timestamp": self.timestamp,
        }


UNKNOWN_LOCATION = ("<unknown>", "<unknown>", "<unknown>", 0)


class KnowledgeBaseError(Exception):
    """Base exception for all knowledge base errors.

    Example:
        try:
            client.upsert(...)
        except ResponseHandlingException as e:
            raise IndexUnavailableError(
                "Qdrant did not respond",
                cause=e,
                context={"collection": "documents"},
            ) from e
    """

    error_code: str = "KB_ERR_001"
    http_status: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        cause: Exception | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception with message and optional context.

        Args:
            message: Human-readable error message.
            cause: The underlying exception that caused this error.
            context: Additional context as key-value pairs for debugging.
        """
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.extra_context = context or {}
        self.location = self._capture_location()
        self.stack_trace = (
            "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
            if cause is not None
            else None
        )

    def _capture_location(self) -> ErrorLocation:
        """Locate the raise site: the first frame outside this error's own constructors."""
        frame = inspect.currentframe()
        while frame is not None and frame.f_locals.get("self") is self:
            frame = frame.f_back
        if frame is None:
            return ErrorLocation(*UNKNOWN_LOCATION)

        owner = frame.f_locals.get("self")
        return ErrorLocation(
            class_name=type(owner).__name__ if owner is not None else "<module>",
            method_name=frame.f_code.co_name,
            file_name=frame.f_code.co_filename.replace("\\", "/").rsplit("/", 1)[-1],
            line_number=frame.f_lineno,
        )

    def to_dict(self, include_trace: bool = False) -> dict[str, Any]:
        """Structured error body for API responses and JSON logs.

        Args:
            include_trace: Include the cause's stack trace (debug mode).
        """
        result: dict[str, Any] = {
            "error": {
                "type": type(self).__name__,
                "code": self.error_code,
                "message": self.message,
                "retryable": self.retryable,
            },
            "location": self.location.to_dict(),
        }

        if self.extra_context:
            result["context"] = self.extra_context

        if include_trace and self.stack_trace:
            result["stack_trace"] = [line for line in self.stack_trace.split("\n") if line.strip()]

        if self.cause is not None:
            result["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }

        return result
