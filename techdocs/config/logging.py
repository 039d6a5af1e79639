"""Logging configuration for the tech docs knowledge base.

Modules log through ``logging.getLogger(__name__)``; everything lives under
the ``techdocs`` logger, which ``setup_logging`` configures once per process
(API startup or CLI callback).
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from ..core.domain.exceptions import KnowledgeBaseError

ROOT_LOGGER_NAME = "techdocs"

# Chatty at INFO: request lines, model downloads, client handshakes
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "qdrant_client",
    "sentence_transformers",
    "google_genai",
)


class JSONExceptionFormatter(logging.Formatter):
    """One JSON object per line for log aggregation.

    Records logged through ``log_exception`` carry the structured error
    body in ``record.error``; it is emitted unchanged. A knowledge base
    error passed as ``exc_info`` contributes its code, retryability and
    context.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": {
                "file": record.filename,
                "function": record.funcName,
                "line": record.lineno,
            },
        }

        error = getattr(record, "error", None)
        if isinstance(error, dict):
            log_entry["error"] = error

        if record.exc_info and record.exc_info[0] is not None:
            exc = record.exc_info[1]
            exception: dict[str, Any] = {
                "type": record.exc_info[0].__name__,
                "message": str(exc) if exc else None,
                "traceback": self.formatException(record.exc_info),
            }
            if isinstance(exc, KnowledgeBaseError):
                exception["code"] = exc.error_code
                exception["retryable"] = exc.retryable
                if exc.extra_context:
                    exception["context"] = exc.extra_context
            log_entry["exception"] = exception

        return json.dumps(log_entry, default=str)


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    json_format: bool = False,
) -> logging.Logger:
    """Configure the ``techdocs`` logger tree.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file path for log output.
        json_format: If True, output logs in JSON format.

    Returns:
        The ``techdocs`` logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    if json_format:
        formatter: logging.Formatter = JSONExceptionFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Third-party libraries stay quiet unless we are debugging
    third_party_level = logging.DEBUG if logger.level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return logger
