"""Unit tests for exception handling system.

Tests both the exception hierarchy and the exception handler utilities,
including negative tests to verify correct exceptions are raised.
"""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from techdocs.common.exception_handler import (
    format_exception_json,
    get_http_status_code,
    get_retry_after,
    is_retryable,
    log_exception,
    log_level_for,
)
from techdocs.core.domain.exceptions import (
    AllSignalsFailedError,
    ConfigurationError,
    DimensionMismatchError,
    EmbedderAlreadyInitializedError,
    EmbedderNotReadyError,
    EmbeddingError,
    EmbeddingModelLoadError,
    EmptyContentError,
    EmptyQueryError,
    IndexUnavailableError,
    IngestionError,
    InvalidConfigurationError,
    InvalidInputError,
    KnowledgeBaseError,
    LLMConnectionError,
    LLMError,
    LLMGenerationError,
    LLMRateLimitError,
    LLMTimeoutError,
    MissingAPIKeyError,
    QueryTooLongError,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)

# Apply @pytest.mark.unit to all tests in this module
pytestmark = pytest.mark.unit


def _raise_from_function() -> KnowledgeBaseError:
    return KnowledgeBaseError("raised from a plain function")


class TestExceptionHierarchy:
    """Tests for the exception class hierarchy."""

    def test_knowledge_base_error_is_base(self):
        """KnowledgeBaseError should be the base for all custom exceptions."""
        for cls in (
            ConfigurationError,
            VectorStoreError,
            LLMError,
            ValidationError,
            EmbeddingError,
            RetrievalError,
            IngestionError,
        ):
            assert issubclass(cls, KnowledgeBaseError)

    def test_index_errors_inherit_from_vector_store(self):
        assert issubclass(IndexUnavailableError, VectorStoreError)
        assert issubclass(DimensionMismatchError, VectorStoreError)

    def test_llm_errors_inherit_from_llm_error(self):
        for cls in (LLMConnectionError, LLMRateLimitError, LLMGenerationError, LLMTimeoutError):
            assert issubclass(cls, LLMError)

    def test_embedder_errors_inherit_from_embedding(self):
        for cls in (EmbedderNotReadyError, EmbedderAlreadyInitializedError, EmbeddingModelLoadError):
            assert issubclass(cls, EmbeddingError)

    def test_validation_errors(self):
        """Empty query and empty content are invalid input."""
        assert issubclass(EmptyQueryError, InvalidInputError)
        assert issubclass(EmptyContentError, InvalidInputError)
        assert issubclass(InvalidInputError, ValidationError)
        assert issubclass(QueryTooLongError, ValidationError)

    def test_config_errors_inherit_from_configuration(self):
        assert issubclass(MissingAPIKeyError, ConfigurationError)
        assert issubclass(InvalidConfigurationError, ConfigurationError)

    def test_all_signals_failed_is_retrieval_error(self):
        assert issubclass(AllSignalsFailedError, RetrievalError)


class TestExceptionCreation:
    """Tests for creating and using exceptions."""

    def test_basic_exception_creation(self):
        """Basic exception should have message and error code."""
        exc = KnowledgeBaseError("Test error message")
        assert str(exc) == "Test error message"
        assert exc.message == "Test error message"
        assert exc.error_code == "KB_ERR_001"

    def test_exception_with_context(self):
        """Exception should store extra context."""
        exc = IndexUnavailableError(
            "Connection failed", context={"collection": "documents", "operation": "scroll"}
        )
        assert exc.extra_context["collection"] == "documents"
        assert exc.extra_context["operation"] == "scroll"

    def test_exception_with_cause(self):
        """Exception should chain underlying cause."""
        original = ConnectionError("Network unreachable")
        exc = IndexUnavailableError("Connection failed", cause=original)
        assert exc.cause is original
        assert exc.cause.args[0] == "Network unreachable"

    def test_exception_captures_location(self):
        """Exception should capture file, method, and line number."""
        exc = KnowledgeBaseError("Test")
        assert exc.location.file_name == "test_exceptions.py"
        assert exc.location.method_name == "test_exception_captures_location"
        assert exc.location.class_name == "TestExceptionCreation"
        assert exc.location.line_number > 0

    def test_location_skips_subclass_constructors(self):
        """A subclass with its own __init__ still reports the raise site."""

        class WrappedError(IndexUnavailableError):
            def __init__(self, collection):
                super().__init__(f"{collection} unavailable", context={"collection": collection})

        exc = WrappedError("documents")

        assert exc.location.method_name == "test_location_skips_subclass_constructors"
        assert exc.location.class_name == "TestExceptionCreation"

    def test_location_outside_a_class(self):
        exc = _raise_from_function()

        assert exc.location.class_name == "<module>"
        assert exc.location.method_name == "_raise_from_function"

    def test_each_exception_has_unique_error_code(self):
        """Each exception type should have a unique error code."""
        exceptions = [
            KnowledgeBaseError,
            ConfigurationError,
            MissingAPIKeyError,
            InvalidConfigurationError,
            VectorStoreError,
            IndexUnavailableError,
            DimensionMismatchError,
            EmbeddingError,
            EmbedderNotReadyError,
            EmbedderAlreadyInitializedError,
            EmbeddingModelLoadError,
            LLMError,
            LLMConnectionError,
            LLMRateLimitError,
            LLMGenerationError,
            LLMTimeoutError,
            ValidationError,
            InvalidInputError,
            EmptyQueryError,
            EmptyContentError,
            QueryTooLongError,
            RetrievalError,
            AllSignalsFailedError,
            IngestionError,
        ]
        codes = {cls("test").error_code for cls in exceptions}

        assert len(codes) == len(exceptions)
        assert all(code.startswith("KB_") for code in codes)


class TestExceptionToDict:
    """Tests for exception JSON serialization."""

    def test_to_dict_basic_structure(self):
        """to_dict should return proper structure."""
        exc = IndexUnavailableError("Test error")
        result = exc.to_dict()

        assert result["error"]["type"] == "IndexUnavailableError"
        assert result["error"]["code"] == "KB_VEC_002"
        assert result["error"]["message"] == "Test error"
        assert set(result["location"]) == {"class", "method", "file", "line", "timestamp"}

    def test_to_dict_includes_context(self):
        exc = LLMRateLimitError("Rate limit", context={"model": "gemini"})
        assert exc.to_dict()["context"]["model"] == "gemini"

    def test_to_dict_omits_empty_context(self):
        assert "context" not in KnowledgeBaseError("plain").to_dict()

    def test_to_dict_includes_cause(self):
        original = ValueError("Bad value")
        exc = ValidationError("Invalid input", cause=original)
        result = exc.to_dict()

        assert result["cause"] == {"type": "ValueError", "message": "Bad value"}

    def test_to_dict_excludes_trace_by_default(self):
        try:
            raise ValueError("Bad value")
        except ValueError as e:
            exc = ValidationError("Invalid input", cause=e)

        assert "stack_trace" not in exc.to_dict()

    def test_to_dict_includes_trace_when_requested(self):
        """Stack trace is captured while the cause is being handled."""
        try:
            raise ValueError("Bad value")
        except ValueError as e:
            exc = ValidationError("Invalid input", cause=e)

        result = exc.to_dict(include_trace=True)

        assert any("ValueError: Bad value" in line for line in result["stack_trace"])

    def test_to_dict_is_json_serializable(self):
        exc = IndexUnavailableError(
            "Connection failed", context={"url": "http://localhost:6333", "attempts": 3}
        )
        assert isinstance(json.dumps(exc.to_dict()), str)


class TestExceptionHandler:
    """Tests for exception handler utilities."""

    def test_format_custom_exception(self):
        exc = IndexUnavailableError("Test error", context={"collection": "documents"})
        result = format_exception_json(exc)

        assert result["error"]["type"] == "IndexUnavailableError"
        assert result["error"]["code"] == "KB_VEC_002"

    def test_format_standard_exception(self):
        try:
            raise ValueError("Standard error")
        except ValueError as e:
            result = format_exception_json(e)

        assert result["error"]["type"] == "ValueError"
        assert result["error"]["code"] == "PYTHON_ERR"
        assert result["error"]["message"] == "Standard error"
        assert result["location"]["method"] == "test_format_standard_exception"

    def test_format_adds_extra_context(self):
        exc = IndexUnavailableError("Test", context={"collection": "documents"})
        result = format_exception_json(exc, extra_context={"request_id": "abc123"})

        assert result["context"]["collection"] == "documents"
        assert result["context"]["request_id"] == "abc123"

    def test_format_standard_exception_retryable(self):
        assert format_exception_json(ConnectionError("down"))["error"]["retryable"] is True
        assert format_exception_json(RuntimeError("bug"))["error"]["retryable"] is False

    def test_log_exception_attaches_error_body(self):
        log = MagicMock()
        log_exception(EmptyQueryError("empty"), log=log, extra_context={"path": "/search"})

        args, kwargs = log.log.call_args
        assert args[0] == logging.WARNING
        assert args[1] % args[2:] == "EmptyQueryError [KB_VAL_003]: empty"
        assert kwargs["extra"]["error"]["error"]["code"] == "KB_VAL_003"
        assert kwargs["extra"]["error"]["context"] == {"path": "/search"}

    def test_log_exception_level_override(self):
        log = MagicMock()
        log_exception(EmptyQueryError("empty"), log=log, level=logging.DEBUG)

        assert log.log.call_args[0][0] == logging.DEBUG

    @pytest.mark.parametrize(
        "exc,level",
        [
            (QueryTooLongError("x"), logging.WARNING),
            (EmbedderNotReadyError("x"), logging.WARNING),
            (AllSignalsFailedError("x"), logging.WARNING),
            (IndexUnavailableError("x"), logging.WARNING),
            (DimensionMismatchError("x"), logging.ERROR),
            (EmbeddingModelLoadError("x"), logging.ERROR),
            (RuntimeError("x"), logging.ERROR),
        ],
    )
    def test_log_level(self, exc, level):
        assert log_level_for(exc) == level


class TestHTTPStatusCodes:
    """Tests for HTTP status code mapping."""

    @pytest.mark.parametrize(
        "exc,status",
        [
            (ValidationError("x"), 400),
            (EmptyQueryError("x"), 400),
            (EmptyContentError("x"), 400),
            (QueryTooLongError("x"), 400),
            (LLMRateLimitError("x"), 429),
            (IndexUnavailableError("x"), 503),
            (DimensionMismatchError("x"), 500),
            (VectorStoreError("x"), 503),
            (EmbedderNotReadyError("x"), 503),
            (EmbeddingModelLoadError("x"), 503),
            (EmbedderAlreadyInitializedError("x"), 500),
            (AllSignalsFailedError("x"), 503),
            (RetrievalError("x"), 503),
            (LLMConnectionError("x"), 502),
            (LLMGenerationError("x"), 502),
            (LLMTimeoutError("x"), 504),
            (ConfigurationError("x"), 500),
            (MissingAPIKeyError("x"), 500),
            (IngestionError("x"), 422),
            (KnowledgeBaseError("x"), 500),
            (ValueError("x"), 400),
            (ConnectionError("x"), 503),
            (TimeoutError("x"), 503),
            (RuntimeError("x"), 500),
        ],
    )
    def test_status_mapping(self, exc, status):
        assert get_http_status_code(exc) == status

    @pytest.mark.parametrize(
        "exc",
        [
            EmbedderNotReadyError("x"),
            AllSignalsFailedError("x"),
            IndexUnavailableError("x"),
            LLMRateLimitError("x"),
            LLMTimeoutError("x"),
            LLMConnectionError("x"),
            ConnectionError("x"),
        ],
    )
    def test_retryable_errors_get_retry_after(self, exc):
        assert is_retryable(exc) is True
        assert get_retry_after(exc) == 5

    @pytest.mark.parametrize(
        "exc",
        [
            QueryTooLongError("x"),
            DimensionMismatchError("x"),
            EmbeddingModelLoadError("x"),
            IngestionError("x"),
            RetrievalError("x"),
            ValueError("x"),
        ],
    )
    def test_permanent_errors_have_no_retry_after(self, exc):
        assert is_retryable(exc) is False
        assert get_retry_after(exc) is None

    def test_retryable_flag_serialized(self):
        assert AllSignalsFailedError("x").to_dict()["error"]["retryable"] is True
        assert QueryTooLongError("x").to_dict()["error"]["retryable"] is False


class TestNegativeScenarios:
    """Negative tests to verify exceptions are raised correctly."""

    def test_missing_api_key_raises_error(self):
        from techdocs.adapters.outbound.llm.gemini_llm import GeminiLLMAdapter

        adapter = GeminiLLMAdapter(api_key="", model="test")

        with pytest.raises(MissingAPIKeyError):
            adapter._get_client()

    def test_invalid_chunking_settings_raise_configuration_error(self):
        from techdocs.composition import container

        bad_settings = MagicMock(chunk_size=100, chunk_overlap=100)
        with patch.object(container, "settings", bad_settings):
            with pytest.raises(InvalidConfigurationError) as exc_info:
                container._build_chunker()

        assert exc_info.value.extra_context == {"chunk_size": 100, "chunk_overlap": 100}
        assert isinstance(exc_info.value.cause, ValueError)

    def test_exception_context_preserved(self):
        """Exception context should be preserved through raise chain."""
        try:
            try:
                raise ConnectionError("Network down")
            except Exception as e:
                raise IndexUnavailableError(
                    "Failed to connect", cause=e, context={"collection": "documents", "attempt": 3}
                ) from e
        except IndexUnavailableError as exc:
            assert exc.extra_context["attempt"] == 3
            assert isinstance(exc.cause, ConnectionError)
            assert isinstance(exc.__cause__, ConnectionError)


class TestExceptionCatchPatterns:
    """Tests for exception catching patterns."""

    def test_catch_by_base_class(self):
        for exc in (IndexUnavailableError("t"), LLMRateLimitError("t"), EmptyQueryError("t")):
            with pytest.raises(KnowledgeBaseError):
                raise exc

    def test_catch_vector_store_errors(self):
        for exc in (IndexUnavailableError("t"), DimensionMismatchError("t")):
            try:
                raise exc
            except VectorStoreError as caught:
                assert caught.error_code.startswith("KB_VEC")

    def test_catch_llm_errors(self):
        for exc in (LLMConnectionError("t"), LLMRateLimitError("t"), LLMTimeoutError("t")):
            try:
                raise exc
            except LLMError as caught:
                assert caught.error_code.startswith("KB_LLM")
