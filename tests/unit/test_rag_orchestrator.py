"""Unit tests for the question-answering orchestrator."""

import time
from unittest.mock import MagicMock

import pytest

from techdocs.core.domain import DocumentMeta, FusedResult, IngestionRequest, RAGState
from techdocs.core.domain.exceptions import (
    AllSignalsFailedError,
    EmptyQueryError,
    LLMConnectionError,
    LLMRateLimitError,
)
from techdocs.core.services import HybridRetriever, IngestionService, RAGOrchestrator
from techdocs.core.services.prompts import (
    FALLBACK_MARKER,
    GROUNDED_SYSTEM_PROMPT,
    NO_CONTEXT_ANSWER,
)

pytestmark = pytest.mark.unit

REACT = DocumentMeta(title="React Hooks Guide", source_ref="https://react.dev", technology="React")
VUE = DocumentMeta(title="Vue Composition API", source_ref="https://vuejs.org", technology="Vue")


def _result(chunk_id, score, meta=REACT, text="React hooks let you use state in function components"):
    return FusedResult(
        chunk_id=chunk_id,
        document_id=chunk_id.split(":")[0],
        fused_score=score,
        excerpt=text,
        document_meta=meta,
        text=text,
    )


@pytest.fixture
def mock_retriever():
    retriever = MagicMock()
    retriever.retrieve.return_value = [_result("react:0", 0.82), _result("vue:0", 0.41, meta=VUE)]
    return retriever


@pytest.fixture
def mock_llm():
    llm = MagicMock()
    llm.generate.return_value = "Hooks let function components use state (Source: React Hooks Guide)."
    return llm


@pytest.fixture
def orchestrator(mock_retriever, mock_llm):
    instance = RAGOrchestrator(mock_retriever, mock_llm, top_k=5, generation_timeout=5)
    yield instance
    instance.shutdown()


class TestNoContext:
    """Questions with nothing relevant in the knowledge base."""

    def test_no_results_skips_generation(self, orchestrator, mock_retriever, mock_llm):
        mock_retriever.retrieve.return_value = []

        answer = orchestrator.answer("What is Kubernetes?")

        assert answer.state is RAGState.NO_CONTEXT
        assert answer.answer_text == NO_CONTEXT_ANSWER
        assert "0 matches" in answer.reasoning
        assert answer.citations == []
        mock_llm.generate.assert_not_called()

    def test_state_history(self, orchestrator, mock_retriever):
        mock_retriever.retrieve.return_value = []

        orchestrator.answer("What is Kubernetes?")

        assert orchestrator.state_history == [
            RAGState.IDLE,
            RAGState.RETRIEVING,
            RAGState.NO_CONTEXT,
            RAGState.DONE,
        ]


class TestAnswered:
    """Successful generation."""

    def test_answer_with_citations(self, orchestrator, mock_retriever):
        answer = orchestrator.answer("How do hooks work?")

        assert answer.state is RAGState.ANSWERED
        assert answer.is_fallback is False
        assert answer.answer_text.startswith("Hooks let function components")
        assert [(c.title, c.source_ref, c.relevance_pct) for c in answer.citations] == [
            ("React Hooks Guide", "https://react.dev", 82),
            ("Vue Composition API", "https://vuejs.org", 41),
        ]
        mock_retriever.retrieve.assert_called_once_with("How do hooks work?", limit=5)

    def test_reasoning_names_top_match(self, orchestrator):
        answer = orchestrator.answer("How do hooks work?")

        assert answer.reasoning == (
            'Found 2 relevant document(s). Top match: "React Hooks Guide" with 82% relevance.'
        )

    def test_state_history(self, orchestrator):
        orchestrator.answer("How do hooks work?")

        assert orchestrator.state_history == [
            RAGState.IDLE,
            RAGState.RETRIEVING,
            RAGState.CONTEXT_FOUND,
            RAGState.GENERATING,
            RAGState.ANSWERED,
            RAGState.DONE,
        ]

    def test_prompt_labels_each_chunk(self, orchestrator, mock_llm):
        orchestrator.answer("How do hooks work?")

        prompt, system_prompt = mock_llm.generate.call_args[0]
        assert system_prompt == GROUNDED_SYSTEM_PROMPT
        assert "[1] React Hooks Guide" in prompt
        assert "Source: https://react.dev" in prompt
        assert "Relevance: 82%" in prompt
        assert "[2] Vue Composition API" in prompt
        assert "Relevance: 41%" in prompt
        assert "How do hooks work?" in prompt

    def test_citations_deduplicated_per_document(self, orchestrator, mock_retriever):
        mock_retriever.retrieve.return_value = [
            _result("react:0", 0.9),
            _result("react:1", 0.7),
            _result("vue:0", 0.5, meta=VUE),
        ]

        answer = orchestrator.answer("How do hooks work?")

        assert [c.relevance_pct for c in answer.citations] == [90, 50]
        assert answer.reasoning.startswith("Found 2 relevant document(s).")


class TestFallback:
    """Generation failures resolve to a templated answer."""

    def _assert_fallback(self, answer):
        assert answer.state is RAGState.FALLBACK
        assert answer.is_fallback is True
        assert answer.reasoning.startswith(FALLBACK_MARKER)
        assert 'Based on "React Hooks Guide" (https://react.dev)' in answer.answer_text
        assert "React hooks let you use state" in answer.answer_text
        assert [c.title for c in answer.citations] == ["React Hooks Guide", "Vue Composition API"]

    def test_timeout(self, mock_retriever):
        slow_llm = MagicMock()
        slow_llm.generate.side_effect = lambda *args: time.sleep(1) or "too late"
        orchestrator = RAGOrchestrator(mock_retriever, slow_llm, generation_timeout=0.05)
        try:
            answer = orchestrator.answer("How do hooks work?")
        finally:
            orchestrator.shutdown()

        self._assert_fallback(answer)
        assert orchestrator.state_history[-3:] == [
            RAGState.GENERATION_FAILED,
            RAGState.FALLBACK,
            RAGState.DONE,
        ]

    def test_rate_limit(self, orchestrator, mock_llm):
        mock_llm.generate.side_effect = LLMRateLimitError("quota exceeded")
        answer = orchestrator.answer("How do hooks work?")

        self._assert_fallback(answer)
        assert "quota exceeded" in answer.reasoning

    def test_connection_error(self, orchestrator, mock_llm):
        mock_llm.generate.side_effect = LLMConnectionError("unreachable")
        self._assert_fallback(orchestrator.answer("How do hooks work?"))

    def test_unexpected_error(self, orchestrator, mock_llm):
        mock_llm.generate.side_effect = RuntimeError("boom")
        self._assert_fallback(orchestrator.answer("How do hooks work?"))

    @pytest.mark.parametrize("response", ["", "   ", None, {"text": "not a string"}])
    def test_unusable_response(self, orchestrator, mock_llm, response):
        mock_llm.generate.return_value = response
        self._assert_fallback(orchestrator.answer("How do hooks work?"))

    def test_fallback_excerpt_has_no_highlight_tags(self, orchestrator, mock_retriever, mock_llm):
        result = FusedResult(
            chunk_id="react:0",
            document_id="react",
            fused_score=0.5,
            excerpt="React <mark>hooks</mark> let you",
            document_meta=REACT,
            text="React hooks let you use state",
        )
        mock_retriever.retrieve.return_value = [result]
        mock_llm.generate.side_effect = LLMConnectionError("unreachable")

        answer = orchestrator.answer("hooks")

        assert "<mark>" not in answer.answer_text
        assert "React hooks let you" in answer.answer_text


class TestRetrievalErrors:
    """Retrieval errors are not converted into answers."""

    def test_empty_question(self, orchestrator, mock_retriever):
        mock_retriever.retrieve.side_effect = EmptyQueryError("Query must not be empty")
        with pytest.raises(EmptyQueryError):
            orchestrator.answer("   ")

    def test_all_signals_failed(self, orchestrator, mock_retriever):
        mock_retriever.retrieve.side_effect = AllSignalsFailedError("both down")
        with pytest.raises(AllSignalsFailedError):
            orchestrator.answer("How do hooks work?")


class TestEndToEnd:
    """Ingest, retrieve and answer against an in-process index."""

    def test_react_hooks_question(self, index, embedder, mock_llm):
        IngestionService(index, embedder).ingest(
            IngestionRequest(
                title="React Hooks Guide",
                content="React hooks let you use state in function components",
                source_ref="https://react.dev",
                technology="React",
            )
        )
        retriever = HybridRetriever(index, embedder)
        orchestrator = RAGOrchestrator(retriever, mock_llm)
        try:
            results = retriever.retrieve("How do hooks work")
            answer = orchestrator.answer("How do hooks work")
        finally:
            orchestrator.shutdown()
            retriever.shutdown()

        assert len(results) == 1
        assert results[0].fused_score > 0
        assert results[0].vector_score is not None
        assert results[0].keyword_score is not None

        assert answer.state is RAGState.ANSWERED
        assert len(answer.citations) == 1
        assert answer.citations[0].source_ref == "https://react.dev"
        assert answer.citations[0].title == "React Hooks Guide"
