"""Question answering over the knowledge base (retrieve, ground, generate)."""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from ...common.utils import normalize_text
from ..domain import Citation, FusedResult, RAGAnswer, RAGState
from ..domain.exceptions import LLMError, LLMGenerationError, LLMTimeoutError
from ..ports.llm_port import LLMPort
from .excerpt_builder import HIGHLIGHT_POST, HIGHLIGHT_PRE
from .hybrid_retriever import HybridRetriever
from .prompts import (
    ANSWERED_REASONING,
    CONTEXT_ENTRY_TEMPLATE,
    CONTEXT_SEPARATOR,
    FALLBACK_ANSWER,
    FALLBACK_REASONING,
    GROUNDED_ANSWER_PROMPT,
    GROUNDED_SYSTEM_PROMPT,
    NO_CONTEXT_ANSWER,
    NO_CONTEXT_REASONING,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
DEFAULT_GENERATION_TIMEOUT = 30.0


def relevance_pct(result: FusedResult) -> int:
    """Fused score as a whole percentage."""
    return round(result.fused_score * 100)


def _strip_highlights(text: str) -> str:
    return text.replace(HIGHLIGHT_PRE, "").replace(HIGHLIGHT_POST, "")


class RAGOrchestrator:
    """Answers questions from retrieved documentation.

    Generation never fails a question: a timeout, provider error or unusable
    response resolves to a templated fallback answer built from the best
    retrieved chunk.
    """

    def __init__(
        self,
        retriever: HybridRetriever,
        llm: LLMPort,
        top_k: int = DEFAULT_TOP_K,
        generation_timeout: float = DEFAULT_GENERATION_TIMEOUT,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            retriever: Hybrid retriever for the grounding context.
            llm: Text-generation collaborator.
            top_k: Number of retrieved results used to ground an answer.
            generation_timeout: Seconds to wait for the generator.
            executor: Pool running generation calls.
        """
        self.retriever = retriever
        self.llm = llm
        self.top_k = top_k
        self.generation_timeout = generation_timeout
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="rag-generate")
        self.state_history: list[RAGState] = [RAGState.IDLE]

    def build_context(self, results: list[FusedResult]) -> str:
        """Label each retrieved chunk with its title, source and relevance."""
        return CONTEXT_SEPARATOR.join(
            CONTEXT_ENTRY_TEMPLATE.format(
                index=i,
                title=result.document_meta.title,
                source_ref=result.document_meta.source_ref,
                relevance_pct=relevance_pct(result),
                text=result.text,
            )
            for i, result in enumerate(results, start=1)
        )

    def build_prompt(self, question: str, results: list[FusedResult]) -> str:
        return GROUNDED_ANSWER_PROMPT.format(context=self.build_context(results), question=question)

    @staticmethod
    def build_citations(results: list[FusedResult]) -> list[Citation]:
        """One citation per retrieved document, best result first."""
        citations = []
        seen: set[str] = set()
        for result in results:
            if result.document_id in seen:
                continue
            seen.add(result.document_id)
            citations.append(
                Citation(
                    title=result.document_meta.title,
                    source_ref=result.document_meta.source_ref,
                    relevance_pct=relevance_pct(result),
                )
            )
        return citations

    def _generate(self, prompt: str) -> str:
        """Call the generator, bounded by the timeout.

        Raises:
            LLMTimeoutError: If the generator does not answer in time.
            LLMGenerationError: If the response is empty or not text.
            LLMError: Propagated from the generator.
        """
        future = self._executor.submit(self.llm.generate, prompt, GROUNDED_SYSTEM_PROMPT)
        try:
            response = future.result(timeout=self.generation_timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise LLMTimeoutError(
                f"Generation exceeded {self.generation_timeout}s",
                cause=e,
                context={"timeout": self.generation_timeout},
            ) from e

        if not isinstance(response, str) or not response.strip():
            raise LLMGenerationError(
                "Generator returned an empty or malformed response",
                context={"response_type": type(response).__name__},
            )
        return normalize_text(response)

    def _fallback(self, results: list[FusedResult], reason: str) -> RAGAnswer:
        top = results[0]
        excerpt = _strip_highlights(top.excerpt) or top.text
        citations = self.build_citations(results)
        return RAGAnswer(
            answer_text=FALLBACK_ANSWER.format(
                title=top.document_meta.title,
                source_ref=top.document_meta.source_ref,
                excerpt=excerpt,
            ),
            reasoning=FALLBACK_REASONING.format(
                reason=reason,
                title=top.document_meta.title,
                relevance_pct=relevance_pct(top),
                count=len(citations),
            ),
            citations=citations,
            state=RAGState.FALLBACK,
        )

    def answer(self, question: str) -> RAGAnswer:
        """Answer a question with citations.

        Args:
            question: The user's question.

        Returns:
            A RAGAnswer whose state is NO_CONTEXT, ANSWERED or FALLBACK.

        Raises:
            EmptyQueryError: If the question is empty.
            AllSignalsFailedError: If retrieval failed on both signals.
        """
        history = [RAGState.IDLE, RAGState.RETRIEVING]
        self.state_history = history

        results = self.retriever.retrieve(question, limit=self.top_k)

        if not results:
            history += [RAGState.NO_CONTEXT, RAGState.DONE]
            logger.info("No relevant documents for question")
            return RAGAnswer(
                answer_text=NO_CONTEXT_ANSWER,
                reasoning=NO_CONTEXT_REASONING,
                citations=[],
                state=RAGState.NO_CONTEXT,
            )

        history += [RAGState.CONTEXT_FOUND, RAGState.GENERATING]
        prompt = self.build_prompt(question.strip(), results)

        try:
            answer_text = self._generate(prompt)
        except LLMError as e:
            history += [RAGState.GENERATION_FAILED, RAGState.FALLBACK, RAGState.DONE]
            logger.warning("Generation failed, using fallback answer: [%s] %s", e.error_code, e.message)
            return self._fallback(results, e.message)
        except Exception as e:
            history += [RAGState.GENERATION_FAILED, RAGState.FALLBACK, RAGState.DONE]
            logger.warning("Generation failed, using fallback answer: %s", e, exc_info=True)
            return self._fallback(results, str(e) or type(e).__name__)

        history += [RAGState.ANSWERED, RAGState.DONE]
        top = results[0]
        citations = self.build_citations(results)
        return RAGAnswer(
            answer_text=answer_text,
            reasoning=ANSWERED_REASONING.format(
                count=len(citations),
                title=top.document_meta.title,
                relevance_pct=relevance_pct(top),
            ),
            citations=citations,
            state=RAGState.ANSWERED,
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
