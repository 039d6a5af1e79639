"""Models describing a generated answer and the orchestrator's states."""

from dataclasses import dataclass, field
from enum import Enum


class RAGState(Enum):
    """States of a single question-answering run.

    IDLE -> RETRIEVING -> (NO_CONTEXT | CONTEXT_FOUND) -> GENERATING
    -> (ANSWERED | GENERATION_FAILED -> FALLBACK) -> DONE
    """

    IDLE = "idle"
    RETRIEVING = "retrieving"
    NO_CONTEXT = "no_context"
    CONTEXT_FOUND = "context_found"
    GENERATING = "generating"
    ANSWERED = "answered"
    GENERATION_FAILED = "generation_failed"
    FALLBACK = "fallback"
    DONE = "done"


@dataclass(frozen=True)
class Citation:
    """A source used to answer a question."""

    title: str
    source_ref: str
    relevance_pct: int


@dataclass
class RAGAnswer:
    """Answer with citations and a reasoning trace.

    Attributes:
        answer_text: The generated (or fallback) answer.
        reasoning: How the answer was produced; fallback answers carry a marker.
        citations: Sources, derived only from the retrieved results.
        state: Terminal outcome (NO_CONTEXT, ANSWERED or FALLBACK).
    """

    answer_text: str
    reasoning: str
    citations: list[Citation] = field(default_factory=list)
    state: RAGState = RAGState.ANSWERED

    @property
    def is_fallback(self) -> bool:
        return self.state is RAGState.FALLBACK
