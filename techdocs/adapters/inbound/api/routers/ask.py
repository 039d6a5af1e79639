"""Question answering endpoint."""

import logging

from fastapi import APIRouter

from .....common.utils import normalize_text
from .....config import settings
from ..deps import get_orchestrator
from ..models import AnswerResponse, CitationInfo, ErrorResponse, QuestionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["ask"])


@router.post(
    "/ask",
    response_model=AnswerResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        503: {"model": ErrorResponse, "description": "Retrieval unavailable"},
    },
)
def ask_question(request: QuestionRequest) -> AnswerResponse:
    """Answer a question from the knowledge base, with citations.

    Generation failures never surface as errors: the answer falls back to
    the best matching excerpt and ``is_fallback`` is set.
    """
    question = normalize_text(request.question)
    answer = get_orchestrator().answer(question)
    if answer.is_fallback:
        logger.info("Served fallback answer")

    return AnswerResponse(
        answer=answer.answer_text,
        reasoning=answer.reasoning,
        citations=[
            CitationInfo(
                title=citation.title,
                source_ref=citation.source_ref,
                relevance_pct=citation.relevance_pct,
            )
            for citation in answer.citations
        ],
        question=question,
        state=answer.state.value,
        is_fallback=answer.is_fallback,
        model_used=settings.llm_model,
    )
