"""Hybrid retrieval: vector and keyword signals fused into one ranking."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal

from ...common.utils import clean_text
from ..domain import FusedResult, SearchFilters, SearchHit
from ..domain.exceptions import (
    AllSignalsFailedError,
    EmptyQueryError,
    KnowledgeBaseError,
    QueryTooLongError,
)
from ..ports.embedding_port import EmbeddingPort
from ..ports.index_port import IndexPort
from .excerpt_builder import ExcerptBuilder

logger = logging.getLogger(__name__)

# Semantic similarity carries most of the weight; lexical evidence refines it.
VECTOR_WEIGHT = 0.7
KEYWORD_WEIGHT = 0.3
# A hit seen by only one signal keeps half of that signal's score.
SINGLE_SIGNAL_PENALTY = 0.5
# Divisor of the "fixed" keyword normalization mode.
KEYWORD_SCORE_SCALE = 10.0

DEFAULT_LIMIT = 10
DEFAULT_CANDIDATE_POOL_SIZE = 100
MAX_QUERY_LENGTH = 1000

KeywordNormalization = Literal["pool_max", "fixed"]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def fuse_scores(vector_score: float | None, keyword_score: float | None) -> float:
    """Combine normalized signal scores into a fused score in [0, 1].

    A dual-signal score is at least the single-signal score of either input.
    Equal scores are then ordered by vector rank.
    """
    if vector_score is not None and keyword_score is not None:
        weighted = VECTOR_WEIGHT * vector_score + KEYWORD_WEIGHT * keyword_score
        return _clamp(max(weighted, SINGLE_SIGNAL_PENALTY * max(vector_score, keyword_score)))
    if vector_score is not None:
        return _clamp(SINGLE_SIGNAL_PENALTY * vector_score)
    if keyword_score is not None:
        return _clamp(SINGLE_SIGNAL_PENALTY * keyword_score)
    return 0.0


@dataclass
class _Candidate:
    hit: SearchHit
    vector_rank: int | None = None
    keyword_rank: int | None = None
    vector_score: float | None = None
    keyword_score: float | None = None
    highlights: tuple[str, ...] = ()


class HybridRetriever:
    """Runs both retrieval signals concurrently and fuses their hits.

    Either signal may fail on its own (embedder not ready, index error); the
    other one still produces results. Only when both fail is the query
    reported as failed.
    """

    def __init__(
        self,
        index: IndexPort,
        embedder: EmbeddingPort,
        excerpt_builder: ExcerptBuilder | None = None,
        candidate_pool_size: int = DEFAULT_CANDIDATE_POOL_SIZE,
        keyword_normalization: KeywordNormalization = "pool_max",
        embed_timeout: float | None = None,
        executor: ThreadPoolExecutor | None = None,
        max_query_length: int = MAX_QUERY_LENGTH,
    ) -> None:
        """Initialize the retriever.

        Args:
            index: Chunk index answering both query types.
            embedder: Embedder used for the query vector.
            excerpt_builder: Builds result excerpts.
            candidate_pool_size: Minimum number of vector candidates fetched.
            keyword_normalization: ``pool_max`` divides keyword scores by the
                best score in the candidate pool; ``fixed`` divides by 10.
            embed_timeout: Seconds to wait for the embedder to become ready.
            executor: Shared pool for the two signal queries.
            max_query_length: Longest accepted query, in characters.
        """
        if keyword_normalization not in ("pool_max", "fixed"):
            raise ValueError(f"Unknown keyword normalization: {keyword_normalization}")
        self.index = index
        self.embedder = embedder
        self.excerpt_builder = excerpt_builder or ExcerptBuilder()
        self.candidate_pool_size = candidate_pool_size
        self.keyword_normalization = keyword_normalization
        self.embed_timeout = embed_timeout
        self.max_query_length = max_query_length
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="hybrid-retriever"
        )

    def _vector_signal(
        self, query: str, pool_size: int, filters: SearchFilters | None
    ) -> list[SearchHit]:
        vector = self.embedder.embed(query, timeout=self.embed_timeout)
        return self.index.vector_search(vector, pool_size, filters)

    def _keyword_signal(
        self, query: str, limit: int, filters: SearchFilters | None
    ) -> list[SearchHit]:
        return self.index.keyword_search(query, limit, filters)

    @staticmethod
    def _collect(name: str, future: Future) -> list[SearchHit] | None:
        """Result of a signal, or None when it failed."""
        try:
            return future.result()
        except KnowledgeBaseError as e:
            logger.warning("%s signal unavailable: [%s] %s", name, e.error_code, e.message)
        except Exception as e:
            logger.warning("%s signal failed: %s", name, e, exc_info=True)
        return None

    def _normalize_keyword(self, hits: list[SearchHit]) -> list[float]:
        if self.keyword_normalization == "fixed":
            return [_clamp(hit.raw_score / KEYWORD_SCORE_SCALE) for hit in hits]
        max_score = max((hit.raw_score for hit in hits), default=0.0)
        if max_score <= 0:
            return [0.0 for _ in hits]
        return [_clamp(hit.raw_score / max_score) for hit in hits]

    def retrieve(
        self,
        query_text: str,
        limit: int = DEFAULT_LIMIT,
        filters: SearchFilters | None = None,
    ) -> list[FusedResult]:
        """Retrieve the best chunks for a query.

        Args:
            query_text: Natural-language query.
            limit: Maximum number of results.
            filters: Optional exact-match restrictions.

        Returns:
            Fused results, best first, unique per chunk. Empty when nothing
            matches or the index is empty.

        Raises:
            EmptyQueryError: If the query is empty or whitespace only.
            QueryTooLongError: If the query exceeds ``max_query_length``.
            AllSignalsFailedError: If both the vector and keyword signals failed.
        """
        query = clean_text(query_text or "").strip()
        if not query:
            raise EmptyQueryError("Query must not be empty")
        if len(query) > self.max_query_length:
            raise QueryTooLongError(
                f"Query exceeds {self.max_query_length} characters",
                context={"query_length": len(query), "max_length": self.max_query_length},
            )
        if limit <= 0:
            return []

        pool_size = max(limit, self.candidate_pool_size)
        vector_future = self._executor.submit(self._vector_signal, query, pool_size, filters)
        keyword_future = self._executor.submit(self._keyword_signal, query, limit * 2, filters)

        vector_hits = self._collect("Vector", vector_future)
        keyword_hits = self._collect("Keyword", keyword_future)

        if vector_hits is None and keyword_hits is None:
            raise AllSignalsFailedError(
                "Both vector and keyword retrieval failed",
                context={"query_length": len(query)},
            )

        results = self._fuse(query, vector_hits or [], keyword_hits or [], limit)
        logger.debug(
            "Retrieved %d results (vector=%s, keyword=%s)",
            len(results),
            "n/a" if vector_hits is None else len(vector_hits),
            "n/a" if keyword_hits is None else len(keyword_hits),
        )
        return results

    def _fuse(
        self,
        query: str,
        vector_hits: list[SearchHit],
        keyword_hits: list[SearchHit],
        limit: int,
    ) -> list[FusedResult]:
        candidates: dict[str, _Candidate] = {}

        for rank, hit in enumerate(vector_hits):
            if hit.chunk_id in candidates:
                continue
            candidates[hit.chunk_id] = _Candidate(
                hit=hit, vector_rank=rank, vector_score=_clamp(hit.raw_score)
            )

        for rank, (hit, score) in enumerate(zip(keyword_hits, self._normalize_keyword(keyword_hits))):
            candidate = candidates.get(hit.chunk_id)
            if candidate is None:
                candidate = candidates[hit.chunk_id] = _Candidate(hit=hit)
            elif candidate.keyword_rank is not None:
                continue
            candidate.keyword_rank = rank
            candidate.keyword_score = score
            candidate.highlights = hit.highlights

        vector_count = len(vector_hits)
        ranked = sorted(
            candidates.values(),
            key=lambda c: (
                -fuse_scores(c.vector_score, c.keyword_score),
                c.vector_rank if c.vector_rank is not None else vector_count,
                c.keyword_rank if c.keyword_rank is not None else len(keyword_hits),
            ),
        )

        results = []
        for candidate in ranked[:limit]:
            hit = candidate.hit
            results.append(
                FusedResult(
                    chunk_id=hit.chunk_id,
                    document_id=hit.document_id,
                    fused_score=fuse_scores(candidate.vector_score, candidate.keyword_score),
                    excerpt=self.excerpt_builder.excerpt(
                        hit.text, query, highlights=candidate.highlights
                    ),
                    document_meta=hit.meta,
                    text=hit.text,
                    vector_score=candidate.vector_score,
                    keyword_score=candidate.keyword_score,
                )
            )
        return results

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
