"""Composition root wiring adapters to the application services."""

from __future__ import annotations

import logging
import threading
from functools import lru_cache

from ..adapters.outbound.embedding.sentence_transformer_embedder import (
    SentenceTransformerEmbedder,
)
from ..adapters.outbound.index.qdrant_index import QdrantIndex, create_qdrant_client
from ..adapters.outbound.llm.gemini_llm import GeminiLLMAdapter
from ..config import settings
from ..core.domain.exceptions import EmbeddingError, InvalidConfigurationError
from ..core.services.chunker import Chunker
from ..core.services.excerpt_builder import ExcerptBuilder
from ..core.services.hybrid_retriever import HybridRetriever
from ..core.services.ingestion_service import IngestionService
from ..core.services.rag_orchestrator import RAGOrchestrator

logger = logging.getLogger(__name__)


@lru_cache
def get_embedder() -> SentenceTransformerEmbedder:
    logger.info("Creating SentenceTransformerEmbedder (composition root)...")
    return SentenceTransformerEmbedder(
        model_name=settings.embedding_model,
        dimension=settings.embedding_dimension,
    )


@lru_cache
def get_index() -> QdrantIndex:
    logger.info("Initializing QdrantIndex...")
    client = create_qdrant_client(settings.qdrant_url, settings.qdrant_api_key, settings.qdrant_path)
    return QdrantIndex(
        client,
        collection_name=settings.collection_name,
        dimension=settings.embedding_dimension,
        max_retries=settings.index_max_retries,
        serialize_calls=not settings.qdrant_url,
    )


@lru_cache
def get_llm() -> GeminiLLMAdapter:
    logger.info("Initializing GeminiLLMAdapter...")
    return GeminiLLMAdapter(api_key=settings.google_api_key, model=settings.llm_model)


@lru_cache
def get_retriever() -> HybridRetriever:
    logger.info("Initializing HybridRetriever...")
    return HybridRetriever(
        index=get_index(),
        embedder=get_embedder(),
        excerpt_builder=ExcerptBuilder(max_length=settings.excerpt_length),
        candidate_pool_size=settings.candidate_pool_size,
        keyword_normalization=settings.keyword_normalization,
        embed_timeout=settings.embedder_ready_timeout or None,
    )


@lru_cache
def get_orchestrator() -> RAGOrchestrator:
    logger.info("Initializing RAGOrchestrator...")
    return RAGOrchestrator(
        retriever=get_retriever(),
        llm=get_llm(),
        top_k=settings.top_k_results,
        generation_timeout=settings.generation_timeout,
    )


def _build_chunker() -> Chunker:
    try:
        return Chunker(max_size=settings.chunk_size, overlap=settings.chunk_overlap)
    except ValueError as e:
        raise InvalidConfigurationError(
            f"Invalid chunking settings: {e}",
            cause=e,
            context={"chunk_size": settings.chunk_size, "chunk_overlap": settings.chunk_overlap},
        ) from e


@lru_cache
def get_ingestion_service() -> IngestionService:
    logger.info("Initializing IngestionService...")
    return IngestionService(
        index=get_index(),
        embedder=get_embedder(),
        chunker=_build_chunker(),
    )


def initialize_embedder() -> None:
    """Load the embedding model, logging instead of raising on failure.

    Until it succeeds the application keeps serving keyword-only results.
    """
    embedder = get_embedder()
    if embedder.is_ready():
        return
    try:
        embedder.initialize()
    except EmbeddingError as e:
        logger.error("Embedder initialization failed: [%s] %s", e.error_code, e.message)


def start_embedder_in_background() -> threading.Thread:
    """Load the embedding model on a daemon thread."""
    thread = threading.Thread(target=initialize_embedder, name="embedder-init", daemon=True)
    thread.start()
    return thread
