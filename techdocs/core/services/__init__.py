"""Application services: chunking, retrieval, answering and ingestion."""

from .chunker import Chunker, chunk_text
from .excerpt_builder import ExcerptBuilder
from .hybrid_retriever import HybridRetriever
from .ingestion_service import IngestionService
from .rag_orchestrator import RAGOrchestrator

__all__ = [
    "Chunker",
    "chunk_text",
    "ExcerptBuilder",
    "HybridRetriever",
    "IngestionService",
    "RAGOrchestrator",
]
