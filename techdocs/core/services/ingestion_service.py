"""Ingestion use case: chunk a document, embed its chunks, replace it in the index."""

import logging
import uuid

from ...common.utils import clean_text, normalize_text
from ..domain import (
    Chunk,
    Document,
    DocumentMeta,
    IngestionRequest,
    IngestionResult,
)
from ..domain.exceptions import (
    DimensionMismatchError,
    EmbedderNotReadyError,
    EmbeddingError,
    EmptyContentError,
    IngestionError,
)
from ..ports.embedding_port import EmbeddingPort
from ..ports.index_port import IndexPort
from .chunker import Chunker

logger = logging.getLogger(__name__)


class IngestionService:
    """Turns plain text plus metadata into indexed chunks.

    Re-ingesting a document id replaces all of its chunks: the new set is
    written first, then chunks it no longer contains are deleted. Ingesting
    the same unchanged document twice leaves the index identical.
    """

    def __init__(
        self,
        index: IndexPort,
        embedder: EmbeddingPort,
        chunker: Chunker | None = None,
    ) -> None:
        self.index = index
        self.embedder = embedder
        self.chunker = chunker or Chunker()

    def _embed_all(self, chunks: list[Chunk], meta: DocumentMeta) -> None:
        """Attach vectors to chunks; chunks the embedder cannot serve keep None."""
        texts = [f"{meta.title}\n{chunk.text}" for chunk in chunks]
        try:
            vectors: list[list[float] | None] = list(self.embedder.embed_batch(texts))
        except EmbedderNotReadyError as e:
            logger.warning(
                "Storing %d chunk(s) without vectors: [%s] %s", len(chunks), e.error_code, e.message
            )
            vectors = [None] * len(chunks)
        except EmbeddingError as e:
            logger.warning("Batch embedding failed, embedding chunks one by one: %s", e.message)
            vectors = [self._embed(chunk, text) for chunk, text in zip(chunks, texts)]

        for chunk, vector in zip(chunks, vectors):
            chunk.vector = vector

    def _embed(self, chunk: Chunk, text: str) -> list[float] | None:
        """Vector for one chunk, or None when the embedder cannot provide one."""
        try:
            return self.embedder.embed(text)
        except EmbeddingError as e:
            logger.warning(
                "Chunk %s stored without vector: [%s] %s", chunk.id, e.error_code, e.message
            )
            return None

    def ingest(self, request: IngestionRequest) -> IngestionResult:
        """Chunk, embed and index a document.

        Args:
            request: Document text and metadata.

        Returns:
            IngestionResult with the document id and number of stored chunks.

        Raises:
            EmptyContentError: If title or content is empty.
            IngestionError: If every chunk was rejected by the index.
            IndexUnavailableError: If the index cannot be reached.
        """
        title = normalize_text(request.title or "")
        content = clean_text(request.content or "")
        if not title:
            raise EmptyContentError("Document title must not be empty")
        if not content.strip():
            raise EmptyContentError("Document content must not be empty", context={"title": title})

        document_id = request.document_id or uuid.uuid4().hex
        meta = DocumentMeta(
            title=title,
            source_ref=normalize_text(request.source_ref or "") or "Manual entry",
            technology=normalize_text(request.technology or "") or "General",
            metadata=dict(request.metadata or {}),
        )

        chunks = self.chunker.build_chunks(document_id, content)
        # Embedding is slow; do it before taking the document lock
        self._embed_all(chunks, meta)

        stored: list[str] = []
        rejected = 0
        with self.index.document_lock(document_id):
            # Chunk ids are deterministic, so upserts overwrite the previous
            # version in place; a failure midway never leaves less than before
            for chunk in chunks:
                try:
                    self.index.upsert(chunk, meta)
                    stored.append(chunk.id)
                except DimensionMismatchError as e:
                    rejected += 1
                    logger.warning("Rejected chunk %s: %s", chunk.id, e.message)

            if not stored:
                raise IngestionError(
                    f"All {rejected} chunk(s) of '{title}' were rejected by the index",
                    context={"document_id": document_id, "rejected": rejected},
                )

            removed = self.index.delete(document_id, keep=stored)
            if removed:
                logger.info("Removed %d stale chunk(s) of document %s", removed, document_id)

        logger.info(
            "Ingested '%s' as %s: %d chunk(s), %d rejected", title, document_id, len(stored), rejected
        )
        return IngestionResult(
            document_id=document_id, chunk_count=len(stored), rejected_chunks=rejected
        )

    def list_documents(self) -> list[Document]:
        return self.index.list_documents()

    def delete_document(self, document_id: str) -> int:
        """Delete a document and all of its chunks."""
        with self.index.document_lock(document_id):
            removed = self.index.delete(document_id)
        logger.info("Deleted document %s (%d chunks)", document_id, removed)
        return removed
