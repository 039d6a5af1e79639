"""Qdrant-backed chunk index.

One collection holds every chunk. Each point carries the chunk text and the
owning document's fields as payload, plus an optional named dense vector.
Vector search is served by Qdrant; keyword search scores the payloads with
fielded BM25 (see ``lexical``).
"""

import logging
import threading
import uuid
from collections.abc import Callable, Collection, Iterator
from contextlib import AbstractContextManager, nullcontext
from typing import Any, TypeVar

from qdrant_client import QdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ....common.locks import KeyedLock
from ....common.utils import normalize_text
from ....core.domain import (
    Chunk,
    Document,
    DocumentMeta,
    SearchFilters,
    SearchHit,
    SignalType,
)
from ....core.domain.exceptions import DimensionMismatchError, IndexUnavailableError
from ....core.ports.index_port import IndexPort
from .lexical import FieldedBM25, LexicalDocument

logger = logging.getLogger(__name__)

T = TypeVar("T")

DENSE_VECTOR_NAME = "dense"
DEFAULT_COLLECTION_NAME = "documents"
DEFAULT_MAX_RETRIES = 3
SCROLL_PAGE_SIZE = 256

# Payload fields with keyword indexes for exact-match filtering
INDEXED_PAYLOAD_FIELDS = ("document_id", "source", "technology")

TRANSIENT_ERRORS = (ResponseHandlingException, ConnectionError, TimeoutError)

# Stable namespace so a chunk id always maps to the same point id
POINT_ID_NAMESPACE = uuid.UUID("6f1c7a52-3c4e-4b8e-9d0a-2f5b7e1d9c34")


def point_id_for(chunk_id: str) -> str:
    """Qdrant point id for a chunk id."""
    return str(uuid.uuid5(POINT_ID_NAMESPACE, chunk_id))


def create_qdrant_client(url: str = "", api_key: str = "", path: str = "") -> QdrantClient:
    """Remote client for ``url``; otherwise in-process, on disk at ``path`` or in memory."""
    if not url:
        if path:
            logger.info("Using local Qdrant storage at %s", path)
            return QdrantClient(path=path)
        logger.info("No Qdrant URL configured, using in-memory storage")
        return QdrantClient(":memory:")
    logger.info("Connecting to Qdrant at %s", url)
    return QdrantClient(url=url, api_key=api_key or None)


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    error = outcome.exception() if outcome else None
    logger.warning(
        "Qdrant call failed (attempt %d): %s; retrying",
        retry_state.attempt_number,
        error,
    )


class QdrantIndex(IndexPort):
    """Chunk index stored in a single Qdrant collection.

    The collection is created on first write with a named dense vector of
    fixed ``dimension`` and cosine distance. Reads against a missing
    collection behave like an empty index.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str = DEFAULT_COLLECTION_NAME,
        dimension: int = 384,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = 0.5,
        serialize_calls: bool = False,
    ) -> None:
        """Initialize the index.

        Args:
            client: Qdrant client (remote or in-process).
            collection_name: Collection holding every chunk.
            dimension: Vector dimension fixed at collection creation.
            max_retries: Attempts per call before giving up on transport errors.
            retry_backoff: Multiplier for exponential backoff between attempts.
            serialize_calls: Run client calls one at a time. Needed for the
                in-process client, which is not thread-safe.
        """
        self._client = client
        self.collection_name = collection_name
        self.dimension = dimension
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self._client_lock = threading.RLock() if serialize_calls else None
        self._schema_lock = threading.Lock()
        self._collection_ready = False
        self._document_locks = KeyedLock()

    # ------------------------------------------------------------------
    # Client plumbing
    # ------------------------------------------------------------------

    def _call(self, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a client call with retries; transport failures become IndexUnavailableError."""
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_backoff, max=8),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=_log_retry,
            reraise=True,
        )
        guard = self._client_lock if self._client_lock is not None else nullcontext()
        try:
            with guard:
                return retrying(fn, *args, **kwargs)
        except TRANSIENT_ERRORS as e:
            raise IndexUnavailableError(
                f"Qdrant {operation} failed after {self.max_retries} attempt(s)",
                cause=e,
                context={"collection": self.collection_name, "operation": operation},
            ) from e

    def _collection_exists(self) -> bool:
        if self._collection_ready:
            return True
        exists = self._call("collection_exists", self._client.collection_exists, self.collection_name)
        if exists:
            self._check_dimension()
            self._collection_ready = True
        return exists

    def _check_dimension(self) -> None:
        info = self._call("get_collection", self._client.get_collection, self.collection_name)
        vectors = info.config.params.vectors
        params = vectors.get(DENSE_VECTOR_NAME) if isinstance(vectors, dict) else None
        if params is None or params.size != self.dimension:
            raise DimensionMismatchError(
                f"Collection '{self.collection_name}' was created with a different vector "
                "layout; reset the index to change the embedding dimension",
                context={
                    "expected": self.dimension,
                    "actual": getattr(params, "size", None),
                },
            )

    def ensure_collection(self) -> None:
        """Create the collection and its payload indexes if missing."""
        with self._schema_lock:
            if self._collection_exists():
                return

            logger.info("Creating collection %s (%d dimensions)", self.collection_name, self.dimension)
            self._call(
                "create_collection",
                self._client.create_collection,
                collection_name=self.collection_name,
                vectors_config={
                    DENSE_VECTOR_NAME: models.VectorParams(
                        size=self.dimension,
                        distance=models.Distance.COSINE,
                    )
                },
            )
            for field_name in INDEXED_PAYLOAD_FIELDS:
                self._call(
                    "create_payload_index",
                    self._client.create_payload_index,
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
            self._collection_ready = True

    def reset(self) -> None:
        """Drop the collection; it is recreated on the next write."""
        with self._schema_lock:
            if self._call("collection_exists", self._client.collection_exists, self.collection_name):
                self._call(
                    "delete_collection",
                    self._client.delete_collection,
                    collection_name=self.collection_name,
                )
            self._collection_ready = False
        logger.info("Index %s reset", self.collection_name)

    @staticmethod
    def _build_filter(
        filters: SearchFilters | None = None, document_id: str | None = None
    ) -> models.Filter | None:
        conditions = []
        if filters is not None:
            for key, value in (
                ("technology", filters.technology),
                ("source", filters.source_ref),
                ("document_id", filters.document_id),
            ):
                if value:
                    conditions.append(models.FieldCondition(key=key, match=models.MatchValue(value=value)))
        if document_id:
            conditions.append(
                models.FieldCondition(key="document_id", match=models.MatchValue(value=document_id))
            )
        return models.Filter(must=conditions) if conditions else None

    def _scroll(
        self, scroll_filter: models.Filter | None = None, with_vectors: bool = False
    ) -> Iterator[Any]:
        offset = None
        while True:
            points, offset = self._call(
                "scroll",
                self._client.scroll,
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
                with_vectors=with_vectors,
            )
            yield from points
            if offset is None:
                break

    @staticmethod
    def _meta_from_payload(payload: dict[str, Any]) -> DocumentMeta:
        return DocumentMeta(
            title=payload.get("title", ""),
            source_ref=payload.get("source", ""),
            technology=payload.get("technology", ""),
            created_at=payload.get("timestamp", ""),
            metadata=dict(payload.get("metadata") or {}),
        )

    # ------------------------------------------------------------------
    # IndexPort
    # ------------------------------------------------------------------

    def upsert(self, chunk: Chunk, meta: DocumentMeta) -> None:
        """Store or overwrite a chunk.

        Raises:
            DimensionMismatchError: If the chunk's vector has the wrong length.
            IndexUnavailableError: If Qdrant cannot be reached.
        """
        if chunk.vector is not None and len(chunk.vector) != self.dimension:
            raise DimensionMismatchError(
                f"Vector for chunk {chunk.id} has {len(chunk.vector)} dimensions, "
                f"index expects {self.dimension}",
                context={"chunk_id": chunk.id, "expected": self.dimension, "actual": len(chunk.vector)},
            )

        self.ensure_collection()

        payload = {
            "chunk_id": chunk.id,
            "document_id": chunk.document_id,
            "ordinal": chunk.ordinal,
            "text": normalize_text(chunk.text),
            "title": normalize_text(meta.title),
            "source": normalize_text(meta.source_ref),
            "technology": normalize_text(meta.technology),
            "timestamp": meta.created_at,
            "metadata": dict(meta.metadata),
        }
        vector = {DENSE_VECTOR_NAME: list(chunk.vector)} if chunk.vector is not None else {}

        self._call(
            "upsert",
            self._client.upsert,
            collection_name=self.collection_name,
            points=[models.PointStruct(id=point_id_for(chunk.id), vector=vector, payload=payload)],
            wait=True,
        )
        logger.debug("Upserted chunk %s (vector=%s)", chunk.id, chunk.vector is not None)

    def keyword_search(
        self, query: str, limit: int, filters: SearchFilters | None = None
    ) -> list[SearchHit]:
        """Fielded BM25 over title, body and technology tag with fuzzy term matching.

        Scores are computed in process: every query scrolls the payloads that
        pass ``filters`` and builds fresh BM25 models over them, so the cost
        grows linearly with the (filtered) corpus. Narrow large corpora
        with ``filters``.
        """
        if limit <= 0 or not self._collection_exists():
            return []

        payloads = [point.payload or {} for point in self._scroll(self._build_filter(filters))]
        if not payloads:
            return []

        by_chunk_id = {p["chunk_id"]: p for p in payloads}
        scorer = FieldedBM25(
            [
                LexicalDocument(
                    key=p["chunk_id"],
                    title=p.get("title", ""),
                    body=p.get("text", ""),
                    tag=p.get("technology", ""),
                )
                for p in payloads
            ]
        )

        hits = []
        for match in scorer.search(query, limit):
            payload = by_chunk_id[match.key]
            hits.append(
                SearchHit(
                    chunk_id=match.key,
                    document_id=payload["document_id"],
                    raw_score=match.score,
                    signal_type=SignalType.KEYWORD,
                    text=payload.get("text", ""),
                    meta=self._meta_from_payload(payload),
                    ordinal=payload.get("ordinal", 0),
                    highlights=match.highlights,
                )
            )
        logger.debug("Keyword search matched %d of %d chunks", len(hits), len(payloads))
        return hits

    def vector_search(
        self,
        query_vector: list[float],
        candidate_pool_size: int,
        filters: SearchFilters | None = None,
    ) -> list[SearchHit]:
        """Top cosine matches among chunks that carry a vector."""
        if len(query_vector) != self.dimension:
            raise DimensionMismatchError(
                f"Query vector has {len(query_vector)} dimensions, index expects {self.dimension}",
                context={"expected": self.dimension, "actual": len(query_vector)},
            )
        if candidate_pool_size <= 0 or not self._collection_exists():
            return []

        response = self._call(
            "query_points",
            self._client.query_points,
            collection_name=self.collection_name,
            query=list(query_vector),
            using=DENSE_VECTOR_NAME,
            query_filter=self._build_filter(filters),
            limit=candidate_pool_size,
            with_payload=True,
        )

        hits = []
        for point in response.points:
            payload = point.payload or {}
            hits.append(
                SearchHit(
                    chunk_id=payload["chunk_id"],
                    document_id=payload["document_id"],
                    raw_score=float(point.score),
                    signal_type=SignalType.VECTOR,
                    text=payload.get("text", ""),
                    meta=self._meta_from_payload(payload),
                    ordinal=payload.get("ordinal", 0),
                )
            )
        return hits

    def get_all(self) -> list[Chunk]:
        """Every stored chunk, in document then ordinal order."""
        if not self._collection_exists():
            return []

        chunks = []
        for point in self._scroll(with_vectors=True):
            payload = point.payload or {}
            vectors = point.vector if isinstance(point.vector, dict) else {}
            vector = vectors.get(DENSE_VECTOR_NAME)
            chunks.append(
                Chunk(
                    id=payload["chunk_id"],
                    document_id=payload["document_id"],
                    ordinal=payload.get("ordinal", 0),
                    text=payload.get("text", ""),
                    vector=list(vector) if vector is not None else None,
                )
            )
        chunks.sort(key=lambda c: (c.document_id, c.ordinal))
        return chunks

    def list_documents(self) -> list[Document]:
        """Distinct documents, oldest first."""
        if not self._collection_exists():
            return []

        documents: dict[str, Document] = {}
        for point in self._scroll():
            payload = point.payload or {}
            document_id = payload["document_id"]
            if document_id in documents:
                continue
            meta = self._meta_from_payload(payload)
            documents[document_id] = Document(
                id=document_id,
                title=meta.title,
                source_ref=meta.source_ref,
                technology=meta.technology,
                created_at=meta.created_at,
                metadata=meta.metadata,
            )
        return sorted(documents.values(), key=lambda d: (d.created_at, d.id))

    def delete(self, document_id: str, keep: Collection[str] = ()) -> int:
        """Delete the chunks of ``document_id`` whose ids are not in ``keep``.

        Returns how many were removed.
        """
        if not self._collection_exists():
            return 0

        document_filter = models.Filter(
            must=[models.FieldCondition(key="document_id", match=models.MatchValue(value=document_id))],
            must_not=(
                [models.HasIdCondition(has_id=[point_id_for(chunk_id) for chunk_id in keep])]
                if keep
                else None
            ),
        )
        removed = self._call(
            "count",
            self._client.count,
            collection_name=self.collection_name,
            count_filter=document_filter,
            exact=True,
        ).count
        if removed:
            self._call(
                "delete",
                self._client.delete,
                collection_name=self.collection_name,
                points_selector=models.FilterSelector(filter=document_filter),
                wait=True,
            )
            logger.info("Deleted %d chunks of document %s", removed, document_id)
        return removed

    def document_lock(self, document_id: str) -> AbstractContextManager[None]:
        return self._document_locks.hold(document_id)

    def is_available(self) -> bool:
        """Readiness check: can Qdrant answer a trivial request."""
        try:
            self._call("get_collections", self._client.get_collections)
        except Exception as e:
            logger.warning("Index unavailable: %s", e)
            return False
        return True

    def count(self) -> int:
        """Number of stored chunks."""
        if not self._collection_exists():
            return 0
        return self._call(
            "count",
            self._client.count,
            collection_name=self.collection_name,
            exact=True,
        ).count
