"""Index Port Interface."""

from abc import ABC, abstractmethod
from collections.abc import Collection
from contextlib import AbstractContextManager

from ..domain import Chunk, Document, DocumentMeta, SearchFilters, SearchHit


class IndexPort(ABC):
    """Abstract interface for the chunk index.

    The index answers two independent query types (keyword and vector) over
    the same set of chunks.
    """

    @abstractmethod
    def upsert(self, chunk: Chunk, meta: DocumentMeta) -> None:
        """Store or overwrite a chunk with its lexical fields and vector."""
        ...

    @abstractmethod
    def keyword_search(
        self, query: str, limit: int, filters: SearchFilters | None = None
    ) -> list[SearchHit]:
        """Fielded, fuzzy-tolerant lexical search."""
        ...

    @abstractmethod
    def vector_search(
        self,
        query_vector: list[float],
        candidate_pool_size: int,
        filters: SearchFilters | None = None,
    ) -> list[SearchHit]:
        """Cosine similarity search over chunks that carry a vector."""
        ...

    @abstractmethod
    def get_all(self) -> list[Chunk]: ...

    @abstractmethod
    def list_documents(self) -> list[Document]: ...

    @abstractmethod
    def delete(self, document_id: str, keep: Collection[str] = ()) -> int:
        """Delete the chunks of a document except those in ``keep``.

        Returns the number removed.
        """
        ...

    @abstractmethod
    def document_lock(self, document_id: str) -> AbstractContextManager[None]:
        """Serialize writes for one document id."""
        ...

    @abstractmethod
    def is_available(self) -> bool: ...
