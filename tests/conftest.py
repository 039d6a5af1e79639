"""
Pytest configuration and shared fixtures.
"""

import hashlib
import re

import numpy as np
import pytest
from qdrant_client import QdrantClient

from techdocs.adapters.outbound.embedding.sentence_transformer_embedder import (
    SentenceTransformerEmbedder,
)
from techdocs.adapters.outbound.index.qdrant_index import QdrantIndex
from techdocs.core.domain import Chunk, DocumentMeta, make_chunk_id

EMBEDDING_DIMENSION = 384


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (HTTP layer, wired services)")
    config.addinivalue_line("markers", "slow: Slow tests (model downloads, network)")


class FakeEncoder:
    """Deterministic stand-in for a SentenceTransformer model.

    Every token is hashed into one of the vector's buckets, so texts sharing
    words have a positive cosine similarity.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension

    def _vector(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float32)
        for token in re.findall(r"\w+", text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector

    def encode(self, sentences, **kwargs):
        if isinstance(sentences, str):
            return self._vector(sentences)
        return np.stack([self._vector(s) for s in sentences])


@pytest.fixture
def fake_encoder_factory():
    """Factory passed to SentenceTransformerEmbedder(model_factory=...)."""
    return FakeEncoder


@pytest.fixture
def embedder(fake_encoder_factory):
    """Initialized embedder backed by the fake encoder."""
    instance = SentenceTransformerEmbedder(model_factory=fake_encoder_factory)
    instance.initialize()
    yield instance
    instance.shutdown()


@pytest.fixture
def uninitialized_embedder(fake_encoder_factory):
    """Embedder whose model was never loaded."""
    return SentenceTransformerEmbedder(model_factory=fake_encoder_factory)


@pytest.fixture
def qdrant_client():
    """In-process Qdrant client."""
    client = QdrantClient(":memory:")
    yield client
    client.close()


@pytest.fixture
def index(qdrant_client):
    """Empty chunk index on an in-process Qdrant."""
    return QdrantIndex(
        qdrant_client,
        collection_name="test_documents",
        dimension=EMBEDDING_DIMENSION,
        max_retries=2,
        retry_backoff=0,
        serialize_calls=True,
    )


@pytest.fixture
def react_meta():
    """Metadata of a small React document."""
    return DocumentMeta(
        title="React Hooks Guide",
        source_ref="https://react.dev",
        technology="React",
        created_at="2024-01-01T00:00:00+00:00",
    )


@pytest.fixture
def make_chunk():
    """Build a Chunk with a deterministic id."""

    def _make(document_id: str, ordinal: int, text: str, vector=None) -> Chunk:
        return Chunk(
            id=make_chunk_id(document_id, ordinal),
            document_id=document_id,
            ordinal=ordinal,
            text=text,
            vector=vector,
        )

    return _make
