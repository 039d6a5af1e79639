"""Sentence-transformers embedder with an explicit init/ready lifecycle.

One instance is created by the composition root and passed to every
component that needs embeddings; there is no module-level model.

Model: all-MiniLM-L6-v2
- 384-dimensional embeddings
- Runs locally on CPU, no API costs
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

import numpy as np

from ....core.domain.exceptions import (
    DimensionMismatchError,
    EmbedderAlreadyInitializedError,
    EmbedderNotReadyError,
    EmbeddingError,
    EmbeddingModelLoadError,
    InvalidInputError,
)
from ....core.ports.embedding_port import EmbeddingPort

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "sentence-transformers/all-MiniLM-L6-v2"
EMBEDDING_DIMENSION = 384
EMBEDDING_BATCH_SIZE = 32


class SentenceTransformerEmbedder(EmbeddingPort):
    """Maps text to a fixed-dimension, L2-normalized vector.

    Lifecycle: ``initialize()`` exactly once, then ``embed`` from any thread,
    ``shutdown()`` to release the model. Calls arriving before the model is
    loaded fail with ``EmbedderNotReadyError`` or, when given a timeout, wait
    for readiness up to that long.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL_NAME,
        dimension: int = EMBEDDING_DIMENSION,
        device: str = "cpu",
        model_factory: Callable[[], Any] | None = None,
    ) -> None:
        """Create an embedder; no model is loaded until ``initialize()``.

        Args:
            model_name: sentence-transformers model name.
            dimension: Expected embedding dimension.
            device: Torch device for the model.
            model_factory: Optional callable returning an object with an
                ``encode`` method; replaces loading a SentenceTransformer.
        """
        self.model_name = model_name
        self.dimension = dimension
        self.device = device
        self._model_factory = model_factory or self._load_sentence_transformer
        self._model: Any | None = None
        self._init_lock = threading.Lock()
        self._ready = threading.Event()
        self._initialize_called = False

    def _load_sentence_transformer(self) -> Any:
        from sentence_transformers import SentenceTransformer

        return SentenceTransformer(self.model_name, device=self.device)

    def initialize(self) -> None:
        """Load the model.

        Raises:
            EmbedderAlreadyInitializedError: If called more than once.
            EmbeddingModelLoadError: If the model cannot be loaded or reports
                an unexpected dimension.
        """
        with self._init_lock:
            if self._initialize_called:
                raise EmbedderAlreadyInitializedError(
                    "Embedder initialization already attempted",
                    context={"model": self.model_name},
                )
            self._initialize_called = True

            logger.info("Loading embedding model: %s", self.model_name)
            try:
                model = self._model_factory()
            except Exception as e:
                raise EmbeddingModelLoadError(
                    f"Embedding model initialization failed: {e}",
                    cause=e,
                    context={"model": self.model_name},
                ) from e

            get_dimension = getattr(model, "get_sentence_embedding_dimension", None)
            model_dimension = get_dimension() if callable(get_dimension) else None
            if model_dimension is not None and model_dimension != self.dimension:
                raise EmbeddingModelLoadError(
                    f"Model produces {model_dimension}-dimensional vectors, expected {self.dimension}",
                    context={"model": self.model_name},
                )

            self._model = model
            self._ready.set()
            logger.info("Embedding model loaded (%d dimensions)", self.dimension)

    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: float | None = None) -> bool:
        """Block until the model is loaded or ``timeout`` seconds pass."""
        return self._ready.wait(timeout)

    def _require_model(self, timeout: float | None) -> Any:
        if not self._ready.is_set() and timeout:
            self._ready.wait(timeout)
        model = self._model
        if model is None:
            raise EmbedderNotReadyError(
                "Embedding model not initialized",
                context={"model": self.model_name, "waited": timeout or 0},
            )
        return model

    @staticmethod
    def _prepare(text: str) -> str:
        cleaned = (text or "").strip().lower()
        if not cleaned:
            raise InvalidInputError("Cannot embed empty text")
        return cleaned

    def _normalize(self, raw: Any) -> list[float]:
        vector = np.asarray(raw, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dimension:
            raise EmbeddingError(
                f"Model returned a {vector.shape[0]}-dimensional vector, expected {self.dimension}"
            )
        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    def embed(self, text: str, timeout: float | None = None) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed.
            timeout: Seconds to wait for readiness; None or 0 fails fast.

        Returns:
            Normalized embedding vector.

        Raises:
            InvalidInputError: If text is empty or whitespace only.
            EmbedderNotReadyError: If the model is not loaded.
        """
        cleaned = self._prepare(text)
        model = self._require_model(timeout)
        embedding = model.encode(
            cleaned,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=False,
        )
        return self._normalize(embedding)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts in batches."""
        if not texts:
            return []
        cleaned = [self._prepare(text) for text in texts]
        model = self._require_model(None)

        logger.debug("Embedding %d texts in batches of %d", len(cleaned), EMBEDDING_BATCH_SIZE)
        embeddings = model.encode(
            cleaned,
            batch_size=EMBEDDING_BATCH_SIZE,
            convert_to_numpy=True,
            normalize_embeddings=True,
            show_progress_bar=len(cleaned) > 10,
        )
        return [self._normalize(row) for row in embeddings]

    def similarity(self, vec_a: list[float], vec_b: list[float]) -> float:
        """Cosine similarity in [-1, 1]."""
        if len(vec_a) != len(vec_b):
            raise DimensionMismatchError(
                "Embeddings must have the same length",
                context={"left": len(vec_a), "right": len(vec_b)},
            )
        a = np.asarray(vec_a, dtype=np.float64)
        b = np.asarray(vec_b, dtype=np.float64)
        norm_a = np.linalg.norm(a)
        norm_b = np.linalg.norm(b)
        if norm_a == 0 or norm_b == 0:
            return 0.0
        return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))

    def shutdown(self) -> None:
        """Release the model; ``initialize()`` may be called again afterwards."""
        with self._init_lock:
            self._ready.clear()
            self._model = None
            self._initialize_called = False
        logger.info("Embedding model released")
