"""Embedding Port Interface."""

from abc import ABC, abstractmethod


class EmbeddingPort(ABC):
    """Abstract interface for a text embedder with an explicit lifecycle."""

    @abstractmethod
    def initialize(self) -> None:
        """Load the model. Must be called exactly once before use."""
        ...

    @abstractmethod
    def is_ready(self) -> bool: ...

    @abstractmethod
    def wait_until_ready(self, timeout: float | None = None) -> bool: ...

    @abstractmethod
    def embed(self, text: str, timeout: float | None = None) -> list[float]: ...

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]: ...

    @abstractmethod
    def similarity(self, vec_a: list[float], vec_b: list[float]) -> float: ...

    @abstractmethod
    def shutdown(self) -> None: ...
