"""Port interfaces implemented by the outbound adapters."""

from .embedding_port import EmbeddingPort
from .index_port import IndexPort
from .llm_port import LLMPort

__all__ = ["EmbeddingPort", "IndexPort", "LLMPort"]
