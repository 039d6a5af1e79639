"""Configuration management for the tech docs knowledge base."""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _sanitize_secret(value: str) -> str:
    """Remove BOM characters and whitespace from secrets.

    Secrets mounted from files or copied from dashboards may carry a BOM
    that breaks HTTP headers.
    """
    if not value:
        return value
    return value.lstrip("\ufeff").strip()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Google AI API (text generation)
    google_api_key: str = ""
    llm_model: str = "gemini-2.0-flash"
    generation_timeout: float = 30.0

    # Qdrant settings; without a URL Qdrant runs in-process, on disk at
    # qdrant_path or in memory when that is empty too
    qdrant_url: str = ""
    qdrant_path: str = ""
    qdrant_api_key: str = ""
    collection_name: str = "documents"
    index_max_retries: int = 3

    @field_validator("google_api_key", "qdrant_api_key", "qdrant_url", mode="after")
    @classmethod
    def sanitize_secrets(cls, value: str) -> str:
        """Remove BOM and whitespace from secret values."""
        return _sanitize_secret(value)

    # Embedding settings
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimension: int = 384
    embedder_ready_timeout: float = 0.0

    # RAG settings
    chunk_size: int = 1000
    chunk_overlap: int = 0
    top_k_results: int = 5
    candidate_pool_size: int = 100
    keyword_normalization: Literal["pool_max", "fixed"] = "pool_max"
    excerpt_length: int = 300

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Path | None = None


# Global settings instance
settings = Settings()
