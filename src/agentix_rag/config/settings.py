"""Configuration management for the RAG core."""

from datetime import timedelta
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.domain import CacheLocation


class Settings(BaseSettings):
    """Settings loaded from environment variables (prefix ``AGENTIX_RAG_``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AGENTIX_RAG_",
        extra="ignore",
        protected_namespaces=(),
    )

    # Embedding model
    model_name: str = "all-MiniLM-L6-v2"
    model_cache_dir: Path = Path.home() / ".agentix" / "models"
    max_sequence_length: int = 512
    embedding_batch_size: int = 32
    download_timeout: float = 60.0
    show_download_progress: bool = False

    # Indexing
    index_batch_size: int = 20
    sync_interval_hours: float = 6.0

    # Search
    similarity_threshold: float = 0.6
    search_candidate_multiplier: int = 2
    content_preview_length: int = 500

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("similarity_threshold", mode="after")
    @classmethod
    def check_threshold(cls, value: float) -> float:
        """Similarity thresholds live in [0, 1]."""
        if not 0.0 <= value <= 1.0:
            raise ValueError("similarity_threshold must be between 0 and 1")
        return value

    @field_validator(
        "max_sequence_length",
        "embedding_batch_size",
        "index_batch_size",
        "search_candidate_multiplier",
        "content_preview_length",
        mode="after",
    )
    @classmethod
    def check_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("model_cache_dir", mode="after")
    @classmethod
    def expand_cache_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def sync_interval(self) -> timedelta:
        return timedelta(hours=self.sync_interval_hours)

    def cache_location(self) -> CacheLocation:
        """Cache handle for the model manager."""
        return CacheLocation(self.model_cache_dir)
