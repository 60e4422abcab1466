# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Pagination ===
    pager_default_fetch_size: int = 1000
    pager_max_fetch_size: int = 10_000

    # === Candidate cache ===
    cache_ttl_s: float = 300.0
    cache_max_entries: int = 1024
    cache_backend: Literal["memory", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.semantic_pager/cache")
    cache_redis_url: str = ""
    cache_lock_ttl_s: float = 30.0
    cache_lock_wait_s: float = 10.0
    cache_lock_poll_interval_s: float = 0.05
    cache_storage_retry_s: float = 5.0

    # === EMBEDDINGS ===
    embedding_provider: str = "hashing"
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 256
    embedding_ollama_model: str = "nomic-embed-text"
    openai_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Vector database ===
    vector_db_type: Literal["memory", "chromadb"] = "memory"
    vector_db_path: Path = Path("~/.semantic_pager/vectordb")
    vector_db_url: str = ""
    vector_db_collection: str = "semantic_pager"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator(
        "pager_default_fetch_size", "pager_max_fetch_size", "cache_max_entries",
        "embedding_dimensions",
    )
    @classmethod
    def validate_positive_int(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("cache_ttl_s", "cache_lock_ttl_s", "cache_lock_poll_interval_s")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.pager_default_fetch_size > self.pager_max_fetch_size:
            errors.append(
                "PAGER_DEFAULT_FETCH_SIZE must be <= PAGER_MAX_FETCH_SIZE"
            )

        if self.cache_lock_wait_s < 0:
            errors.append("CACHE_LOCK_WAIT_S must be >= 0")

        if self.cache_storage_retry_s < 0:
            errors.append("CACHE_STORAGE_RETRY_S must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
