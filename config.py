"""
Configuration settings for the patissier progress engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the ``PATISSIER_`` prefix (e.g. ``PATISSIER_LOG_LEVEL``).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PATISSIER_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    storage_backend: Literal["memory", "sql"] = Field(
        default="sql",
        description="Persistence backend used by the CLI and LearningEngine.from_settings()",
    )
    database_url: str = Field(
        default=f"sqlite:///{Path.home() / '.patissier' / 'state.db'}",
        description="SQLAlchemy URL for the key/value state table",
    )
    storage_key_prefix: str = Field(
        default="patissier-practice",
        description="Prefix for every persisted blob key",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Unlock Policy (custom gating conditions)
    # ========================================
    advanced_score_threshold: float = Field(
        default=80,
        description="Score an Advanced module needs before it can be unlocked",
    )
    long_module_minutes: int = Field(
        default=60,
        description="Modules estimated above this many minutes get a time-spent gate",
    )
    long_module_time_ratio: float = Field(
        default=0.5,
        description="Fraction of the estimate that must already be spent across the path",
    )
    quiz_min_attempts: int = Field(
        default=1,
        description="Prior attempts a quiz module needs before it can be unlocked",
    )

    # ========================================
    # Recommendations
    # ========================================
    popularity_ceiling: int = Field(
        default=10_000,
        description="Student count treated as maximum popularity",
    )
    recommendation_limit: int = Field(
        default=20,
        description="Default number of recommendations returned",
    )
    interest_count: int = Field(
        default=10,
        description="Number of most frequent tags kept as learner interests",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def storage_key(self, name: str) -> str:
        """Return the namespaced storage key for a collection."""
        return f"{self.storage_key_prefix}-{name}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
