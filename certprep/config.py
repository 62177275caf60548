"""
Configuration settings for the certprep study engine.

Uses Pydantic Settings for environment variable management with .env file support.
All variables use the CERTPREP_ prefix (e.g. CERTPREP_STORE_BACKEND=json).
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
        env_prefix="CERTPREP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # General
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".certprep",
        description="Directory for local state (session database, JSON sessions)",
    )
    log_level: str = Field(
        default="INFO",
        description="Loguru level for the CLI sink",
    )

    # ========================================
    # Session store
    # ========================================
    store_backend: Literal["sqlite", "json", "memory"] = Field(
        default="sqlite",
        description="Backend used to persist study sessions",
    )
    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL for the sqlite backend (defaults to data_dir/sessions.db)",
    )
    sessions_dir: Path | None = Field(
        default=None,
        description="Directory for the json backend (defaults to data_dir/sessions)",
    )

    # ========================================
    # Catalog
    # ========================================
    catalog_dir: Path | None = Field(
        default=None,
        description="Extra directory of exam profile JSON files, merged over the bundled catalog",
    )

    # ========================================
    # Content generation service
    # ========================================
    generator_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the question/flashcard generation service",
    )
    generator_question_path: str = Field(default="/api/v2/generate-question")
    generator_flashcard_path: str = Field(default="/api/v2/generate-flashcard")
    generator_timeout_seconds: float = Field(default=60.0)
    generator_retry_attempts: int = Field(
        default=2,
        description="Retries on connect errors and timeouts (HTTP errors are not retried)",
    )
    recent_question_window: int = Field(
        default=5,
        description="How many recent question ids are sent to avoid repeats",
    )

    # ========================================
    # Session defaults
    # ========================================
    default_questions_per_objective: int = Field(default=10, ge=1)
    efficient_question_budget: int = Field(
        default=60,
        ge=1,
        description="Efficient-assessment length when the profile does not define one",
    )
    mock_break_seconds: int = Field(default=900, ge=0)
    default_pass_threshold: float = Field(default=70.0, ge=0, le=100)

    # ─── Score prediction heuristic ─────────────────────────────────────────────
    prediction_confidence_ceiling: float = Field(default=0.95, gt=0, le=1)
    prediction_sample_scale: int = Field(
        default=30,
        ge=1,
        description="Answered questions needed to reach the confidence ceiling",
    )
    prediction_noise_points: float = Field(default=3.0, ge=0)

    def get_database_url(self) -> str:
        """SQLAlchemy URL for the session database."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'sessions.db'}"

    def get_sessions_dir(self) -> Path:
        """Directory used by the JSON session store."""
        return self.sessions_dir or self.data_dir / "sessions"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
