"""
Configuration settings for the lingua progression engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.progression.models import DEFAULT_SECTION_SEQUENCE, SectionKind
from src.progression.reducer import EngineConfig
from src.progression.srs import DEFAULT_INTERVAL_DAYS, SRSConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Storage
    # ========================================
    state_dir: Path = Field(
        default=Path.home() / ".lingua" / "learners",
        description="Directory holding one JSON state document per learner",
    )
    default_learner: str = Field(
        default="default",
        description="Learner id used by the CLI when --learner is not given",
    )

    # ========================================
    # Spaced Repetition
    # ========================================
    srs_interval_days: list[int] = Field(
        default=list(DEFAULT_INTERVAL_DAYS),
        description="Review interval in days per learning stage (index = stage)",
    )

    # ========================================
    # Progression
    # ========================================
    pass_threshold: float = Field(
        default=70.0,
        ge=0.0,
        le=100.0,
        description="Minimum section score (percent, inclusive) to advance",
    )
    section_sequence: list[SectionKind] = Field(
        default=list(DEFAULT_SECTION_SEQUENCE),
        description="Canonical order of section kinds within a lesson",
    )
    mistake_archive_limit: int = Field(
        default=50,
        ge=1,
        description="Maximum archived mistakes kept per learner",
    )
    default_target_language: str = Field(
        default="German",
        description="Target language used for new profiles when none is given",
    )

    # ========================================
    # Content Generation API
    # ========================================
    content_api_url: str = Field(
        default="http://127.0.0.1:9002",
        description="Base URL of the lesson content generation API",
    )
    content_api_timeout_ms: int = Field(
        default=60000,
        description="Content API request timeout in milliseconds",
    )
    content_api_retry_attempts: int = Field(
        default=3,
        description="Attempts per content request before giving up",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging level for the CLI",
    )

    @field_validator("srs_interval_days")
    @classmethod
    def _validate_intervals(cls, value: list[int]) -> list[int]:
        SRSConfig(tuple(value))
        return value

    def get_engine_config(self) -> EngineConfig:
        """Build the engine configuration from these settings."""
        return EngineConfig(
            srs=SRSConfig(tuple(self.srs_interval_days)),
            section_sequence=tuple(self.section_sequence),
            pass_threshold=self.pass_threshold,
            mistake_archive_limit=self.mistake_archive_limit,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
