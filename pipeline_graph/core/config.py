"""Application configuration using Pydantic Settings.

Environment variables are loaded from .env files and system environment.
Services read their defaults from here but always accept explicit
constructor arguments, so callers can override any value per instance.
"""

from functools import lru_cache
from typing import Any

from pydantic import RedisDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline graph engine settings.

    All settings can be overridden via environment variables.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Pipeline Graph"
    DEBUG: bool = False

    # Validation thresholds
    MAX_PARALLEL_BRANCHES: int = 10
    MAX_PIPELINE_DEPTH: int = 20

    # Auto-layout spacing (canvas units)
    LAYOUT_HORIZONTAL_SPACING: float = 250.0
    LAYOUT_VERTICAL_SPACING: float = 150.0

    # Error handling
    ERROR_LOG_SIZE: int = 100

    # Export / import
    EXPORT_FORMAT_VERSION: str = "1.0.0"
    DEFAULT_PIPELINE_NAME: str = "Generated Pipeline"
    IMPORTED_PIPELINE_NAME: str = "Untitled Pipeline"
    YAML_DESCRIPTION: str = "Generated from visual pipeline builder"

    # Validation cache
    REDIS_URL: RedisDsn | None = None
    VALIDATION_CACHE_TTL: int = 300  # 5 minutes
    VALIDATION_CACHE_MAX_ENTRIES: int = 1000  # In-memory fallback only

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None  # No file handler unless set
    LOG_JSON_FORMAT: bool = True

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return "INFO"

    @field_validator(
        "ERROR_LOG_SIZE",
        "MAX_PARALLEL_BRANCHES",
        "MAX_PIPELINE_DEPTH",
        "VALIDATION_CACHE_MAX_ENTRIES",
    )
    @classmethod
    def require_positive(cls, v: int) -> int:
        """Reject zero or negative limits."""
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are cached after first load for performance.
    """
    return Settings()


# Global settings instance
settings = get_settings()
