"""Application configuration using Pydantic Settings.

Environment variables are loaded from .env files and system environment.
Every value has a working default so the editing core runs without any
configuration at all.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """FlowCanvas settings.

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
    PROJECT_NAME: str = "FlowCanvas"
    DEBUG: bool = False

    # Edit history
    HISTORY_MAX_ENTRIES: int = 50
    HISTORY_DEBOUNCE_SECONDS: float = 1.0

    # DSL -> graph grid layout
    DSL_LAYOUT_ORIGIN: int = 50
    DSL_LAYOUT_COLUMN_SPACING: int = 250
    DSL_LAYOUT_ROW_SPACING: int = 150

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None  # No file handler when unset
    LOG_JSON_FORMAT: bool = True

    @field_validator("HISTORY_MAX_ENTRIES", mode="before")
    @classmethod
    def parse_history_bound(cls, v: Any) -> int:
        """Clamp the history bound to at least one entry."""
        value = int(v)
        return max(value, 1)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Accept log levels in any case."""
        return str(v).strip().upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are cached after first load for performance.
    """
    return Settings()


# Global settings instance
settings = get_settings()
