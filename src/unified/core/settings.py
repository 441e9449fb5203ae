"""Environment-driven settings for the unified engine.

Processors are configured through constructor arguments and per-call
``settings`` mappings; the only process-wide configuration is how the
engine logs.  ``UnifiedSettings`` reads it from ``UNIFIED_*`` environment
variables or a ``.env`` file.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads from env vars and .env files
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> from unified.core.settings import get_settings
    >>> get_settings().log_format
    'console'

Tags:
    settings, configuration, pydantic, environment, unified-core
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnifiedSettings(BaseSettings):
    """Logging settings shared by every processor family.

    Fields
    ──────
    log_level             : Structlog log level
    log_format            : ``console`` for development, ``json`` for aggregation
    log_debug_processors  : Families whose DEBUG events are always emitted
    """

    model_config = SettingsConfigDict(
        env_prefix="UNIFIED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_debug_processors: list[str] = Field(
        default_factory=list,
        description="Processor names that always log at DEBUG",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @field_validator("log_format", mode="before")
    @classmethod
    def _lower_format(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value


@lru_cache(maxsize=1)
def get_settings() -> UnifiedSettings:
    """Return the cached settings instance."""
    return UnifiedSettings()


def reset_settings() -> None:
    """Drop the cached settings so the environment is read again (for testing)."""
    get_settings.cache_clear()
