# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache, scheduler, coordinator and logging knobs.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from revycore.config.strategies import DEFAULT_CACHE_STRATEGIES


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Cache ===
    cache_durable_backend: Literal["none", "json", "sqlite", "redis"] = "none"
    cache_root: Path = Path("~/.revycore/cache")
    cache_redis_url: str = ""
    cache_sweep_interval_s: float = 300.0

    # === Batch scheduler ===
    batch_concurrency: int = 3
    batch_size: int = 10
    batch_delay_between_s: float = 1.0
    batch_enable_caching: bool = True
    batch_cache_strategy: str = "document-analysis"
    batch_retry_delay_s: float = 2.0
    batch_priority_weighting: bool = True
    batch_dependency_max_wait_s: float = 30.0
    task_default_max_retries: int = 2
    task_default_timeout_s: float = 30.0

    # === Conversation coordinator ===
    coordinator_moderator_key: str = "moderator"
    coordinator_max_roster: int = 5
    coordinator_analyzer_timeout_s: float = 10.0
    coordinator_recommendation_strategy: str = "context-analysis"
    coordinator_summary_strategy: str = "ai-responses"

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("batch_concurrency", "batch_size", "coordinator_max_roster")
    @classmethod
    def validate_positive(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator(
        "task_default_max_retries",
        "batch_delay_between_s",
        "batch_retry_delay_s",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator(
        "cache_sweep_interval_s",
        "batch_dependency_max_wait_s",
        "task_default_timeout_s",
        "coordinator_analyzer_timeout_s",
    )
    @classmethod
    def validate_duration(cls, v: float) -> float:  # noqa: N805
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        for field_name in (
            "batch_cache_strategy",
            "coordinator_recommendation_strategy",
            "coordinator_summary_strategy",
        ):
            strategy = getattr(self, field_name)
            if strategy not in DEFAULT_CACHE_STRATEGIES:
                errors.append(
                    f"{field_name.upper()}={strategy!r} is not a known cache strategy"
                )

        if self.cache_durable_backend == "redis" and not self.cache_redis_url:
            errors.append(
                "CACHE_REDIS_URL must be set when CACHE_DURABLE_BACKEND=redis"
            )

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding apps).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
