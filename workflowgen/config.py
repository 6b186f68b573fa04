"""Configuration management for workflowgen."""

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflowgen.templates.models import GenericTier

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Engine settings, read from ``WORKFLOWGEN_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOWGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    debug: bool = False
    json_logs: bool = False

    # Templates
    template_dir: Path | None = None  # None uses the templates bundled with the package
    generic_tier: GenericTier = GenericTier.BASIC
    generic_fallbacks: list[str] = Field(
        default_factory=lambda: ["ci-basic", "ci-standard", "ci-minimal"]
    )

    # Fallback behaviour
    enable_template_fallback: bool = True
    enable_partial_generation: bool = True
    enable_generic_templates: bool = True
    cache_templates: bool = True
    validate_templates: bool = True

    # Retry policy
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0  # seconds
    retry_backoff_multiplier: float = 2.0
    retry_max_delay: float = 30.0  # seconds
    retry_timeout: float | None = None  # per attempt, seconds

    failure_history_size: int = 100

    @field_validator("retry_max_attempts", "failure_history_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("retry_base_delay", "retry_max_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delay cannot be negative")
        return v

    @field_validator("retry_backoff_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v < 1:
            raise ValueError("backoff multiplier must be >= 1")
        return v

    @field_validator("template_dir")
    @classmethod
    def expand_template_dir(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else v


settings = Settings()


def get_config_dict() -> dict[str, Any]:
    """Settings as a plain dict, for diagnostics."""
    data = settings.model_dump()
    if data.get("template_dir") is not None:
        data["template_dir"] = str(data["template_dir"])
    data["generic_tier"] = settings.generic_tier.value
    return data


def update_settings(updates: dict[str, Any]) -> None:
    """Apply runtime overrides to the module settings."""
    for key, value in updates.items():
        if hasattr(settings, key):
            setattr(settings, key, value)
        else:
            logger.warning(f"Ignoring unknown setting: {key}")


def validate_critical_settings() -> None:
    """Log warnings for settings that make generation fragile."""
    if settings.template_dir is not None and not settings.template_dir.exists():
        logger.warning(
            f"Template directory {settings.template_dir} does not exist - "
            "only generic templates will be available."
        )

    if not settings.enable_generic_templates and not settings.enable_template_fallback:
        logger.warning(
            "Both template fallback and generic templates are disabled. "
            "A single missing template will fail generation."
        )
