# src/config/settings.py — v1
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

    # === Slice budget ===
    slice_budget_s: float = 330.0
    safety_margin_s: float = 30.0
    trigger_delay_s: float = 60.0

    # === Traversal ===
    flush_batch_size: int = 1000
    merge_chunk_size: int = 1000
    max_node_deferrals: int = 3

    # === Status ===
    status_interval_s: float = 30.0
    status_log_file: Path | None = None

    # === Checkpoint store ===
    checkpoint_backend: Literal["json", "sqlite", "redis", "memory"] = "json"
    checkpoint_root: Path = Path("~/.treescan/state")
    checkpoint_redis_url: str = ""
    key_prefix: str = "treescan"

    # === Output ===
    output_sink: Literal["xlsx", "memory"] = "xlsx"
    output_path: Path = Path("./treescan_output.xlsx")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("flush_batch_size", "merge_chunk_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch sizes must be >= 1")
        return v

    @field_validator("max_node_deferrals")
    @classmethod
    def validate_deferrals(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_node_deferrals must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.slice_budget_s <= 0:
            errors.append("SLICE_BUDGET_S must be > 0")

        if not 0 <= self.safety_margin_s < self.slice_budget_s:
            errors.append("SAFETY_MARGIN_S must be >= 0 and < SLICE_BUDGET_S")

        if self.checkpoint_backend == "redis" and not self.checkpoint_redis_url:
            errors.append(
                "CHECKPOINT_REDIS_URL must be set when CHECKPOINT_BACKEND=redis"
            )

        if not self.key_prefix or ":" in self.key_prefix:
            errors.append("KEY_PREFIX must be non-empty and contain no ':'")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
