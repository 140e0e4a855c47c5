# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings: where assembled
prompts are persisted, which blob store backend is used, and how logging is
configured.
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

    # === Content storage ===
    content_storage_bucket: str = "dialectic-contributions"

    # === Blob store ===
    blob_store: Literal["local", "s3", "memory"] = "local"
    blob_store_root: Path = Path("~/.promptassembler/blobs")
    s3_prefix: str = ""
    s3_region: str = ""
    s3_endpoint_url: str = ""

    # === Rendering ===
    default_deliverable_format: str = "Standard markdown format."

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("log_retention")
    @classmethod
    def validate_log_retention(cls, v: int) -> int:
        if v < 0:
            raise ValueError("log_retention must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not self.content_storage_bucket.strip():
            errors.append("CONTENT_STORAGE_BUCKET must not be empty")

        if "/" in self.content_storage_bucket:
            errors.append("CONTENT_STORAGE_BUCKET must be a bare bucket name")

        if self.blob_store == "s3" and self.s3_prefix.startswith("/"):
            errors.append("S3_PREFIX must be relative (no leading '/')")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-job config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
