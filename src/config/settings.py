# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for cache, catalog, renderer and logging settings.
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

    # === Derived-image cache ===
    cache_enabled: bool = True
    cache_root: Path = Path("~/.cache/ragcurator")
    thumbnail_size: int = 200
    preview_size: int = 1200
    derivative_quality: int = 85
    cache_lock_timeout: float = 10.0

    # === Page catalog ===
    catalog_backend: Literal["postgres", "sqlite"] = "postgres"
    database_url: str = ""
    database_pool_size: int = 5
    sqlite_path: Path = Path("~/.ragcurator/workspace.db")

    # === Page renderer ===
    renderer_backend: Literal["pdftoppm", "pymupdf"] = "pdftoppm"
    pdftoppm_path: str = "pdftoppm"
    render_dpi: int = 150
    render_timeout: float = 60.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_root", "sqlite_path")
    @classmethod
    def expand_home(cls, v: Path) -> Path:  # noqa: N805
        return Path(v).expanduser()

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.thumbnail_size <= 0 or self.preview_size <= 0:
            errors.append("THUMBNAIL_SIZE and PREVIEW_SIZE must be > 0")
        elif self.thumbnail_size > self.preview_size:
            errors.append("THUMBNAIL_SIZE must be <= PREVIEW_SIZE")

        if not 1 <= self.derivative_quality <= 100:
            errors.append("DERIVATIVE_QUALITY must be between 1 and 100")

        if self.cache_lock_timeout <= 0:
            errors.append("CACHE_LOCK_TIMEOUT must be > 0")

        if self.render_dpi <= 0:
            errors.append("RENDER_DPI must be > 0")

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
