"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytz
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application-wide settings sourced from .env / environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────────────
    slotkeeper_env: str = "development"
    slotkeeper_log_level: str = "INFO"

    # ── Availability ─────────────────────────────────────────────────
    reference_timezone: str = "UTC"
    next_available_max_days: int = 90
    enforce_write_conflicts: bool = True

    # ── Calendar export ──────────────────────────────────────────────
    ics_product_name: str = "Slotkeeper"
    ics_uid_domain: str = "slotkeeper.app"

    # ── CLI ──────────────────────────────────────────────────────────
    snapshot_path: str = "data/slotkeeper.json"

    @field_validator("reference_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown IANA timezone: {value}")
        return value

    @field_validator("next_available_max_days")
    @classmethod
    def _positive_scan(cls, value: int) -> int:
        if value < 0:
            raise ValueError("next_available_max_days must be >= 0")
        return value

    # ── Derived ──────────────────────────────────────────────────────
    @property
    def snapshot_file(self) -> Path:
        """Return the snapshot path, creating its parent directory if needed."""
        path = Path(self.snapshot_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
