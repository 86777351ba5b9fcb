"""
Centralized configuration management for MindDeck.
"""
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STORAGE_QUOTA_BYTES,
    DEFAULT_UNDO_TIMEOUT,
)


def get_default_cache_path() -> Path:
    """Returns the default path for the local cache file."""
    return Path.home() / ".minddeck" / "cache.duckdb"


class Settings(BaseSettings):
    """
    Application settings, loaded from MINDDECK_* environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="MINDDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Client ---
    # Local cache file; ":memory:" keeps the cache in-process.
    cache_path: Path = get_default_cache_path()

    # Backend base URL. An empty value runs the client offline (cache only).
    remote_url: Optional[str] = "http://localhost:3000"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    undo_timeout: float = DEFAULT_UNDO_TIMEOUT
    storage_quota_bytes: int = DEFAULT_STORAGE_QUOTA_BYTES

    # --- Server ---
    data_file: Path = Path("data.json")
    host: str = "127.0.0.1"
    port: int = 3000

    @field_validator("remote_url")
    @classmethod
    def blank_remote_means_offline(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().rstrip("/")


def get_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    return Settings()
