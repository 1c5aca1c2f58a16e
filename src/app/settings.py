# src/app/settings.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Compute project root: repo/ (two levels up from this file: repo/src/app/settings.py)
PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
DEFAULT_DB = DATA_DIR / "products.db"
DEFAULT_UPLOAD_DIR = DATA_DIR / "uploads"


class Settings(BaseSettings):
    """
    Central application configuration.

    Sources (highest precedence first):
      1. Environment variables (prefixed with APP_, e.g. APP_UPLOAD_DIR)
      2. .env file at data/.env
      3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_file=str(DATA_DIR / ".env"),
        env_prefix="APP_",
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Enable debug logging")
    log_level: str = Field(default="INFO", description="Root log level")

    # Paths
    db_path: Path = Field(default=DEFAULT_DB, description="SQLite DB path")
    upload_dir: Path = Field(
        default=DEFAULT_UPLOAD_DIR, description="Root directory for part attachments"
    )

    # Attachments / listing
    max_name_collisions: int = Field(
        default=10000, ge=1, description="Max '(n)' suffixes tried before an upload is skipped"
    )
    page_size: int = Field(default=5000, ge=1, description="Default listing page size")

    # --- Validators / normalizers ---
    @field_validator("db_path", "upload_dir", mode="before")
    @classmethod
    def _expand_user_and_env(cls, v):
        if isinstance(v, str | Path):
            return Path(str(v)).expanduser()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    # --- Helpers ---
    def ensure_directories(self) -> None:
        """Create the DB parent dir and the upload root (idempotent)."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.upload_dir.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Singleton-style accessor so imports are cheap and consistent system-wide.
    Also ensures directories exist on first access.
    """
    s = Settings()
    s.ensure_directories()
    return s
