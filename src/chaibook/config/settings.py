"""Configuration settings for chaibook."""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings read from CHAIBOOK_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHAIBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["sql", "document"] = Field(
        default="sql", description="Storage backend selected at start-up"
    )
    db_path: Optional[str] = Field(
        default=None, description="SQLite file (sql) or JSON file (document)"
    )
    database_url: Optional[str] = Field(
        default=None, description="Full SQLAlchemy URL, overrides db_path for sql"
    )
    expiry_warning_days: int = Field(
        default=7, description="Days ahead an expiry date raises an alert"
    )
    salary_match_window_ms: int = Field(
        default=5000,
        description="Max created_at gap when matching an unlinked salary expense",
    )
    lock_timeout: float = Field(
        default=10.0,
        description="Seconds a document-store write waits for another process's lock",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )

    def resolve_db_path(self) -> str:
        """Return the configured store path, defaulting under ~/.chaibook."""
        if self.db_path:
            return self.db_path
        db_dir = Path.home() / ".chaibook"
        db_dir.mkdir(exist_ok=True)
        suffix = "json" if self.backend == "document" else "db"
        return str(db_dir / f"chaibook.{suffix}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
