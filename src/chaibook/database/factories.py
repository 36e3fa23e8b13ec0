"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from chaibook.config.settings import Settings
from chaibook.database.base import Database
from chaibook.database.document_db import DEFAULT_LOCK_TIMEOUT, DocumentDatabase
from chaibook.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks CHAIBOOK_DB_PATH
            environment variable, then defaults to ~/.chaibook/chaibook.db

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("CHAIBOOK_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".chaibook"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "chaibook.db")

    return SQLAlchemyDatabase(f"sqlite:///{database_path}")


def create_document_database(
    path: Optional[str] = None, lock_timeout: float = DEFAULT_LOCK_TIMEOUT
) -> DocumentDatabase:
    """Create a document store backed by a JSON file.

    Args:
        path: JSON file path. If None the store is memory-only.
        lock_timeout: Seconds a write waits for another process to finish
    """
    return DocumentDatabase(path, lock_timeout=lock_timeout)


def create_database(
    settings: Settings,
    db_path: Optional[str] = None,
    backend: Optional[str] = None,
) -> Database:
    """Create the configured backend. Called once at process start.

    Args:
        settings: Application settings
        db_path: Optional path overriding settings.db_path
        backend: Optional backend name overriding settings.backend
    """
    backend = backend or settings.backend
    if db_path is not None:
        settings = settings.model_copy(update={"db_path": db_path, "backend": backend})
    else:
        settings = settings.model_copy(update={"backend": backend})

    if backend == "document":
        return create_document_database(
            settings.resolve_db_path(), lock_timeout=settings.lock_timeout
        )
    if backend == "sql":
        if settings.database_url and db_path is None:
            return SQLAlchemyDatabase(settings.database_url)
        return create_sqlite_database(settings.resolve_db_path())
    raise ValueError(f"Unknown backend '{backend}'. Supported backends: sql, document")
