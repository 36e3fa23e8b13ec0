"""Database layer for chaibook application."""

from chaibook.database.base import Database
from chaibook.database.factories import (
    create_database,
    create_document_database,
    create_sqlite_database,
)

__all__ = [
    "Database",
    "create_database",
    "create_document_database",
    "create_sqlite_database",
]
