"""
Database-agnostic column types for vetconnect-core.

This module provides column types that work across different database
backends, particularly for storing aggregate documents as JSON in both
PostgreSQL and SQLite.
"""

from typing import Any

from sqlalchemy import JSON, TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeEngine


class JSONType(TypeDecorator):
    """
    Database-agnostic JSON column type.

    Uses JSONB for PostgreSQL and JSON for other databases (like SQLite).
    Values are expected to be JSON-compatible already; the schemas dump
    themselves with ``model_dump(mode="json")`` before they reach a column.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        """Load the appropriate JSON type based on the database dialect."""
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())
