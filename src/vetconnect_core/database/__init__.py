"""
Database connection and session management utilities.

This module provides async SQLAlchemy engine configuration and session
management for the SQLAlchemy persistence adapter.
"""

from .connection import (
    DatabaseConfig,
    check_connection,
    close_engine,
    create_engine,
    get_database_url,
)
from .session import SessionManager
from .types import JSONType

__all__ = [
    # Connection utilities
    "DatabaseConfig",
    "create_engine",
    "get_database_url",
    "check_connection",
    "close_engine",
    # Session management
    "SessionManager",
    # Column types
    "JSONType",
]
