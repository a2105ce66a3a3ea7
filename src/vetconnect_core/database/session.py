"""
Database session management utilities for the vetconnect-core package.

This module provides the async session factory and the transaction context
manager used by the SQLAlchemy persistence adapter.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from .connection import close_engine

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages database sessions and provides transaction utilities."""

    def __init__(
        self, engine: AsyncEngine, session_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize session manager with database engine.

        Args:
            engine: SQLAlchemy async engine
            session_config: Optional session configuration overrides
        """
        self.engine = engine
        self._is_initialized = False

        default_config = {
            "expire_on_commit": False,
            "autoflush": True,
        }

        if session_config:
            default_config.update(session_config)

        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=default_config.get("autoflush", True),
            expire_on_commit=default_config.get("expire_on_commit", False),
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database sessions with automatic cleanup.

        Yields:
            Database session
        """
        session = self.session_factory()
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error, rolling back: {e}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for database transactions with automatic commit/rollback.

        Yields:
            Database session within a transaction

        Example:
            async with session_manager.get_transaction() as session:
                # All operations in this block are part of one transaction
                session.add(record)
                # Transaction is automatically committed on success
        """
        async with self.get_session() as session:
            async with session.begin():
                yield session

    async def initialize_database(self, metadata: Optional[MetaData] = None) -> None:
        """
        Create all tables known to the metadata.

        Migrations are the production path; this is used by tests and local
        SQLite databases.

        Args:
            metadata: SQLAlchemy metadata (defaults to the package models)
        """
        if metadata is None:
            from ..models.base import Base

            metadata = Base.metadata

        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

        self._is_initialized = True
        logger.info(f"Database tables created: {', '.join(sorted(metadata.tables))}")

    async def close(self) -> None:
        """Dispose of the engine and close all pooled connections."""
        await close_engine(self.engine)

    @property
    def is_initialized(self) -> bool:
        """Check if the schema has been created by this manager."""
        return self._is_initialized
