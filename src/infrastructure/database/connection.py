# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Postgres connection management using SQLAlchemy async.

The Postgres event store owns one engine for the lifetime of the
application. This module builds that engine and its sessionmaker from
settings and offers a connectivity probe for health checks.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Example:
    from src.infrastructure.database.connection import (
        create_database_engine,
        create_sessionmaker,
    )

    engine = create_database_engine(settings)
    sessionmaker = create_sessionmaker(engine)

    async with sessionmaker() as session:
        result = await session.execute(select(students))
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_database_engine(settings: "Settings") -> AsyncEngine:
    """Create the async engine for the Postgres event store.

    Args:
        settings: Application settings containing Postgres configuration.

    Raises:
        DatabaseError: If engine creation fails.
    """
    try:
        return create_async_engine(
            settings.postgres.url,
            pool_size=settings.postgres.pool_size,
            max_overflow=settings.postgres.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
            echo=settings.debug,
        )
    except (SQLAlchemyError, ImportError) as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a read-oriented sessionmaker bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if the database is reachable.

    Returns:
        True if a trivial query succeeds, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError):
        return False
