"""
soulycore.models.database - Database Configuration

Provides database connection and session management:
- get_engine: Create SQLAlchemy async engine
- get_sessionmaker: Create async session factory
- get_db: Async context manager for database sessions
- create_all / init_db: Create every table (development and tests)
- drop_db: Drop every table
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from soulycore.models.base import Base
from soulycore.settings import get_settings


def get_database_url() -> str:
    """
    Get database URL from settings.

    Defaults to local PostgreSQL if not set.
    """
    return get_settings().database_url


def get_engine(database_url: str | None = None, echo: bool = False) -> AsyncEngine:
    """
    Create SQLAlchemy async engine.

    Args:
        database_url: Database connection string (uses settings if not provided)
        echo: Whether to echo SQL queries (useful for debugging)

    Returns:
        AsyncEngine configured for the given URL
    """
    url = database_url or get_database_url()

    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        # SQLite drivers manage their own pooling
        options.update(pool_size=10, max_overflow=20)

    return create_async_engine(url, **options)


def get_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create async session factory.

    Args:
        engine: SQLAlchemy async engine

    Returns:
        async_sessionmaker for creating database sessions
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Don't expire objects after commit
    )


@asynccontextmanager
async def get_db(
    database_url: str | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get database session (async context manager).

    Usage:
        >>> async with get_db() as db:
        ...     entities = (await db.execute(select(Entity))).scalars().all()

    Args:
        database_url: Database connection string (uses settings if not provided)

    Yields:
        AsyncSession for database operations
    """
    engine = get_engine(database_url)
    sessionmaker = get_sessionmaker(engine)

    try:
        async with sessionmaker() as session:
            yield session
    finally:
        # Dispose engine to prevent connection pool leaks
        await engine.dispose()


async def create_all(engine: AsyncEngine) -> None:
    """Create every table on an existing engine (enables pgvector on PostgreSQL)."""
    # Import models so they are registered with Base.metadata
    import soulycore.models  # noqa: F401

    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)


async def init_db(database_url: str | None = None) -> None:
    """
    Initialize database (create all tables).

    This should only be used in development/testing.
    In production, use Alembic migrations.

    Args:
        database_url: Database connection string (uses settings if not provided)
    """
    engine = get_engine(database_url)
    try:
        await create_all(engine)
    finally:
        await engine.dispose()


async def drop_db(database_url: str | None = None) -> None:
    """
    Drop all tables.

    **WARNING:** This will delete all data!
    Only use in development/testing.

    Args:
        database_url: Database connection string (uses settings if not provided)
    """
    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()
