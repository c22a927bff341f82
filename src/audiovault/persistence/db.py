"""Async database engine and session handle.

Provides connectivity using the SQLAlchemy 2.0 asyncio extension, with
asyncpg for PostgreSQL and aiosqlite for local/test databases. The engine
and session factory live on an explicit StoreHandle produced by
initialize(); nothing is kept in module-level state.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from audiovault.config import settings
from audiovault.errors import StoreNotInitialized


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine for a database URL.

    Pool settings apply only to server databases; SQLite uses its own
    per-connection pool.
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, connect_args={"timeout": 30})
    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,  # Recycle connections after 30 minutes
        pool_pre_ping=True,  # Verify connection health
        echo=False,
    )


@dataclass
class StoreHandle:
    """Live connection to the backing engine shared by all pipelines."""

    engine: AsyncEngine
    chunk_size: int
    session_factory: async_sessionmaker[AsyncSession] = field(init=False)
    owns_engine: bool = False
    closed: bool = False

    def __post_init__(self) -> None:
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a transactional scope around a series of operations.

        Usage:
            async with handle.session() as session:
                session.add(row)
        """
        if self.closed:
            raise StoreNotInitialized()
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception:
            return False

    async def close(self) -> None:
        """Mark the handle closed and dispose an engine it created."""
        if self.closed:
            return
        self.closed = True
        if self.owns_engine:
            await self.engine.dispose()


async def initialize(
    connection: AsyncEngine | str | None = None,
    *,
    chunk_size: int | None = None,
    create_tables: bool = True,
) -> StoreHandle:
    """Connect to the backing engine and return a StoreHandle.

    Args:
        connection: An existing AsyncEngine, or a database URL. Defaults to
            settings.database_url.
        chunk_size: Chunk size for new uploads. Defaults to settings.chunk_size.
        create_tables: Create missing tables (use migrations in production).
    """
    size = chunk_size if chunk_size is not None else settings.chunk_size
    if size <= 0:
        raise ValueError("chunk_size must be > 0")

    if isinstance(connection, AsyncEngine):
        engine, owns_engine = connection, False
    else:
        engine, owns_engine = create_engine(connection), True

    if create_tables:
        from audiovault.persistence.tables import Base

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    return StoreHandle(engine=engine, chunk_size=size, owns_engine=owns_engine)
