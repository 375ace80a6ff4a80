"""
Database Infrastructure
=======================

Manages database connections, session lifecycle, and engine configuration.

Uses SQLAlchemy 2.0 asyncio (asyncpg in production, aiosqlite in tests).
The engine lives on an explicitly constructed ``Database`` object that the
application creates at startup and disposes at shutdown.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ticketdesk.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    SQLAlchemy 2.0 style using DeclarativeBase.
    """
    pass


class Database:
    """Owns the async engine and session factory for one application."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_maker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Prevent lazy loading after commit
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the engine from application settings."""
        database_url = settings.database_url.replace("sslmode=", "ssl=")
        options = {"echo": settings.debug, "pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            options["pool_size"] = settings.db_pool_size
            options["max_overflow"] = settings.db_max_overflow
        return cls(create_async_engine(database_url, **options))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Session scope for background jobs and scripts.

        Commits on success, rolls back on any exception.
        """
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """
        Create all database tables.

        Development/testing only; production uses migrations.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of pooled connections."""
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's Database."""
    database: Optional[Database] = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized")
    return database


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI's Depends().

    The request's work commits when the handler returns and rolls back if it
    raises, so a failed operation leaves no partial rows behind.
    """
    async with get_database(request).session() as session:
        yield session
