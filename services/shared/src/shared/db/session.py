"""Database session management via DatabaseManager class."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Self

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from shared.config.database import DatabaseSettings
from shared.db.base import Base


class DatabaseManager:
    """Owns the async engine and hands out transactional sessions.

    Usage:
        db = DatabaseManager.from_env()

        async with db.session() as session:
            result = await session.execute(query)

        await db.dispose()

    Each ``session()`` block is one transaction: committed on success,
    rolled back on exception. The import pipeline relies on this to keep
    persistence batches independent of each other.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self._settings = settings
        self._engine = create_async_engine(
            settings.database_url,
            echo=settings.echo,
            poolclass=NullPool if settings.use_null_pool else None,
            pool_pre_ping=settings.pool_pre_ping,
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_env(cls) -> Self:
        """Create a DatabaseManager from environment variables."""
        return cls(DatabaseSettings())

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session that commits on success and rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def dependency(self) -> AsyncGenerator[AsyncSession]:
        """FastAPI Depends() compatible session provider."""
        async with self.session() as session:
            yield session

    async def create_all(self) -> None:
        """Create any missing tables registered on ``Base.metadata``."""
        import shared.db.models  # noqa: F401  (registers mappers)

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """Dispose of the engine and release all connections."""
        await self._engine.dispose()
