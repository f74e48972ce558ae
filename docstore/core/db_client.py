"""
Async database connection management using SQLAlchemy 2.0.

Supports both:
- PostgreSQL through asyncpg (production)
- Any other async URL, e.g. ``sqlite+aiosqlite://`` (local development, tests)
"""

import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import StaticPool

from docstore.core.config import settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Owns the async engine and session factory for one database URL.

    The engine is created lazily on first use so the manager can be built at
    import time and bound to whichever event loop first touches it.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.database_url
        self.echo = settings.DB_ECHO if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        # SQLite runs on one shared connection; its users must take turns
        self._connection_lock: Optional[asyncio.Lock] = (
            asyncio.Lock() if self.is_sqlite else None
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _create_engine(self) -> AsyncEngine:
        """Create engine for the configured URL."""
        if self.is_sqlite:
            # One shared connection so in-memory databases survive across sessions
            logger.info("Creating SQLite database connection")
            return create_async_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=self.echo,
            )

        # Log connection info without password - NEVER log credentials
        logger.info(
            "Creating direct database connection",
            extra={
                "host": settings.DATABASE_HOST,
                "port": settings.DATABASE_PORT,
                "database": settings.DATABASE_NAME,
                "user": settings.DATABASE_USER,
            },
        )
        return create_async_engine(
            self.database_url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            echo=self.echo,
        )

    def _ensure_engine(self) -> async_sessionmaker:
        if self._engine is None:
            self._engine = self._create_engine()
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    def _exclusive(self):
        """Hold the shared connection for the duration of a block (SQLite only)."""
        return self._connection_lock if self._connection_lock is not None else nullcontext()

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine, creating it if necessary."""
        self._ensure_engine()
        return self._engine

    async def test_connection(self, timeout: float = 15.0) -> bool:
        """Test database connectivity with timeout."""
        try:
            async with asyncio.timeout(timeout):
                async with self._exclusive():
                    async with self.engine.connect() as conn:
                        await conn.execute(text("SELECT 1"))
            logger.info("Database connection test successful")
            return True
        except asyncio.TimeoutError:
            logger.error(f"Database connection test timed out after {timeout}s")
            return False
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async session with automatic commit/rollback.

        Usage:
            async with db.session() as session:
                result = await session.execute(...)
        """
        session_factory = self._ensure_engine()
        async with self._exclusive():
            session = session_factory()
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def create_tables(self):
        """Create all tables (for development/testing)."""
        from docstore.models.db import Base

        async with self._exclusive():
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def drop_tables(self):
        """Drop all tables (for testing only)."""
        from docstore.models.db import Base

        async with self._exclusive():
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped")

    async def close(self):
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
        logger.info("Database connections closed")

