"""
Database Connection Pool Management
====================================

Async connection pool management using SQLAlchemy AsyncIO with asyncpg.
Provides session management and health checks.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from feedhub.config.settings import Settings, get_settings
from feedhub.utils.errors import DatabaseError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """
    Manages the async engine and session factory for the process.

    One instance per process. Request handlers get a session per request
    through ``get_session``; sync-all opens one session per supplier.
    """

    _instance: "DatabaseManager | None" = None
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    def __new__(cls) -> "DatabaseManager":
        """Singleton pattern to ensure single database manager."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    async def initialize(cls, settings: Settings | None = None) -> "DatabaseManager":
        """
        Initialize the database connection pool.

        Raises:
            DatabaseError: If engine creation fails
        """
        instance = cls()

        if instance._engine is not None:
            logger.debug("database_already_initialized")
            return instance

        settings = settings or get_settings()

        try:
            logger.info(
                "database_initializing",
                pool_min=settings.db_pool_min,
                pool_max=settings.db_pool_max,
            )
            instance._engine = create_async_engine(
                settings.database_url,
                echo=False,
                pool_size=settings.db_pool_min,
                max_overflow=settings.db_pool_max - settings.db_pool_min,
                pool_recycle=3600,
                pool_pre_ping=True,
            )
            instance._session_factory = async_sessionmaker(
                instance._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("database_initialized")
            return instance

        except Exception as e:
            logger.error("database_initialization_failed", error=str(e))
            raise DatabaseError(
                message="Database initialization failed",
                details={"error": str(e)},
            ) from e

    @classmethod
    async def close(cls) -> None:
        """Dispose the connection pool. Called during application shutdown."""
        instance = cls._instance

        if instance is None or instance._engine is None:
            logger.debug("database_not_initialized_nothing_to_close")
            return

        logger.info("database_closing")
        await instance._engine.dispose()
        instance._engine = None
        instance._session_factory = None
        cls._instance = None
        logger.info("database_closed")

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        """
        Get the async engine instance.

        Raises:
            DatabaseError: If database is not initialized
        """
        instance = cls._instance

        if instance is None or instance._engine is None:
            raise DatabaseError(
                message="Database not initialized",
                details={"hint": "Call DatabaseManager.initialize() first"},
            )

        return instance._engine

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async database session.

        Commits when the block exits normally and rolls back on any error.

        Usage:
            async with DatabaseManager.get_session() as session:
                result = await session.execute(...)
        """
        instance = cls._instance

        if instance is None or instance._session_factory is None:
            raise DatabaseError(
                message="Database not initialized",
                details={"hint": "Call DatabaseManager.initialize() first"},
            )

        async with instance._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error("database_session_rolled_back", error=str(e))
                raise

    @classmethod
    async def health_check(cls) -> dict:
        """
        Check database connection health.

        Returns:
            {"status": "healthy", "latency_ms": 1.7} or an error status dict
        """
        instance = cls._instance

        if instance is None or instance._engine is None:
            return {"status": "not_initialized", "error": "Database not initialized"}

        start = time.perf_counter()

        try:
            async with instance._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}

        latency = (time.perf_counter() - start) * 1000
        return {"status": "healthy", "latency_ms": round(latency, 2)}


async def init_database(settings: Settings | None = None) -> DatabaseManager:
    """Initialize database connection pool."""
    return await DatabaseManager.initialize(settings)


async def close_database() -> None:
    """Close database connection pool."""
    await DatabaseManager.close()


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get async database session."""
    async with DatabaseManager.get_session() as session:
        yield session


async def health_check() -> dict:
    """Check database health."""
    return await DatabaseManager.health_check()
