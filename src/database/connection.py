"""
Database connection and session management with connection pooling.

Provides the async SQLAlchemy engine, a bounded connection pool and the
session scope every repository call runs in. A session scope is one
transaction: it commits when the block exits normally and rolls back on
any error or cancellation.
"""

import asyncio
import logging
from typing import AsyncGenerator, Optional, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from config import settings
from .models import Base
from ..exceptions import StorageError

logger = logging.getLogger(__name__)


def _normalize_url(database_url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver."""
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Database connection manager."""

    def __init__(self, database_url: Optional[str] = None, environment: Optional[str] = None):
        self.database_url = _normalize_url(database_url or settings.database_url)
        self.environment = environment or settings.environment
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _pool_config(self) -> Dict[str, Any]:
        # NullPool for tests so no connection outlives a test case
        if self.environment == "test":
            logger.info("Using NullPool for test environment")
            return {"poolclass": NullPool}

        if self.is_sqlite:
            return {}

        logger.info(
            f"Database pool config: size={settings.db_pool_size}, "
            f"max_overflow={settings.db_max_overflow}, "
            f"timeout={settings.db_pool_timeout}s, recycle={settings.db_pool_recycle}s"
        )
        return {
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": settings.db_pool_size,          # Persistent connections
            "max_overflow": settings.db_max_overflow,    # Burst connections
            "pool_timeout": settings.db_pool_timeout,    # Wait time for connection
            "pool_recycle": settings.db_pool_recycle,    # Max connection lifetime
            "pool_pre_ping": True,                       # Replace stale idle connections
        }

    async def initialize(self) -> bool:
        """Initialize database connection and create tables."""
        if self._initialized:
            return True

        if not self.database_url:
            logger.warning("DATABASE_URL not configured")
            return False

        try:
            connect_args = {}
            if self.database_url.startswith("postgresql+asyncpg://"):
                connect_args = {"server_settings": {"application_name": "daily-task-tracker"}}

            self.engine = create_async_engine(
                self.database_url,
                echo=settings.database_echo,
                connect_args=connect_args,
                **self._pool_config(),
            )

            if self.is_sqlite:
                event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True
            logger.info("Database initialized successfully")
            return True

        except Exception as e:
            logger.error(f"Database initialization failed: {e}", exc_info=True)
            return False

    async def close(self):
        """Close database connection."""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session that commits on success and rolls back otherwise."""
        if not self._initialized:
            await self.initialize()

        if not self.session_factory:
            raise StorageError("Database not initialized")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except asyncio.CancelledError:
                logger.warning("Database session cancelled, rolling back")
                await session.rollback()
                raise
            except Exception as e:
                await session.rollback()
                logger.error(f"Database session error: {e}")
                raise

    @asynccontextmanager
    async def transaction(self, session: Optional[AsyncSession] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Unit of work scope.

        With an ambient session the block joins it and leaves commit/rollback
        to whoever opened it. Without one, a new committing session is opened.
        """
        if session is not None:
            yield session
            return

        async with self.session() as new_session:
            yield new_session

    async def health_check(self) -> dict:
        """Perform health check on database."""
        try:
            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            return {
                "status": "healthy",
                "initialized": self._initialized,
                "pool": await self.get_pool_status(),
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    async def get_pool_status(self) -> Dict[str, Any]:
        """Get connection pool status for monitoring."""
        if not self.engine:
            return {
                "status": "not_initialized",
                "error": "Engine not created"
            }

        pool = self.engine.pool
        if not isinstance(pool, AsyncAdaptedQueuePool):
            return {
                "pool_type": type(pool).__name__,
                "status": "no_pooling",
            }

        size = pool.size()
        checked_out = pool.checkedout()
        overflow = pool.overflow()
        max_connections = size + settings.db_max_overflow
        utilization = checked_out / max(max_connections, 1)

        if utilization > 0.9:
            health = "critical"
        elif utilization > 0.8:
            health = "warning"
        else:
            health = "healthy"

        return {
            "pool_type": "AsyncAdaptedQueuePool",
            "status": health,
            "size": size,
            "checked_in": pool.checkedin(),
            "checked_out": checked_out,
            "overflow": overflow,
            "max_connections": max_connections,
            "utilization": f"{utilization:.1%}",
        }


# Singleton instance
_database: Optional[Database] = None


def get_database() -> Database:
    """Get the database singleton."""
    global _database
    if _database is None:
        _database = Database()
    return _database


async def init_database() -> bool:
    """Initialize the database."""
    db = get_database()
    return await db.initialize()


async def close_database():
    """Close the database connection."""
    global _database
    if _database:
        await _database.close()
        _database = None
