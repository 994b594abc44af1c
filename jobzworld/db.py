"""Database handle, session management, and resilience utilities."""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.exc import OperationalError, DBAPIError
from sqlalchemy import event, text
import asyncio
from .config import Settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()

# ==================== Connection Pool Setup ====================


class Database:
    """Owns the async engine and session factory for one data store.

    Constructed once at startup and handed to request handlers through
    ``app.state``; tests build their own instance against a scratch database.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine = create_async_engine(url, echo=False, future=True, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )
        if url.startswith("sqlite"):
            # SQLite leaves foreign keys (and ON DELETE CASCADE) off per connection
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Build the production handle with pooling and asyncpg timeouts."""
        if not settings.DB_URL.startswith("postgresql"):
            return cls(settings.DB_URL)

        database = cls(
            settings.DB_URL,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,  # Verify connections before use
            connect_args={
                "timeout": settings.DB_CONNECT_TIMEOUT,
                "command_timeout": settings.DB_QUERY_TIMEOUT,
            },
        )
        logger.info(
            f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
            f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
        )
        return database

    def session(self) -> AsyncSession:
        """Open a new session; use as ``async with database.session() as session``."""
        return self.session_factory()

    async def create_all(self) -> None:
        """Create every table from the ORM metadata (tests and local dev only)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def check_connection(self) -> bool:
        """Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        async def _check():
            async with self.session() as session:
                await session.execute(text("SELECT 1"))

        try:
            await retry_on_db_error(_check, max_retries=2, base_delay=0.1)
            return True
        except (OperationalError, DBAPIError, OSError) as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    async def dispose(self) -> None:
        """Gracefully close all database connections.

        Called during application shutdown to properly cleanup connection pool.
        """
        logger.info("Disposing database engine and closing connections")
        try:
            await self.engine.dispose()
            logger.info("Database connections closed successfully")
        except Exception as e:
            logger.error(f"Error disposing database engine: {str(e)}", exc_info=True)

# ==================== Database Resilience ====================


async def retry_on_db_error(func, max_retries: int = 3, base_delay: float = 0.5):
    """Retry database operations with exponential backoff.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles each retry)

    Returns:
        Result of the function call

    Raises:
        Last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func()
        except (OperationalError, DBAPIError) as e:
            last_exception = e

            # Only connection-class failures are retryable, never constraint violations
            error_msg = str(e).lower()
            is_retryable = any([
                "connection" in error_msg,
                "timeout" in error_msg,
                "database is locked" in error_msg,
                "server closed the connection" in error_msg,
                "connection reset" in error_msg,
            ])

            if not is_retryable or attempt == max_retries - 1:
                logger.error(
                    f"Database operation failed (attempt {attempt + 1}/{max_retries}): {str(e)}",
                    exc_info=True
                )
                raise

            delay = base_delay * (2 ** attempt)  # Exponential backoff
            logger.warning(
                f"Database error on attempt {attempt + 1}/{max_retries}, "
                f"retrying in {delay}s: {str(e)}"
            )
            await asyncio.sleep(delay)

    raise last_exception
