"""Database connection management."""

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from appointment_scheduling.domain.errors import StoreUnavailableError
from appointment_scheduling.infrastructure.logging import get_logger

# Errors raised when the database cannot be reached
CONNECTION_ERRORS = (OperationalError, InterfaceError, OSError, ConnectionError)

logger = get_logger(__name__)


class DatabaseManager:
    """Database connection manager."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_pre_ping: bool = True
    ):
        # Convert postgresql:// to postgresql+asyncpg:// for async support
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

        self._engine: AsyncEngine | None = None
        self._database_url = database_url
        self._session_factory: sessionmaker | None = None
        self._echo = echo
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._pool_pre_ping = pool_pre_ping

    async def connect(self) -> None:
        """Create the engine and session factory."""
        self._engine = create_async_engine(
            self._database_url,
            echo=self._echo,
            pool_size=self._pool_size,
            max_overflow=self._max_overflow,
            pool_pre_ping=self._pool_pre_ping,
        )

        self._session_factory = sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def disconnect(self) -> None:
        """Dispose of the engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; commit on success, roll back on any error."""
        if not self._session_factory:
            raise StoreUnavailableError("Database not connected. Call connect() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except CONNECTION_ERRORS as e:
                await self._safe_rollback(session)
                logger.error("Database unavailable", extra={"error": str(e), "error_type": type(e).__name__})
                raise StoreUnavailableError("Appointment store is unavailable") from e
            except Exception:
                await session.rollback()
                raise

    async def _safe_rollback(self, session: AsyncSession) -> None:
        # Rollback may fail as well once the connection is gone
        try:
            await session.rollback()
        except CONNECTION_ERRORS:
            logger.warning("Rollback failed after connection error")

    @property
    def engine(self) -> AsyncEngine:
        """Get database engine."""
        if not self._engine:
            raise StoreUnavailableError("Database not connected. Call connect() first.")
        return self._engine
