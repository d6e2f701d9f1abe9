"""Database Session Manager: async engine plus per-request sessions for user contracts.

Invariants:
    - A session that sees a SQLAlchemy exception is rolled back before it is closed
    - SQLAlchemy exceptions escaping a session are re-raised as DatabaseError
    - No module-level manager: the app lifespan builds one and stores it on app.state

Design Decisions:
    - Explicit construction over a singleton: routes and tests receive the manager
      through FastAPI dependencies, never through import-time globals
    - SQLite URLs skip pool sizing so the test suite can run against aiosqlite
    - expire_on_commit=False: committed rows stay readable after the handler returns
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from safecall.core.errors import DatabaseError, ErrorContext

logger = logging.getLogger(__name__)

# Checked in order: subclasses before their bases
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit"),
    (OperationalError, "Connection or operational error", "execute"),
    (DBAPIError, "Database driver error", "query"),
    (SQLAlchemyError, "Database operation failed", "unknown"),
)


def to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    """Translate a SQLAlchemy exception into the SafeCall error hierarchy."""
    context = ErrorContext(debug_info={"exception": type(exc).__name__})
    for exc_type, message, operation in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return DatabaseError(message, operation, context)
    return DatabaseError("Database operation failed", "unknown", context)


class DatabaseSessionManager:
    """Owns the async engine; hands out sessions that roll back on failure."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.database_url = database_url
        engine_options: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_options.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_options)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = to_database_error(e)
            logger.error(
                f"Session rolled back: {type(e).__name__}: {e}",
                extra={"operation": error.operation},
            )
            raise error from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips (readiness probe)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except DatabaseError:
            return False
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False
        return True

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_db_manager(request: Request) -> DatabaseSessionManager | None:
    """FastAPI dependency: the manager built by the app lifespan, if any."""
    return getattr(request.app.state, "db_manager", None)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    db_manager = get_db_manager(request)
    if db_manager is None:
        raise DatabaseError("Database not initialized", "connect")
    async with db_manager.session() as session:
        yield session
