"""Database session management with transaction utilities.

This module provides:
- AsyncSession factory for dependency injection
- Transaction context managers for explicit transaction control
- Utility functions for read-only and nested transactions
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from treasury.core.config import settings
from treasury.core.exceptions import AppException

logger = logging.getLogger(__name__)


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend.

    In-memory SQLite runs on a single static connection and rejects pool
    sizing arguments, so those are only passed for server databases.

    Args:
        database_url: SQLAlchemy async URL
        echo: Log emitted SQL

    Returns:
        AsyncEngine: Configured engine (not yet connected)
    """
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        # Wait for competing writers instead of failing immediately
        kwargs["connect_args"] = {"timeout": 30}
    else:
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )

    return create_async_engine(database_url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency for route handlers.

    This is the standard dependency injection method for FastAPI routes.
    It automatically manages commit/rollback/close lifecycle.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transactional(
    db: AsyncSession,
    *,
    commit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Explicit transaction context manager with automatic commit/rollback.

    Use this when you need explicit transaction control within a service
    or route handler. Automatically commits on success or rolls back on
    exception.

    Args:
        db: The database session
        commit: Whether to commit on success (default: True)

    Yields:
        AsyncSession: The database session

    Raises:
        Exception: Re-raises any exception after rollback

    Example:
        ```python
        async with transactional(db):
            db.add(Account(name="Bank_USD_9", currency=Currency.USD))
            # Auto-commits on success, auto-rollbacks on exception
        ```

    Note:
        If commit=False, nothing is committed on exit; the caller owns the
        outcome of the open transaction.

        Application errors (``AppException``) are expected outcomes such as
        insufficient funds and are logged at DEBUG; anything else at ERROR.
    """
    try:
        yield db
        if commit:
            await db.commit()
            logger.debug("Transaction committed successfully")
    except AppException as e:
        await db.rollback()
        logger.debug(f"Transaction rolled back: {type(e).__name__}: {e}")
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Transaction rolled back due to error: {type(e).__name__}: {e}")
        raise


@asynccontextmanager
async def read_only_transaction(
    db: AsyncSession,
) -> AsyncGenerator[AsyncSession, None]:
    """Read-only transaction context manager (never commits).

    Use this for queries that should never modify the database.

    Args:
        db: The database session

    Yields:
        AsyncSession: The database session
    """
    try:
        yield db
        # Never commit read-only transactions
    except Exception as e:
        logger.error(f"Read-only transaction error: {type(e).__name__}: {e}")
        raise


@asynccontextmanager
async def with_savepoint(
    db: AsyncSession,
    name: str = "sp1",
) -> AsyncGenerator[object, None]:
    """Create a nested transaction savepoint.

    Allows rolling back to a specific point without rolling back the
    entire transaction. Only valid inside an outer transaction.

    Args:
        db: The database session
        name: Name of the savepoint (default: "sp1")

    Yields:
        Savepoint object from SQLAlchemy

    Raises:
        Exception: Re-raises any exception after savepoint rollback
    """
    async with db.begin_nested() as savepoint:
        try:
            yield savepoint
        except Exception as e:
            logger.warning(f"Savepoint '{name}' rolled back due to error: {type(e).__name__}: {e}")
            raise
