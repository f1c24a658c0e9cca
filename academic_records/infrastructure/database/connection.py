# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Records database connection management using SQLAlchemy async.

All tenants share one schema. Services receive an ``AsyncSession`` and run
one unit of work per call; the session helpers here own engine lifecycle and
translate driver failures into ``StoreError``.

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production.

Example:
    from academic_records.infrastructure.database.connection import (
        init_database,
        get_session,
    )

    # Initialize at application startup
    await init_database(settings)

    # Use per request
    async with get_session() as session:
        result = await ConclusionWorkflow(session).conclude(conclusion_id, ctx)
"""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from academic_records.core.errors import StoreError

if TYPE_CHECKING:
    from academic_records.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the records database connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_options(settings: "Settings") -> dict[str, Any]:
    """Build engine keyword arguments for the configured backend."""
    options: dict[str, Any] = {"echo": settings.db.echo}
    if settings.db.url.startswith("sqlite"):
        options["connect_args"] = {"timeout": 30}
        return options
    options.update(
        pool_size=settings.db.pool_size,
        max_overflow=settings.db.max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
    )
    return options


async def init_database(settings: "Settings") -> None:
    """Initialize the records database connection pool.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        StoreError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_async_engine(settings.db.url, **_engine_options(settings))
        _sessionmaker = async_sessionmaker(
            bind=_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    except SQLAlchemyError as e:
        raise StoreError("Failed to initialize records database connection", e) from e

    logger.info(
        "Records database initialized: %s", _engine.url.render_as_string(hide_password=True)
    )


async def close_database() -> None:
    """Close the database connection pool.

    This should be called at application shutdown.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the records database async engine.

    Raises:
        StoreError: If the database has not been initialized.
    """
    if _engine is None:
        raise StoreError("Records database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the records database sessionmaker.

    Raises:
        StoreError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise StoreError("Records database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the records database.

    The session is committed on success and rolled back on exception.
    Services commit their own unit of work; the final commit here is a
    no-op for them.

    Yields:
        AsyncSession for database operations.

    Raises:
        StoreError: If the database has not been initialized or a database
            operation fails.
    """
    sessionmaker = get_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise StoreError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def unit_of_work(session: AsyncSession, failure_message: str) -> AsyncIterator[AsyncSession]:
    """Run one service unit of work on an existing session.

    Commits when the block completes and rolls back on any exception, so no
    partial write survives a failed step. Driver failures surface as
    ``StoreError`` with ``failure_message``; other errors propagate unchanged.

    Example:
        async with unit_of_work(self.db, "Failed to conclude course"):
            await self.db.execute(stmt)
    """
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise StoreError(failure_message, e) from e
    except Exception:
        await session.rollback()
        raise


async def check_database_connection() -> bool:
    """Check if the records database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
