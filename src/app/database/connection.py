"""PostgreSQL connection pool management.

The pool is created during application startup when the catalog backend is
PostgreSQL, and closed on shutdown. If the database is down at startup the
catalog repository recreates the pool on a later fetch.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import asyncpg

from app.core.config import get_settings
from app.observability.logging import get_logger


if TYPE_CHECKING:
    from asyncpg import Pool

logger = get_logger(__name__)

_pool: Pool | None = None
_pool_lock: asyncio.Lock | None = None


async def init_database_pool() -> None:
    """Create the asyncpg pool and verify it with a trivial query."""
    global _pool  # noqa: PLW0603

    settings = get_settings()
    db = settings.database

    logger.info(
        "Initializing database connection pool",
        host=db.host,
        port=db.port,
        database=db.name,
    )

    pool = await asyncpg.create_pool(
        host=db.host,
        port=db.port,
        database=db.name,
        user=db.user,
        password=settings.DATABASE_PASSWORD or None,
        min_size=db.min_pool_size,
        max_size=db.max_pool_size,
        command_timeout=db.command_timeout,
        ssl=True if db.ssl else None,
    )

    try:
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError):
        logger.exception("Failed to connect to database")
        await pool.close()
        raise

    _pool = pool
    logger.info("Database connection established")


async def ensure_database_pool() -> Pool:
    """Return the pool, creating it if startup could not.

    Concurrent callers share one initialization attempt. A failed attempt
    leaves no pool behind, so the next call tries again.
    """
    global _pool_lock  # noqa: PLW0603

    if _pool is not None:
        return _pool

    if _pool_lock is None:
        _pool_lock = asyncio.Lock()
    async with _pool_lock:
        if _pool is None:
            logger.info("Database pool missing, retrying initialization")
            await init_database_pool()
    return get_database_pool()


async def close_database_pool() -> None:
    """Close the pool if it was created."""
    global _pool  # noqa: PLW0603

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Database connection pool closed")


def get_database_pool() -> Pool:
    """Get the database connection pool.

    Raises:
        RuntimeError: If pool is not initialized.
    """
    if _pool is None:
        msg = "Database pool not initialized. Call init_database_pool() first."
        raise RuntimeError(msg)
    return _pool


async def check_database_health() -> dict[str, str]:
    """Report the database status for the readiness check."""
    if _pool is None:
        return {"database": "not_initialized"}

    try:
        async with _pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
        logger.warning("Database health check failed", error=repr(e))
        return {"database": "unhealthy"}
    except Exception:
        logger.exception("Unexpected error during database health check")
        return {"database": "unhealthy"}
    return {"database": "healthy"}
