"""asyncpg connection pool for the record store.

The pool is created once at app startup and drained at shutdown.  Every
transaction acquires a connection with ``async with`` so that it is released
(and rolled back on error) on every exit path.

JSONB columns are transparently encoded/decoded as Python objects by a
per-connection type codec, so callers pass dicts and lists directly.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from importlib import resources
from typing import AsyncGenerator

import asyncpg

from healthsync.config import Settings, get_settings

logger = logging.getLogger("healthsync.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None

# Errors that mean "the database cannot be reached", as opposed to a
# statement-level failure such as a constraint violation.
CONNECTIVITY_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncpg.InterfaceError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
)


class StorageUnavailableError(RuntimeError):
    """Raised when the record store cannot be reached."""


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
        init=_init_connection,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise StorageUnavailableError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def connection(pool: asyncpg.Pool) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a pooled connection for read-only work."""
    try:
        async with pool.acquire() as conn:
            yield conn
    except CONNECTIVITY_ERRORS as exc:
        logger.error("Database unreachable: %s", exc)
        raise StorageUnavailableError(str(exc)) from exc


@asynccontextmanager
async def transaction(pool: asyncpg.Pool) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a pooled connection and open a transaction on it.

    Usage::

        async with transaction(pool) as conn:
            await conn.execute("DELETE FROM users WHERE id = $1", owner)

    Connectivity failures surface as ``StorageUnavailableError``; statement
    errors (``asyncpg.PostgresError``) propagate unchanged after rollback.
    """
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn
    except CONNECTIVITY_ERRORS as exc:
        logger.error("Database unreachable: %s", exc)
        raise StorageUnavailableError(str(exc)) from exc


def load_schema_sql() -> str:
    """Return the bundled DDL for the record store."""
    return resources.files("healthsync.store").joinpath("schema.sql").read_text("utf-8")


async def apply_schema(pool: asyncpg.Pool) -> None:
    """Create all tables and indexes if they do not already exist."""
    ddl = load_schema_sql()
    async with transaction(pool) as conn:
        await conn.execute(ddl)
    logger.info("Record store schema applied")
