"""
Async database access using asyncpg (no ORM).

Service modules receive an ``asyncpg.Connection`` and issue parameterized SQL
directly. Rows are handed back to the API layer as plain dictionaries.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable
from uuid import UUID

import asyncpg

from app.core.config import Settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Global connection pool
_pool: asyncpg.Pool | None = None


async def init_db_pool(settings: Settings):
    """
    Initialize database connection pool on startup.

    Call this in the FastAPI lifespan event.
    """
    global _pool
    _pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL,
        min_size=5,
        max_size=30,
        max_queries=50000,
        max_inactive_connection_lifetime=300,
        timeout=30,
        command_timeout=60,
    )
    logger.info(
        f"Database pool initialized: {_pool.get_size()} / {_pool.get_max_size()} connections"
    )


async def close_db_pool():
    """Close database connection pool on shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool | None:
    return _pool


@asynccontextmanager
async def get_db_connection():
    """
    Get a database connection from the pool.

    Usage:
        async with get_db_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
    """
    if not _pool:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")

    async with _pool.acquire() as connection:
        yield connection


async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """FastAPI dependency yielding a pooled connection."""
    if not _pool:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")

    async with _pool.acquire() as connection:
        yield connection


def parse_row(
    record: asyncpg.Record | dict | None, json_fields: Iterable[str] = ()
) -> dict[str, Any] | None:
    """
    Convert a record to a dict with string UUIDs and decoded JSONB columns.

    asyncpg returns JSONB as text unless a codec is registered, so the caller
    names the columns that should be decoded.
    """
    if record is None:
        return None

    data = dict(record)
    for key, value in data.items():
        if isinstance(value, UUID):
            data[key] = str(value)
    for field in json_fields:
        value = data.get(field)
        if isinstance(value, str):
            try:
                data[field] = json.loads(value)
            except json.JSONDecodeError:
                logger.warning(f"Column {field} holds invalid JSON, returning raw text")
    return data


def parse_rows(
    records: Iterable[asyncpg.Record], json_fields: Iterable[str] = ()
) -> list[dict[str, Any]]:
    fields = tuple(json_fields)
    return [parse_row(record, fields) for record in records]


def rows_affected(status: str) -> int:
    """Extract the row count from a command status such as ``UPDATE 1``."""
    try:
        return int(status.split()[-1])
    except (ValueError, IndexError, AttributeError):
        return 0
