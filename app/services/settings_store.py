"""Runtime settings stored in the database."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows


async def get_setting(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, key: str
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM settings WHERE key = $1", key)
    return parse_row(result)


async def get_setting_value(conn: asyncpg.Connection, key: str) -> str | None:  # type: ignore[no-any-unimported]
    """Return the stored value for ``key``, or None when unset or blank."""
    value = await conn.fetchval("SELECT value FROM settings WHERE key = $1", key)
    return value or None


async def list_settings(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, public_only: bool = False
) -> list[dict[str, Any]]:
    where = "WHERE is_public = TRUE" if public_only else ""
    rows = await conn.fetch(f"SELECT * FROM settings {where} ORDER BY category, key")
    return parse_rows(rows)


async def upsert_setting(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    key: str,
    value: str | None,
    updated_by: UUID,
    category: str = "api",
    description: str | None = None,
    is_public: bool = False,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO settings (key, value, category, description, is_public, updated_by)
        VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (key) DO UPDATE
        SET value = EXCLUDED.value,
            category = EXCLUDED.category,
            description = COALESCE(EXCLUDED.description, settings.description),
            is_public = EXCLUDED.is_public,
            updated_by = EXCLUDED.updated_by,
            updated_at = CURRENT_TIMESTAMP
        RETURNING *
        """,
        key,
        value,
        category,
        description,
        is_public,
        str(updated_by),
    )
    return parse_row(result)
