"""Parish reference data and lookups."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows
from app.core.logging_config import get_logger

logger = get_logger(__name__)

# The fourteen parishes of Jamaica with their three-letter codes
JAMAICA_PARISHES: list[tuple[str, str]] = [
    ("Kingston", "KGN"),
    ("St. Andrew", "STA"),
    ("St. Thomas", "STT"),
    ("Portland", "POR"),
    ("St. Mary", "STM"),
    ("St. Ann", "SAN"),
    ("Trelawny", "TRL"),
    ("St. James", "STJ"),
    ("Hanover", "HAN"),
    ("Westmoreland", "WML"),
    ("St. Elizabeth", "STE"),
    ("Manchester", "MAN"),
    ("Clarendon", "CLA"),
    ("St. Catherine", "STC"),
]

PARISH_NAMES: list[str] = [name for name, _ in JAMAICA_PARISHES]


async def seed_parishes(conn: asyncpg.Connection) -> int:  # type: ignore[no-any-unimported]
    """Insert the fourteen parishes. Existing codes are left alone."""
    await conn.executemany(
        """
        INSERT INTO parishes (name, code)
        VALUES ($1, $2)
        ON CONFLICT (code) DO NOTHING
        """,
        JAMAICA_PARISHES,
    )
    logger.info("Seeded parish reference data")
    return len(JAMAICA_PARISHES)


async def list_parishes(conn: asyncpg.Connection) -> list[dict[str, Any]]:  # type: ignore[no-any-unimported]
    """List parishes, seeding the table the first time it is read empty."""
    rows = await conn.fetch("SELECT * FROM parishes ORDER BY name")
    if not rows:
        await seed_parishes(conn)
        rows = await conn.fetch("SELECT * FROM parishes ORDER BY name")
    return parse_rows(rows)


async def get_parish(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, parish_id: UUID
) -> dict[str, Any] | None:
    row = await conn.fetchrow("SELECT * FROM parishes WHERE id = $1", str(parish_id))
    return parse_row(row)
