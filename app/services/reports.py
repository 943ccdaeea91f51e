"""Field report service functions."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

REPORT_TYPES = ("incident", "routine", "final")
REPORT_PRIORITIES = ("low", "normal", "high", "critical")
REPORT_STATUSES = ("submitted", "reviewed", "resolved")

JSON_FIELDS = ("metadata", "attachments")

REPORT_SELECT = """
    SELECT r.*,
           u.username, u.first_name, u.last_name, u.observer_id,
           ps.name AS station_name, ps.station_code,
           p.name AS parish_name
    FROM reports r
    JOIN users u ON u.id = r.user_id
    LEFT JOIN polling_stations ps ON ps.id = r.station_id
    LEFT JOIN parishes p ON p.id = ps.parish_id
"""


async def create_report(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    type: str,
    title: str,
    description: str,
    priority: str = "normal",
    station_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    attachments: list[Any] | None = None,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO reports (
            user_id, station_id, type, title, description, priority, metadata, attachments
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        RETURNING *
        """,
        str(user_id),
        str(station_id) if station_id else None,
        type,
        title,
        description,
        priority,
        json.dumps(metadata or {}),
        json.dumps(attachments or []),
    )
    return parse_row(result, JSON_FIELDS)


async def get_report(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, report_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        f"{REPORT_SELECT} WHERE r.id = $1 AND r.deleted = FALSE", str(report_id)
    )
    return parse_row(result, JSON_FIELDS)


async def list_reports(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID | None = None,
    station_id: UUID | None = None,
    type: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List reports. ``user_id`` restricts the result to one observer's reports."""
    where = ["r.deleted = FALSE"]
    params: list[Any] = []
    param_num = 1

    filters = {
        "r.user_id": str(user_id) if user_id else None,
        "r.station_id": str(station_id) if station_id else None,
        "r.type": type,
        "r.status": status,
        "r.priority": priority,
    }
    for column, value in filters.items():
        if value is not None:
            where.append(f"{column} = ${param_num}")
            params.append(value)
            param_num += 1

    where_sql = " AND ".join(where)
    rows = await conn.fetch(
        f"""
        {REPORT_SELECT}
        WHERE {where_sql}
        ORDER BY r.created_at DESC
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
        limit,
        offset,
    )
    total = await conn.fetchval(f"SELECT COUNT(*) FROM reports r WHERE {where_sql}", *params)
    return parse_rows(rows, JSON_FIELDS), int(total or 0)


async def update_report_status(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, report_id: UUID, status: str, reviewed_by: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        UPDATE reports
        SET status = $1, reviewed_by = $2, reviewed_at = CURRENT_TIMESTAMP,
            updated_at = CURRENT_TIMESTAMP
        WHERE id = $3 AND deleted = FALSE
        RETURNING *
        """,
        status,
        str(reviewed_by),
        str(report_id),
    )
    return parse_row(result, JSON_FIELDS)


async def delete_report(conn: asyncpg.Connection, report_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute(
        """
        UPDATE reports SET deleted = TRUE, updated_at = CURRENT_TIMESTAMP
        WHERE id = $1 AND deleted = FALSE
        """,
        str(report_id),
    )
    return rows_affected(result) > 0
