"""Observer assignment service functions."""

from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

ASSIGNMENT_TYPES = ("indoor", "roving")
ASSIGNMENT_STATUSES = ("active", "completed", "cancelled")

ASSIGNMENT_SELECT = """
    SELECT a.*,
           ps.name AS station_name, ps.station_code, ps.address AS station_address,
           ps.latitude AS station_latitude, ps.longitude AS station_longitude,
           u.username, u.first_name, u.last_name, u.observer_id
    FROM assignments a
    JOIN polling_stations ps ON ps.id = a.station_id
    JOIN users u ON u.id = a.user_id
"""


async def has_overlapping_assignment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    station_id: UUID,
    start_date: datetime,
    end_date: datetime,
    exclude_id: UUID | None = None,
) -> bool:
    """True if the user already holds an active assignment at the station in the window."""
    return bool(
        await conn.fetchval(
            """
            SELECT EXISTS(
                SELECT 1 FROM assignments
                WHERE user_id = $1 AND station_id = $2 AND status = 'active'
                  AND start_date < $4 AND end_date > $3
                  AND ($5::uuid IS NULL OR id <> $5::uuid)
            )
            """,
            str(user_id),
            str(station_id),
            start_date,
            end_date,
            str(exclude_id) if exclude_id else None,
        )
    )


async def create_assignment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    station_id: UUID,
    start_date: datetime,
    end_date: datetime,
    assignment_type: str = "indoor",
    notes: str | None = None,
    assigned_by: UUID | None = None,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO assignments (
            user_id, station_id, assignment_type, start_date, end_date, notes, assigned_by
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING *
        """,
        str(user_id),
        str(station_id),
        assignment_type,
        start_date,
        end_date,
        notes,
        str(assigned_by) if assigned_by else None,
    )
    return parse_row(result)


async def get_assignment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, assignment_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(f"{ASSIGNMENT_SELECT} WHERE a.id = $1", str(assignment_id))
    return parse_row(result)


async def list_assignments(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID | None = None,
    station_id: UUID | None = None,
    status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    where = ["TRUE"]
    params: list[Any] = []
    param_num = 1

    if user_id:
        where.append(f"a.user_id = ${param_num}")
        params.append(str(user_id))
        param_num += 1

    if station_id:
        where.append(f"a.station_id = ${param_num}")
        params.append(str(station_id))
        param_num += 1

    if status:
        where.append(f"a.status = ${param_num}")
        params.append(status)
        param_num += 1

    where_sql = " AND ".join(where)
    rows = await conn.fetch(
        f"""
        {ASSIGNMENT_SELECT}
        WHERE {where_sql}
        ORDER BY a.start_date DESC
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
        limit,
        offset,
    )
    total = await conn.fetchval(f"SELECT COUNT(*) FROM assignments a WHERE {where_sql}", *params)
    return parse_rows(rows), int(total or 0)


async def update_assignment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, assignment_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets = []
    params: list[Any] = []
    param_num = 1

    for field in ("assignment_type", "start_date", "end_date", "status", "notes"):
        if field in updates:
            sets.append(f"{field} = ${param_num}")
            params.append(updates[field])
            param_num += 1

    if not sets:
        return await get_assignment(conn, assignment_id)

    sets.append("updated_at = CURRENT_TIMESTAMP")
    params.append(str(assignment_id))

    result = await conn.fetchrow(
        f"""
        UPDATE assignments
        SET {", ".join(sets)}
        WHERE id = ${param_num}
        RETURNING *
        """,
        *params,
    )
    return parse_row(result)


async def delete_assignment(conn: asyncpg.Connection, assignment_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM assignments WHERE id = $1", str(assignment_id))
    return rows_affected(result) > 0
