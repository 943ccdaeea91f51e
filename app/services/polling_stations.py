"""Polling station service functions."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

STATION_SELECT = """
    SELECT ps.*, p.name AS parish_name, p.code AS parish_code
    FROM polling_stations ps
    JOIN parishes p ON p.id = ps.parish_id
"""

UPDATABLE_FIELDS = (
    "station_code",
    "name",
    "address",
    "parish_id",
    "latitude",
    "longitude",
    "capacity",
    "is_active",
    "data_source",
)


async def create_station(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    station_code: str,
    name: str,
    address: str,
    parish_id: UUID,
    latitude: float | None = None,
    longitude: float | None = None,
    capacity: int | None = None,
    is_active: bool = True,
    data_source: str = "manual",
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO polling_stations (
            station_code, name, address, parish_id, latitude, longitude,
            capacity, is_active, data_source
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING *
        """,
        station_code,
        name,
        address,
        str(parish_id),
        latitude,
        longitude,
        capacity,
        is_active,
        data_source,
    )
    return parse_row(result)


async def get_station(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, station_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        f"{STATION_SELECT} WHERE ps.id = $1 AND ps.deleted = FALSE", str(station_id)
    )
    return parse_row(result)


async def station_code_exists(conn: asyncpg.Connection, station_code: str) -> bool:  # type: ignore[no-any-unimported]
    return bool(
        await conn.fetchval(
            "SELECT EXISTS(SELECT 1 FROM polling_stations WHERE station_code = $1)",
            station_code,
        )
    )


async def list_stations(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    parish_id: UUID | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List stations ordered by station code."""
    where = ["ps.deleted = FALSE"]
    params: list[Any] = []
    param_num = 1

    if parish_id:
        where.append(f"ps.parish_id = ${param_num}")
        params.append(str(parish_id))
        param_num += 1

    if is_active is not None:
        where.append(f"ps.is_active = ${param_num}")
        params.append(is_active)
        param_num += 1

    if search:
        where.append(
            f"(ps.name ILIKE ${param_num} OR ps.station_code ILIKE ${param_num}"
            f" OR ps.address ILIKE ${param_num})"
        )
        params.append(f"%{search}%")
        param_num += 1

    where_sql = " AND ".join(where)
    rows = await conn.fetch(
        f"""
        {STATION_SELECT}
        WHERE {where_sql}
        ORDER BY ps.station_code
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
        limit,
        offset,
    )
    total = await conn.fetchval(
        f"SELECT COUNT(*) FROM polling_stations ps WHERE {where_sql}", *params
    )
    return parse_rows(rows), int(total or 0)


async def list_geocoded_stations(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, limit: int = 50
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        f"""
        {STATION_SELECT}
        WHERE ps.deleted = FALSE AND ps.is_active = TRUE
          AND ps.latitude IS NOT NULL AND ps.longitude IS NOT NULL
        ORDER BY ps.station_code
        LIMIT $1
        """,
        limit,
    )
    return parse_rows(rows)


async def list_stations_missing_coordinates(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, limit: int = 100
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        f"""
        {STATION_SELECT}
        WHERE ps.deleted = FALSE AND (ps.latitude IS NULL OR ps.longitude IS NULL)
        ORDER BY ps.station_code
        LIMIT $1
        """,
        limit,
    )
    return parse_rows(rows)


async def update_station(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, station_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets = []
    params: list[Any] = []
    param_num = 1

    for field in UPDATABLE_FIELDS:
        if field in updates:
            value = updates[field]
            if isinstance(value, UUID):
                value = str(value)
            sets.append(f"{field} = ${param_num}")
            params.append(value)
            param_num += 1

    if not sets:
        return await get_station(conn, station_id)

    sets.append("updated_at = CURRENT_TIMESTAMP")
    params.append(str(station_id))

    result = await conn.fetchrow(
        f"""
        UPDATE polling_stations
        SET {", ".join(sets)}
        WHERE id = ${param_num} AND deleted = FALSE
        RETURNING *
        """,
        *params,
    )
    return parse_row(result)


async def set_station_coordinates(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, station_id: UUID, latitude: float, longitude: float
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        UPDATE polling_stations
        SET latitude = $1, longitude = $2, data_source = 'google_geocoding',
            geocoded_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
        WHERE id = $3 AND deleted = FALSE
        RETURNING *
        """,
        latitude,
        longitude,
        str(station_id),
    )
    return parse_row(result)


async def delete_station(conn: asyncpg.Connection, station_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    """Soft delete a polling station."""
    result = await conn.execute(
        """
        UPDATE polling_stations
        SET deleted = TRUE, is_active = FALSE, updated_at = CURRENT_TIMESTAMP
        WHERE id = $1 AND deleted = FALSE
        """,
        str(station_id),
    )
    return rows_affected(result) > 0
