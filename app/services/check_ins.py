"""Observer check-in service functions."""

from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows
from app.utils.geo import haversine_meters

CHECK_IN_SELECT = """
    SELECT c.*, ps.name AS station_name, ps.station_code
    FROM check_ins c
    JOIN polling_stations ps ON ps.id = c.station_id
"""


def distance_to_station(
    station: dict[str, Any], latitude: float, longitude: float
) -> float | None:
    """Metres between a reported position and the station, if the station is geocoded."""
    if station.get("latitude") is None or station.get("longitude") is None:
        return None
    return round(
        haversine_meters(latitude, longitude, station["latitude"], station["longitude"]), 1
    )


async def create_check_in(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    station: dict[str, Any],
    latitude: float,
    longitude: float,
    radius_meters: int,
    notes: str | None = None,
) -> dict[str, Any] | None:
    """Record a check-in with its distance from the station."""
    distance = distance_to_station(station, latitude, longitude)
    within_radius = None if distance is None else distance <= radius_meters

    result = await conn.fetchrow(
        """
        INSERT INTO check_ins (
            user_id, station_id, latitude, longitude, distance_meters, within_radius, notes
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING *
        """,
        str(user_id),
        str(station["id"]),
        latitude,
        longitude,
        distance,
        within_radius,
        notes,
    )
    return parse_row(result)


async def list_user_check_ins(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID, limit: int = 50
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        f"{CHECK_IN_SELECT} WHERE c.user_id = $1 ORDER BY c.timestamp DESC LIMIT $2",
        str(user_id),
        limit,
    )
    return parse_rows(rows)


async def get_latest_check_in(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID
) -> dict[str, Any] | None:
    row = await conn.fetchrow(
        f"{CHECK_IN_SELECT} WHERE c.user_id = $1 ORDER BY c.timestamp DESC LIMIT 1",
        str(user_id),
    )
    return parse_row(row)


async def list_station_check_ins(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, station_id: UUID, limit: int = 100
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT c.*, u.username, u.first_name, u.last_name, u.observer_id
        FROM check_ins c
        JOIN users u ON u.id = c.user_id
        WHERE c.station_id = $1
        ORDER BY c.timestamp DESC
        LIMIT $2
        """,
        str(station_id),
        limit,
    )
    return parse_rows(rows)
