"""Polling station traffic routes."""

# type: ignore

from datetime import UTC, datetime
from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_current_user, require_staff
from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, service_unavailable_response, success_response
from app.services.geocoding import MapsKeyMissing, resolve_maps_api_key
from app.services.polling_stations import get_station, list_geocoded_stations
from app.services.traffic import (
    TrafficService,
    get_station_history,
    get_traffic_analytics,
    record_observation,
)

router = APIRouter(prefix="/traffic", tags=["Traffic"])
logger = get_logger(__name__)

DEFAULT_ORIGIN_NAME = "Half Way Tree, Kingston"


def _origin(origin_lat: Optional[float], origin_lng: Optional[float]) -> tuple[tuple[float, float], str, Optional[str]]:
    if (origin_lat is None) != (origin_lng is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="origin_lat and origin_lng must be given together",
        )
    if origin_lat is None:
        return (
            (settings.TRAFFIC_DEFAULT_ORIGIN_LAT, settings.TRAFFIC_DEFAULT_ORIGIN_LNG),
            "default",
            DEFAULT_ORIGIN_NAME,
        )
    return (origin_lat, origin_lng), "custom", None


async def _traffic_service(conn: asyncpg.Connection) -> TrafficService:
    try:
        api_key = await resolve_maps_api_key(conn)
    except MapsKeyMissing as e:
        raise service_unavailable_response(str(e))
    return TrafficService(api_key)


@router.get("/station/{station_id}")
async def station_traffic(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    origin_lat: Optional[float] = Query(None, ge=-90, le=90),
    origin_lng: Optional[float] = Query(None, ge=-180, le=180),
):
    """
    Current traffic from an origin to a polling station.

    Without an origin the default (Half Way Tree, Kingston) is used. The
    result is kept in the traffic history.
    """
    station = await get_station(conn, station_id)
    if not station:
        raise not_found_response("Polling station")
    if station.get("latitude") is None or station.get("longitude") is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Polling station has no coordinates",
        )

    origin, origin_type, origin_name = _origin(origin_lat, origin_lng)
    service = await _traffic_service(conn)
    async with service:
        route = await service.route_traffic(origin, (station["latitude"], station["longitude"]))

    await record_observation(
        conn, station, origin, route, datetime.now(UTC), origin_type=origin_type, origin_name=origin_name
    )
    return success_response(
        data={
            "station": {
                "id": station["id"],
                "name": station["name"],
                "station_code": station["station_code"],
            },
            "origin": {"latitude": origin[0], "longitude": origin[1], "name": origin_name},
            "traffic": route,
        }
    )


@router.get("/all-stations")
async def all_stations_traffic(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    limit: int = Query(20, ge=1, le=100),
    origin_lat: Optional[float] = Query(None, ge=-90, le=90),
    origin_lng: Optional[float] = Query(None, ge=-180, le=180),
):
    """Current conditions to every active geocoded station, each recorded in history."""
    origin, origin_type, origin_name = _origin(origin_lat, origin_lng)
    stations = await list_geocoded_stations(conn, limit=limit)
    observed_at = datetime.now(UTC)

    results = []
    service = await _traffic_service(conn)
    async with service:
        for station in stations:
            route = await service.route_traffic(
                origin, (station["latitude"], station["longitude"])
            )
            await record_observation(
                conn,
                station,
                origin,
                route,
                observed_at,
                origin_type=origin_type,
                origin_name=origin_name,
            )
            results.append(
                {
                    "stationId": station["id"],
                    "stationName": station["name"],
                    "stationCode": station["station_code"],
                    "parish": station.get("parish_name"),
                    "traffic": route,
                }
            )

    logger.info(f"Traffic refreshed for {len(results)} stations")
    return success_response(
        data={
            "origin": {"latitude": origin[0], "longitude": origin[1], "name": origin_name},
            "stations": results,
            "timestamp": observed_at.isoformat(),
        }
    )


@router.get("/history/{station_id}")
async def station_history(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    days: int = Query(7, ge=1, le=90),
):
    return success_response(data=await get_station_history(conn, station_id, days=days))


@router.get("/analytics")
async def traffic_analytics(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Average delay and speed by hour of day and day of week (Sunday = 0), plus severity counts."""
    return success_response(data=await get_traffic_analytics(conn))
