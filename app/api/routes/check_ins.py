"""Polling station check-in routes."""

# type: ignore

from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from app.api.deps import get_current_user, require_staff
from app.core.config import settings
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.services.check_ins import (
    create_check_in,
    get_latest_check_in,
    list_station_check_ins,
    list_user_check_ins,
)
from app.services.polling_stations import get_station

router = APIRouter(prefix="/check-ins", tags=["Check-ins"])
logger = get_logger(__name__)


class CheckInRequest(BaseModel):
    station_id: UUID
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    notes: Optional[str] = Field(None, max_length=1000)


@router.post("", status_code=status.HTTP_201_CREATED)
async def check_in(
    request: CheckInRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Check in at a polling station.

    The distance to the station is stored with the check-in. `warning` is set
    when the observer is farther than the allowed radius.

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "check_in": {"id": "...", "distance_meters": 42.7, "within_radius": true},
            "warning": null
        }
    }
    ```
    """
    station = await get_station(conn, request.station_id)
    if not station:
        raise not_found_response("Polling station")

    record = await create_check_in(
        conn,
        user_id=UUID(str(current_user["id"])),
        station=station,
        latitude=request.latitude,
        longitude=request.longitude,
        radius_meters=settings.CHECK_IN_RADIUS_METERS,
        notes=request.notes,
    )

    warning = None
    if record.get("within_radius") is False:
        warning = (
            f"You are {record['distance_meters']:.0f}m from {station['name']}, outside the "
            f"{settings.CHECK_IN_RADIUS_METERS}m check-in radius"
        )
        logger.warning(
            f"Check-in outside radius: user {current_user['id']} at station "
            f"{station['station_code']} ({record['distance_meters']}m)"
        )

    return success_response(
        data={"check_in": record, "warning": warning}, message="Checked in successfully"
    )


@router.get("/user")
async def my_check_ins(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    limit: int = Query(50, ge=1, le=500),
):
    return success_response(
        data=await list_user_check_ins(conn, UUID(str(current_user["id"])), limit=limit)
    )


@router.get("/latest")
async def my_latest_check_in(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """The caller's most recent check-in, or null."""
    return success_response(data=await get_latest_check_in(conn, UUID(str(current_user["id"]))))


@router.get("/station/{station_id}")
async def station_check_ins(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    limit: int = Query(100, ge=1, le=1000),
):
    return success_response(data=await list_station_check_ins(conn, station_id, limit=limit))
