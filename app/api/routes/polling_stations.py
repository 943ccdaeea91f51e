"""Polling station routes."""

# type: ignore

from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import get_current_user, require_admin
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import (
    not_found_response,
    paginated_response,
    service_unavailable_response,
    success_response,
)
from app.core.validation import sanitize_string
from app.services.geocoding import GeocodingService, MapsKeyMissing, resolve_maps_api_key
from app.services.polling_stations import (
    create_station,
    delete_station,
    get_station,
    list_stations,
    list_stations_missing_coordinates,
    set_station_coordinates,
    station_code_exists,
    update_station,
)

router = APIRouter(prefix="/polling-stations", tags=["Polling Stations"])
logger = get_logger(__name__)


class StationCreateRequest(BaseModel):
    station_code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    parish_id: UUID
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    capacity: Optional[int] = Field(None, ge=0)
    is_active: bool = True

    @field_validator("station_code", "name", "address")
    @classmethod
    def sanitize_field(cls, v: str) -> str:
        return sanitize_string(v, max_length=500)


class StationUpdateRequest(BaseModel):
    station_code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    parish_id: Optional[UUID] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    capacity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class BatchGeocodeRequest(BaseModel):
    """Stations to geocode; when omitted, stations without coordinates are used."""

    station_ids: Optional[list[UUID]] = None
    limit: int = Field(100, ge=1, le=500)


async def _geocoding_service(conn: asyncpg.Connection) -> GeocodingService:
    try:
        api_key = await resolve_maps_api_key(conn)
    except MapsKeyMissing as e:
        raise service_unavailable_response(str(e))
    return GeocodingService(api_key)


@router.get("")
async def list_polling_stations(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    parish_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
):
    """List stations ordered by station code. `search` matches name, code or address."""
    stations, total = await list_stations(
        conn,
        parish_id=parish_id,
        is_active=is_active,
        search=sanitize_string(search, max_length=100) if search else None,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return paginated_response(items=stations, page=page, limit=limit, total=total)


@router.post("/batch-geocode")
async def batch_geocode_stations(
    request: BatchGeocodeRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Geocode several stations and store their coordinates (admin only).

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "processed": 12,
            "successful": 10,
            "failed": 2,
            "results": [{"id": "...", "success": true, "latitude": 18.01, "longitude": -76.79}]
        }
    }
    ```
    """
    if request.station_ids:
        stations = [
            station
            for station in [await get_station(conn, sid) for sid in request.station_ids]
            if station
        ]
    else:
        stations = await list_stations_missing_coordinates(conn, limit=request.limit)

    service = await _geocoding_service(conn)
    try:
        async with service:
            geocoded = await service.batch_geocode(
                [
                    {"id": s["id"], "address": s["address"], "parish": s.get("parish_name")}
                    for s in stations
                ]
            )

        results = []
        for item in geocoded:
            result = item["result"]
            if result["success"]:
                await set_station_coordinates(
                    conn,
                    UUID(str(item["id"])),
                    result["data"]["latitude"],
                    result["data"]["longitude"],
                )
                results.append(
                    {
                        "id": str(item["id"]),
                        "success": True,
                        "latitude": result["data"]["latitude"],
                        "longitude": result["data"]["longitude"],
                    }
                )
            else:
                results.append({"id": str(item["id"]), "success": False, "error": result["error"]})

        successful = sum(1 for r in results if r["success"])
        logger.info(f"Batch geocoding: {successful}/{len(results)} stations geocoded")
        return success_response(
            data={
                "processed": len(results),
                "successful": successful,
                "failed": len(results) - successful,
                "results": results,
            }
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Batch geocoding failed: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to geocode polling stations",
        )


@router.get("/{station_id}")
async def get_polling_station(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    station = await get_station(conn, station_id)
    if not station:
        raise not_found_response("Polling station")
    return success_response(data=station)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_polling_station(
    request: StationCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Create a polling station (admin only).

    **Request Body:**
    ```json
    {
        "station_code": "KGN-001",
        "name": "Kingston College",
        "address": "2B North Street",
        "parish_id": "..."
    }
    ```
    """
    try:
        if await station_code_exists(conn, request.station_code):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Station code {request.station_code} already exists",
            )

        station = await create_station(
            conn,
            station_code=request.station_code,
            name=request.name,
            address=request.address,
            parish_id=request.parish_id,
            latitude=request.latitude,
            longitude=request.longitude,
            capacity=request.capacity,
            is_active=request.is_active,
        )
        logger.info(f"Polling station {request.station_code} created by {current_user['username']}")
        return success_response(data=station, message="Polling station created successfully")

    except HTTPException:
        raise
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Parish")
    except Exception as e:
        logger.error(f"Failed to create polling station: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create polling station",
        )


@router.put("/{station_id}")
async def update_polling_station(
    station_id: UUID,
    request: StationUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    try:
        station = await update_station(conn, station_id, updates)
    except asyncpg.UniqueViolationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Station code {updates.get('station_code')} already exists",
        )
    if not station:
        raise not_found_response("Polling station")
    return success_response(data=station, message="Polling station updated successfully")


@router.delete("/{station_id}")
async def delete_polling_station(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    if not await delete_station(conn, station_id):
        raise not_found_response("Polling station")
    return success_response(message="Polling station deleted successfully")


@router.post("/{station_id}/geocode")
async def geocode_station(
    station_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """Geocode a station's address and store the coordinates (admin only)."""
    station = await get_station(conn, station_id)
    if not station:
        raise not_found_response("Polling station")

    service = await _geocoding_service(conn)
    async with service:
        result = await service.geocode(station["address"], station.get("parish_name"))

    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])

    updated = await set_station_coordinates(
        conn, station_id, result["data"]["latitude"], result["data"]["longitude"]
    )
    return success_response(
        data={"station": updated, "geocoding": result["data"]},
        message="Polling station geocoded successfully",
    )
