"""Operational analytics and usage event tracking routes."""

# type: ignore

from datetime import datetime
from typing import Annotated, Any, Optional

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from google.api_core.exceptions import GoogleAPIError
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_current_user, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import error_response, success_response
from app.services import event_tracking
from app.services.analytics import (
    get_dashboard_stats,
    get_parish_statistics,
    parish_comparison,
    parish_totals,
)

router = APIRouter(prefix="/analytics", tags=["Analytics"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["Analytics"])
logger = get_logger(__name__)


class EventLocation(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class EventRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_type: str = Field(..., min_length=1, max_length=100, alias="eventType")
    event_data: dict[str, Any] = Field(default_factory=dict, alias="eventData")
    session_id: Optional[str] = Field(None, max_length=255, alias="sessionId")
    device_fingerprint: Optional[str] = Field(None, max_length=255, alias="deviceFingerprint")
    location: Optional[EventLocation] = None


class EventReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    event_type: Optional[str] = Field(None, max_length=100, alias="eventType")
    user_id: Optional[str] = Field(None, max_length=100, alias="userId")
    limit: Optional[int] = Field(1000, ge=1, le=10000)


@dashboard_router.get("/stats")
async def dashboard_stats(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Headline numbers for the dashboard.

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "totalStations": 120,
            "activeObservers": 310,
            "reportsSubmitted": 58,
            "pendingAlerts": 2
        }
    }
    ```
    """
    return success_response(data=await get_dashboard_stats(conn))


@router.get("/parish-stats")
async def parish_stats(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Per-parish stations, observers, incidents, check-ins today and average traffic delay."""
    return success_response(data=await get_parish_statistics(conn))


@router.get("/parish-totals")
async def parish_stat_totals(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=parish_totals(await get_parish_statistics(conn)))


@router.get("/parish-comparison")
async def parish_stat_comparison(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=parish_comparison(await get_parish_statistics(conn)))


@router.post("/events")
async def track_event(
    request: EventRequest,
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Record a usage event for the current user.

    When BigQuery is not configured the event is accepted and dropped.
    """
    row = event_tracking.build_event_row(
        user_id=str(current_user["id"]),
        event_type=request.event_type,
        event_data=request.event_data,
        session_id=request.session_id,
        device_fingerprint=request.device_fingerprint,
        location=request.location.model_dump() if request.location else None,
    )
    try:
        tracked = await event_tracking.track_event(row)
    except (event_tracking.EventTrackingError, GoogleAPIError) as e:
        logger.error(f"Failed to track event {request.event_type}: {str(e)}")
        raise error_response(
            message="Failed to track event", status_code=status.HTTP_502_BAD_GATEWAY
        )
    return success_response(data={"tracked": tracked})


@router.get("/events/metrics")
async def event_metrics(
    current_user: Annotated[dict, Depends(require_staff)],
):
    try:
        metrics = await event_tracking.get_metrics()
    except GoogleAPIError as e:
        logger.error(f"Failed to load event metrics: {str(e)}")
        raise error_response(
            message="Failed to load event metrics", status_code=status.HTTP_502_BAD_GATEWAY
        )
    return success_response(data=metrics)


@router.post("/events/report")
async def event_report(
    request: EventReportRequest,
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Events filtered by date range, type and user, newest first."""
    if request.start_date and request.end_date and request.end_date < request.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="endDate must not be before startDate"
        )
    try:
        report = await event_tracking.run_custom_report(**request.model_dump())
    except GoogleAPIError as e:
        logger.error(f"Failed to run event report: {str(e)}")
        raise error_response(
            message="Failed to generate report", status_code=status.HTTP_502_BAD_GATEWAY
        )
    return success_response(data=report)
