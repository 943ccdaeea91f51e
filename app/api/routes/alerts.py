"""Alert routes for incident escalation and response tracking."""

# type: ignore

from datetime import UTC, datetime
from typing import Annotated, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.deps import require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, paginated_response, success_response
from app.services.alerts import (
    AlertStateError,
    acknowledge_alert,
    create_alert,
    escalate_alert,
    get_alert,
    list_alerts,
    list_real_time_alerts,
    resolve_alert,
)
from app.services.notifications import notify_staff

router = APIRouter(prefix="/alerts", tags=["Alerts"])
logger = get_logger(__name__)


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class AlertCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=5000)
    severity: Literal["low", "medium", "high", "critical"] = "medium"
    category: str = Field("general", max_length=50)
    parish: Optional[str] = Field(None, max_length=100)
    polling_station_id: Optional[UUID] = None
    coordinates: Optional[Coordinates] = None
    channels: list[str] = Field(default_factory=list)
    recipients: list[str] = Field(default_factory=list)
    related_report_id: Optional[UUID] = None


def _state_error(e: AlertStateError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


async def _load(conn: asyncpg.Connection, alert_id: UUID) -> dict:
    alert = await get_alert(conn, alert_id)
    if not alert:
        raise not_found_response("Alert")
    return alert


@router.post("", status_code=status.HTTP_201_CREATED)
async def raise_alert(
    request: AlertCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Raise an alert. High and critical alerts notify every coordinator and admin.

    **Request Body:**
    ```json
    {
        "title": "Crowd gathering outside station",
        "description": "...",
        "severity": "high",
        "category": "security",
        "parish": "St. Catherine"
    }
    ```
    """
    try:
        async with conn.transaction():
            alert = await create_alert(
                conn,
                title=request.title,
                description=request.description,
                severity=request.severity,
                category=request.category,
                parish=request.parish,
                polling_station_id=request.polling_station_id,
                coordinates=request.coordinates.model_dump() if request.coordinates else None,
                channels=request.channels,
                recipients=request.recipients,
                created_by=UUID(str(current_user["id"])),
                related_report_id=request.related_report_id,
            )
            if request.severity in ("high", "critical"):
                await notify_staff(
                    conn,
                    notification_type="alert",
                    title=alert["title"],
                    message=f"{request.severity.capitalize()} alert raised",
                    data={"alert_id": alert["id"]},
                )

        logger.info(f"Alert {alert['id']} raised with severity {request.severity}")
        return success_response(data=alert, message="Alert created successfully")

    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Polling station or report")


@router.get("")
async def list_all_alerts(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    status_filter: Optional[str] = Query(None, alias="status"),
    severity: Optional[str] = None,
    category: Optional[str] = None,
    parish: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    alerts, total = await list_alerts(
        conn,
        status=status_filter,
        severity=severity,
        category=category,
        parish=parish,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return paginated_response(items=alerts, page=page, limit=limit, total=total)


@router.get("/real-time")
async def real_time_alerts(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    limit: int = Query(50, ge=1, le=200),
):
    """Active and escalated alerts, newest first."""
    return success_response(data=await list_real_time_alerts(conn, limit=limit))


@router.get("/{alert_id}")
async def get_alert_details(
    alert_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=await _load(conn, alert_id))


@router.post("/{alert_id}/acknowledge")
async def acknowledge(
    alert_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    alert = await _load(conn, alert_id)
    try:
        updated = await acknowledge_alert(conn, alert, UUID(str(current_user["id"])))
    except AlertStateError as e:
        raise _state_error(e)
    return success_response(data=updated, message="Alert acknowledged")


@router.post("/{alert_id}/resolve")
async def resolve(
    alert_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Resolve an alert; response time is the minutes since it was raised."""
    alert = await _load(conn, alert_id)
    try:
        updated = await resolve_alert(
            conn, alert, UUID(str(current_user["id"])), datetime.now(UTC)
        )
    except AlertStateError as e:
        raise _state_error(e)
    return success_response(data=updated, message="Alert resolved")


@router.post("/{alert_id}/escalate")
async def escalate(
    alert_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Raise the escalation level by one, up to 5."""
    alert = await _load(conn, alert_id)
    try:
        updated = await escalate_alert(conn, alert)
    except AlertStateError as e:
        raise _state_error(e)

    logger.warning(f"Alert {alert_id} escalated to level {updated['escalation_level']}")
    return success_response(data=updated, message="Alert escalated")
