"""Field report routes."""

# type: ignore

from datetime import datetime
from typing import Annotated, Any, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, field_validator

from app.api.deps import ROLE_ADMIN, get_current_user, is_staff, require_admin, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import (
    forbidden_response,
    not_found_response,
    paginated_response,
    success_response,
)
from app.core.validation import sanitize_string
from app.services.alerts import create_alert
from app.services.audit import AuditAction, create_audit_log
from app.services.notifications import notify_staff
from app.services.polling_stations import get_station
from app.services.reports import (
    create_report,
    delete_report,
    get_report,
    list_reports,
    update_report_status,
)
from app.utils.csv_export import reports_to_csv

router = APIRouter(prefix="/reports", tags=["Reports"])
logger = get_logger(__name__)

EXPORT_LIMIT = 10000


class ReportCreateRequest(BaseModel):
    type: Literal["incident", "routine", "final"]
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=10000)
    priority: Literal["low", "normal", "high", "critical"] = "normal"
    station_id: Optional[UUID] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    attachments: list[Any] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, v: str) -> str:
        return sanitize_string(v, max_length=255)


class ReportStatusRequest(BaseModel):
    status: Literal["submitted", "reviewed", "resolved"]


async def _raise_incident_alert(
    conn: asyncpg.Connection, report: dict, station: Optional[dict], user: dict
) -> dict:
    alert = await create_alert(
        conn,
        title=f"Critical incident: {report['title']}",
        description=report["description"],
        severity="critical",
        category="incident",
        parish=station.get("parish_name") if station else None,
        polling_station_id=UUID(str(station["id"])) if station else None,
        coordinates={"latitude": station["latitude"], "longitude": station["longitude"]}
        if station and station.get("latitude") is not None
        else None,
        created_by=UUID(str(user["id"])),
        related_report_id=UUID(str(report["id"])),
    )
    await notify_staff(
        conn,
        notification_type="alert",
        title=alert["title"],
        message=f"Reported by observer {user.get('observer_id') or user['username']}",
        data={"alert_id": str(alert["id"]), "report_id": str(report["id"])},
    )
    return alert


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_report(
    request: ReportCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Submit a field report.

    A `critical` report also raises an incident alert and notifies
    coordinators and admins.

    **Request Body:**
    ```json
    {
        "type": "incident",
        "title": "Ballot box removed",
        "description": "...",
        "priority": "critical",
        "station_id": "...",
        "metadata": {"incidentType": "tampering"}
    }
    ```
    """
    try:
        station = None
        if request.station_id:
            station = await get_station(conn, request.station_id)
            if not station:
                raise not_found_response("Polling station")

        async with conn.transaction():
            report = await create_report(
                conn,
                user_id=UUID(str(current_user["id"])),
                type=request.type,
                title=request.title,
                description=request.description,
                priority=request.priority,
                station_id=request.station_id,
                metadata=request.metadata,
                attachments=request.attachments,
            )

            alert = None
            if request.priority == "critical":
                alert = await _raise_incident_alert(conn, report, station, current_user)
                logger.warning(f"Critical report {report['id']} raised alert {alert['id']}")

        return success_response(
            data={**report, "alert_id": alert["id"] if alert else None},
            message="Report submitted successfully",
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to submit report: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit report",
        )


@router.get("")
async def list_all_reports(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    type: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    station_id: Optional[UUID] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    """Admins and coordinators see every report; observers see their own."""
    reports, total = await list_reports(
        conn,
        user_id=None if is_staff(current_user) else UUID(str(current_user["id"])),
        station_id=station_id,
        type=type,
        status=status_filter,
        priority=priority,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return paginated_response(items=reports, page=page, limit=limit, total=total)


@router.get("/export")
async def export_reports(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
    type: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    station_id: Optional[UUID] = None,
):
    """Download reports as CSV, one column per flattened metadata key (admin only)."""
    reports, total = await list_reports(
        conn,
        station_id=station_id,
        type=type,
        status=status_filter,
        priority=priority,
        limit=EXPORT_LIMIT,
    )
    await create_audit_log(
        conn,
        action_type=AuditAction.REPORTS_EXPORTED,
        user_id=current_user["id"],
        resource_type="report",
        details={"count": len(reports), "total": total, "format": "csv"},
    )

    filename = f"reports_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"
    return StreamingResponse(
        iter([reports_to_csv(reports)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{report_id}")
async def get_report_details(
    report_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    report = await get_report(conn, report_id)
    # Observers cannot learn whether someone else's report exists
    if not report or (
        not is_staff(current_user) and str(report["user_id"]) != str(current_user["id"])
    ):
        raise not_found_response("Report")
    return success_response(data=report)


@router.put("/{report_id}/status")
async def change_report_status(
    report_id: UUID,
    request: ReportStatusRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    report = await update_report_status(
        conn, report_id, request.status, UUID(str(current_user["id"]))
    )
    if not report:
        raise not_found_response("Report")

    await create_audit_log(
        conn,
        action_type=AuditAction.REPORT_STATUS_CHANGED,
        user_id=current_user["id"],
        resource_type="report",
        resource_id=report_id,
        details={"status": request.status},
    )
    return success_response(data=report, message="Report status updated")


@router.delete("/{report_id}")
async def remove_report(
    report_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Soft delete a report. Only its author or an admin may delete it."""
    report = await get_report(conn, report_id)
    if not report:
        raise not_found_response("Report")
    if current_user.get("role") != ROLE_ADMIN and str(report["user_id"]) != str(
        current_user["id"]
    ):
        raise forbidden_response("You can only delete your own reports")

    await delete_report(conn, report_id)
    return success_response(message="Report deleted successfully")
