"""Observer assignment routes."""

# type: ignore

from datetime import datetime
from typing import Annotated, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import get_current_user, is_staff, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import (
    forbidden_response,
    not_found_response,
    paginated_response,
    success_response,
)
from app.core.validation import ensure_aware
from app.services.assignments import (
    create_assignment,
    delete_assignment,
    get_assignment,
    has_overlapping_assignment,
    list_assignments,
    update_assignment,
)
from app.services.audit import AuditAction, create_audit_log
from app.services.notifications import create_notification

router = APIRouter(prefix="/assignments", tags=["Assignments"])
logger = get_logger(__name__)


class AssignmentCreateRequest(BaseModel):
    user_id: UUID
    station_id: UUID
    assignment_type: Literal["indoor", "roving"] = "indoor"
    start_date: datetime
    end_date: datetime
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_date", "end_date")
    @classmethod
    def attach_timezone(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class AssignmentUpdateRequest(BaseModel):
    assignment_type: Optional[Literal["indoor", "roving"]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[Literal["active", "completed", "cancelled"]] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("start_date", "end_date")
    @classmethod
    def attach_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_new_assignment(
    request: AssignmentCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Assign an observer to a polling station (admin or coordinator).

    **Request Body:**
    ```json
    {
        "user_id": "...",
        "station_id": "...",
        "assignment_type": "indoor",
        "start_date": "2025-09-03T06:00:00-05:00",
        "end_date": "2025-09-03T19:00:00-05:00"
    }
    ```
    """
    if request.end_date < request.start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )

    try:
        if await has_overlapping_assignment(
            conn, request.user_id, request.station_id, request.start_date, request.end_date
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Observer already has an active assignment at this station for that period",
            )

        assignment = await create_assignment(
            conn,
            user_id=request.user_id,
            station_id=request.station_id,
            start_date=request.start_date,
            end_date=request.end_date,
            assignment_type=request.assignment_type,
            notes=request.notes,
            assigned_by=UUID(str(current_user["id"])),
        )

        await create_audit_log(
            conn,
            action_type=AuditAction.ASSIGNMENT_CREATED,
            user_id=current_user["id"],
            resource_type="assignment",
            resource_id=assignment["id"],
            details={"observer": str(request.user_id), "station": str(request.station_id)},
        )
        await create_notification(
            conn,
            user_id=request.user_id,
            notification_type="assignment",
            title="New assignment",
            message=f"You have been assigned as a {request.assignment_type} observer.",
            data={"assignment_id": str(assignment["id"])},
        )

        return success_response(data=assignment, message="Assignment created successfully")

    except HTTPException:
        raise
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Observer or polling station")
    except Exception as e:
        logger.error(f"Failed to create assignment: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create assignment",
        )


@router.get("")
async def list_all_assignments(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    user_id: Optional[UUID] = None,
    station_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
):
    assignments, total = await list_assignments(
        conn,
        user_id=user_id,
        station_id=station_id,
        status=status_filter,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return paginated_response(items=assignments, page=page, limit=limit, total=total)


@router.get("/my")
async def list_my_assignments(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """The caller's assignments with station name and code."""
    assignments, _ = await list_assignments(
        conn, user_id=UUID(str(current_user["id"])), status=status_filter, limit=500
    )
    return success_response(data=assignments)


@router.get("/{assignment_id}")
async def get_assignment_details(
    assignment_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    assignment = await get_assignment(conn, assignment_id)
    if not assignment:
        raise not_found_response("Assignment")
    if not is_staff(current_user) and str(assignment["user_id"]) != str(current_user["id"]):
        raise forbidden_response("You can only view your own assignments")
    return success_response(data=assignment)


@router.put("/{assignment_id}")
async def update_existing_assignment(
    assignment_id: UUID,
    request: AssignmentUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    existing = await get_assignment(conn, assignment_id)
    if not existing:
        raise not_found_response("Assignment")

    start_date = ensure_aware(updates.get("start_date", existing["start_date"]))
    end_date = ensure_aware(updates.get("end_date", existing["end_date"]))
    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )

    if updates.get("status", existing["status"]) == "active" and await has_overlapping_assignment(
        conn,
        existing["user_id"],
        existing["station_id"],
        start_date,
        end_date,
        exclude_id=assignment_id,
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Observer already has an active assignment at this station for that period",
        )

    assignment = await update_assignment(conn, assignment_id, updates)
    await create_audit_log(
        conn,
        action_type=AuditAction.ASSIGNMENT_UPDATED,
        user_id=current_user["id"],
        resource_type="assignment",
        resource_id=assignment_id,
        details={"fields": sorted(updates.keys()), "status": updates.get("status")},
    )
    return success_response(data=assignment, message="Assignment updated successfully")


@router.delete("/{assignment_id}")
async def delete_existing_assignment(
    assignment_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    if not await delete_assignment(conn, assignment_id):
        raise not_found_response("Assignment")
    return success_response(message="Assignment deleted successfully")
