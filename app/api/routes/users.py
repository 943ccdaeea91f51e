"""User management routes."""

# type: ignore

from typing import Annotated, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import ROLE_ADMIN, get_current_user, is_staff, require_admin, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger, security_logger
from app.core.responses import (
    forbidden_response,
    not_found_response,
    paginated_response,
    success_response,
)
from app.core.validation import normalize_trn, sanitize_string
from app.services.audit import AuditAction, AuditSeverity, create_audit_log
from app.services.users import (
    delete_user,
    get_user_by_id,
    list_users,
    update_user,
    update_user_location,
)

router = APIRouter(prefix="/users", tags=["User Management"])
logger = get_logger(__name__)


class UserUpdateRequest(BaseModel):
    """Profile fields anyone may edit on their own account, plus admin-only fields."""

    email: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    trn: Optional[str] = None
    parish_id: Optional[UUID] = None
    role: Optional[Literal["observer", "coordinator", "admin"]] = None
    status: Optional[Literal["pending", "active", "inactive", "suspended"]] = None
    kyc_status: Optional[Literal["pending", "verified", "rejected"]] = None
    training_status: Optional[Literal["not_started", "in_progress", "completed"]] = None
    certification_level: Optional[str] = Field(None, max_length=50)

    @field_validator("email", "first_name", "last_name", "phone")
    @classmethod
    def sanitize_field(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=255) if v else v

    @field_validator("trn")
    @classmethod
    def validate_trn(cls, v: Optional[str]) -> Optional[str]:
        return normalize_trn(v) if v else None


ADMIN_ONLY_FIELDS = {"role", "status", "kyc_status", "training_status", "certification_level"}


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


@router.get("")
async def list_all_users(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    role: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    parish_id: Optional[UUID] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort: str = Query("created_at"),
    order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    """
    List users with filtering and pagination (admin or coordinator).

    `search` matches username, email, first or last name.
    """
    users, total = await list_users(
        conn,
        role=role,
        status=status_filter,
        parish_id=parish_id,
        search=sanitize_string(search, max_length=100) if search else None,
        sort=sort,
        order=order,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return paginated_response(items=users, page=page, limit=limit, total=total)


@router.get("/observers")
async def list_observers(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    status_filter: Optional[str] = Query(None, alias="status"),
    parish_id: Optional[UUID] = None,
    limit: int = Query(200, ge=1, le=1000),
):
    """List observers, for assignment pickers."""
    observers, _ = await list_users(
        conn,
        role="observer",
        status=status_filter,
        parish_id=parish_id,
        sort="last_name",
        order="asc",
        limit=limit,
    )
    return success_response(data=observers)


@router.put("/me/location")
async def update_my_location(
    request: LocationUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Record the caller's current position."""
    user = await update_user_location(
        conn, UUID(str(current_user["id"])), request.latitude, request.longitude
    )
    if not user:
        raise not_found_response("User")
    return success_response(data=user, message="Location updated")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Get a user. Observers may only read their own account."""
    if not is_staff(current_user) and str(current_user["id"]) != str(user_id):
        raise forbidden_response("You can only view your own account")

    user = await get_user_by_id(conn, user_id)
    if not user:
        raise not_found_response("User")
    user.pop("password_hash", None)
    return success_response(data=user)


@router.put("/{user_id}")
async def update_user_details(
    user_id: UUID,
    request: UserUpdateRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Update a user.

    Admins may change any field. Other users may only edit their own profile
    fields; role and status changes require admin.

    **Request Body:**
    ```json
    {"status": "active", "kyc_status": "verified", "parish_id": "..."}
    ```
    """
    is_admin = current_user.get("role") == ROLE_ADMIN
    updates = request.model_dump(exclude_unset=True)

    if not is_admin:
        if str(current_user["id"]) != str(user_id):
            raise forbidden_response("You can only update your own account")
        if ADMIN_ONLY_FIELDS & updates.keys():
            raise forbidden_response("Admin access required to change role or status")

    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    try:
        existing = await get_user_by_id(conn, user_id)
        if not existing:
            raise not_found_response("User")

        user = await update_user(conn, user_id, updates)

        if "role" in updates and updates["role"] != existing.get("role"):
            security_logger.log_role_change(
                user_id=str(user_id),
                old_role=existing.get("role"),
                new_role=updates["role"],
                changed_by=str(current_user["id"]),
            )
            await create_audit_log(
                conn,
                action_type=AuditAction.ROLE_CHANGED,
                user_id=current_user["id"],
                resource_type="user",
                resource_id=user_id,
                severity=AuditSeverity.WARNING,
                ip_address=http_request.client.host if http_request.client else None,
                details={"old_role": existing.get("role"), "new_role": updates["role"]},
            )

        await create_audit_log(
            conn,
            action_type=AuditAction.USER_UPDATED,
            user_id=current_user["id"],
            resource_type="user",
            resource_id=user_id,
            details={"fields": sorted(updates.keys())},
        )
        return success_response(data=user, message="User updated successfully")

    except HTTPException:
        raise
    except asyncpg.UniqueViolationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use"
        )
    except Exception as e:
        logger.error(f"Failed to update user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user",
        )


@router.delete("/{user_id}")
async def remove_user(
    user_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """Soft delete a user (admin only)."""
    if str(current_user["id"]) == str(user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account"
        )

    deleted = await delete_user(conn, user_id)
    if not deleted:
        raise not_found_response("User")

    await create_audit_log(
        conn,
        action_type=AuditAction.USER_DELETED,
        user_id=current_user["id"],
        resource_type="user",
        resource_id=user_id,
        severity=AuditSeverity.WARNING,
    )
    return success_response(message="User deleted successfully")
