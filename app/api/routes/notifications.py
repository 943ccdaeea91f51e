"""Notification routes."""
# type: ignore

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.responses import not_found_response, success_response
from app.services.notifications import (
    delete_notification,
    get_unread_count,
    get_user_notifications,
    mark_all_read,
    mark_notification_read,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def get_notifications(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    unread_only: bool = Query(False, description="Show only unread notifications"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
):
    """
    Get the caller's notifications, newest first.

    **Response:**
    ```json
    {
        "success": true,
        "data": [
            {
                "id": "...",
                "type": "assignment",
                "title": "New polling station assignment",
                "message": "You have been assigned to Half Way Tree Primary",
                "data": {"assignment_id": "..."},
                "read": false,
                "created_at": "2025-08-20T10:00:00Z"
            }
        ],
        "unread_count": 3
    }
    ```
    """
    user_id = UUID(str(current_user["id"]))
    notifications = await get_user_notifications(
        conn,
        user_id=user_id,
        unread_only=unread_only,
        limit=limit,
        offset=(page - 1) * limit,
    )
    unread_count = await get_unread_count(conn, user_id)
    return {"success": True, "data": notifications, "unread_count": unread_count}


@router.get("/unread-count")
async def unread_count(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    count = await get_unread_count(conn, UUID(str(current_user["id"])))
    return success_response(data={"unread_count": count})


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    if not await mark_notification_read(conn, notification_id, UUID(str(current_user["id"]))):
        raise not_found_response("Notification")
    return success_response(message="Notification marked as read")


@router.post("/read-all")
async def mark_all_as_read(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    count = await mark_all_read(conn, UUID(str(current_user["id"])))
    return success_response(data={"count": count}, message=f"{count} notifications marked as read")


@router.delete("/{notification_id}")
async def remove_notification(
    notification_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    if not await delete_notification(conn, notification_id, UUID(str(current_user["id"]))):
        raise not_found_response("Notification")
    return success_response(message="Notification deleted")
