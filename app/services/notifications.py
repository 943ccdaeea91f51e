"""Notification service functions."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

NOTIFICATION_COLUMNS = "id, user_id, type, title, message, data, read, created_at"


async def create_notification(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    data: dict | None = None,
) -> dict[str, Any] | None:
    """Create a new notification."""
    result = await conn.fetchrow(
        f"""
        INSERT INTO notifications (user_id, type, title, message, data)
        VALUES ($1, $2, $3, $4, $5)
        RETURNING {NOTIFICATION_COLUMNS}
        """,
        str(user_id),
        notification_type,
        title,
        message,
        json.dumps(data) if data else None,
    )
    return parse_row(result, ("data",))


async def notify_staff(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    notification_type: str,
    title: str,
    message: str,
    data: dict | None = None,
) -> int:
    """Fan a notification out to every active admin and coordinator."""
    result = await conn.execute(
        """
        INSERT INTO notifications (user_id, type, title, message, data)
        SELECT id, $1, $2, $3, $4
        FROM users
        WHERE role IN ('admin', 'coordinator') AND status = 'active' AND deleted = FALSE
        """,
        notification_type,
        title,
        message,
        json.dumps(data) if data else None,
    )
    return rows_affected(result)


async def get_user_notifications(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Get notifications for a user."""
    unread_filter = "AND read = FALSE" if unread_only else ""
    results = await conn.fetch(
        f"""
        SELECT {NOTIFICATION_COLUMNS}
        FROM notifications
        WHERE user_id = $1 {unread_filter}
        ORDER BY created_at DESC LIMIT $2 OFFSET $3
        """,
        str(user_id),
        limit,
        offset,
    )
    return parse_rows(results, ("data",))


async def get_unread_count(conn: asyncpg.Connection, user_id: UUID) -> int:  # type: ignore[no-any-unimported]
    """Get count of unread notifications for a user."""
    count = await conn.fetchval(
        "SELECT COUNT(*) FROM notifications WHERE user_id = $1 AND read = FALSE",
        str(user_id),
    )
    return int(count or 0)


async def mark_notification_read(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    notification_id: UUID,
    user_id: UUID,
) -> bool:
    """Mark a notification as read."""
    result = await conn.execute(
        "UPDATE notifications SET read = TRUE WHERE id = $1 AND user_id = $2",
        str(notification_id),
        str(user_id),
    )
    return rows_affected(result) > 0


async def mark_all_read(conn: asyncpg.Connection, user_id: UUID) -> int:  # type: ignore[no-any-unimported]
    """Mark all notifications as read for a user."""
    result = await conn.execute(
        "UPDATE notifications SET read = TRUE WHERE user_id = $1 AND read = FALSE",
        str(user_id),
    )
    return rows_affected(result)


async def delete_notification(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    notification_id: UUID,
    user_id: UUID,
) -> bool:
    """Delete a notification."""
    result = await conn.execute(
        "DELETE FROM notifications WHERE id = $1 AND user_id = $2",
        str(notification_id),
        str(user_id),
    )
    return rows_affected(result) > 0
