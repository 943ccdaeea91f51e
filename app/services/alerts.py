"""Alert service functions."""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows

SEVERITIES = ("low", "medium", "high", "critical")
STATUSES = ("active", "acknowledged", "resolved", "escalated")
MAX_ESCALATION_LEVEL = 5

JSON_FIELDS = ("coordinates", "channels", "recipients")


class AlertStateError(ValueError):
    """Raised when a transition is not allowed from the alert's current status."""


def response_minutes(created_at: datetime, resolved_at: datetime) -> int:
    """Whole minutes between creation and resolution, never negative."""
    return max(0, int((resolved_at - created_at).total_seconds() // 60))


def next_escalation_level(current: int) -> int:
    return min(MAX_ESCALATION_LEVEL, current + 1)


async def create_alert(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    title: str,
    description: str,
    severity: str = "medium",
    category: str = "general",
    parish: str | None = None,
    polling_station_id: UUID | None = None,
    coordinates: dict[str, float] | None = None,
    channels: list[str] | None = None,
    recipients: list[str] | None = None,
    created_by: UUID | None = None,
    related_report_id: UUID | None = None,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO alerts (
            title, description, severity, category, parish, polling_station_id,
            coordinates, channels, recipients, created_by, related_report_id
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING *
        """,
        title,
        description,
        severity,
        category,
        parish,
        str(polling_station_id) if polling_station_id else None,
        json.dumps(coordinates) if coordinates else None,
        json.dumps(channels or []),
        json.dumps(recipients or []),
        str(created_by) if created_by else None,
        str(related_report_id) if related_report_id else None,
    )
    return parse_row(result, JSON_FIELDS)


async def get_alert(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, alert_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM alerts WHERE id = $1", str(alert_id))
    return parse_row(result, JSON_FIELDS)


async def list_alerts(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    status: str | None = None,
    severity: str | None = None,
    category: str | None = None,
    parish: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    where = ["TRUE"]
    params: list[Any] = []
    param_num = 1

    for column, value in (
        ("status", status),
        ("severity", severity),
        ("category", category),
        ("parish", parish),
    ):
        if value:
            where.append(f"{column} = ${param_num}")
            params.append(value)
            param_num += 1

    where_sql = " AND ".join(where)
    rows = await conn.fetch(
        f"""
        SELECT * FROM alerts
        WHERE {where_sql}
        ORDER BY created_at DESC
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
        limit,
        offset,
    )
    total = await conn.fetchval(f"SELECT COUNT(*) FROM alerts WHERE {where_sql}", *params)
    return parse_rows(rows, JSON_FIELDS), int(total or 0)


async def list_real_time_alerts(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, limit: int = 50
) -> list[dict[str, Any]]:
    """Open alerts, most severe escalation first within recency."""
    rows = await conn.fetch(
        """
        SELECT a.*, ps.name AS station_name
        FROM alerts a
        LEFT JOIN polling_stations ps ON ps.id = a.polling_station_id
        WHERE a.status IN ('active', 'escalated')
        ORDER BY a.created_at DESC
        LIMIT $1
        """,
        limit,
    )
    return parse_rows(rows, JSON_FIELDS)


async def acknowledge_alert(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, alert: dict[str, Any], user_id: UUID
) -> dict[str, Any] | None:
    if alert["status"] == "resolved":
        raise AlertStateError("Resolved alerts cannot be acknowledged")

    result = await conn.fetchrow(
        """
        UPDATE alerts
        SET status = 'acknowledged', acknowledged_by = $1,
            acknowledged_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        str(user_id),
        str(alert["id"]),
    )
    return parse_row(result, JSON_FIELDS)


async def resolve_alert(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, alert: dict[str, Any], user_id: UUID, resolved_at: datetime
) -> dict[str, Any] | None:
    if alert["status"] == "resolved":
        raise AlertStateError("Alert is already resolved")

    result = await conn.fetchrow(
        """
        UPDATE alerts
        SET status = 'resolved', resolved_by = $1, resolved_at = $2,
            response_time = $3, updated_at = CURRENT_TIMESTAMP
        WHERE id = $4
        RETURNING *
        """,
        str(user_id),
        resolved_at,
        response_minutes(alert["created_at"], resolved_at),
        str(alert["id"]),
    )
    return parse_row(result, JSON_FIELDS)


async def escalate_alert(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, alert: dict[str, Any]
) -> dict[str, Any] | None:
    if alert["status"] == "resolved":
        raise AlertStateError("Resolved alerts cannot be escalated")

    result = await conn.fetchrow(
        """
        UPDATE alerts
        SET status = 'escalated', escalation_level = $1, updated_at = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        next_escalation_level(alert["escalation_level"]),
        str(alert["id"]),
    )
    return parse_row(result, JSON_FIELDS)


async def count_pending_critical(conn: asyncpg.Connection) -> int:  # type: ignore[no-any-unimported]
    return int(
        await conn.fetchval(
            """
            SELECT COUNT(*) FROM alerts
            WHERE severity = 'critical' AND status IN ('active', 'escalated')
            """
        )
        or 0
    )
