"""Audit logging service for tracking security-relevant actions."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows


class AuditAction:
    """Standard audit action types."""

    # Authentication
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"
    USER_REGISTERED = "user_registered"

    # User management
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    ROLE_CHANGED = "role_changed"

    # Field operations
    ASSIGNMENT_CREATED = "assignment_created"
    ASSIGNMENT_UPDATED = "assignment_updated"
    REPORT_STATUS_CHANGED = "report_status_changed"
    REPORTS_EXPORTED = "reports_exported"
    ALERT_RESOLVED = "alert_resolved"
    ALERT_ESCALATED = "alert_escalated"

    # Training
    CERTIFICATE_ISSUED = "certificate_issued"
    CERTIFICATE_REVOKED = "certificate_revoked"

    # System
    SETTING_CHANGED = "setting_changed"
    MONITORING_CHANGED = "monitoring_changed"


class AuditSeverity:
    """Severity levels for audit logs."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


AUDIT_SELECT = """
    SELECT
        al.id, al.user_id, al.action_type, al.resource_type, al.resource_id,
        al.severity, al.ip_address, al.user_agent, al.details, al.timestamp,
        u.username, u.email
    FROM audit_logs al
    LEFT JOIN users u ON al.user_id = u.id
"""


async def create_audit_log(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    action_type: str,
    user_id: UUID | str | None = None,
    resource_type: str | None = None,
    resource_id: UUID | str | None = None,
    severity: str = AuditSeverity.INFO,
    ip_address: str | None = None,
    user_agent: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create an audit log entry.

    Args:
        conn: Database connection
        action_type: Type of action (use AuditAction constants)
        user_id: ID of user performing action (None for system actions)
        resource_type: Type of resource affected (users, reports, settings, etc.)
        resource_id: ID or key of the specific resource affected
        severity: Log severity (info, warning, critical)
        ip_address: IP address of user
        user_agent: User agent string
        details: Additional details as JSON

    Returns:
        Created audit log entry
    """
    result = await conn.fetchrow(
        """
        INSERT INTO audit_logs (
            user_id, action_type, resource_type, resource_id,
            severity, ip_address, user_agent, details
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        RETURNING id, user_id, action_type, resource_type, resource_id,
                  severity, ip_address, user_agent, details, timestamp
        """,
        str(user_id) if user_id else None,
        action_type,
        resource_type,
        str(resource_id) if resource_id else None,
        severity,
        ip_address,
        user_agent,
        json.dumps(details) if details else None,
    )

    return parse_row(result, ("details",)) or {}


async def list_audit_logs(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    user_id: UUID | None = None,
    action_type: str | None = None,
    resource_type: str | None = None,
    severity: str | None = None,
    limit: int = 1000,
) -> list[dict[str, Any]]:
    """List audit logs, newest first.

    Args:
        conn: Database connection
        user_id: Filter by user ID
        action_type: Filter by action type
        resource_type: Filter by resource type
        severity: Filter by severity level
        limit: Maximum number of entries returned

    Returns:
        List of audit log entries joined with the acting user's name
    """
    conditions = []
    params: list[Any] = []
    param_num = 1

    for column, value in (
        ("al.user_id", str(user_id) if user_id else None),
        ("al.action_type", action_type),
        ("al.resource_type", resource_type),
        ("al.severity", severity),
    ):
        if value:
            conditions.append(f"{column} = ${param_num}")
            params.append(value)
            param_num += 1

    where_clause = "WHERE " + " AND ".join(conditions) if conditions else ""

    results = await conn.fetch(
        f"""
        {AUDIT_SELECT}
        {where_clause}
        ORDER BY al.timestamp DESC
        LIMIT ${param_num}
        """,
        *params,
        limit,
    )
    return parse_rows(results, ("details",))
