"""API routes for audit log review."""

from typing import Annotated, Literal
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, Query

from app.api.deps import require_admin
from app.core.database import get_db
from app.core.responses import success_response
from app.services import audit

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@router.get("")
async def list_audit_logs(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
    user_id: UUID | None = Query(None, description="Filter by user ID"),
    action_type: str | None = Query(None, description="Filter by action type"),
    resource_type: str | None = Query(None, description="Filter by resource type"),
    severity: Literal["info", "warning", "critical"] | None = Query(
        None, description="Filter by severity"
    ),
    limit: int = Query(1000, ge=1, le=1000, description="Maximum entries returned"),
):
    """
    List audit log entries, newest first (admin only).

    Entries are written for logins, user and role changes, assignment creation,
    report status changes, certificate issue and revocation, and settings changes.
    """
    logs = await audit.list_audit_logs(
        conn,
        user_id=user_id,
        action_type=action_type,
        resource_type=resource_type,
        severity=severity,
        limit=limit,
    )
    return success_response(data=logs)
