"""Runtime settings routes."""

# type: ignore

from typing import Annotated, Optional

import asyncpg
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from app.api.deps import ROLE_ADMIN, get_current_user, require_admin
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.services.audit import AuditAction, AuditSeverity, create_audit_log
from app.services.settings_store import get_setting, list_settings, upsert_setting

router = APIRouter(prefix="/settings", tags=["Settings"])
logger = get_logger(__name__)


class SettingUpdateRequest(BaseModel):
    value: Optional[str] = Field(None, max_length=10000)
    category: str = Field("api", max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    is_public: bool = False


@router.get("")
async def list_all_settings(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Admins see every setting; other users only the public ones."""
    public_only = current_user.get("role") != ROLE_ADMIN
    return success_response(data=await list_settings(conn, public_only=public_only))


@router.get("/{key}")
async def get_setting_details(
    key: str,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    setting = await get_setting(conn, key)
    # Private settings are invisible to non-admins
    if not setting or (not setting["is_public"] and current_user.get("role") != ROLE_ADMIN):
        raise not_found_response("Setting")
    return success_response(data=setting)


@router.put("/{key}")
async def update_setting(
    key: str,
    request: SettingUpdateRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Create or replace a setting (admin only).

    **Request Body:**
    ```json
    {"value": "AIza...", "category": "api", "description": "Google Maps key"}
    ```
    """
    setting = await upsert_setting(
        conn,
        key=key,
        value=request.value,
        updated_by=current_user["id"],
        category=request.category,
        description=request.description,
        is_public=request.is_public,
    )

    await create_audit_log(
        conn,
        action_type=AuditAction.SETTING_CHANGED,
        user_id=current_user["id"],
        resource_type="setting",
        severity=AuditSeverity.WARNING,
        ip_address=http_request.client.host if http_request.client else None,
        user_agent=http_request.headers.get("user-agent"),
        # Values can be API keys; only the key name is logged
        details={"key": key, "category": request.category},
    )
    logger.info(f"Setting {key} updated by {current_user['username']}")
    return success_response(data=setting, message="Setting updated successfully")
