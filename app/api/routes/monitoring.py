"""Social media monitoring keyword configuration routes."""

# type: ignore

from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.deps import require_admin, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.services import monitoring

router = APIRouter(prefix="/monitoring", tags=["Monitoring"])
logger = get_logger(__name__)


class ConfigUpdateRequest(BaseModel):
    config_name: Optional[str] = Field(None, min_length=1, max_length=255)
    keywords: Optional[list[str]] = None
    is_enabled: Optional[bool] = None
    description: Optional[str] = None
    priority: Optional[int] = Field(None, ge=1, le=3)


class AddKeywordsRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    keywords: list[str] = Field(..., min_length=1)


class RemoveKeywordsRequest(BaseModel):
    keywords: list[str] = Field(..., min_length=1)


@router.get("/configs")
async def list_configs(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """All keyword configurations, highest priority first."""
    return success_response(data=await monitoring.list_configurations(conn))


@router.get("/configs/category/{category}")
async def list_category_configs(
    category: str,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=await monitoring.list_configurations(conn, category=category))


@router.put("/configs/{config_id}")
async def update_config(
    config_id: UUID,
    request: ConfigUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    config = await monitoring.update_configuration(conn, config_id, updates)
    if not config:
        raise not_found_response("Configuration")
    return success_response(data=config, message="Configuration updated successfully")


@router.post("/keywords")
async def add_keywords(
    request: AddKeywordsRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Add keywords to a category.

    When the category has no configuration yet a `Custom {category}`
    configuration is created at low priority. Exact repeats are
    dropped.
    """
    config = await monitoring.add_custom_keywords(conn, request.category, request.keywords)
    logger.info(f"Keywords added to monitoring category {request.category}")
    return success_response(data=config, message="Keywords added successfully")


@router.delete("/configs/{config_id}/keywords")
async def remove_config_keywords(
    config_id: UUID,
    request: RemoveKeywordsRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    config = await monitoring.get_configuration(conn, config_id)
    if not config:
        raise not_found_response("Configuration")
    updated = await monitoring.remove_keywords(conn, config, request.keywords)
    return success_response(data=updated, message="Keywords removed successfully")


@router.post("/configs/{config_id}/toggle")
async def toggle_config(
    config_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    config = await monitoring.toggle_configuration(conn, config_id)
    if not config:
        raise not_found_response("Configuration")
    state = "enabled" if config["is_enabled"] else "disabled"
    return success_response(data=config, message=f"Configuration {state}")


@router.get("/keywords/active")
async def active_keywords(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=await monitoring.get_active_keywords(conn))


@router.get("/keywords/by-priority")
async def keywords_by_priority(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    configs = await monitoring.list_configurations(conn)
    return success_response(data=monitoring.keywords_by_priority(configs))


@router.get("/stats")
async def configuration_stats(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    configs = await monitoring.list_configurations(conn)
    return success_response(data=monitoring.configuration_stats(configs))


@router.post("/initialize")
async def initialize_configs(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """Seed the default Jamaican keyword sets. Does nothing when configurations exist."""
    created = await monitoring.initialize_defaults(conn)
    message = "Default configurations created" if created else "Configurations already exist"
    return success_response(data={"initialized": created}, message=message)
