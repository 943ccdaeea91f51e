"""Certificate template administration routes."""

# type: ignore

from typing import Annotated, Any, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.deps import require_admin
from app.core.database import get_db
from app.core.responses import not_found_response, success_response
from app.services.certificates import (
    create_template,
    delete_template,
    get_template,
    list_templates,
    update_template,
)

router = APIRouter(prefix="/certificate-templates", tags=["Certificates"])


class TemplateCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    template_type: str = Field("course_completion", max_length=50)
    template_data: dict[str, Any] = Field(default_factory=dict)
    is_default: bool = False
    is_active: bool = True


class TemplateUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    template_type: Optional[str] = Field(None, max_length=50)
    template_data: Optional[dict[str, Any]] = None
    is_default: Optional[bool] = None
    is_active: Optional[bool] = None


@router.get("")
async def list_certificate_templates(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """Templates, default first."""
    return success_response(data=await list_templates(conn))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_certificate_template(
    request: TemplateCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Create a template. Marking it default clears the flag on every other template.

    `template_data` may set `organization`, `heading` and `signatory`.
    """
    template = await create_template(conn, request.model_dump(), UUID(str(current_user["id"])))
    return success_response(data=template, message="Template created successfully")


@router.get("/{template_id}")
async def get_certificate_template(
    template_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    template = await get_template(conn, template_id)
    if not template:
        raise not_found_response("Template")
    return success_response(data=template)


@router.put("/{template_id}")
async def update_certificate_template(
    template_id: UUID,
    request: TemplateUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    template = await update_template(conn, template_id, updates)
    if not template:
        raise not_found_response("Template")
    return success_response(data=template, message="Template updated successfully")


@router.delete("/{template_id}")
async def delete_certificate_template(
    template_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    if not await delete_template(conn, template_id):
        raise not_found_response("Template")
    return success_response(message="Template deleted successfully")
