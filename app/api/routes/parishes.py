"""Parish reference data routes."""

# type: ignore

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.responses import not_found_response, success_response
from app.services.parishes import get_parish, list_parishes

router = APIRouter(prefix="/parishes", tags=["Parishes"])


@router.get("")
async def list_all_parishes(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """List the fourteen parishes ordered by name, seeding them on first use."""
    return success_response(data=await list_parishes(conn))


@router.get("/{parish_id}")
async def get_parish_details(
    parish_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    parish = await get_parish(conn, parish_id)
    if not parish:
        raise not_found_response("Parish")
    return success_response(data=parish)
