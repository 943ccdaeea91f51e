"""Course contests and training media routes."""

# type: ignore

from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import get_current_user, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.core.validation import ensure_aware
from app.services.course_resources import (
    create_contest,
    create_media,
    delete_contest,
    delete_media,
    get_contest,
    get_media,
    list_contests,
    list_media,
    media_key,
    update_contest,
)
from app.utils.spaces import (
    delete_object,
    ensure_bucket_exists,
    generate_presigned_url,
    generate_read_url,
)

router = APIRouter(prefix="/training", tags=["Training"])
logger = get_logger(__name__)


class ContestCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    contest_type: str = Field(..., min_length=1, max_length=50)
    rules: dict[str, Any] = Field(default_factory=dict)
    prizes: list[Any] = Field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=1)
    is_active: bool = True

    @field_validator("start_date", "end_date")
    @classmethod
    def attach_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)


class ContestUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    contest_type: Optional[str] = Field(None, min_length=1, max_length=50)
    rules: Optional[dict[str, Any]] = None
    prizes: Optional[list[Any]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def attach_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)


class MediaUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    course_id: Optional[UUID] = None
    module_id: Optional[UUID] = None


def _check_window(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )


# Contests


@router.get("/courses/{course_id}/contests")
async def list_course_contests(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(data=await list_contests(conn, course_id))


@router.post("/courses/{course_id}/contests", status_code=status.HTTP_201_CREATED)
async def create_course_contest(
    course_id: UUID,
    request: ContestCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _check_window(request.start_date, request.end_date)
    try:
        contest = await create_contest(
            conn, course_id, request.model_dump(), UUID(str(current_user["id"]))
        )
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Course")
    return success_response(data=contest, message="Contest created successfully")


@router.put("/contests/{contest_id}")
async def update_course_contest(
    contest_id: UUID,
    request: ContestUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    existing = await get_contest(conn, contest_id)
    if not existing:
        raise not_found_response("Contest")
    _check_window(
        ensure_aware(updates.get("start_date", existing["start_date"])),
        ensure_aware(updates.get("end_date", existing["end_date"])),
    )

    contest = await update_contest(conn, contest_id, updates)
    return success_response(data=contest, message="Contest updated successfully")


@router.delete("/contests/{contest_id}")
async def delete_course_contest(
    contest_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    if not await delete_contest(conn, contest_id):
        raise not_found_response("Contest")
    return success_response(message="Contest deleted successfully")


# Media


async def _register_upload(
    conn: asyncpg.Connection,
    request: MediaUploadRequest,
    current_user: dict,
    course_id: Optional[UUID],
) -> dict:
    key = media_key(request.filename)
    try:
        ensure_bucket_exists()
        urls = generate_presigned_url(key, content_type=request.content_type)
        media = await create_media(
            conn,
            file_path=key,
            original_name=request.filename,
            mime_type=request.content_type,
            uploader_id=UUID(str(current_user["id"])),
            title=request.title,
            description=request.description,
            file_size=request.file_size,
            course_id=course_id,
            module_id=request.module_id,
        )
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Course or module")
    except Exception as e:
        logger.error(f"Failed to prepare training media upload: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate upload URL",
        )
    return {"media": media, **urls}


@router.post("/media", status_code=status.HTTP_201_CREATED)
async def upload_training_media(
    request: MediaUploadRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Register a training media file and get a presigned URL to upload it.

    PUT the file to `upload_url` with the same content type.
    """
    data = await _register_upload(conn, request, current_user, request.course_id)
    return success_response(data=data, message="Upload URL generated")


@router.post("/courses/{course_id}/media", status_code=status.HTTP_201_CREATED)
async def upload_course_media(
    course_id: UUID,
    request: MediaUploadRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Same as `POST /training/media` with the course taken from the path."""
    data = await _register_upload(conn, request, current_user, course_id)
    return success_response(data=data, message="Upload URL generated")


@router.get("/media")
async def list_training_media(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(data=await list_media(conn))


@router.get("/courses/{course_id}/media")
async def list_course_media(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Media attached to a course, each with a short-lived download URL."""
    media = await list_media(conn, course_id=course_id)
    return success_response(
        data=[{**item, "file_url": generate_read_url(item["file_path"])} for item in media]
    )


@router.delete("/media/{media_id}")
async def delete_training_media(
    media_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    media = await get_media(conn, media_id)
    if not media:
        raise not_found_response("Media")

    await delete_media(conn, media_id)
    delete_object(media["file_path"])
    return success_response(message="Media deleted successfully")
