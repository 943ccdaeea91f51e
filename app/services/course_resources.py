"""Course contests and training media."""

import json
import uuid
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

CONTEST_JSON_FIELDS = ("rules", "prizes")
CONTEST_UPDATABLE_FIELDS = (
    "title",
    "description",
    "contest_type",
    "rules",
    "prizes",
    "start_date",
    "end_date",
    "max_participants",
    "is_active",
)


# Contests


async def list_contests(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM course_contests WHERE course_id = $1 ORDER BY created_at DESC",
        str(course_id),
    )
    return parse_rows(rows, CONTEST_JSON_FIELDS)


async def get_contest(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, contest_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM course_contests WHERE id = $1", str(contest_id))
    return parse_row(result, CONTEST_JSON_FIELDS)


async def create_contest(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID, data: dict[str, Any], created_by: UUID
) -> dict[str, Any] | None:
    """
    Create a contest for a course.

    Raises:
        asyncpg.ForeignKeyViolationError: the course does not exist
    """
    result = await conn.fetchrow(
        """
        INSERT INTO course_contests (
            course_id, title, description, contest_type, rules, prizes,
            start_date, end_date, max_participants, is_active, created_by
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING *
        """,
        str(course_id),
        data["title"],
        data.get("description"),
        data["contest_type"],
        json.dumps(data.get("rules") or {}),
        json.dumps(data.get("prizes") or []),
        data.get("start_date"),
        data.get("end_date"),
        data.get("max_participants"),
        data.get("is_active", True),
        str(created_by),
    )
    return parse_row(result, CONTEST_JSON_FIELDS)


async def update_contest(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, contest_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets = []
    params: list[Any] = []
    for field in CONTEST_UPDATABLE_FIELDS:
        if field in updates:
            value = updates[field]
            params.append(json.dumps(value) if field in CONTEST_JSON_FIELDS else value)
            sets.append(f"{field} = ${len(params)}")

    if not sets:
        return await get_contest(conn, contest_id)

    params.append(str(contest_id))
    result = await conn.fetchrow(
        f"""
        UPDATE course_contests
        SET {", ".join(sets)}, updated_at = CURRENT_TIMESTAMP
        WHERE id = ${len(params)}
        RETURNING *
        """,
        *params,
    )
    return parse_row(result, CONTEST_JSON_FIELDS)


async def delete_contest(conn: asyncpg.Connection, contest_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM course_contests WHERE id = $1", str(contest_id))
    return rows_affected(result) > 0


# Media


def media_key(original_name: str) -> str:
    """Object key for a training media upload."""
    extension = original_name.rsplit(".", 1)[-1].lower() if "." in original_name else ""
    name = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
    return f"training/{name}"


def media_type_for(mime_type: str) -> str:
    major = mime_type.split("/", 1)[0].lower()
    if major in ("video", "audio", "image"):
        return major
    return "document"


async def create_media(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    file_path: str,
    original_name: str,
    mime_type: str,
    uploader_id: UUID,
    title: str | None = None,
    description: str | None = None,
    file_size: int | None = None,
    course_id: UUID | None = None,
    module_id: UUID | None = None,
) -> dict[str, Any] | None:
    """
    Record a training media file.

    Raises:
        asyncpg.ForeignKeyViolationError: the course or module does not exist
    """
    result = await conn.fetchrow(
        """
        INSERT INTO course_media (
            course_id, module_id, title, description, file_name, original_name,
            file_path, file_size, mime_type, media_type, uploader_id
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING *
        """,
        str(course_id) if course_id else None,
        str(module_id) if module_id else None,
        title or original_name,
        description,
        file_path.rsplit("/", 1)[-1],
        original_name,
        file_path,
        file_size,
        mime_type,
        media_type_for(mime_type),
        str(uploader_id),
    )
    return parse_row(result)


async def list_media(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID | None = None
) -> list[dict[str, Any]]:
    if course_id:
        rows = await conn.fetch(
            "SELECT * FROM course_media WHERE course_id = $1 ORDER BY created_at DESC",
            str(course_id),
        )
    else:
        rows = await conn.fetch("SELECT * FROM course_media ORDER BY created_at DESC")
    return parse_rows(rows)


async def get_media(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, media_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM course_media WHERE id = $1", str(media_id))
    return parse_row(result)


async def delete_media(conn: asyncpg.Connection, media_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM course_media WHERE id = $1", str(media_id))
    return rows_affected(result) > 0
