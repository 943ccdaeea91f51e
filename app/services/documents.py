"""Document capture service functions."""

import json
import uuid
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

PROCESSING_STATUSES = ("pending", "processing", "completed", "failed")


def storage_key(original_name: str, document_type: str) -> str:
    """Object key for an upload; the client's file name is never used as the key."""
    extension = original_name.rsplit(".", 1)[-1].lower() if "." in original_name else ""
    name = f"{uuid.uuid4()}.{extension}" if extension else str(uuid.uuid4())
    return f"documents/{document_type}/{name}"


async def create_document(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    file_name: str,
    original_name: str,
    file_type: str,
    file_path: str,
    uploaded_by: UUID,
    document_type: str = "general",
    file_size: int | None = None,
    report_id: UUID | None = None,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO documents (
            file_name, original_name, file_type, file_size, file_path,
            document_type, uploaded_by, report_id
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        RETURNING *
        """,
        file_name,
        original_name,
        file_type,
        file_size,
        file_path,
        document_type,
        str(uploaded_by),
        str(report_id) if report_id else None,
    )
    return parse_row(result, ("ai_analysis",))


async def get_document(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, document_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM documents WHERE id = $1", str(document_id))
    return parse_row(result, ("ai_analysis",))


async def list_documents(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    uploaded_by: UUID | None = None,
    report_id: UUID | None = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    where = ["TRUE"]
    params: list[Any] = []
    param_num = 1

    if uploaded_by:
        where.append(f"uploaded_by = ${param_num}")
        params.append(str(uploaded_by))
        param_num += 1

    if report_id:
        where.append(f"report_id = ${param_num}")
        params.append(str(report_id))
        param_num += 1

    rows = await conn.fetch(
        f"""
        SELECT * FROM documents
        WHERE {" AND ".join(where)}
        ORDER BY created_at DESC
        LIMIT ${param_num}
        """,
        *params,
        limit,
    )
    return parse_rows(rows, ("ai_analysis",))


async def update_processing(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    document_id: UUID,
    processing_status: str,
    ocr_text: str | None = None,
    ai_analysis: dict[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Record OCR / AI processing output. Omitted fields keep their stored value."""
    result = await conn.fetchrow(
        """
        UPDATE documents
        SET processing_status = $1,
            ocr_text = COALESCE($2, ocr_text),
            ai_analysis = COALESCE($3::jsonb, ai_analysis),
            updated_at = CURRENT_TIMESTAMP
        WHERE id = $4
        RETURNING *
        """,
        processing_status,
        ocr_text,
        json.dumps(ai_analysis) if ai_analysis is not None else None,
        str(document_id),
    )
    return parse_row(result, ("ai_analysis",))


async def delete_document(conn: asyncpg.Connection, document_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM documents WHERE id = $1", str(document_id))
    return rows_affected(result) > 0
