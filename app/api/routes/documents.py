"""Document upload and processing routes."""

# type: ignore

from typing import Annotated, Any, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.deps import ROLE_ADMIN, get_current_user, is_staff, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import forbidden_response, not_found_response, success_response
from app.services.documents import (
    create_document,
    delete_document,
    get_document,
    list_documents,
    storage_key,
    update_processing,
)
from app.utils.spaces import (
    delete_object,
    ensure_bucket_exists,
    generate_presigned_url,
    generate_read_url,
)

router = APIRouter(prefix="/documents", tags=["Documents"])
logger = get_logger(__name__)


class UploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)
    document_type: str = Field("general", max_length=50)
    report_id: Optional[UUID] = None


class ProcessingUpdateRequest(BaseModel):
    processing_status: Literal["pending", "processing", "completed", "failed"]
    ocr_text: Optional[str] = None
    ai_analysis: Optional[dict[str, Any]] = None


def _can_access(document: dict, user: dict) -> bool:
    return is_staff(user) or str(document["uploaded_by"]) == str(user["id"])


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: UploadRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Register a document and get a presigned URL to upload it.

    **Request Body:**
    ```json
    {
        "filename": "statement_of_poll.jpg",
        "content_type": "image/jpeg",
        "document_type": "statement_of_poll",
        "report_id": "..."
    }
    ```

    **Usage:**
    1. Call this endpoint to get `upload_url`
    2. PUT the file content to `upload_url` with the same content type
    3. The document stays `pending` until processing is recorded
    """
    key = storage_key(request.filename, request.document_type)

    try:
        ensure_bucket_exists()
        urls = generate_presigned_url(key, content_type=request.content_type)

        document = await create_document(
            conn,
            file_name=key.rsplit("/", 1)[-1],
            original_name=request.filename,
            file_type=request.content_type,
            file_path=key,
            uploaded_by=UUID(str(current_user["id"])),
            document_type=request.document_type,
            file_size=request.file_size,
            report_id=request.report_id,
        )
        return success_response(
            data={"document": document, **urls}, message="Upload URL generated"
        )

    except HTTPException:
        raise
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Report")
    except Exception as e:
        logger.error(f"Failed to prepare document upload: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate upload URL",
        )


@router.get("")
async def list_my_documents(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
    limit: int = Query(50, ge=1, le=500),
):
    """The caller's documents, or every document for an admin."""
    uploaded_by = None if current_user.get("role") == ROLE_ADMIN else UUID(str(current_user["id"]))
    return success_response(data=await list_documents(conn, uploaded_by=uploaded_by, limit=limit))


@router.get("/report/{report_id}")
async def list_report_documents(
    report_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    documents = await list_documents(conn, report_id=report_id, limit=500)
    return success_response(data=[d for d in documents if _can_access(d, current_user)])


@router.get("/{document_id}")
async def get_document_details(
    document_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Document metadata with a short-lived download URL."""
    document = await get_document(conn, document_id)
    if not document:
        raise not_found_response("Document")
    if not _can_access(document, current_user):
        raise forbidden_response("You can only view your own documents")

    return success_response(data={**document, "file_url": generate_read_url(document["file_path"])})


@router.put("/{document_id}/processing")
async def record_processing(
    document_id: UUID,
    request: ProcessingUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Store OCR text and AI analysis for a document (admin or coordinator)."""
    document = await update_processing(
        conn,
        document_id,
        processing_status=request.processing_status,
        ocr_text=request.ocr_text,
        ai_analysis=request.ai_analysis,
    )
    if not document:
        raise not_found_response("Document")
    return success_response(data=document, message="Processing status updated")


@router.delete("/{document_id}")
async def remove_document(
    document_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    document = await get_document(conn, document_id)
    if not document:
        raise not_found_response("Document")
    if current_user.get("role") != ROLE_ADMIN and str(document["uploaded_by"]) != str(
        current_user["id"]
    ):
        raise forbidden_response("You can only delete your own documents")

    await delete_document(conn, document_id)
    delete_object(document["file_path"])
    return success_response(message="Document deleted successfully")
