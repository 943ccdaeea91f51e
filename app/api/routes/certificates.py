"""Certificate issuance and verification routes."""

# type: ignore

from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import get_current_user, require_admin
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.services.audit import AuditAction, AuditSeverity, create_audit_log
from app.services.certificates import (
    EnrollmentNotCompleted,
    get_certificate,
    get_certificate_for_enrollment,
    issue_certificate,
    list_user_certificates,
    revoke_certificate,
    verify_certificate,
)
from app.services.training import get_enrollment
from app.services.users import get_user_by_id

router = APIRouter(prefix="/certificates", tags=["Certificates"])
logger = get_logger(__name__)


class IssueRequest(BaseModel):
    enrollment_id: UUID


@router.post("/issue", status_code=status.HTTP_201_CREATED)
async def issue(
    request: IssueRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    """
    Issue the certificate for a completed enrollment (admin only).

    An enrollment has at most one certificate; issuing again returns it.
    """
    enrollment = await get_enrollment(conn, request.enrollment_id)
    if not enrollment:
        raise not_found_response("Enrollment")

    existing = await get_certificate_for_enrollment(conn, request.enrollment_id)
    if existing:
        return success_response(data=existing, message="Certificate already issued")

    user = await get_user_by_id(conn, UUID(str(enrollment["user_id"])))
    if not user:
        raise not_found_response("User")

    try:
        certificate = await issue_certificate(conn, enrollment, user)
    except EnrollmentNotCompleted as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await create_audit_log(
        conn,
        action_type=AuditAction.CERTIFICATE_ISSUED,
        user_id=current_user["id"],
        resource_type="certificate",
        resource_id=certificate["id"],
        details={
            "certificate_number": certificate["certificate_number"],
            "recipient": str(enrollment["user_id"]),
        },
    )
    return success_response(data=certificate, message="Certificate issued successfully")


@router.get("/verify/{certificate_number}")
async def verify(
    certificate_number: str,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    hash: Optional[str] = Query(None, max_length=128),
):
    """
    Public certificate verification.

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "valid": false,
            "message": "Certificate has been revoked"
        }
    }
    ```
    """
    result = await verify_certificate(conn, certificate_number, hash)
    if not result["valid"]:
        logger.info(f"Certificate verification failed for {certificate_number}: {result['message']}")
    return success_response(data=result)


@router.get("/my")
async def my_certificates(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(
        data=await list_user_certificates(conn, UUID(str(current_user["id"])))
    )


@router.post("/{certificate_id}/revoke")
async def revoke(
    certificate_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_admin)],
):
    if not await get_certificate(conn, certificate_id):
        raise not_found_response("Certificate")

    certificate = await revoke_certificate(conn, certificate_id)
    await create_audit_log(
        conn,
        action_type=AuditAction.CERTIFICATE_REVOKED,
        user_id=current_user["id"],
        resource_type="certificate",
        resource_id=certificate_id,
        severity=AuditSeverity.WARNING,
        details={"certificate_number": certificate["certificate_number"]},
    )
    return success_response(data=certificate, message="Certificate revoked")
