"""Certificate templates, issuance and verification."""

import hashlib
import json
import secrets
import string
import time
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import asyncpg

from app.core.config import settings
from app.core.database import parse_row, parse_rows, rows_affected

TEMPLATE_UPDATABLE_FIELDS = ("name", "template_type", "template_data", "is_active")

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class EnrollmentNotCompleted(Exception):
    pass


def generate_certificate_number(prefix: str | None = None) -> str:
    """``{prefix}-{epoch ms}-{8 uppercase alphanumerics}``."""
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(8))
    return f"{prefix or settings.CERTIFICATE_PREFIX}-{int(time.time() * 1000)}-{suffix}"


def compute_verification_hash(certificate_data: dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON of the certificate data."""
    canonical = json.dumps(certificate_data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def verification_url(certificate_number: str, verification_hash: str) -> str:
    base = settings.CERTIFICATE_VERIFY_BASE_URL.rstrip("/")
    return f"{base}/{certificate_number}?hash={verification_hash}"


def check_certificate(
    certificate: dict[str, Any] | None, hash_value: str | None, now: datetime
) -> tuple[bool, str]:
    """Decide validity; the first failing check wins."""
    if certificate is None:
        return False, "Certificate not found"
    if not certificate["is_active"]:
        return False, "Certificate has been revoked"
    expiry = certificate.get("expiry_date")
    if expiry and now > expiry:
        return False, "Certificate has expired"
    if hash_value and hash_value != certificate["verification_hash"]:
        return False, "Invalid verification hash"
    return True, "Certificate is valid"


# Templates


async def list_templates(conn: asyncpg.Connection) -> list[dict[str, Any]]:  # type: ignore[no-any-unimported]
    rows = await conn.fetch(
        "SELECT * FROM certificate_templates ORDER BY is_default DESC, created_at DESC"
    )
    return parse_rows(rows, ("template_data",))


async def get_template(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, template_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        "SELECT * FROM certificate_templates WHERE id = $1", str(template_id)
    )
    return parse_row(result, ("template_data",))


async def get_default_template(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        SELECT * FROM certificate_templates
        WHERE is_default = TRUE AND is_active = TRUE
        LIMIT 1
        """
    )
    return parse_row(result, ("template_data",))


async def create_template(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, data: dict[str, Any], created_by: UUID
) -> dict[str, Any] | None:
    async with conn.transaction():
        if data.get("is_default"):
            await conn.execute(
                "UPDATE certificate_templates SET is_default = FALSE WHERE is_default = TRUE"
            )
        result = await conn.fetchrow(
            """
            INSERT INTO certificate_templates (
                name, template_type, template_data, is_default, is_active, created_by
            )
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            data["name"],
            data.get("template_type", "course_completion"),
            json.dumps(data.get("template_data") or {}),
            bool(data.get("is_default", False)),
            data.get("is_active", True),
            str(created_by),
        )
    return parse_row(result, ("template_data",))


async def update_template(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, template_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets = []
    params: list[Any] = []
    for field in TEMPLATE_UPDATABLE_FIELDS:
        if field in updates:
            value = updates[field]
            params.append(json.dumps(value) if field == "template_data" else value)
            sets.append(f"{field} = ${len(params)}")
    if "is_default" in updates:
        params.append(bool(updates["is_default"]))
        sets.append(f"is_default = ${len(params)}")

    if not sets:
        return await get_template(conn, template_id)

    params.append(str(template_id))
    async with conn.transaction():
        if updates.get("is_default"):
            await conn.execute(
                "UPDATE certificate_templates SET is_default = FALSE WHERE id <> $1",
                str(template_id),
            )
        result = await conn.fetchrow(
            f"""
            UPDATE certificate_templates
            SET {", ".join(sets)}, updated_at = CURRENT_TIMESTAMP
            WHERE id = ${len(params)}
            RETURNING *
            """,
            *params,
        )
    return parse_row(result, ("template_data",))


async def delete_template(conn: asyncpg.Connection, template_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute(
        "DELETE FROM certificate_templates WHERE id = $1", str(template_id)
    )
    return rows_affected(result) > 0


# Certificates


async def get_certificate_for_enrollment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, enrollment_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        "SELECT * FROM certificates WHERE enrollment_id = $1", str(enrollment_id)
    )
    return parse_row(result, ("metadata",))


async def get_certificate(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, certificate_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM certificates WHERE id = $1", str(certificate_id))
    return parse_row(result, ("metadata",))


async def get_certificate_by_number(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, certificate_number: str
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        "SELECT * FROM certificates WHERE certificate_number = $1", certificate_number
    )
    return parse_row(result, ("metadata",))


async def issue_certificate(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, enrollment: dict[str, Any], user: dict[str, Any]
) -> dict[str, Any] | None:
    """
    Issue the completion certificate for an enrollment, once.

    Returns the existing certificate when one was already issued.

    Raises:
        EnrollmentNotCompleted: the enrollment has not reached ``completed``
    """
    existing = await get_certificate_for_enrollment(conn, enrollment["id"])
    if existing:
        return existing

    if enrollment["status"] != "completed":
        raise EnrollmentNotCompleted("Course must be completed before a certificate is issued")

    issued_at = datetime.now(UTC)
    completed_at = enrollment.get("completed_at") or issued_at
    recipient = f"{user['first_name']} {user['last_name']}".strip()
    certificate_number = generate_certificate_number()

    certificate_data = {
        "certificateNumber": certificate_number,
        "recipientName": recipient,
        "courseName": enrollment["course_title"],
        "completionDate": completed_at.isoformat(),
        "grade": enrollment.get("score"),
        "observerId": user.get("observer_id"),
    }
    verification_hash = compute_verification_hash(certificate_data)
    template = await get_default_template(conn)

    try:
        async with conn.transaction():
            result = await conn.fetchrow(
                """
                INSERT INTO certificates (
                    user_id, enrollment_id, template_id, certificate_number, title,
                    description, issue_date, expiry_date, verification_hash, qr_code_data, metadata
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                RETURNING *
                """,
                str(user["id"]),
                str(enrollment["id"]),
                str(template["id"]) if template else None,
                certificate_number,
                "Electoral Observer Training Certificate",
                f"This certifies that {recipient} has successfully completed the "
                f"{enrollment['course_title']} training program",
                issued_at,
                issued_at + timedelta(days=settings.CERTIFICATE_VALIDITY_DAYS),
                verification_hash,
                verification_url(certificate_number, verification_hash),
                json.dumps(certificate_data),
            )
    except asyncpg.UniqueViolationError:
        # A concurrent request issued it first
        stored = await get_certificate_for_enrollment(conn, enrollment["id"])
        if stored is None:
            raise
        return stored
    return parse_row(result, ("metadata",))


async def verify_certificate(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, certificate_number: str, hash_value: str | None = None
) -> dict[str, Any]:
    certificate = await get_certificate_by_number(conn, certificate_number)
    now = datetime.now(UTC)
    valid, message = check_certificate(certificate, hash_value, now)

    if not valid or certificate is None:
        return {"valid": False, "message": message}

    await conn.execute(
        """
        UPDATE certificates
        SET download_count = download_count + 1, last_downloaded = $1
        WHERE id = $2
        """,
        now,
        str(certificate["id"]),
    )
    return {
        "valid": True,
        "message": message,
        "certificate": certificate,
        "verificationDate": now.isoformat(),
    }


async def list_user_certificates(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM certificates WHERE user_id = $1 ORDER BY issue_date DESC",
        str(user_id),
    )
    return parse_rows(rows, ("metadata",))


async def revoke_certificate(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, certificate_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        UPDATE certificates
        SET is_active = FALSE, revoked_at = CURRENT_TIMESTAMP
        WHERE id = $1
        RETURNING *
        """,
        str(certificate_id),
    )
    return parse_row(result, ("metadata",))
