"""
Unit tests for certificate issuance, verification and rendering.
"""

import io
import json
import re
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import asyncpg
import pytest
from docx import Document

from app.services.certificates import (
    EnrollmentNotCompleted,
    check_certificate,
    compute_verification_hash,
    generate_certificate_number,
    issue_certificate,
    verification_url,
    verify_certificate,
)
from app.utils.certificate_document import render_certificate_docx

NOW = datetime(2025, 9, 1, 12, 0, tzinfo=UTC)


def make_certificate(**overrides):
    certificate = {
        "id": str(uuid4()),
        "certificate_number": "CAFFE-1756728000000-AB12CD34",
        "title": "Electoral Observer Training Certificate",
        "is_active": True,
        "expiry_date": NOW + timedelta(days=30),
        "verification_hash": "a" * 64,
        "issue_date": NOW - timedelta(days=1),
        "qr_code_data": None,
        "metadata": {
            "recipientName": "Jane Brown",
            "courseName": "Polling Day Procedures",
            "observerId": "042137",
        },
    }
    certificate.update(overrides)
    return certificate


class TestCertificateHelpers:
    """Test numbering, hashing and validity rules."""

    def test_certificate_number_format(self):
        number = generate_certificate_number()

        assert re.fullmatch(r"CAFFE-\d{13}-[A-Z0-9]{8}", number)

    def test_certificate_number_custom_prefix(self):
        assert generate_certificate_number("TEST").startswith("TEST-")

    def test_verification_hash_ignores_key_order(self):
        first = compute_verification_hash({"a": 1, "b": "two"})
        second = compute_verification_hash({"b": "two", "a": 1})

        assert first == second
        assert len(first) == 64

    def test_verification_hash_changes_with_data(self):
        assert compute_verification_hash({"grade": 90}) != compute_verification_hash({"grade": 91})

    def test_verification_url(self):
        url = verification_url("CAFFE-1-X", "abc")

        assert url.endswith("/CAFFE-1-X?hash=abc")

    def test_valid_certificate(self):
        assert check_certificate(make_certificate(), None, NOW) == (True, "Certificate is valid")

    def test_not_found(self):
        assert check_certificate(None, None, NOW) == (False, "Certificate not found")

    def test_revoked_checked_before_expiry(self):
        certificate = make_certificate(is_active=False, expiry_date=NOW - timedelta(days=1))

        assert check_certificate(certificate, None, NOW)[1] == "Certificate has been revoked"

    def test_expired(self):
        certificate = make_certificate(expiry_date=NOW - timedelta(seconds=1))

        assert check_certificate(certificate, None, NOW) == (False, "Certificate has expired")

    def test_hash_only_checked_when_given(self):
        certificate = make_certificate()

        assert check_certificate(certificate, "a" * 64, NOW)[0] is True
        assert check_certificate(certificate, "b" * 64, NOW) == (False, "Invalid verification hash")


class TestIssueCertificate:
    """Test issuance against a mocked connection."""

    enrollment = {
        "id": str(uuid4()),
        "status": "completed",
        "course_title": "Polling Day Procedures",
        "completed_at": NOW,
        "score": 92,
    }
    user = {"id": str(uuid4()), "first_name": "Jane", "last_name": "Brown", "observer_id": "042137"}

    @pytest.mark.asyncio
    async def test_requires_completed_enrollment(self, mock_conn):
        enrollment = {**self.enrollment, "status": "in_progress"}

        with pytest.raises(EnrollmentNotCompleted):
            await issue_certificate(mock_conn, enrollment, self.user)

    @pytest.mark.asyncio
    async def test_returns_existing_certificate(self, mock_conn):
        existing = make_certificate()
        mock_conn.fetchrow.return_value = existing

        result = await issue_certificate(mock_conn, self.enrollment, self.user)

        assert result["id"] == existing["id"]
        assert mock_conn.fetchrow.await_count == 1

    @pytest.mark.asyncio
    async def test_issues_new_certificate(self, mock_conn):
        template_id = uuid4()
        mock_conn.fetchrow.side_effect = [
            None,
            {"id": template_id, "template_data": "{}"},
            {"id": uuid4(), "metadata": "{}"},
        ]

        await issue_certificate(mock_conn, self.enrollment, self.user)

        args = mock_conn.fetchrow.call_args_list[2][0]
        assert args[3] == str(template_id)
        assert args[4].startswith("CAFFE-")
        assert "Jane Brown" in args[6]
        issue_date, expiry_date = args[7], args[8]
        assert expiry_date - issue_date == timedelta(days=365)
        metadata = json.loads(args[11])
        assert metadata["courseName"] == "Polling Day Procedures"
        assert metadata["grade"] == 92
        # The stored hash covers the stored metadata
        assert args[9] == compute_verification_hash(metadata)
        assert args[10].endswith(f"?hash={args[9]}")

    @pytest.mark.asyncio
    async def test_concurrent_issue_returns_stored_certificate(self, mock_conn):
        stored = make_certificate()
        mock_conn.fetchrow.side_effect = [
            None,
            None,
            asyncpg.UniqueViolationError("duplicate key value violates unique constraint"),
            stored,
        ]

        result = await issue_certificate(mock_conn, self.enrollment, self.user)

        assert result["id"] == stored["id"]
        assert "WHERE enrollment_id" in mock_conn.fetchrow.call_args_list[3][0][0]

    @pytest.mark.asyncio
    async def test_other_unique_violation_propagates(self, mock_conn):
        mock_conn.fetchrow.side_effect = [
            None,
            None,
            asyncpg.UniqueViolationError("duplicate certificate number"),
            None,
        ]

        with pytest.raises(asyncpg.UniqueViolationError):
            await issue_certificate(mock_conn, self.enrollment, self.user)


class TestVerifyCertificate:
    """Test public verification."""

    @pytest.mark.asyncio
    async def test_valid_certificate_counts_download(self, mock_conn):
        certificate = make_certificate(expiry_date=datetime.now(UTC) + timedelta(days=1))
        mock_conn.fetchrow.return_value = certificate

        result = await verify_certificate(mock_conn, certificate["certificate_number"])

        assert result["valid"] is True
        assert result["certificate"]["id"] == certificate["id"]
        assert "verificationDate" in result
        mock_conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, mock_conn):
        mock_conn.fetchrow.return_value = None

        result = await verify_certificate(mock_conn, "CAFFE-0-NOPE")

        assert result == {"valid": False, "message": "Certificate not found"}
        mock_conn.execute.assert_not_called()


class TestRenderCertificate:
    """Test the Word document rendering."""

    def test_render_contains_recipient_and_number(self):
        certificate = make_certificate(qr_code_data="https://caffe.org.jm/verify/CAFFE-1?hash=x")
        template = {"template_data": {"heading": "Certificate of Completion", "signatory": "Executive Director"}}

        content = render_certificate_docx(certificate, template)

        document = Document(io.BytesIO(content))
        text = "\n".join(p.text for p in document.paragraphs)
        assert "Certificate of Completion" in text
        assert "Jane Brown" in text
        assert "Polling Day Procedures" in text
        assert certificate["certificate_number"] in text
        assert "Executive Director" in text
        assert "Observer ID: 042137" in text

    def test_render_without_template_uses_title(self):
        content = render_certificate_docx(make_certificate())

        document = Document(io.BytesIO(content))
        assert document.paragraphs[1].text == "Electoral Observer Training Certificate"
