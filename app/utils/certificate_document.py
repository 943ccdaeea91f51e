"""Render completion certificates as Word documents."""

import io
from typing import Any

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _centered(document: Any, text: str, size: int, bold: bool = False) -> None:
    paragraph = document.add_paragraph()
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = paragraph.add_run(text)
    run.font.size = Pt(size)
    run.bold = bold


def render_certificate_docx(
    certificate: dict[str, Any], template: dict[str, Any] | None = None
) -> bytes:
    """
    Build the certificate document.

    ``template_data`` may override ``organization``, ``heading`` and
    ``signatory`` lines.
    """
    metadata = certificate.get("metadata") or {}
    template_data = (template or {}).get("template_data") or {}

    document = Document()
    _centered(
        document,
        template_data.get("organization", "Citizens Action for Free and Fair Elections"),
        14,
    )
    _centered(document, template_data.get("heading", certificate["title"]), 24, bold=True)
    _centered(document, "This certifies that", 12)
    _centered(document, metadata.get("recipientName", ""), 20, bold=True)
    _centered(
        document,
        f"has successfully completed the {metadata.get('courseName', '')} training program",
        12,
    )

    issue_date = certificate.get("issue_date")
    if issue_date is not None:
        _centered(document, f"Issued {issue_date:%d %B %Y}", 11)
    if metadata.get("observerId"):
        _centered(document, f"Observer ID: {metadata['observerId']}", 11)

    _centered(document, f"Certificate No. {certificate['certificate_number']}", 10)
    if certificate.get("qr_code_data"):
        _centered(document, f"Verify at {certificate['qr_code_data']}", 9)
    if template_data.get("signatory"):
        _centered(document, template_data["signatory"], 11)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()
