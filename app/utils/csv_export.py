"""CSV export utilities for field reports."""

import csv
import io
from typing import Any

REPORT_COLUMNS = [
    "report_id",
    "created_at",
    "observer_id",
    "observer",
    "station_code",
    "station_name",
    "parish",
    "type",
    "priority",
    "status",
    "title",
    "description",
    "attachments",
]


def flatten_metadata(data: dict, prefix: str = "") -> dict:
    """
    Flatten nested JSON into dotted keys.

    Lists are joined with ", " so each report stays on one CSV row.
    """
    flattened = {}

    for key, value in data.items():
        new_key = f"{prefix}.{key}" if prefix else key

        if isinstance(value, dict):
            flattened.update(flatten_metadata(value, new_key))
        elif isinstance(value, list):
            flattened[new_key] = ", ".join(str(v) for v in value)
        else:
            flattened[new_key] = value

    return flattened


def reports_to_csv(reports: list[dict[str, Any]]) -> str:
    """Render reports as CSV, fixed columns first then sorted metadata columns."""
    if not reports:
        return ""

    rows = []
    metadata_keys: set[str] = set()

    for report in reports:
        name = " ".join(
            part for part in (report.get("first_name"), report.get("last_name")) if part
        )
        row = {
            "report_id": report.get("id", ""),
            "created_at": report.get("created_at", ""),
            "observer_id": report.get("observer_id", ""),
            "observer": name or report.get("username", ""),
            "station_code": report.get("station_code") or "",
            "station_name": report.get("station_name") or "",
            "parish": report.get("parish_name") or "",
            "type": report.get("type", ""),
            "priority": report.get("priority", ""),
            "status": report.get("status", ""),
            "title": report.get("title", ""),
            "description": report.get("description", ""),
            "attachments": len(report.get("attachments") or []),
        }

        metadata = flatten_metadata(report.get("metadata") or {}, "metadata")
        metadata_keys.update(metadata)
        row.update(metadata)
        rows.append(row)

    output = io.StringIO()
    writer = csv.DictWriter(
        output, fieldnames=REPORT_COLUMNS + sorted(metadata_keys), restval=""
    )
    writer.writeheader()
    writer.writerows(rows)

    return output.getvalue()
