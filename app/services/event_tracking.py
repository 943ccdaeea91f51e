"""Usage event tracking in BigQuery."""

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Any

from google.cloud import bigquery

from app.core.config import settings

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"

EVENTS_SCHEMA = [
    bigquery.SchemaField("user_id", "STRING"),
    bigquery.SchemaField("event_type", "STRING"),
    bigquery.SchemaField("event_data", "JSON"),
    bigquery.SchemaField("timestamp", "TIMESTAMP"),
    bigquery.SchemaField("session_id", "STRING"),
    bigquery.SchemaField("device_fingerprint", "STRING"),
    bigquery.SchemaField("location", "GEOGRAPHY"),
]

EMPTY_METRICS = {
    "totalObservers": 0,
    "activeObservers": 0,
    "completedReports": 0,
}

_client: bigquery.Client | None = None


class EventTrackingError(Exception):
    pass


def get_client() -> bigquery.Client:
    global _client
    if _client is None:
        if settings.GOOGLE_CLOUD_KEY_FILE:
            _client = bigquery.Client.from_service_account_json(
                settings.GOOGLE_CLOUD_KEY_FILE, project=settings.GOOGLE_CLOUD_PROJECT_ID
            )
        else:
            _client = bigquery.Client(project=settings.GOOGLE_CLOUD_PROJECT_ID)
    return _client


def events_table_id() -> str:
    return f"{settings.GOOGLE_CLOUD_PROJECT_ID}.{settings.BIGQUERY_DATASET}.{EVENTS_TABLE}"


def build_event_row(
    user_id: str,
    event_type: str,
    event_data: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
    session_id: str | None = None,
    device_fingerprint: str | None = None,
    location: dict[str, float] | None = None,
) -> dict[str, Any]:
    """Row for the events table; location becomes WKT ``POINT(lng lat)``."""
    return {
        "user_id": user_id,
        "event_type": event_type,
        "event_data": json.dumps(event_data or {}),
        "timestamp": (timestamp or datetime.now(UTC)).isoformat(),
        "session_id": session_id,
        "device_fingerprint": device_fingerprint,
        "location": f"POINT({location['longitude']} {location['latitude']})"
        if location
        else None,
    }


def build_report_query(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    event_type: str | None = None,
    user_id: str | None = None,
    limit: int | None = None,
) -> tuple[str, list[bigquery.ScalarQueryParameter]]:
    """Custom report over the events table; every filter is a query parameter."""
    conditions = []
    params: list[bigquery.ScalarQueryParameter] = []

    if start_date:
        conditions.append("timestamp >= @start_date")
        params.append(bigquery.ScalarQueryParameter("start_date", "TIMESTAMP", start_date))
    if end_date:
        conditions.append("timestamp <= @end_date")
        params.append(bigquery.ScalarQueryParameter("end_date", "TIMESTAMP", end_date))
    if event_type:
        conditions.append("event_type = @event_type")
        params.append(bigquery.ScalarQueryParameter("event_type", "STRING", event_type))
    if user_id:
        conditions.append("user_id = @user_id")
        params.append(bigquery.ScalarQueryParameter("user_id", "STRING", user_id))

    query = f"SELECT * FROM `{events_table_id()}`"
    if conditions:
        query += " WHERE " + " AND ".join(conditions)
    query += " ORDER BY timestamp DESC"
    if limit:
        query += " LIMIT @limit"
        params.append(bigquery.ScalarQueryParameter("limit", "INT64", limit))

    return query, params


def _ensure_events_table() -> None:
    client = get_client()
    dataset = bigquery.Dataset(f"{settings.GOOGLE_CLOUD_PROJECT_ID}.{settings.BIGQUERY_DATASET}")
    dataset.location = "US"
    dataset.description = "Electoral observation analytics data"
    client.create_dataset(dataset, exists_ok=True)
    client.create_table(bigquery.Table(events_table_id(), schema=EVENTS_SCHEMA), exists_ok=True)


async def initialize() -> bool:
    """Create the dataset and events table when BigQuery is configured."""
    if not settings.bigquery_enabled:
        return False
    await asyncio.to_thread(_ensure_events_table)
    return True


async def track_event(row: dict[str, Any]) -> bool:
    """Insert one event row. Returns False when tracking is not configured."""
    if not settings.bigquery_enabled:
        logger.debug(f"BigQuery not configured, skipping event {row.get('event_type')}")
        return False

    errors = await asyncio.to_thread(get_client().insert_rows_json, events_table_id(), [row])
    if errors:
        raise EventTrackingError(f"BigQuery rejected event: {errors}")
    return True


def _run_query(query: str, params: list[bigquery.ScalarQueryParameter]) -> list[dict[str, Any]]:
    job = get_client().query(query, job_config=bigquery.QueryJobConfig(query_parameters=params))
    return [dict(row.items()) for row in job.result()]


async def get_metrics() -> dict[str, int]:
    if not settings.bigquery_enabled:
        return dict(EMPTY_METRICS)

    table = events_table_id()
    rows = await asyncio.to_thread(
        _run_query,
        f"""
        SELECT
          (SELECT COUNT(DISTINCT user_id) FROM `{table}`
             WHERE event_type = 'user_login'
               AND timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL 30 DAY)) AS total_observers,
          (SELECT COUNT(DISTINCT user_id) FROM `{table}`
             WHERE event_type = 'user_activity'
               AND timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL 1 DAY)) AS active_observers,
          (SELECT COUNT(*) FROM `{table}`
             WHERE event_type = 'report_submitted'
               AND timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL 1 DAY)) AS completed_reports
        """,
        [],
    )
    row = rows[0] if rows else {}
    return {
        "totalObservers": int(row.get("total_observers") or 0),
        "activeObservers": int(row.get("active_observers") or 0),
        "completedReports": int(row.get("completed_reports") or 0),
    }


async def run_custom_report(**filters: Any) -> dict[str, Any]:
    generated_at = datetime.now(UTC).isoformat()
    if not settings.bigquery_enabled:
        return {"data": [], "generatedAt": generated_at, "parameters": filters}

    query, params = build_report_query(**filters)
    rows = await asyncio.to_thread(_run_query, query, params)
    return {"data": rows, "generatedAt": generated_at, "parameters": filters}
