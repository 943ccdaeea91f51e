"""Route traffic to polling stations via the Google Directions API."""

import logging
from datetime import datetime
from typing import Any

import asyncpg
import httpx

from app.core.config import settings
from app.core.database import parse_row, parse_rows
from app.core.validation import JAMAICA_TZ, ensure_aware

logger = logging.getLogger(__name__)

UNAVAILABLE_CONDITION = {
    "severity": "light",
    "speed": 50,
    "delayMinutes": 0,
    "description": "Traffic data unavailable",
}


def classify_severity(delay_minutes: int) -> tuple[str, str]:
    if delay_minutes > 15:
        return "severe", "Heavy traffic with significant delays"
    if delay_minutes > 8:
        return "heavy", "Heavy traffic conditions"
    if delay_minutes > 3:
        return "moderate", "Moderate traffic conditions"
    return "light", "Traffic is flowing smoothly"


def congestion_level(normal_seconds: int, traffic_seconds: int) -> int:
    """1 (free flow) to 10, one step per 10% of extra travel time."""
    if normal_seconds <= 0:
        return 1
    extra = max(0.0, traffic_seconds / normal_seconds - 1)
    return max(1, min(10, 1 + int(extra * 10)))


def summarize_leg(leg: dict[str, Any], route_count: int) -> dict[str, Any]:
    normal = leg["duration"]["value"]
    in_traffic = (leg.get("duration_in_traffic") or leg["duration"])["value"]
    distance = leg["distance"]["value"]
    delay_minutes = max(0, round((in_traffic - normal) / 60))
    severity, description = classify_severity(delay_minutes)
    hours = in_traffic / 3600
    speed = round(distance / 1000 / hours) if hours > 0 else UNAVAILABLE_CONDITION["speed"]

    return {
        "available": True,
        "distanceMeters": distance,
        "distance": leg["distance"].get("text"),
        "normalDuration": normal,
        "trafficDuration": in_traffic,
        "duration": leg["duration"].get("text"),
        "durationInTraffic": (leg.get("duration_in_traffic") or leg["duration"]).get("text"),
        "delayMinutes": delay_minutes,
        "severity": severity,
        "speed": speed,
        "congestionLevel": congestion_level(normal, in_traffic),
        "description": description,
        "alternativeRoutes": max(0, route_count - 1),
    }


def unavailable_route() -> dict[str, Any]:
    return {
        "available": False,
        "distanceMeters": None,
        "normalDuration": None,
        "trafficDuration": None,
        "congestionLevel": 1,
        "alternativeRoutes": 0,
        **UNAVAILABLE_CONDITION,
    }


class TrafficService:
    def __init__(self, api_key: str, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TrafficService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def route_traffic(
        self, origin: tuple[float, float], destination: tuple[float, float]
    ) -> dict[str, Any]:
        """Current traffic on the best route; failures yield the unavailable defaults."""
        try:
            response = await self._client.get(
                f"{settings.GOOGLE_MAPS_BASE_URL}/directions/json",
                params={
                    "origin": f"{origin[0]},{origin[1]}",
                    "destination": f"{destination[0]},{destination[1]}",
                    "departure_time": "now",
                    "traffic_model": "best_guess",
                    "alternatives": "true",
                    "key": self.api_key,
                },
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Directions request failed: {e}")
            return unavailable_route()

        if data.get("status") != "OK" or not data.get("routes"):
            logger.warning(f"Route data unavailable: {data.get('status')}")
            return unavailable_route()

        return summarize_leg(data["routes"][0]["legs"][0], len(data["routes"]))


async def record_observation(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    station: dict[str, Any],
    origin: tuple[float, float],
    route: dict[str, Any],
    observed_at: datetime,
    origin_type: str = "custom",
    origin_name: str | None = None,
) -> dict[str, Any] | None:
    observed_at = ensure_aware(observed_at)
    local = observed_at.astimezone(JAMAICA_TZ)
    result = await conn.fetchrow(
        """
        INSERT INTO traffic_analytics_history (
            polling_station_id, route_origin_type, route_origin_name,
            origin_lat, origin_lng, destination_lat, destination_lng,
            distance_meters, normal_duration, traffic_duration, delay_minutes,
            traffic_severity, average_speed, congestion_level, time_of_day,
            day_of_week, data_source, recorded_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17, $18)
        RETURNING *
        """,
        str(station["id"]),
        origin_type,
        origin_name,
        origin[0],
        origin[1],
        station["latitude"],
        station["longitude"],
        route.get("distanceMeters"),
        route.get("normalDuration"),
        route.get("trafficDuration"),
        route["delayMinutes"],
        route["severity"],
        route["speed"],
        route["congestionLevel"],
        local.hour,
        # Sunday = 0, matching PostgreSQL EXTRACT(DOW)
        (local.weekday() + 1) % 7,
        "google_maps" if route.get("available") else "fallback",
        observed_at,
    )
    return parse_row(result)


async def get_station_history(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, station_id: Any, days: int = 7
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM traffic_analytics_history
        WHERE polling_station_id = $1
          AND recorded_at >= CURRENT_TIMESTAMP - INTERVAL '1 day' * $2
        ORDER BY recorded_at DESC
        """,
        str(station_id),
        days,
    )
    return parse_rows(rows)


async def get_traffic_analytics(conn: asyncpg.Connection) -> dict[str, Any]:  # type: ignore[no-any-unimported]
    by_hour = await conn.fetch(
        """
        SELECT time_of_day AS hour,
               ROUND(AVG(delay_minutes)::numeric, 2) AS avg_delay,
               ROUND(AVG(average_speed)::numeric, 2) AS avg_speed,
               COUNT(*) AS observations
        FROM traffic_analytics_history
        GROUP BY time_of_day
        ORDER BY time_of_day
        """
    )
    by_day = await conn.fetch(
        """
        SELECT day_of_week AS day,
               ROUND(AVG(delay_minutes)::numeric, 2) AS avg_delay,
               ROUND(AVG(average_speed)::numeric, 2) AS avg_speed,
               COUNT(*) AS observations
        FROM traffic_analytics_history
        GROUP BY day_of_week
        ORDER BY day_of_week
        """
    )
    by_severity = await conn.fetch(
        """
        SELECT traffic_severity AS severity, COUNT(*) AS observations
        FROM traffic_analytics_history
        GROUP BY traffic_severity
        """
    )

    def _aggregate(row: Any, key: str) -> dict[str, Any]:
        return {
            key: row[key],
            "avgDelay": float(row["avg_delay"] or 0),
            "avgSpeed": float(row["avg_speed"] or 0),
            "observations": row["observations"],
        }

    return {
        "byHour": [_aggregate(row, "hour") for row in by_hour],
        "byDayOfWeek": [_aggregate(row, "day") for row in by_day],
        "bySeverity": {row["severity"]: row["observations"] for row in by_severity},
    }
