"""Dashboard and per-parish operational statistics."""

from typing import Any

import asyncpg


async def get_dashboard_stats(conn: asyncpg.Connection) -> dict[str, int]:  # type: ignore[no-any-unimported]
    row = await conn.fetchrow(
        """
        SELECT
            (SELECT COUNT(*) FROM polling_stations
               WHERE deleted = FALSE AND is_active = TRUE) AS total_stations,
            (SELECT COUNT(*) FROM users
               WHERE role = 'observer' AND status = 'active' AND deleted = FALSE) AS active_observers,
            (SELECT COUNT(*) FROM reports WHERE deleted = FALSE) AS reports_submitted,
            (SELECT COUNT(*) FROM alerts
               WHERE status IN ('active', 'escalated')) AS pending_alerts
        """
    )
    return {
        "totalStations": int(row["total_stations"] or 0),
        "activeObservers": int(row["active_observers"] or 0),
        "reportsSubmitted": int(row["reports_submitted"] or 0),
        "pendingAlerts": int(row["pending_alerts"] or 0),
    }


async def get_parish_statistics(conn: asyncpg.Connection) -> list[dict[str, Any]]:  # type: ignore[no-any-unimported]
    """One entry per parish, including parishes with no activity."""
    rows = await conn.fetch(
        """
        SELECT
            p.id, p.name, p.code,
            (SELECT COUNT(*) FROM polling_stations ps
               WHERE ps.parish_id = p.id AND ps.deleted = FALSE) AS polling_stations,
            (SELECT COUNT(*) FROM users u
               WHERE u.parish_id = p.id AND u.role = 'observer'
                 AND u.status = 'active' AND u.deleted = FALSE) AS active_observers,
            (SELECT COUNT(*) FROM reports r
               JOIN polling_stations ps ON ps.id = r.station_id
               WHERE ps.parish_id = p.id AND r.type = 'incident' AND r.deleted = FALSE) AS total_incidents,
            (SELECT COUNT(*) FROM reports r
               JOIN polling_stations ps ON ps.id = r.station_id
               WHERE ps.parish_id = p.id AND r.type = 'incident'
                 AND r.priority = 'critical' AND r.deleted = FALSE) AS critical_incidents,
            (SELECT COUNT(*) FROM check_ins c
               JOIN polling_stations ps ON ps.id = c.station_id
               WHERE ps.parish_id = p.id AND c.timestamp >= CURRENT_DATE) AS check_ins_today,
            (SELECT ROUND(AVG(t.delay_minutes)::numeric, 1) FROM traffic_analytics_history t
               JOIN polling_stations ps ON ps.id = t.polling_station_id
               WHERE ps.parish_id = p.id
                 AND t.recorded_at >= CURRENT_TIMESTAMP - INTERVAL '1 day') AS avg_traffic_delay
        FROM parishes p
        ORDER BY p.name
        """
    )
    breakdown = await conn.fetch(
        """
        SELECT ps.parish_id,
               COALESCE(NULLIF(r.metadata->>'incidentType', ''), 'other') AS incident_type,
               COUNT(*) AS count
        FROM reports r
        JOIN polling_stations ps ON ps.id = r.station_id
        WHERE r.type = 'incident' AND r.deleted = FALSE
        GROUP BY ps.parish_id, incident_type
        """
    )

    incident_types: dict[str, dict[str, int]] = {}
    for row in breakdown:
        types = incident_types.setdefault(str(row["parish_id"]), {})
        types[row["incident_type"]] = row["count"]

    return [
        {
            "parishId": str(row["id"]),
            "parishName": row["name"],
            "parishCode": row["code"],
            "pollingStations": row["polling_stations"],
            "activeObservers": row["active_observers"],
            "totalIncidents": row["total_incidents"],
            "criticalIncidents": row["critical_incidents"],
            "incidentTypes": incident_types.get(str(row["id"]), {}),
            "checkInsToday": row["check_ins_today"],
            "averageTrafficDelay": float(row["avg_traffic_delay"])
            if row["avg_traffic_delay"] is not None
            else None,
        }
        for row in rows
    ]


def parish_totals(stats: list[dict[str, Any]]) -> dict[str, int]:
    return {
        "totalParishes": len(stats),
        "totalStations": sum(p["pollingStations"] for p in stats),
        "totalIncidents": sum(p["totalIncidents"] for p in stats),
        "totalCritical": sum(p["criticalIncidents"] for p in stats),
        "totalObservers": sum(p["activeObservers"] for p in stats),
        "totalCheckInsToday": sum(p["checkInsToday"] for p in stats),
    }


def parish_comparison(stats: list[dict[str, Any]]) -> dict[str, Any]:
    """Leading parishes; the first parish in order wins ties."""
    if not stats:
        return {"highestIncidents": None, "mostObservers": None, "criticalAlerts": []}

    highest_incidents = max(stats, key=lambda p: p["totalIncidents"])
    most_observers = max(stats, key=lambda p: p["activeObservers"])
    return {
        "highestIncidents": highest_incidents["parishName"],
        "mostObservers": most_observers["parishName"],
        "criticalAlerts": [
            f"{p['parishName']}: {p['criticalIncidents']} critical incidents"
            for p in stats
            if p["criticalIncidents"] > 0
        ],
    }
