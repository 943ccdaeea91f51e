"""Persistence and aggregates for social posts and their sentiment analyses."""

import json
from datetime import datetime
from typing import Any

import asyncpg

from app.core.database import parse_row, parse_rows

ANALYSIS_JSON_FIELDS = ("topics", "key_points")


async def upsert_post(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    post_id: str,
    author: str,
    content: str,
    location: str | None = None,
    posted_at: datetime | None = None,
    platform: str = "x",
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO social_posts (platform, post_id, author, content, location, posted_at)
        VALUES ($1, $2, $3, $4, $5, $6)
        ON CONFLICT (post_id) DO UPDATE
        SET author = EXCLUDED.author,
            content = EXCLUDED.content,
            location = EXCLUDED.location,
            posted_at = COALESCE(EXCLUDED.posted_at, social_posts.posted_at),
            updated_at = CURRENT_TIMESTAMP
        RETURNING *
        """,
        platform,
        post_id,
        author,
        content,
        location,
        posted_at,
    )
    return parse_row(result)


async def list_unanalyzed_posts(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, parish: str | None = None, limit: int = 20
) -> list[dict[str, Any]]:
    """Posts without an analysis yet, newest first, optionally mentioning a parish."""
    params: list[Any] = []
    parish_filter = ""
    if parish:
        params.append(f"%{parish}%")
        parish_filter = "AND (p.content ILIKE $1 OR p.location ILIKE $1)"
    params.append(limit)

    rows = await conn.fetch(
        f"""
        SELECT p.*
        FROM social_posts p
        LEFT JOIN sentiment_analyses s ON s.post_id = p.post_id
        WHERE s.id IS NULL {parish_filter}
        ORDER BY COALESCE(p.posted_at, p.created_at) DESC
        LIMIT ${len(params)}
        """,
        *params,
    )
    return parse_rows(rows)


async def upsert_analysis(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, post_id: str, analysis: dict[str, Any]
) -> dict[str, Any] | None:
    """Store an analysis result (as produced by the sentiment service) for a post."""
    details = analysis["analysis"]
    result = await conn.fetchrow(
        """
        INSERT INTO sentiment_analyses (
            post_id, sentiment, confidence, relevance_score, topics, parish,
            risk_level, summary, key_points, is_actionable
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        ON CONFLICT (post_id) DO UPDATE
        SET sentiment = EXCLUDED.sentiment,
            confidence = EXCLUDED.confidence,
            relevance_score = EXCLUDED.relevance_score,
            topics = EXCLUDED.topics,
            parish = EXCLUDED.parish,
            risk_level = EXCLUDED.risk_level,
            summary = EXCLUDED.summary,
            key_points = EXCLUDED.key_points,
            is_actionable = EXCLUDED.is_actionable,
            analyzed_at = CURRENT_TIMESTAMP
        RETURNING *
        """,
        post_id,
        analysis["sentiment"],
        analysis["confidence"],
        analysis["relevanceScore"],
        json.dumps(analysis["topics"]),
        analysis.get("parish"),
        details["riskLevel"],
        details["summary"],
        json.dumps(details["keyPoints"]),
        details["actionable"],
    )
    return parse_row(result, ANALYSIS_JSON_FIELDS)


async def list_recent_analyses(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, hours: int = 24
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM sentiment_analyses
        WHERE analyzed_at >= CURRENT_TIMESTAMP - INTERVAL '1 hour' * $1
        ORDER BY analyzed_at DESC
        """,
        hours,
    )
    return parse_rows(rows, ANALYSIS_JSON_FIELDS)


def as_analysis_result(row: dict[str, Any]) -> dict[str, Any]:
    """Stored row back into the shape the report builder consumes."""
    return {
        "sentiment": row["sentiment"],
        "confidence": row["confidence"],
        "relevanceScore": row["relevance_score"],
        "topics": row.get("topics") or [],
        "parish": row.get("parish"),
        "analysis": {
            "summary": row.get("summary"),
            "keyPoints": row.get("key_points") or [],
            "riskLevel": row["risk_level"],
            "actionable": row["is_actionable"],
        },
    }


async def get_trends(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, days: int = 7
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT
            DATE(analyzed_at) AS date,
            sentiment,
            COUNT(*) AS count,
            ROUND(AVG(confidence)::numeric, 2) AS avg_confidence,
            ROUND(AVG(relevance_score)::numeric, 2) AS avg_relevance
        FROM sentiment_analyses
        WHERE analyzed_at >= CURRENT_TIMESTAMP - INTERVAL '1 day' * $1
        GROUP BY DATE(analyzed_at), sentiment
        ORDER BY date, sentiment
        """,
        days,
    )
    return [
        {
            "date": row["date"].isoformat(),
            "sentiment": row["sentiment"],
            "count": row["count"],
            "avgConfidence": float(row["avg_confidence"] or 0),
            "avgRelevance": float(row["avg_relevance"] or 0),
        }
        for row in rows
    ]


async def list_high_risk(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, limit: int = 20
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT s.*, p.author, p.content, p.location, p.posted_at, p.platform
        FROM sentiment_analyses s
        JOIN social_posts p ON p.post_id = s.post_id
        WHERE s.risk_level = 'high'
        ORDER BY s.analyzed_at DESC
        LIMIT $1
        """,
        limit,
    )
    return parse_rows(rows, ANALYSIS_JSON_FIELDS)


async def get_parish_overview(conn: asyncpg.Connection) -> list[dict[str, Any]]:  # type: ignore[no-any-unimported]
    """Per-parish totals; average sentiment maps positive/neutral/negative to 1/0/-1."""
    rows = await conn.fetch(
        """
        SELECT
            parish,
            COUNT(*) AS total,
            ROUND(AVG(CASE sentiment
                WHEN 'positive' THEN 1
                WHEN 'negative' THEN -1
                ELSE 0 END)::numeric, 2) AS average_sentiment,
            COUNT(*) FILTER (WHERE risk_level = 'high') AS high_risk,
            COUNT(*) FILTER (WHERE risk_level = 'medium') AS medium_risk,
            COUNT(*) FILTER (WHERE risk_level = 'low') AS low_risk
        FROM sentiment_analyses
        WHERE parish IS NOT NULL
        GROUP BY parish
        ORDER BY total DESC
        """
    )
    return [
        {
            "parish": row["parish"],
            "total": row["total"],
            "averageSentiment": float(row["average_sentiment"] or 0),
            "highRisk": row["high_risk"],
            "mediumRisk": row["medium_risk"],
            "lowRisk": row["low_risk"],
        }
        for row in rows
    ]
