"""Keyword configurations that drive social media monitoring."""

from collections.abc import Iterable
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows
from app.utils import jamaica_keywords

PRIORITY_LABELS = {1: "high", 2: "medium", 3: "low"}

DEFAULT_CONFIGS = [
    {
        "config_name": "Jamaica Political Parties",
        "category": "parties",
        "keywords": jamaica_keywords.POLITICAL_PARTIES,
        "description": "Major and minor political parties in Jamaica",
        "priority": 1,
    },
    {
        "config_name": "Jamaica Political Leaders",
        "category": "politicians",
        "keywords": jamaica_keywords.POLITICAL_LEADERS,
        "description": "Current and former political leaders, ministers, MPs, mayors",
        "priority": 1,
    },
    {
        "config_name": "Jamaica Political Commentators",
        "category": "commentators",
        "keywords": jamaica_keywords.POLITICAL_COMMENTATORS,
        "description": "Media analysts, journalists, and political commentators",
        "priority": 2,
    },
    {
        "config_name": "Jamaica Constituencies",
        "category": "constituencies",
        "keywords": jamaica_keywords.CONSTITUENCIES,
        "description": "Parliamentary constituencies in Jamaica",
        "priority": 1,
    },
    {
        "config_name": "Election Keywords",
        "category": "electionKeywords",
        "keywords": jamaica_keywords.ELECTION_KEYWORDS,
        "description": "Core election and political process terms",
        "priority": 1,
    },
    {
        "config_name": "Social Issues",
        "category": "socialIssues",
        "keywords": jamaica_keywords.SOCIAL_ISSUES,
        "description": "Economic, social, infrastructure, and governance issues",
        "priority": 2,
    },
]


def dedup_keywords(keywords: Iterable[str]) -> list[str]:
    """Drop blank entries and exact repeats, keeping first-seen order."""
    return list(dict.fromkeys(k for k in keywords if k and k.strip()))


def remove_from(keywords: list[str], to_remove: Iterable[str]) -> list[str]:
    removed = set(to_remove)
    return [k for k in keywords if k not in removed]


def keywords_by_priority(configs: list[dict[str, Any]]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {label: [] for label in PRIORITY_LABELS.values()}
    for config in configs:
        if not config["is_enabled"]:
            continue
        label = PRIORITY_LABELS.get(config["priority"])
        if label:
            grouped[label].extend(config["keywords"] or [])
    return {label: dedup_keywords(words) for label, words in grouped.items()}


def configuration_stats(configs: list[dict[str, Any]]) -> dict[str, Any]:
    category_counts: dict[str, int] = {}
    total_keywords = 0
    active_keywords = 0

    for config in configs:
        count = len(config["keywords"] or [])
        total_keywords += count
        if config["is_enabled"]:
            active_keywords += count
        category_counts[config["category"]] = category_counts.get(config["category"], 0) + 1

    return {
        "totalConfigurations": len(configs),
        "activeConfigurations": sum(1 for c in configs if c["is_enabled"]),
        "totalKeywords": total_keywords,
        "activeKeywords": active_keywords,
        "categoryCounts": category_counts,
    }


async def initialize_defaults(conn: asyncpg.Connection) -> bool:  # type: ignore[no-any-unimported]
    """Seed the default configurations when the table is empty."""
    existing = await conn.fetchval("SELECT COUNT(*) FROM monitoring_configs")
    if existing:
        return False

    await conn.executemany(
        """
        INSERT INTO monitoring_configs (
            config_name, category, keywords, is_enabled, description, created_by, priority
        )
        VALUES ($1, $2, $3, TRUE, $4, 'system', $5)
        """,
        [
            (
                config["config_name"],
                config["category"],
                dedup_keywords(config["keywords"]),
                config["description"],
                config["priority"],
            )
            for config in DEFAULT_CONFIGS
        ],
    )
    return True


async def list_configurations(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, category: str | None = None
) -> list[dict[str, Any]]:
    if category:
        rows = await conn.fetch(
            "SELECT * FROM monitoring_configs WHERE category = $1 ORDER BY priority, config_name",
            category,
        )
    else:
        rows = await conn.fetch(
            "SELECT * FROM monitoring_configs ORDER BY priority, config_name"
        )
    return parse_rows(rows)


async def get_configuration(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, config_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM monitoring_configs WHERE id = $1", str(config_id))
    return parse_row(result)


async def update_configuration(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, config_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets = []
    params: list[Any] = []
    for field in ("config_name", "keywords", "is_enabled", "description", "priority"):
        if field in updates:
            value = updates[field]
            params.append(dedup_keywords(value) if field == "keywords" else value)
            sets.append(f"{field} = ${len(params)}")

    if not sets:
        return await get_configuration(conn, config_id)

    params.append(str(config_id))
    result = await conn.fetchrow(
        f"""
        UPDATE monitoring_configs
        SET {", ".join(sets)}, last_updated = CURRENT_TIMESTAMP
        WHERE id = ${len(params)}
        RETURNING *
        """,
        *params,
    )
    return parse_row(result)


async def add_custom_keywords(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, category: str, keywords: list[str]
) -> dict[str, Any] | None:
    """Merge keywords into the category's configuration, creating ``Custom {category}`` if none exists."""
    existing = await conn.fetchrow(
        "SELECT * FROM monitoring_configs WHERE category = $1 ORDER BY created_at LIMIT 1",
        category,
    )
    if existing:
        result = await conn.fetchrow(
            """
            UPDATE monitoring_configs
            SET keywords = $1, last_updated = CURRENT_TIMESTAMP
            WHERE id = $2
            RETURNING *
            """,
            dedup_keywords([*(existing["keywords"] or []), *keywords]),
            existing["id"],
        )
    else:
        result = await conn.fetchrow(
            """
            INSERT INTO monitoring_configs (
                config_name, category, keywords, is_enabled, description, created_by, priority
            )
            VALUES ($1, $2, $3, TRUE, $4, 'admin', 3)
            RETURNING *
            """,
            f"Custom {category}",
            category,
            dedup_keywords(keywords),
            f"Custom keywords for {category}",
        )
    return parse_row(result)


async def remove_keywords(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, config: dict[str, Any], keywords: list[str]
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        UPDATE monitoring_configs
        SET keywords = $1, last_updated = CURRENT_TIMESTAMP
        WHERE id = $2
        RETURNING *
        """,
        remove_from(config["keywords"] or [], keywords),
        str(config["id"]),
    )
    return parse_row(result)


async def toggle_configuration(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, config_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        UPDATE monitoring_configs
        SET is_enabled = NOT is_enabled, last_updated = CURRENT_TIMESTAMP
        WHERE id = $1
        RETURNING *
        """,
        str(config_id),
    )
    return parse_row(result)


async def get_active_keywords(conn: asyncpg.Connection) -> list[str]:  # type: ignore[no-any-unimported]
    rows = await conn.fetch(
        "SELECT keywords FROM monitoring_configs WHERE is_enabled = TRUE ORDER BY priority, config_name"
    )
    return dedup_keywords(keyword for row in rows for keyword in (row["keywords"] or []))
