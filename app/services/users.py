"""User service functions."""

import secrets
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

USER_COLUMNS = """
    id, username, email, observer_id, first_name, last_name, phone, trn,
    parish_id, role, status, kyc_status, training_status, certification_level,
    last_login, latitude, longitude, created_at, updated_at
"""

UPDATABLE_FIELDS = (
    "email",
    "first_name",
    "last_name",
    "phone",
    "trn",
    "parish_id",
    "role",
    "status",
    "kyc_status",
    "training_status",
    "certification_level",
)

OBSERVER_ID_ATTEMPTS = 20


def random_observer_id() -> str:
    """Six decimal digits, leading zeros allowed."""
    return f"{secrets.randbelow(1_000_000):06d}"


async def generate_observer_id(conn: asyncpg.Connection) -> str:  # type: ignore[no-any-unimported]
    """Pick a random observer id that is not yet taken."""
    for _ in range(OBSERVER_ID_ATTEMPTS):
        candidate = random_observer_id()
        taken = await conn.fetchval(
            "SELECT EXISTS(SELECT 1 FROM users WHERE observer_id = $1)", candidate
        )
        if not taken:
            return candidate
    raise RuntimeError("Could not allocate a unique observer id")


async def create_user(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    username: str,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str,
    observer_id: str,
    phone: str | None = None,
    trn: str | None = None,
    parish_id: UUID | None = None,
    role: str = "observer",
    status: str = "pending",
) -> dict[str, Any] | None:
    """Create a new user."""
    result = await conn.fetchrow(
        f"""
        INSERT INTO users (
            username, email, password_hash, first_name, last_name, observer_id,
            phone, trn, parish_id, role, status
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
        RETURNING {USER_COLUMNS}
        """,
        username,
        email,
        password_hash,
        first_name,
        last_name,
        observer_id,
        phone,
        trn,
        str(parish_id) if parish_id else None,
        role,
        status,
    )
    return parse_row(result)


async def get_user_by_id(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        f"""
        SELECT {USER_COLUMNS}, password_hash
        FROM users
        WHERE id = $1 AND deleted = FALSE
        """,
        str(user_id),
    )
    return parse_row(result)


async def get_user_by_username(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, username: str
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        f"""
        SELECT {USER_COLUMNS}, password_hash
        FROM users
        WHERE username = $1 AND deleted = FALSE
        """,
        username,
    )
    return parse_row(result)


async def username_or_email_taken(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, username: str, email: str
) -> str | None:
    """Return which of the two identifiers is already registered, if any."""
    row = await conn.fetchrow(
        """
        SELECT
            EXISTS(SELECT 1 FROM users WHERE username = $1) AS username_taken,
            EXISTS(SELECT 1 FROM users WHERE lower(email) = lower($2)) AS email_taken
        """,
        username,
        email,
    )
    if row and row["username_taken"]:
        return "username"
    if row and row["email_taken"]:
        return "email"
    return None


async def list_users(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    role: str | None = None,
    status: str | None = None,
    parish_id: UUID | None = None,
    search: str | None = None,
    sort: str = "created_at",
    order: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List users with filtering, sorting, and pagination."""
    where = ["deleted = FALSE"]
    params: list[Any] = []
    param_num = 1

    if role:
        where.append(f"role = ${param_num}")
        params.append(role)
        param_num += 1

    if status:
        where.append(f"status = ${param_num}")
        params.append(status)
        param_num += 1

    if parish_id:
        where.append(f"parish_id = ${param_num}")
        params.append(str(parish_id))
        param_num += 1

    if search:
        where.append(
            f"(username ILIKE ${param_num} OR email ILIKE ${param_num}"
            f" OR first_name ILIKE ${param_num} OR last_name ILIKE ${param_num})"
        )
        params.append(f"%{search}%")
        param_num += 1

    if sort not in ("created_at", "username", "last_name", "role", "status", "last_login"):
        sort = "created_at"
    if order not in ("asc", "desc"):
        order = "desc"

    where_sql = " AND ".join(where)
    rows = await conn.fetch(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE {where_sql}
        ORDER BY {sort} {order}
        LIMIT ${param_num} OFFSET ${param_num + 1}
        """,
        *params,
        limit,
        offset,
    )
    total = await conn.fetchval(f"SELECT COUNT(*) FROM users WHERE {where_sql}", *params)

    return parse_rows(rows), int(total or 0)


async def update_user(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    """Update whitelisted user fields. Unknown keys are ignored."""
    sets = []
    params: list[Any] = []
    param_num = 1

    for field in UPDATABLE_FIELDS:
        if field in updates:
            value = updates[field]
            if isinstance(value, UUID):
                value = str(value)
            sets.append(f"{field} = ${param_num}")
            params.append(value)
            param_num += 1

    if not sets:
        return await get_user_by_id(conn, user_id)

    sets.append("updated_at = CURRENT_TIMESTAMP")
    params.append(str(user_id))

    result = await conn.fetchrow(
        f"""
        UPDATE users
        SET {", ".join(sets)}
        WHERE id = ${param_num} AND deleted = FALSE
        RETURNING {USER_COLUMNS}
        """,
        *params,
    )
    return parse_row(result)


async def update_user_location(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID, latitude: float, longitude: float
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        f"""
        UPDATE users
        SET latitude = $1, longitude = $2, updated_at = CURRENT_TIMESTAMP
        WHERE id = $3 AND deleted = FALSE
        RETURNING {USER_COLUMNS}
        """,
        latitude,
        longitude,
        str(user_id),
    )
    return parse_row(result)


async def update_user_last_login(conn: asyncpg.Connection, user_id: UUID) -> None:  # type: ignore[no-any-unimported]
    await conn.execute(
        "UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = $1",
        str(user_id),
    )


async def delete_user(conn: asyncpg.Connection, user_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    """Soft delete a user."""
    result = await conn.execute(
        """
        UPDATE users
        SET deleted = TRUE, deleted_at = CURRENT_TIMESTAMP, status = 'inactive'
        WHERE id = $1 AND deleted = FALSE
        """,
        str(user_id),
    )
    return rows_affected(result) > 0
