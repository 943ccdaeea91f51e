"""Training courses, modules, enrollments and progress."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

MODULE_TYPES = ("lesson", "video", "reading", "quiz", "assignment")
MODULE_STATUSES = ("draft", "published", "archived")
ENROLLMENT_STATUSES = ("enrolled", "in_progress", "completed", "dropped")

COURSE_JSON_FIELDS = ("content", "prerequisites", "learning_objectives", "tags")
COURSE_UPDATABLE_FIELDS = (
    "title",
    "description",
    "target_audience",
    "content",
    "duration",
    "passing_score",
    "is_active",
    "difficulty",
    "prerequisites",
    "learning_objectives",
    "tags",
)
MODULE_UPDATABLE_FIELDS = (
    "title",
    "description",
    "content",
    "module_order",
    "duration",
    "is_required",
    "module_type",
    "status",
)


class InvalidModuleContent(ValueError):
    pass


def validate_module_content(module_type: str, content: Any) -> None:
    """Lessons carry rich content shaped as ``{"blocks": [...]}``."""
    if module_type != "lesson":
        return
    if not isinstance(content, dict) or not isinstance(content.get("blocks"), list):
        raise InvalidModuleContent(
            "Invalid rich content structure for module type 'lesson'. Expected { blocks: [] }."
        )


def _build_update(
    fields: tuple[str, ...], updates: dict[str, Any], json_fields: tuple[str, ...]
) -> tuple[list[str], list[Any]]:
    sets = []
    params: list[Any] = []
    for field in fields:
        if field in updates:
            value = updates[field]
            if field in json_fields:
                value = json.dumps(value)
            params.append(value)
            sets.append(f"{field} = ${len(params)}")
    return sets, params


# Courses


async def create_course(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, data: dict[str, Any], created_by: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        INSERT INTO courses (
            title, description, target_audience, content, duration, passing_score,
            is_active, difficulty, prerequisites, learning_objectives, tags, created_by
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
        RETURNING *
        """,
        data["title"],
        data.get("description"),
        data.get("target_audience", "observer"),
        json.dumps(data.get("content") or {}),
        data.get("duration", 60),
        data.get("passing_score", 80),
        data.get("is_active", True),
        data.get("difficulty", "beginner"),
        json.dumps(data.get("prerequisites") or []),
        json.dumps(data.get("learning_objectives") or []),
        json.dumps(data.get("tags") or []),
        str(created_by),
    )
    return parse_row(result, COURSE_JSON_FIELDS)


async def get_course(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        "SELECT * FROM courses WHERE id = $1 AND deleted = FALSE", str(course_id)
    )
    return parse_row(result, COURSE_JSON_FIELDS)


async def list_courses(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, active_only: bool = False
) -> list[dict[str, Any]]:
    active_filter = "AND is_active = TRUE" if active_only else ""
    rows = await conn.fetch(
        f"""
        SELECT c.*,
               (SELECT COUNT(*) FROM course_modules m WHERE m.course_id = c.id) AS module_count
        FROM courses c
        WHERE c.deleted = FALSE {active_filter}
        ORDER BY c.created_at DESC
        """
    )
    return parse_rows(rows, COURSE_JSON_FIELDS)


async def update_course(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID, updates: dict[str, Any]
) -> dict[str, Any] | None:
    sets, params = _build_update(COURSE_UPDATABLE_FIELDS, updates, COURSE_JSON_FIELDS)
    if not sets:
        return await get_course(conn, course_id)

    params.append(str(course_id))
    result = await conn.fetchrow(
        f"""
        UPDATE courses
        SET {", ".join(sets)}, updated_at = CURRENT_TIMESTAMP
        WHERE id = ${len(params)} AND deleted = FALSE
        RETURNING *
        """,
        *params,
    )
    return parse_row(result, COURSE_JSON_FIELDS)


async def delete_course(conn: asyncpg.Connection, course_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute(
        """
        UPDATE courses SET deleted = TRUE, is_active = FALSE, updated_at = CURRENT_TIMESTAMP
        WHERE id = $1 AND deleted = FALSE
        """,
        str(course_id),
    )
    return rows_affected(result) > 0


# Modules


async def list_modules(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM course_modules WHERE course_id = $1 ORDER BY module_order, created_at",
        str(course_id),
    )
    return parse_rows(rows, ("content",))


async def get_module(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, module_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM course_modules WHERE id = $1", str(module_id))
    return parse_row(result, ("content",))


async def create_module(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID, data: dict[str, Any]
) -> dict[str, Any] | None:
    """
    Create a module at the end of the course unless an order is given.

    Raises:
        InvalidModuleContent: lesson content is not ``{"blocks": [...]}``
        asyncpg.ForeignKeyViolationError: the course does not exist
    """
    module_type = data.get("module_type", "lesson")
    validate_module_content(module_type, data.get("content"))

    module_order = data.get("module_order")
    if module_order is None:
        module_order = await conn.fetchval(
            "SELECT COUNT(*) FROM course_modules WHERE course_id = $1", str(course_id)
        )

    result = await conn.fetchrow(
        """
        INSERT INTO course_modules (
            course_id, title, description, content, module_order, duration,
            is_required, module_type, status
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
        RETURNING *
        """,
        str(course_id),
        data["title"],
        data.get("description"),
        json.dumps(data["content"]) if data.get("content") is not None else None,
        int(module_order or 0),
        data.get("duration"),
        data.get("is_required", True),
        module_type,
        data.get("status", "draft"),
    )
    return parse_row(result, ("content",))


async def update_module(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, module: dict[str, Any], updates: dict[str, Any]
) -> dict[str, Any] | None:
    """Update a module; content is validated against the new or stored type."""
    if "content" in updates:
        validate_module_content(
            updates.get("module_type", module["module_type"]), updates["content"]
        )

    sets, params = _build_update(MODULE_UPDATABLE_FIELDS, updates, ("content",))
    if not sets:
        return module

    params.append(str(module["id"]))
    result = await conn.fetchrow(
        f"""
        UPDATE course_modules
        SET {", ".join(sets)}, updated_at = CURRENT_TIMESTAMP
        WHERE id = ${len(params)}
        RETURNING *
        """,
        *params,
    )
    return parse_row(result, ("content",))


async def delete_module(conn: asyncpg.Connection, module_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM course_modules WHERE id = $1", str(module_id))
    return rows_affected(result) > 0


async def reorder_modules(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID, module_ids: list[UUID]
) -> list[dict[str, Any]]:
    """Assign ``module_order`` by list position, all or nothing."""
    async with conn.transaction():
        for position, module_id in enumerate(module_ids):
            await conn.execute(
                """
                UPDATE course_modules
                SET module_order = $1, updated_at = CURRENT_TIMESTAMP
                WHERE id = $2 AND course_id = $3
                """,
                position,
                str(module_id),
                str(course_id),
            )
    return await list_modules(conn, course_id)


# Programs


class InvalidProgramModule(ValueError):
    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_program_modules(modules: list[Any]) -> None:
    """Each module of a new program needs a title and a numeric duration."""
    for index, module in enumerate(modules):
        if (
            not isinstance(module, dict)
            or not module.get("title")
            or not _is_number(module.get("duration"))
        ):
            raise InvalidProgramModule(
                f"Module at index {index} is missing required fields (title, duration) "
                "or has invalid format."
            )
        module_type = module.get("module_type", "reading")
        if module_type not in MODULE_TYPES:
            raise InvalidProgramModule(f"Module at index {index} has unknown type '{module_type}'.")
        if module.get("status", "draft") not in MODULE_STATUSES:
            raise InvalidProgramModule(f"Module at index {index} has an invalid status.")
        try:
            validate_module_content(module_type, module.get("content"))
        except InvalidModuleContent as e:
            raise InvalidProgramModule(f"Module at index {index}: {e}") from e


async def create_program(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, data: dict[str, Any], modules: list[Any], created_by: UUID
) -> dict[str, Any] | None:
    """
    Create a course and its modules together, in list order.

    Raises:
        InvalidProgramModule: a module fails validation; nothing is written
    """
    validate_program_modules(modules)

    async with conn.transaction():
        program = await create_course(conn, data, created_by)
        created = []
        for index, module in enumerate(modules):
            created.append(
                await create_module(
                    conn,
                    program["id"],
                    {
                        "title": module["title"],
                        "description": module.get("description") or "",
                        "content": module.get("content"),
                        "module_order": index,
                        "duration": int(module["duration"]),
                        "is_required": bool(module.get("is_required", True)),
                        "module_type": module.get("module_type", "reading"),
                        "status": module.get("status", "draft"),
                    },
                )
            )
    program["modules"] = created
    return program


# Enrollments


async def enroll_user(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID, course_id: UUID
) -> dict[str, Any] | None:
    """
    Enroll a user in a course.

    Raises:
        asyncpg.UniqueViolationError: the user is already enrolled
    """
    result = await conn.fetchrow(
        """
        INSERT INTO enrollments (user_id, course_id)
        VALUES ($1, $2)
        RETURNING *
        """,
        str(user_id),
        str(course_id),
    )
    return parse_row(result)


async def get_enrollment(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, enrollment_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow(
        """
        SELECT e.*, c.title AS course_title, c.description AS course_description,
               c.duration AS course_duration, c.passing_score AS course_passing_score
        FROM enrollments e
        JOIN courses c ON c.id = e.course_id
        WHERE e.id = $1
        """,
        str(enrollment_id),
    )
    return parse_row(result)


async def list_user_enrollments(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT e.*, c.title AS course_title, c.description AS course_description,
               c.duration AS course_duration, c.difficulty AS course_difficulty
        FROM enrollments e
        JOIN courses c ON c.id = e.course_id
        WHERE e.user_id = $1
        ORDER BY e.started_at DESC
        """,
        str(user_id),
    )
    return parse_rows(rows)


def course_progress(module_progress: list[int], module_count: int) -> int:
    """Mean progress across a course's modules; modules never started count as zero."""
    if module_count <= 0:
        return max(module_progress, default=0)
    return round(sum(module_progress) / module_count)


async def record_progress(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, enrollment: dict[str, Any], module_id: UUID, progress: int
) -> dict[str, Any] | None:
    """Upsert module progress and recompute the enrollment's overall progress."""
    async with conn.transaction():
        await conn.execute(
            """
            INSERT INTO training_progress (enrollment_id, module_id, progress, completed)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (enrollment_id, module_id) DO UPDATE
            SET progress = EXCLUDED.progress,
                completed = EXCLUDED.completed,
                updated_at = CURRENT_TIMESTAMP
            """,
            str(enrollment["id"]),
            str(module_id),
            progress,
            progress >= 100,
        )

        module_count = await conn.fetchval(
            "SELECT COUNT(*) FROM course_modules WHERE course_id = $1",
            str(enrollment["course_id"]),
        )
        rows = await conn.fetch(
            "SELECT progress FROM training_progress WHERE enrollment_id = $1",
            str(enrollment["id"]),
        )
        overall = course_progress([row["progress"] for row in rows], int(module_count or 0))

        if overall >= 100:
            result = await conn.fetchrow(
                """
                UPDATE enrollments
                SET progress = 100, status = 'completed',
                    completed_at = COALESCE(completed_at, CURRENT_TIMESTAMP)
                WHERE id = $1
                RETURNING *
                """,
                str(enrollment["id"]),
            )
        else:
            result = await conn.fetchrow(
                """
                UPDATE enrollments
                SET progress = $1, status = 'in_progress'
                WHERE id = $2
                RETURNING *
                """,
                overall,
                str(enrollment["id"]),
            )
    return parse_row(result)


async def get_training_analytics(conn: asyncpg.Connection) -> dict[str, Any]:  # type: ignore[no-any-unimported]
    row = await conn.fetchrow(
        """
        SELECT
            COUNT(*) AS total,
            COUNT(*) FILTER (WHERE status = 'completed') AS completed
        FROM enrollments
        """
    )
    active_users = await conn.fetchval(
        """
        SELECT COUNT(*) FROM users
        WHERE status = 'active' AND last_login IS NOT NULL AND deleted = FALSE
        """
    )
    total = int(row["total"] or 0) if row else 0
    completed = int(row["completed"] or 0) if row else 0

    return {
        "totalEnrollments": total,
        "completedEnrollments": completed,
        "completionRate": round(completed / total * 100) if total else 0,
        "activeUsers": int(active_users or 0),
    }


# Learning path


def current_level(user: dict[str, Any]) -> str:
    if user.get("certification_level"):
        return "advanced"
    if user.get("training_status") == "completed":
        return "intermediate"
    return "beginner"


def certification_goal(role: str | None, level: str) -> str:
    if role == "observer":
        return "basic" if level == "beginner" else "advanced"
    return {"coordinator": "advanced", "admin": "expert"}.get(role or "", "basic")


def build_learning_path(user: dict[str, Any], modules: list[dict[str, Any]]) -> dict[str, Any]:
    """Summarise the modules a user still has to finish."""
    level = current_level(user)
    return {
        "userId": str(user["id"]),
        "currentLevel": level,
        "recommendedModules": modules,
        "priorityModules": [m for m in modules if m.get("is_required")],
        "estimatedCompletionTime": sum(m.get("duration") or 0 for m in modules),
        "certificationGoal": certification_goal(user.get("role"), level),
    }


async def get_learning_path(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, user: dict[str, Any]
) -> dict[str, Any]:
    """
    Unfinished modules of active courses, easiest courses first.

    Modules of courses the user is not enrolled in are included with zero
    progress; archived modules are skipped.
    """
    rows = await conn.fetch(
        """
        SELECT m.id, m.title, m.description, m.module_type, m.duration, m.is_required,
               m.module_order, c.id AS course_id, c.title AS course_title, c.difficulty,
               COALESCE(tp.progress, 0) AS progress
        FROM course_modules m
        JOIN courses c ON c.id = m.course_id
        LEFT JOIN enrollments e ON e.course_id = c.id AND e.user_id = $1
        LEFT JOIN training_progress tp ON tp.enrollment_id = e.id AND tp.module_id = m.id
        WHERE c.is_active = TRUE AND c.deleted = FALSE AND m.status <> 'archived'
          AND COALESCE(tp.completed, FALSE) = FALSE
        ORDER BY CASE c.difficulty
                     WHEN 'beginner' THEN 0 WHEN 'intermediate' THEN 1 ELSE 2
                 END,
                 c.created_at, m.module_order
        """,
        str(user["id"]),
    )
    return build_learning_path(user, parse_rows(rows))
