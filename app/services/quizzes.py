"""Course quizzes, payload validation and attempt grading."""

import json
from typing import Any
from uuid import UUID

import asyncpg

from app.core.database import parse_row, parse_rows, rows_affected

CHOICE_TYPES = ("multiple-choice", "multiple-select")
AUTO_GRADED_TYPES = (*CHOICE_TYPES, "true-false")

QUIZ_UPDATABLE_FIELDS = (
    "title",
    "description",
    "questions",
    "time_limit",
    "max_attempts",
    "passing_score",
    "quiz_type",
    "status",
)


class QuizValidationError(ValueError):
    pass


def validate_quiz_payload(title: str | None, questions: Any) -> None:
    """
    Check a quiz definition before it is stored.

    Raises:
        QuizValidationError: with a message naming the offending question index
    """
    if not title or not str(title).strip():
        raise QuizValidationError("Quiz title is required.")
    if not isinstance(questions, list) or not questions:
        raise QuizValidationError(
            "Quiz questions are required and must be a non-empty array."
        )

    for index, question in enumerate(questions):
        if not isinstance(question, dict):
            raise QuizValidationError(f"Question {index} must be an object.")

        points = question.get("points")
        if (
            not question.get("questionText")
            or not question.get("type")
            or isinstance(points, bool)
            or not isinstance(points, (int, float))
        ):
            raise QuizValidationError(
                f"Question {index} must have questionText, type, and points."
            )

        question_type = question["type"]
        if question_type in CHOICE_TYPES:
            options = question.get("options")
            if not isinstance(options, list) or not options:
                raise QuizValidationError(
                    f"Question {index} of type '{question_type}' must have options."
                )
            for option in options:
                if (
                    not isinstance(option, dict)
                    or "text" not in option
                    or not isinstance(option.get("isCorrect"), bool)
                ):
                    raise QuizValidationError(
                        f"Option for question {index} is not structured correctly "
                        "(requires text and isCorrect)."
                    )
            correct = sum(1 for option in options if option["isCorrect"])
            if question_type == "multiple-choice" and correct != 1:
                raise QuizValidationError(
                    f"Question {index} of type 'multiple-choice' must have exactly one correct option."
                )
        elif question_type == "true-false" and not isinstance(
            question.get("correctAnswer"), bool
        ):
            raise QuizValidationError(
                f"Question {index} of type 'true-false' must have a boolean correctAnswer."
            )


def _is_correct(question: dict[str, Any], answer: Any) -> bool:
    question_type = question["type"]
    options = question.get("options") or []
    correct_indexes = {i for i, option in enumerate(options) if option.get("isCorrect")}

    if question_type == "multiple-choice":
        return not isinstance(answer, bool) and isinstance(answer, int) and answer in correct_indexes
    if question_type == "multiple-select":
        if not isinstance(answer, list) or any(
            isinstance(a, bool) or not isinstance(a, int) for a in answer
        ):
            return False
        return set(answer) == correct_indexes
    if question_type == "true-false":
        return isinstance(answer, bool) and answer == question.get("correctAnswer")
    return False


def grade_attempt(
    questions: list[dict[str, Any]], answers: list[Any], passing_score: int
) -> dict[str, Any]:
    """
    Grade answers given positionally against the quiz questions.

    Multiple-choice answers are an option index, multiple-select answers a
    list of indexes that must match the correct set exactly, true-false
    answers a boolean. Other question types earn nothing and flag the attempt
    for manual review.
    """
    earned = 0.0
    total = 0.0
    needs_review = False

    for index, question in enumerate(questions):
        points = float(question.get("points") or 0)
        total += points
        if question.get("type") not in AUTO_GRADED_TYPES:
            needs_review = True
            continue
        answer = answers[index] if index < len(answers) else None
        if _is_correct(question, answer):
            earned += points

    score = round(earned / total * 100) if total else 0
    return {
        "score": score,
        "earned_points": earned,
        "total_points": total,
        "passed": score >= passing_score,
        "needs_review": needs_review,
    }


async def create_quiz(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, module: dict[str, Any], data: dict[str, Any]
) -> dict[str, Any] | None:
    """Insert a quiz for a module and mark the module as a quiz, atomically."""
    validate_quiz_payload(data.get("title"), data.get("questions"))

    async with conn.transaction():
        result = await conn.fetchrow(
            """
            INSERT INTO course_quizzes (
                course_id, module_id, title, description, questions,
                time_limit, max_attempts, passing_score, quiz_type, status
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'draft')
            RETURNING *
            """,
            str(module["course_id"]),
            str(module["id"]),
            data["title"],
            data.get("description") or "",
            json.dumps(data["questions"]),
            data.get("time_limit") if data.get("time_limit") is not None else 60,
            data.get("max_attempts") if data.get("max_attempts") is not None else 3,
            data.get("passing_score") if data.get("passing_score") is not None else 70,
            data.get("quiz_type") or "standard",
        )
        if module.get("module_type") != "quiz":
            await conn.execute(
                """
                UPDATE course_modules
                SET module_type = 'quiz', updated_at = CURRENT_TIMESTAMP
                WHERE id = $1
                """,
                str(module["id"]),
            )
    return parse_row(result, ("questions",))


async def create_course_quiz(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID, data: dict[str, Any]
) -> dict[str, Any] | None:
    """Course-level quiz not attached to a module."""
    validate_quiz_payload(data.get("title"), data.get("questions"))

    result = await conn.fetchrow(
        """
        INSERT INTO course_quizzes (
            course_id, title, description, questions, time_limit,
            max_attempts, passing_score, quiz_type, status
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 'draft')
        RETURNING *
        """,
        str(course_id),
        data["title"],
        data.get("description") or "",
        json.dumps(data["questions"]),
        data.get("time_limit") if data.get("time_limit") is not None else 60,
        data.get("max_attempts") if data.get("max_attempts") is not None else 3,
        data.get("passing_score") if data.get("passing_score") is not None else 70,
        data.get("quiz_type") or "standard",
    )
    return parse_row(result, ("questions",))


async def get_quiz(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, quiz_id: UUID
) -> dict[str, Any] | None:
    result = await conn.fetchrow("SELECT * FROM course_quizzes WHERE id = $1", str(quiz_id))
    return parse_row(result, ("questions",))


async def list_module_quizzes(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, module_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM course_quizzes WHERE module_id = $1 ORDER BY created_at",
        str(module_id),
    )
    return parse_rows(rows, ("questions",))


async def list_course_quizzes(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, course_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        "SELECT * FROM course_quizzes WHERE course_id = $1 ORDER BY created_at",
        str(course_id),
    )
    return parse_rows(rows, ("questions",))


async def update_quiz(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, quiz: dict[str, Any], updates: dict[str, Any]
) -> dict[str, Any] | None:
    if "title" in updates or "questions" in updates:
        validate_quiz_payload(
            updates.get("title", quiz["title"]), updates.get("questions", quiz["questions"])
        )

    sets = []
    params: list[Any] = []
    for field in QUIZ_UPDATABLE_FIELDS:
        if field in updates:
            value = updates[field]
            params.append(json.dumps(value) if field == "questions" else value)
            sets.append(f"{field} = ${len(params)}")

    if not sets:
        return quiz

    params.append(str(quiz["id"]))
    result = await conn.fetchrow(
        f"""
        UPDATE course_quizzes
        SET {", ".join(sets)}, updated_at = CURRENT_TIMESTAMP
        WHERE id = ${len(params)}
        RETURNING *
        """,
        *params,
    )
    return parse_row(result, ("questions",))


async def delete_quiz(conn: asyncpg.Connection, quiz_id: UUID) -> bool:  # type: ignore[no-any-unimported]
    result = await conn.execute("DELETE FROM course_quizzes WHERE id = $1", str(quiz_id))
    return rows_affected(result) > 0


class AttemptLimitReached(Exception):
    pass


async def submit_attempt(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection,
    quiz: dict[str, Any],
    user_id: UUID,
    answers: list[Any],
    time_spent: int | None = None,
    started_at: Any = None,
) -> dict[str, Any] | None:
    """
    Grade and store an attempt.

    Raises:
        AttemptLimitReached: the user already used every allowed attempt
    """
    previous = await conn.fetchval(
        """
        SELECT COUNT(*) FROM quiz_attempts
        WHERE quiz_id = $1 AND user_id = $2 AND is_submitted = TRUE
        """,
        str(quiz["id"]),
        str(user_id),
    )
    if quiz.get("max_attempts") and int(previous or 0) >= quiz["max_attempts"]:
        raise AttemptLimitReached(
            f"Maximum of {quiz['max_attempts']} attempts reached for this quiz"
        )

    grade = grade_attempt(quiz["questions"], answers, quiz["passing_score"])
    result = await conn.fetchrow(
        """
        INSERT INTO quiz_attempts (
            quiz_id, user_id, answers, score, earned_points, total_points,
            passed, needs_review, time_spent, started_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        RETURNING *
        """,
        str(quiz["id"]),
        str(user_id),
        json.dumps(answers),
        grade["score"],
        grade["earned_points"],
        grade["total_points"],
        grade["passed"],
        grade["needs_review"],
        time_spent,
        started_at,
    )
    return parse_row(result, ("answers",))


async def list_user_attempts(  # type: ignore[no-any-unimported]
    conn: asyncpg.Connection, quiz_id: UUID, user_id: UUID
) -> list[dict[str, Any]]:
    rows = await conn.fetch(
        """
        SELECT * FROM quiz_attempts
        WHERE quiz_id = $1 AND user_id = $2
        ORDER BY completed_at DESC
        """,
        str(quiz_id),
        str(user_id),
    )
    return parse_rows(rows, ("answers",))
