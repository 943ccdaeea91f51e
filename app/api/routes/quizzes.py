"""Training quiz routes."""

# type: ignore

from datetime import datetime
from typing import Annotated, Any, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_current_user, is_staff, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import not_found_response, success_response
from app.services.quizzes import (
    AttemptLimitReached,
    QuizValidationError,
    create_course_quiz,
    create_quiz,
    delete_quiz,
    get_quiz,
    list_course_quizzes,
    list_module_quizzes,
    list_user_attempts,
    submit_attempt,
    update_quiz,
)
from app.services.training import get_course, get_module

router = APIRouter(prefix="/training", tags=["Training Quizzes"])
logger = get_logger(__name__)


class QuizCreateRequest(BaseModel):
    """Quiz definition. Title and questions are checked by the quiz validator."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    questions: Any = None
    time_limit: Optional[int] = Field(None, ge=1, alias="timeLimit")
    max_attempts: Optional[int] = Field(None, ge=1, alias="maxAttempts")
    passing_score: Optional[int] = Field(None, ge=0, le=100, alias="passingScore")
    quiz_type: Optional[str] = Field(None, max_length=50, alias="quizType")


class QuizUpdateRequest(QuizCreateRequest):
    status: Optional[Literal["draft", "published", "archived"]] = None


class AttemptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answers: list[Any]
    time_spent: Optional[int] = Field(None, ge=0, alias="timeSpent")
    started_at: Optional[datetime] = Field(None, alias="startedAt")


def _without_answers(quiz: dict) -> dict:
    """Quiz as shown to observers: correct answers removed."""
    questions = []
    for question in quiz.get("questions") or []:
        public = {k: v for k, v in question.items() if k != "correctAnswer"}
        if "options" in public:
            public["options"] = [
                {k: v for k, v in option.items() if k != "isCorrect"}
                for option in public["options"]
            ]
        questions.append(public)
    return {**quiz, "questions": questions}


def _quiz_error(e: QuizValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/modules/{module_id}/quizzes", status_code=status.HTTP_201_CREATED)
async def create_module_quiz(
    module_id: UUID,
    request: QuizCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Attach a quiz to a module; the module becomes a `quiz` module.

    **Request Body:**
    ```json
    {
        "title": "Polling day procedures",
        "passingScore": 70,
        "questions": [
            {
                "questionText": "When do polls open?",
                "type": "multiple-choice",
                "points": 1,
                "options": [
                    {"text": "7:00 a.m.", "isCorrect": true},
                    {"text": "9:00 a.m.", "isCorrect": false}
                ]
            },
            {"questionText": "Observers may handle ballots.", "type": "true-false",
             "points": 1, "correctAnswer": false}
        ]
    }
    ```
    """
    module = await get_module(conn, module_id)
    if not module:
        raise not_found_response("Module")

    try:
        quiz = await create_quiz(conn, module, request.model_dump(exclude_unset=True))
    except QuizValidationError as e:
        raise _quiz_error(e)
    return success_response(data=quiz, message="Quiz created successfully")


@router.get("/modules/{module_id}/quizzes")
async def get_module_quizzes(
    module_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    quizzes = await list_module_quizzes(conn, module_id)
    if not is_staff(current_user):
        quizzes = [_without_answers(q) for q in quizzes]
    return success_response(data=quizzes)


@router.get("/courses/{course_id}/quizzes")
async def get_course_quizzes(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    quizzes = await list_course_quizzes(conn, course_id)
    if not is_staff(current_user):
        quizzes = [_without_answers(q) for q in quizzes]
    return success_response(data=quizzes)


@router.post("/courses/{course_id}/quizzes", status_code=status.HTTP_201_CREATED)
async def create_course_level_quiz(
    course_id: UUID,
    request: QuizCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Create a quiz for a course as a whole, not tied to a module."""
    if not await get_course(conn, course_id):
        raise not_found_response("Course")

    try:
        quiz = await create_course_quiz(conn, course_id, request.model_dump(exclude_unset=True))
    except QuizValidationError as e:
        raise _quiz_error(e)
    return success_response(data=quiz, message="Quiz created successfully")


@router.get("/quizzes/{quiz_id}")
async def get_quiz_details(
    quiz_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    quiz = await get_quiz(conn, quiz_id)
    if not quiz:
        raise not_found_response("Quiz")
    return success_response(data=quiz if is_staff(current_user) else _without_answers(quiz))


@router.put("/quizzes/{quiz_id}")
async def update_quiz_details(
    quiz_id: UUID,
    request: QuizUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    quiz = await get_quiz(conn, quiz_id)
    if not quiz:
        raise not_found_response("Quiz")

    try:
        updated = await update_quiz(conn, quiz, updates)
    except QuizValidationError as e:
        raise _quiz_error(e)
    return success_response(data=updated, message="Quiz updated successfully")


@router.delete("/quizzes/{quiz_id}")
async def delete_quiz_details(
    quiz_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    if not await delete_quiz(conn, quiz_id):
        raise not_found_response("Quiz")
    return success_response(message="Quiz deleted successfully")


@router.post("/quizzes/{quiz_id}/attempts", status_code=status.HTTP_201_CREATED)
async def submit_quiz_attempt(
    quiz_id: UUID,
    request: AttemptRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Submit answers for grading.

    Answers are positional: an option index for multiple-choice, a list of
    indexes for multiple-select and a boolean for true-false.

    **Request Body:**
    ```json
    {"answers": [0, false], "timeSpent": 240}
    ```
    """
    quiz = await get_quiz(conn, quiz_id)
    if not quiz:
        raise not_found_response("Quiz")

    try:
        attempt = await submit_attempt(
            conn,
            quiz,
            UUID(str(current_user["id"])),
            request.answers,
            time_spent=request.time_spent,
            started_at=request.started_at,
        )
    except AttemptLimitReached as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(
        f"Quiz {quiz_id} attempt by {current_user['username']}: "
        f"score {attempt['score']} (passed={attempt['passed']})"
    )
    return success_response(data=attempt, message="Quiz submitted")


@router.get("/quizzes/{quiz_id}/attempts/my")
async def my_quiz_attempts(
    quiz_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(
        data=await list_user_attempts(conn, quiz_id, UUID(str(current_user["id"])))
    )
