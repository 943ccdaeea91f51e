"""AI-assisted training content routes (Gemini)."""

# type: ignore

from typing import Annotated, Any, Awaitable, Callable, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, status
from openai import OpenAIError
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_current_user, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import (
    error_response,
    not_found_response,
    service_unavailable_response,
    success_response,
)
from app.services import training_ai
from app.services.training import get_course, list_modules, list_user_enrollments

router = APIRouter(prefix="/training/ai", tags=["Training AI"])
logger = get_logger(__name__)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RecommendationsRequest(CamelModel):
    user_profile: Optional[dict[str, Any]] = Field(None, alias="userProfile")


class QuizGenerationRequest(CamelModel):
    course_id: Optional[UUID] = Field(None, alias="courseId")
    user_history: Optional[list[Any]] = Field(None, alias="userHistory")


class FeedbackRequest(CamelModel):
    user_responses: Any = Field(None, alias="userResponses")


class CourseGenerationRequest(CamelModel):
    topic: Optional[str] = Field(None, max_length=500)
    role: str = "Observer"
    difficulty: str = "beginner"
    target_duration: int = Field(60, ge=5, le=600, alias="targetDuration")


class CourseEditRequest(CamelModel):
    course_id: Optional[UUID] = Field(None, alias="courseId")
    instruction: Optional[str] = Field(None, max_length=2000)


class QuestionBankRequest(CamelModel):
    topic: Optional[str] = Field(None, max_length=500)
    difficulty: str = "medium"
    question_types: Optional[list[str]] = Field(None, alias="questionTypes")
    num_questions: int = Field(10, ge=1, le=50, alias="numQuestions")


class GraphicsPromptRequest(CamelModel):
    content: Optional[str] = Field(None, max_length=5000)
    style: str = "educational"
    context: str = "electoral training"


class ModuleEnhancementRequest(CamelModel):
    module_content: Any = Field(None, alias="moduleContent")
    enhancement_type: str = Field("clarity and engagement", alias="enhancementType")


def _require(value: Any, message: str) -> None:
    if value is None or (isinstance(value, (str, list, dict)) and not value):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


async def _run(
    conn: asyncpg.Connection,
    action: str,
    call: Callable[[str], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """Resolve the Gemini key and run one model call with uniform error mapping."""
    try:
        api_key = await training_ai.resolve_api_key(conn)
    except training_ai.GeminiUnavailable as e:
        raise service_unavailable_response(str(e))

    try:
        return await call(api_key)
    except training_ai.GeminiResponseError as e:
        logger.warning(f"AI {action} returned an unusable response: {e}")
        raise error_response(
            message="AI service returned an invalid response",
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
    except OpenAIError as e:
        logger.error(f"AI {action} failed: {str(e)}", exc_info=True)
        raise error_response(
            message=f"Failed to {action}",
            status_code=status.HTTP_502_BAD_GATEWAY,
        )


@router.post("/recommendations")
async def training_recommendations(
    request: RecommendationsRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Personalised next steps. Defaults to the caller's own profile and enrollments."""
    profile = request.user_profile
    if not profile:
        enrollments = await list_user_enrollments(conn, UUID(str(current_user["id"])))
        profile = {
            "role": current_user.get("role"),
            "trainingStatus": current_user.get("training_status"),
            "certificationLevel": current_user.get("certification_level"),
            "enrollments": [
                {"course": e["course_title"], "status": e["status"], "progress": e["progress"]}
                for e in enrollments
            ],
        }

    result = await _run(
        conn,
        "generate recommendations",
        lambda key: training_ai.get_recommendations(key, profile),
    )
    return success_response(data=result)


@router.post("/quiz")
async def generate_quiz(
    request: QuizGenerationRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _require(request.course_id, "courseId is required")

    course = await get_course(conn, request.course_id)
    if not course:
        raise not_found_response("Course")
    course["modules"] = await list_modules(conn, request.course_id)

    result = await _run(
        conn,
        "generate quiz",
        lambda key: training_ai.generate_quiz(key, course, request.user_history),
    )
    return success_response(data=result)


@router.post("/feedback")
async def training_feedback(
    request: FeedbackRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    _require(request.user_responses, "userResponses is required")

    result = await _run(
        conn,
        "generate feedback",
        lambda key: training_ai.get_feedback(key, request.user_responses),
    )
    return success_response(data=result)


@router.post("/create-course")
async def create_course_outline(
    request: CourseGenerationRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Draft a full course for a topic. Nothing is saved.

    **Request Body:**
    ```json
    {"topic": "Counting procedures", "role": "Observer", "difficulty": "beginner"}
    ```
    """
    _require(request.topic, "topic is required")

    result = await _run(
        conn,
        "generate course",
        lambda key: training_ai.generate_course(
            key, request.topic, request.role, request.difficulty, request.target_duration
        ),
    )
    return success_response(data=result)


@router.post("/edit-course")
async def edit_course(
    request: CourseEditRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _require(request.course_id, "courseId is required")
    _require(request.instruction, "instruction is required")

    course = await get_course(conn, request.course_id)
    if not course:
        raise not_found_response("Course")
    course["modules"] = await list_modules(conn, request.course_id)

    result = await _run(
        conn,
        "edit course",
        lambda key: training_ai.edit_course(key, course, request.instruction),
    )
    return success_response(data=result)


@router.post("/question-bank")
async def question_bank(
    request: QuestionBankRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _require(request.topic, "topic is required")

    result = await _run(
        conn,
        "generate question bank",
        lambda key: training_ai.generate_question_bank(
            key,
            request.topic,
            request.difficulty,
            request.question_types,
            request.num_questions,
        ),
    )
    return success_response(data=result)


@router.post("/graphics-prompt")
async def graphics_prompt(
    request: GraphicsPromptRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _require(request.content, "content is required")

    result = await _run(
        conn,
        "generate graphics prompt",
        lambda key: training_ai.generate_graphics_prompt(
            key, request.content, request.style, request.context
        ),
    )
    return success_response(data=result)


@router.post("/enhance-module")
async def enhance_module(
    request: ModuleEnhancementRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    _require(request.module_content, "moduleContent is required")

    result = await _run(
        conn,
        "enhance module",
        lambda key: training_ai.enhance_module(
            key, request.module_content, request.enhancement_type
        ),
    )
    return success_response(data=result)
