"""Observer training routes: courses, modules, enrollments and progress."""

# type: ignore

from typing import Annotated, Any, Literal, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from app.api.deps import get_current_user, is_staff, require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import forbidden_response, not_found_response, success_response
from app.services.audit import AuditAction, create_audit_log
from app.services.certificates import (
    EnrollmentNotCompleted,
    get_certificate_for_enrollment,
    get_default_template,
    issue_certificate,
)
from app.services.training import (
    InvalidModuleContent,
    InvalidProgramModule,
    create_course,
    create_module,
    create_program,
    delete_course,
    delete_module,
    enroll_user,
    get_course,
    get_enrollment,
    get_learning_path,
    get_module,
    get_training_analytics,
    list_courses,
    list_modules,
    list_user_enrollments,
    record_progress,
    reorder_modules,
    update_course,
    update_module,
)
from app.services.users import get_user_by_id
from app.utils.certificate_document import DOCX_MEDIA_TYPE, render_certificate_docx

router = APIRouter(prefix="/training", tags=["Training"])
logger = get_logger(__name__)

ModuleType = Literal["lesson", "video", "reading", "quiz", "assignment"]
ModuleStatus = Literal["draft", "published", "archived"]


class CourseCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    target_audience: str = Field("observer", max_length=50)
    content: dict[str, Any] = Field(default_factory=dict)
    duration: int = Field(60, ge=0)
    passing_score: int = Field(80, ge=0, le=100)
    is_active: bool = True
    difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
    prerequisites: list[Any] = Field(default_factory=list)
    learning_objectives: list[Any] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class CourseUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    target_audience: Optional[str] = Field(None, max_length=50)
    content: Optional[dict[str, Any]] = None
    duration: Optional[int] = Field(None, ge=0)
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    is_active: Optional[bool] = None
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    prerequisites: Optional[list[Any]] = None
    learning_objectives: Optional[list[Any]] = None
    tags: Optional[list[str]] = None


class ProgramCreateRequest(CourseCreateRequest):
    modules: list[Any] = Field(default_factory=list)


class ModuleCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    content: Optional[Any] = None
    module_order: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    is_required: bool = True
    module_type: ModuleType = "lesson"
    status: ModuleStatus = "draft"


class ModuleUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    content: Optional[Any] = None
    module_order: Optional[int] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=0)
    is_required: Optional[bool] = None
    module_type: Optional[ModuleType] = None
    status: Optional[ModuleStatus] = None


class ReorderRequest(BaseModel):
    module_ids: list[UUID] = Field(..., min_length=1)


class EnrollRequest(BaseModel):
    course_id: UUID


class ProgressRequest(BaseModel):
    enrollment_id: UUID
    module_id: UUID
    progress: int = Field(..., ge=0, le=100)


# Courses


@router.get("/courses")
@router.get("/programs")
async def list_training_courses(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Active courses for observers; every course for admins and coordinators."""
    courses = await list_courses(conn, active_only=not is_staff(current_user))
    return success_response(data=courses)


@router.post("/courses", status_code=status.HTTP_201_CREATED)
async def create_training_course(
    request: CourseCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    course = await create_course(conn, request.model_dump(), UUID(str(current_user["id"])))
    logger.info(f"Course '{request.title}' created by {current_user['username']}")
    return success_response(data=course, message="Course created successfully")


@router.post("/programs", status_code=status.HTTP_201_CREATED)
async def create_training_program(
    request: ProgramCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Create a course together with its modules.

    Modules are stored in list order and each needs a `title` and a numeric
    `duration`; the first bad module is named by index and nothing is saved.

    **Request Body:**
    ```json
    {
        "title": "Polling Day Procedures",
        "modules": [
            {"title": "Opening the poll", "duration": 20},
            {"title": "The count", "duration": 30, "module_type": "video"}
        ]
    }
    ```
    """
    try:
        program = await create_program(
            conn,
            request.model_dump(exclude={"modules"}),
            request.modules,
            UUID(str(current_user["id"])),
        )
    except InvalidProgramModule as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(
        f"Program '{request.title}' with {len(request.modules)} modules created by "
        f"{current_user['username']}"
    )
    return success_response(data=program, message="Training program created successfully")


@router.get("/courses/{course_id}")
@router.get("/programs/{course_id}")
async def get_training_course(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """A course with its modules."""
    course = await get_course(conn, course_id)
    if not course:
        raise not_found_response("Course")
    course["modules"] = await list_modules(conn, course_id)
    return success_response(data=course)


@router.put("/courses/{course_id}")
@router.put("/programs/{course_id}")
async def update_training_course(
    course_id: UUID,
    request: CourseUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    course = await update_course(conn, course_id, updates)
    if not course:
        raise not_found_response("Course")
    return success_response(data=course, message="Course updated successfully")


@router.delete("/courses/{course_id}")
@router.delete("/programs/{course_id}")
async def delete_training_course(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    if not await delete_course(conn, course_id):
        raise not_found_response("Course")
    return success_response(message="Course deleted successfully")


# Modules


@router.get("/courses/{course_id}/modules")
async def list_course_modules(
    course_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(data=await list_modules(conn, course_id))


@router.post("/courses/{course_id}/modules", status_code=status.HTTP_201_CREATED)
async def create_course_module(
    course_id: UUID,
    request: ModuleCreateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Add a module to a course.

    Lessons need block content:

    ```json
    {
        "title": "Opening the poll",
        "module_type": "lesson",
        "content": {"blocks": [{"type": "text", "text": "..."}]}
    }
    ```
    """
    try:
        module = await create_module(conn, course_id, request.model_dump())
    except InvalidModuleContent as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except asyncpg.ForeignKeyViolationError:
        raise not_found_response("Course")
    return success_response(data=module, message="Module created successfully")


@router.put("/courses/{course_id}/modules/reorder")
async def reorder_course_modules(
    course_id: UUID,
    request: ReorderRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Set module order from the position of each id in `module_ids`."""
    if not await get_course(conn, course_id):
        raise not_found_response("Course")
    modules = await reorder_modules(conn, course_id, request.module_ids)
    return success_response(data=modules, message="Modules reordered successfully")


@router.put("/modules/{module_id}")
async def update_course_module(
    module_id: UUID,
    request: ModuleUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    module = await get_module(conn, module_id)
    if not module:
        raise not_found_response("Module")

    try:
        updated = await update_module(conn, module, updates)
    except InvalidModuleContent as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return success_response(data=updated, message="Module updated successfully")


@router.delete("/modules/{module_id}")
async def delete_course_module(
    module_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    if not await delete_module(conn, module_id):
        raise not_found_response("Module")
    return success_response(message="Module deleted successfully")


# Enrollments and progress


@router.post("/enroll", status_code=status.HTTP_201_CREATED)
async def enroll_in_course(
    request: EnrollRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    course = await get_course(conn, request.course_id)
    if not course or not course.get("is_active"):
        raise not_found_response("Course")

    try:
        enrollment = await enroll_user(conn, UUID(str(current_user["id"])), request.course_id)
    except asyncpg.UniqueViolationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Already enrolled in this course",
        )
    return success_response(data=enrollment, message="Enrolled successfully")


@router.get("/enrollments/my")
async def my_enrollments(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    return success_response(data=await list_user_enrollments(conn, UUID(str(current_user["id"]))))


@router.post("/progress")
async def update_progress(
    request: ProgressRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """
    Record progress on one module.

    The enrollment's progress becomes the mean over all of the course's
    modules; reaching 100 completes the enrollment.
    """
    enrollment = await get_enrollment(conn, request.enrollment_id)
    if not enrollment or str(enrollment["user_id"]) != str(current_user["id"]):
        raise not_found_response("Enrollment")

    module = await get_module(conn, request.module_id)
    if not module or str(module["course_id"]) != str(enrollment["course_id"]):
        raise not_found_response("Module")

    updated = await record_progress(conn, enrollment, request.module_id, request.progress)
    return success_response(data=updated, message="Progress updated")


@router.get("/analytics")
async def training_analytics(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Enrollment totals.

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "totalEnrollments": 120,
            "completedEnrollments": 45,
            "completionRate": 38,
            "activeUsers": 80
        }
    }
    ```
    """
    return success_response(data=await get_training_analytics(conn))


@router.get("/certificate/{enrollment_id}")
async def download_certificate(
    enrollment_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Download the completion certificate as a Word document, issuing it on first request."""
    enrollment = await get_enrollment(conn, enrollment_id)
    if not enrollment or str(enrollment["user_id"]) != str(current_user["id"]):
        raise not_found_response("Enrollment")

    certificate = await get_certificate_for_enrollment(conn, enrollment_id)
    if not certificate:
        try:
            user = await get_user_by_id(conn, UUID(str(current_user["id"])))
            certificate = await issue_certificate(conn, enrollment, user)
        except EnrollmentNotCompleted as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        await create_audit_log(
            conn,
            action_type=AuditAction.CERTIFICATE_ISSUED,
            user_id=current_user["id"],
            resource_type="certificate",
            resource_id=certificate["id"],
            details={"certificate_number": certificate["certificate_number"]},
        )

    template = await get_default_template(conn)
    document = render_certificate_docx(certificate, template)
    return Response(
        content=document,
        media_type=DOCX_MEDIA_TYPE,
        headers={
            "Content-Disposition": (
                f"attachment; filename=certificate_{certificate['certificate_number']}.docx"
            )
        },
    )


@router.get("/learning-path/{user_id}")
async def learning_path(
    user_id: UUID,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Unfinished modules, required modules and the certification goal for a user."""
    if str(user_id) == str(current_user["id"]):
        user = current_user
    elif is_staff(current_user):
        user = await get_user_by_id(conn, user_id)
        if not user:
            raise not_found_response("User")
    else:
        raise forbidden_response("You can only view your own learning path")

    return success_response(data=await get_learning_path(conn, user))
