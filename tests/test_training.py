"""
Tests for training courses, programs, modules, enrollments, progress and quizzes over HTTP.
"""

import json
from uuid import uuid4

import asyncpg

COURSE_ID = str(uuid4())


def course_row(**overrides):
    course = {
        "id": COURSE_ID,
        "title": "Polling Day Procedures",
        "description": "What observers do on polling day",
        "target_audience": "observer",
        "content": {},
        "duration": 60,
        "passing_score": 80,
        "is_active": True,
        "difficulty": "beginner",
        "prerequisites": [],
        "learning_objectives": [],
        "tags": [],
    }
    course.update(overrides)
    return course


def module_row(**overrides):
    module = {
        "id": str(uuid4()),
        "course_id": COURSE_ID,
        "title": "Opening the poll",
        "description": "",
        "content": None,
        "module_order": 0,
        "duration": 20,
        "is_required": True,
        "module_type": "reading",
        "status": "draft",
    }
    module.update(overrides)
    return module


QUIZ_QUESTIONS = [
    {
        "questionText": "When do polls open?",
        "type": "multiple-choice",
        "points": 1,
        "options": [
            {"text": "7:00 a.m.", "isCorrect": True},
            {"text": "9:00 a.m.", "isCorrect": False},
        ],
    },
    {
        "questionText": "Observers may handle ballots.",
        "type": "true-false",
        "points": 1,
        "correctAnswer": False,
    },
]


# Modules


async def test_lesson_without_blocks_is_rejected(make_client, coordinator_user, mock_conn):
    client = make_client(coordinator_user)

    response = await client.post(
        f"/api/v1/training/courses/{COURSE_ID}/modules",
        json={"title": "Opening the poll", "module_type": "lesson", "content": {"text": "..."}},
    )

    assert response.status_code == 400
    assert "blocks" in response.json()["message"]
    mock_conn.fetchrow.assert_not_called()


async def test_lesson_with_blocks_is_appended(make_client, coordinator_user, mock_conn):
    mock_conn.fetchval.return_value = 3
    mock_conn.fetchrow.return_value = module_row(module_type="lesson", module_order=3)
    client = make_client(coordinator_user)

    response = await client.post(
        f"/api/v1/training/courses/{COURSE_ID}/modules",
        json={
            "title": "Opening the poll",
            "module_type": "lesson",
            "content": {"blocks": [{"type": "text", "text": "Arrive by 6:00 a.m."}]},
        },
    )

    assert response.status_code == 201
    args = mock_conn.fetchrow.call_args[0]
    assert args[5] == 3
    assert json.loads(args[4]) == {"blocks": [{"type": "text", "text": "Arrive by 6:00 a.m."}]}


async def test_module_for_unknown_course(make_client, coordinator_user, mock_conn):
    mock_conn.fetchval.return_value = 0
    mock_conn.fetchrow.side_effect = asyncpg.ForeignKeyViolationError("course_id")
    client = make_client(coordinator_user)

    response = await client.post(
        f"/api/v1/training/courses/{uuid4()}/modules",
        json={"title": "The count", "module_type": "video"},
    )

    assert response.status_code == 404


async def test_module_update_without_fields(make_client, coordinator_user):
    client = make_client(coordinator_user)

    response = await client.put(f"/api/v1/training/modules/{uuid4()}", json={})

    assert response.status_code == 400


async def test_module_content_checked_against_stored_type(
    make_client, coordinator_user, mocker, mock_conn
):
    mocker.patch(
        "app.api.routes.training.get_module", return_value=module_row(module_type="lesson")
    )
    client = make_client(coordinator_user)

    response = await client.put(
        f"/api/v1/training/modules/{uuid4()}", json={"content": {"html": "<p>..</p>"}}
    )

    assert response.status_code == 400
    mock_conn.fetchrow.assert_not_called()


async def test_reorder_modules(make_client, coordinator_user, mocker, mock_conn):
    mocker.patch("app.api.routes.training.get_course", return_value=course_row())
    first, second = str(uuid4()), str(uuid4())
    client = make_client(coordinator_user)

    response = await client.put(
        f"/api/v1/training/courses/{COURSE_ID}/modules/reorder",
        json={"module_ids": [second, first]},
    )

    assert response.status_code == 200
    calls = [c[0] for c in mock_conn.execute.call_args_list]
    assert [(c[1], c[2]) for c in calls] == [(0, second), (1, first)]
    assert all(c[3] == COURSE_ID for c in calls)
    mock_conn.transaction.assert_called_once()


async def test_reorder_unknown_course(make_client, coordinator_user, mocker):
    mocker.patch("app.api.routes.training.get_course", return_value=None)
    client = make_client(coordinator_user)

    response = await client.put(
        f"/api/v1/training/courses/{uuid4()}/modules/reorder",
        json={"module_ids": [str(uuid4())]},
    )

    assert response.status_code == 404


# Programs


async def test_create_program_with_modules(make_client, coordinator_user, mock_conn):
    mock_conn.fetchrow.side_effect = [
        course_row(),
        module_row(module_order=0),
        module_row(title="The count", module_order=1, module_type="video"),
    ]
    client = make_client(coordinator_user)

    response = await client.post(
        "/api/v1/training/programs",
        json={
            "title": "Polling Day Procedures",
            "modules": [
                {"title": "Opening the poll", "duration": 20},
                {"title": "The count", "duration": 30, "module_type": "video"},
            ],
        },
    )

    assert response.status_code == 201
    assert len(response.json()["data"]["modules"]) == 2
    first_module, second_module = (c[0] for c in mock_conn.fetchrow.call_args_list[1:])
    assert first_module[5] == 0
    assert first_module[8] == "reading"
    assert second_module[5] == 1
    assert second_module[6] == 30
    mock_conn.fetchval.assert_not_called()


async def test_create_program_names_bad_module(make_client, coordinator_user, mock_conn):
    client = make_client(coordinator_user)

    response = await client.post(
        "/api/v1/training/programs",
        json={
            "title": "Polling Day Procedures",
            "modules": [
                {"title": "Opening the poll", "duration": 20},
                {"title": "The count", "duration": "thirty"},
            ],
        },
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("Module at index 1")
    mock_conn.fetchrow.assert_not_called()


async def test_programs_list_shares_course_listing(make_client, observer_user, mocker):
    list_courses = mocker.patch(
        "app.api.routes.training.list_courses", return_value=[course_row()]
    )
    client = make_client(observer_user)

    response = await client.get("/api/v1/training/programs")

    assert response.status_code == 200
    assert list_courses.call_args.kwargs["active_only"] is True


async def test_observer_cannot_create_program(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.post("/api/v1/training/programs", json={"title": "x"})

    assert response.status_code == 403


# Enrollments and progress


async def test_duplicate_enrollment(make_client, observer_user, mocker, mock_conn):
    mocker.patch("app.api.routes.training.get_course", return_value=course_row())
    mock_conn.fetchrow.side_effect = asyncpg.UniqueViolationError("user_id, course_id")
    client = make_client(observer_user)

    response = await client.post("/api/v1/training/enroll", json={"course_id": COURSE_ID})

    assert response.status_code == 400
    assert response.json()["message"] == "Already enrolled in this course"


async def test_enroll_in_inactive_course(make_client, observer_user, mocker):
    mocker.patch(
        "app.api.routes.training.get_course", return_value=course_row(is_active=False)
    )
    client = make_client(observer_user)

    response = await client.post("/api/v1/training/enroll", json={"course_id": COURSE_ID})

    assert response.status_code == 404


def enrollment_row(user_id, **overrides):
    enrollment = {
        "id": str(uuid4()),
        "user_id": user_id,
        "course_id": COURSE_ID,
        "status": "in_progress",
        "progress": 50,
    }
    enrollment.update(overrides)
    return enrollment


async def test_progress_on_module_from_other_course(make_client, observer_user, mocker):
    enrollment = enrollment_row(observer_user["id"])
    mocker.patch("app.api.routes.training.get_enrollment", return_value=enrollment)
    mocker.patch(
        "app.api.routes.training.get_module", return_value=module_row(course_id=str(uuid4()))
    )
    record = mocker.patch("app.api.routes.training.record_progress")
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/training/progress",
        json={"enrollment_id": enrollment["id"], "module_id": str(uuid4()), "progress": 100},
    )

    assert response.status_code == 404
    record.assert_not_called()


async def test_progress_on_someone_elses_enrollment(make_client, observer_user, mocker):
    mocker.patch(
        "app.api.routes.training.get_enrollment", return_value=enrollment_row(str(uuid4()))
    )
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/training/progress",
        json={"enrollment_id": str(uuid4()), "module_id": str(uuid4()), "progress": 10},
    )

    assert response.status_code == 404


async def test_full_progress_completes_enrollment(
    make_client, observer_user, mocker, mock_conn
):
    enrollment = enrollment_row(observer_user["id"])
    module = module_row()
    mocker.patch("app.api.routes.training.get_enrollment", return_value=enrollment)
    mocker.patch("app.api.routes.training.get_module", return_value=module)
    mock_conn.fetchval.return_value = 2
    mock_conn.fetch.return_value = [{"progress": 100}, {"progress": 100}]
    mock_conn.fetchrow.return_value = {**enrollment, "status": "completed", "progress": 100}
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/training/progress",
        json={"enrollment_id": enrollment["id"], "module_id": module["id"], "progress": 100},
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "completed"
    upsert = mock_conn.execute.call_args[0]
    assert upsert[3:5] == (100, True)
    assert "status = 'completed'" in mock_conn.fetchrow.call_args[0][0]


async def test_partial_progress_keeps_enrollment_in_progress(
    make_client, observer_user, mocker, mock_conn
):
    enrollment = enrollment_row(observer_user["id"])
    module = module_row()
    mocker.patch("app.api.routes.training.get_enrollment", return_value=enrollment)
    mocker.patch("app.api.routes.training.get_module", return_value=module)
    mock_conn.fetchval.return_value = 3
    mock_conn.fetch.return_value = [{"progress": 100}, {"progress": 50}]
    mock_conn.fetchrow.return_value = {**enrollment, "progress": 50}
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/training/progress",
        json={"enrollment_id": enrollment["id"], "module_id": module["id"], "progress": 100},
    )

    assert response.status_code == 200
    sql, overall, _ = mock_conn.fetchrow.call_args[0]
    assert "status = 'in_progress'" in sql
    assert overall == 50


# Quizzes


async def test_create_module_quiz_marks_module_as_quiz(
    make_client, coordinator_user, mocker, mock_conn
):
    module = module_row(module_type="lesson")
    mocker.patch("app.api.routes.quizzes.get_module", return_value=module)
    mock_conn.fetchrow.return_value = {
        "id": str(uuid4()),
        "module_id": module["id"],
        "title": "Polling day procedures",
        "questions": json.dumps(QUIZ_QUESTIONS),
        "passing_score": 70,
    }
    client = make_client(coordinator_user)

    response = await client.post(
        f"/api/v1/training/modules/{module['id']}/quizzes",
        json={"title": "Polling day procedures", "questions": QUIZ_QUESTIONS},
    )

    assert response.status_code == 201
    insert = mock_conn.fetchrow.call_args[0]
    assert insert[6:10] == (60, 3, 70, "standard")
    sql, module_id = mock_conn.execute.call_args[0]
    assert "module_type = 'quiz'" in sql
    assert module_id == module["id"]


async def test_create_quiz_names_bad_question(make_client, coordinator_user, mocker, mock_conn):
    mocker.patch("app.api.routes.quizzes.get_module", return_value=module_row())
    questions = [QUIZ_QUESTIONS[0], {"questionText": "?", "type": "true-false", "points": 1}]
    client = make_client(coordinator_user)

    response = await client.post(
        f"/api/v1/training/modules/{uuid4()}/quizzes",
        json={"title": "Polling day procedures", "questions": questions},
    )

    assert response.status_code == 400
    assert "1" in response.json()["message"]
    mock_conn.execute.assert_not_called()


async def test_observers_do_not_see_answers(make_client, observer_user, mocker):
    quiz = {"id": str(uuid4()), "title": "Polling day procedures", "questions": QUIZ_QUESTIONS}
    mocker.patch("app.api.routes.quizzes.list_module_quizzes", return_value=[quiz])
    client = make_client(observer_user)

    response = await client.get(f"/api/v1/training/modules/{uuid4()}/quizzes")

    questions = response.json()["data"][0]["questions"]
    assert "correctAnswer" not in questions[1]
    assert all("isCorrect" not in option for option in questions[0]["options"])
    assert questions[0]["options"][0]["text"] == "7:00 a.m."


async def test_staff_see_answers(make_client, coordinator_user, mocker):
    quiz = {"id": str(uuid4()), "title": "Polling day procedures", "questions": QUIZ_QUESTIONS}
    mocker.patch("app.api.routes.quizzes.list_module_quizzes", return_value=[quiz])
    client = make_client(coordinator_user)

    response = await client.get(f"/api/v1/training/modules/{uuid4()}/quizzes")

    questions = response.json()["data"][0]["questions"]
    assert questions[1]["correctAnswer"] is False
    assert questions[0]["options"][0]["isCorrect"] is True


# Learning path


async def test_own_learning_path(make_client, observer_user, mock_conn):
    mock_conn.fetch.return_value = [
        module_row(duration=20, is_required=True),
        module_row(title="Counting procedures", duration=40, is_required=False),
        module_row(title="Reporting incidents", duration=None, is_required=True),
    ]
    client = make_client(observer_user)

    response = await client.get(f"/api/v1/training/learning-path/{observer_user['id']}")

    assert response.status_code == 200
    path = response.json()["data"]
    assert path["userId"] == observer_user["id"]
    assert path["currentLevel"] == "beginner"
    assert path["certificationGoal"] == "basic"
    assert path["estimatedCompletionTime"] == 60
    assert len(path["recommendedModules"]) == 3
    assert [m["title"] for m in path["priorityModules"]] == [
        "Opening the poll",
        "Reporting incidents",
    ]
    assert mock_conn.fetch.call_args[0][1] == observer_user["id"]


async def test_learning_path_goal_for_trained_observer(
    make_client, user_factory, mock_conn
):
    observer = user_factory("observer", training_status="completed")
    client = make_client(observer)

    response = await client.get(f"/api/v1/training/learning-path/{observer['id']}")

    path = response.json()["data"]
    assert path["currentLevel"] == "intermediate"
    assert path["certificationGoal"] == "advanced"


async def test_observer_cannot_view_other_learning_path(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.get(f"/api/v1/training/learning-path/{uuid4()}")

    assert response.status_code == 403


async def test_staff_learning_path_for_unknown_user(make_client, admin_user, mocker):
    mocker.patch("app.api.routes.training.get_user_by_id", return_value=None)
    client = make_client(admin_user)

    response = await client.get(f"/api/v1/training/learning-path/{uuid4()}")

    assert response.status_code == 404
