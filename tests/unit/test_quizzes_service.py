"""
Unit tests for quiz validation and grading.
"""

from uuid import uuid4

import pytest

from app.services.quizzes import (
    AttemptLimitReached,
    QuizValidationError,
    grade_attempt,
    submit_attempt,
    validate_quiz_payload,
)

MULTIPLE_CHOICE = {
    "questionText": "When do polls open?",
    "type": "multiple-choice",
    "points": 2,
    "options": [
        {"text": "6:00 a.m.", "isCorrect": False},
        {"text": "7:00 a.m.", "isCorrect": True},
    ],
}
MULTIPLE_SELECT = {
    "questionText": "Which items may an observer carry?",
    "type": "multiple-select",
    "points": 2,
    "options": [
        {"text": "Accreditation badge", "isCorrect": True},
        {"text": "Campaign T-shirt", "isCorrect": False},
        {"text": "Notebook", "isCorrect": True},
    ],
}
TRUE_FALSE = {
    "questionText": "Observers may handle ballots.",
    "type": "true-false",
    "points": 1,
    "correctAnswer": False,
}


class TestValidateQuizPayload:
    """Test quiz definition validation."""

    def test_valid_quiz(self):
        """A quiz with one question of each graded type is accepted."""
        validate_quiz_payload("Polling day", [MULTIPLE_CHOICE, MULTIPLE_SELECT, TRUE_FALSE])

    def test_missing_title(self):
        with pytest.raises(QuizValidationError, match="title is required"):
            validate_quiz_payload("   ", [TRUE_FALSE])

    @pytest.mark.parametrize("questions", [None, [], "not a list"])
    def test_questions_must_be_non_empty_list(self, questions):
        with pytest.raises(QuizValidationError, match="non-empty array"):
            validate_quiz_payload("Quiz", questions)

    def test_question_without_points(self):
        """The error names the index of the offending question."""
        question = {"questionText": "Q", "type": "true-false", "correctAnswer": True}

        with pytest.raises(QuizValidationError, match="Question 1 must have"):
            validate_quiz_payload("Quiz", [TRUE_FALSE, question])

    def test_boolean_points_rejected(self):
        question = {**TRUE_FALSE, "points": True}

        with pytest.raises(QuizValidationError):
            validate_quiz_payload("Quiz", [question])

    def test_multiple_choice_needs_exactly_one_correct_option(self):
        question = {
            **MULTIPLE_CHOICE,
            "options": [
                {"text": "A", "isCorrect": True},
                {"text": "B", "isCorrect": True},
            ],
        }

        with pytest.raises(QuizValidationError, match="exactly one correct option"):
            validate_quiz_payload("Quiz", [question])

    def test_option_requires_boolean_is_correct(self):
        question = {**MULTIPLE_SELECT, "options": [{"text": "A", "isCorrect": "yes"}]}

        with pytest.raises(QuizValidationError, match="not structured correctly"):
            validate_quiz_payload("Quiz", [question])

    def test_choice_question_without_options(self):
        question = {**MULTIPLE_CHOICE, "options": []}

        with pytest.raises(QuizValidationError, match="must have options"):
            validate_quiz_payload("Quiz", [question])

    def test_true_false_requires_boolean_answer(self):
        question = {**TRUE_FALSE, "correctAnswer": "false"}

        with pytest.raises(QuizValidationError, match="boolean correctAnswer"):
            validate_quiz_payload("Quiz", [question])


class TestGradeAttempt:
    """Test positional answer grading."""

    def test_all_correct(self):
        result = grade_attempt([MULTIPLE_CHOICE, MULTIPLE_SELECT, TRUE_FALSE], [1, [2, 0], False], 70)

        assert result["score"] == 100
        assert result["earned_points"] == 5
        assert result["total_points"] == 5
        assert result["passed"] is True
        assert result["needs_review"] is False

    def test_partial_multiple_select_earns_nothing(self):
        """Multiple-select must match the full correct set."""
        result = grade_attempt([MULTIPLE_SELECT], [[0]], 70)

        assert result["score"] == 0
        assert result["passed"] is False

    def test_missing_answers_count_as_wrong(self):
        result = grade_attempt([MULTIPLE_CHOICE, TRUE_FALSE], [1], 70)

        # 2 of 3 points
        assert result["score"] == 67
        assert result["passed"] is False

    def test_boolean_is_not_an_option_index(self):
        """``True`` must not be read as option index 1."""
        result = grade_attempt([MULTIPLE_CHOICE], [True], 50)

        assert result["score"] == 0

    def test_unknown_type_flags_review(self):
        essay = {"questionText": "Describe the count.", "type": "essay", "points": 5}

        result = grade_attempt([TRUE_FALSE, essay], [False, "A long answer"], 70)

        assert result["needs_review"] is True
        assert result["earned_points"] == 1
        assert result["total_points"] == 6
        assert result["score"] == 17

    def test_passing_score_boundary(self):
        result = grade_attempt([MULTIPLE_CHOICE, TRUE_FALSE], [1, True], 67)

        assert result["score"] == 67
        assert result["passed"] is True

    def test_no_points_scores_zero(self):
        question = {**TRUE_FALSE, "points": 0}

        result = grade_attempt([question], [False], 70)

        assert result["score"] == 0


class TestSubmitAttempt:
    """Test attempt limits and storage."""

    @pytest.mark.asyncio
    async def test_attempt_limit_reached(self, mock_conn):
        quiz = {"id": str(uuid4()), "max_attempts": 3, "questions": [TRUE_FALSE], "passing_score": 70}
        mock_conn.fetchval.return_value = 3

        with pytest.raises(AttemptLimitReached, match="Maximum of 3 attempts"):
            await submit_attempt(mock_conn, quiz, uuid4(), [False])

        mock_conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_attempt_is_graded_and_stored(self, mock_conn):
        quiz = {"id": str(uuid4()), "max_attempts": 3, "questions": [TRUE_FALSE], "passing_score": 70}
        mock_conn.fetchval.return_value = 1
        mock_conn.fetchrow.return_value = {"id": str(uuid4()), "score": 100, "answers": "[false]"}

        attempt = await submit_attempt(mock_conn, quiz, uuid4(), [False], time_spent=30)

        assert attempt["answers"] == [False]
        args = mock_conn.fetchrow.call_args[0]
        # score, earned, total, passed, needs_review
        assert args[4:9] == (100, 1.0, 1.0, True, False)
        assert args[9] == 30
