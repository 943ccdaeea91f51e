"""
Unit tests for validation, rate limiting, security and small service helpers.
"""

from datetime import timedelta

import pytest

from app.core.rate_limiting import LoginRateLimiter, RateLimiter
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from app.core.validation import (
    PasswordValidator,
    UsernameValidator,
    normalize_trn,
    sanitize_string,
)
from app.services.check_ins import distance_to_station
from app.services.training import (
    InvalidModuleContent,
    course_progress,
    validate_module_content,
)
from app.services.users import generate_observer_id, random_observer_id


class TestPasswordValidator:
    def test_strong_password(self):
        assert PasswordValidator.validate("Observe!2025") == (True, None)

    @pytest.mark.parametrize(
        "password,fragment",
        [
            ("Sh0rt!", "at least 8"),
            ("Password1", "too common"),
            ("lowercase1!", "uppercase"),
            ("UPPERCASE1!", "lowercase"),
            ("NoDigits!!", "digit"),
            ("NoSpecial12", "special"),
        ],
    )
    def test_weak_passwords(self, password, fragment):
        valid, message = PasswordValidator.validate(password)

        assert valid is False
        assert fragment in message


class TestUsernameValidator:
    def test_valid(self):
        assert UsernameValidator.validate("j.brown-01")[0] is True

    def test_rejects_leading_symbol(self):
        assert UsernameValidator.validate("_jbrown")[0] is False

    def test_rejects_spaces(self):
        assert UsernameValidator.validate("j brown")[0] is False


class TestTrn:
    def test_dashes_removed(self):
        assert normalize_trn(" 123-456-789 ") == "123456789"

    def test_plain_digits(self):
        assert normalize_trn("123456789") == "123456789"

    def test_invalid(self):
        with pytest.raises(ValueError):
            normalize_trn("12-345-678")


def test_sanitize_string():
    assert sanitize_string("  ballot\x00 box  ") == "ballot box"
    assert sanitize_string("polling station", max_length=7) == "polling"
    assert sanitize_string("") == ""


class TestRateLimiter:
    def test_limit_after_max_attempts(self):
        limiter = RateLimiter()
        for _ in range(3):
            limiter.record_attempt("jbrown")

        limited, retry_after = limiter.is_rate_limited("jbrown", 3, 60)

        assert limited is True
        assert 1 <= retry_after <= 60

    def test_reset(self):
        limiter = RateLimiter()
        limiter.record_attempt("jbrown")
        limiter.reset("jbrown")

        assert limiter.is_rate_limited("jbrown", 1, 60) == (False, None)

    def test_login_lockout(self):
        limiter = LoginRateLimiter()
        for _ in range(LoginRateLimiter.MAX_ATTEMPTS_PER_USERNAME):
            limiter.record_failed_attempt("jbrown", "10.0.0.1")

        allowed, message = limiter.check_login_allowed("jbrown", "10.0.0.1")
        assert allowed is False
        assert "locked" in message

        allowed, message = limiter.check_login_allowed("jbrown")
        assert allowed is False
        assert "temporarily locked" in message

    def test_successful_login_clears_lockout(self):
        limiter = LoginRateLimiter()
        for _ in range(LoginRateLimiter.MAX_ATTEMPTS_PER_USERNAME):
            limiter.record_failed_attempt("jbrown")
        limiter.check_login_allowed("jbrown")

        limiter.record_successful_login("jbrown")

        assert limiter.check_login_allowed("jbrown") == (True, None)


class TestSecurity:
    def test_password_hash_roundtrip(self):
        hashed = hash_password("Observe!2025")

        assert hashed.startswith("$argon2id$")
        assert verify_password("Observe!2025", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_verify_rejects_garbage_hash(self):
        assert verify_password("Observe!2025", "not-a-hash") is False

    def test_token_carries_subject(self):
        token = create_access_token({"sub": "42"})

        assert decode_access_token(token)["sub"] == "42"

    def test_expired_token(self):
        token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-1))

        assert decode_access_token(token) is None


class TestTrainingHelpers:
    def test_lesson_needs_blocks(self):
        with pytest.raises(InvalidModuleContent):
            validate_module_content("lesson", {"text": "Welcome"})

    def test_lesson_with_blocks(self):
        validate_module_content("lesson", {"blocks": []})

    def test_other_types_unchecked(self):
        validate_module_content("video", "https://example.org/intro.mp4")

    def test_progress_counts_unstarted_modules(self):
        assert course_progress([100, 50], 4) == 38

    def test_progress_without_modules(self):
        assert course_progress([], 0) == 0


class TestObserverIds:
    def test_six_digits(self):
        for _ in range(50):
            observer_id = random_observer_id()
            assert len(observer_id) == 6
            assert observer_id.isdigit()

    @pytest.mark.asyncio
    async def test_retries_taken_ids(self, mock_conn):
        mock_conn.fetchval.side_effect = [True, True, False]

        observer_id = await generate_observer_id(mock_conn)

        assert len(observer_id) == 6
        assert mock_conn.fetchval.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_eventually(self, mock_conn):
        mock_conn.fetchval.return_value = True

        with pytest.raises(RuntimeError):
            await generate_observer_id(mock_conn)


class TestCheckInDistance:
    def test_distance_rounded(self):
        station = {"latitude": 18.0, "longitude": -76.8}

        assert distance_to_station(station, 18.0, -76.8) == 0.0

    def test_station_without_coordinates(self):
        assert distance_to_station({"latitude": None, "longitude": None}, 18.0, -76.8) is None
