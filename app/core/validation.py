"""Input validation helpers for registration and field data."""

import re
from datetime import datetime
from zoneinfo import ZoneInfo

# Polling and field work happen on island time (UTC-5, no daylight saving)
JAMAICA_TZ = ZoneInfo("America/Jamaica")


class PasswordValidator:
    """Validate password strength."""

    MIN_LENGTH = 8
    MAX_LENGTH = 128
    SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

    COMMON_PASSWORDS = {
        "password",
        "password1",
        "123456",
        "12345678",
        "qwerty",
        "letmein",
        "iloveyou",
        "admin123",
        "jamaica1",
        "observer1",
    }

    @classmethod
    def validate(cls, password: str) -> tuple[bool, str | None]:
        """
        Validate password strength.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if len(password) < cls.MIN_LENGTH:
            return False, f"Password must be at least {cls.MIN_LENGTH} characters long"

        if len(password) > cls.MAX_LENGTH:
            return False, f"Password must not exceed {cls.MAX_LENGTH} characters"

        if password.lower() in cls.COMMON_PASSWORDS:
            return False, "This password is too common. Please choose a stronger password"

        if not re.search(r"[A-Z]", password):
            return False, "Password must contain at least one uppercase letter"

        if not re.search(r"[a-z]", password):
            return False, "Password must contain at least one lowercase letter"

        if not re.search(r"\d", password):
            return False, "Password must contain at least one digit"

        if not any(c in cls.SPECIAL_CHARS for c in password):
            return False, "Password must contain at least one special character"

        return True, None


class UsernameValidator:
    """Validate username format."""

    MIN_LENGTH = 3
    MAX_LENGTH = 50
    VALID_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")

    @classmethod
    def validate(cls, username: str) -> tuple[bool, str | None]:
        if len(username) < cls.MIN_LENGTH:
            return False, f"Username must be at least {cls.MIN_LENGTH} characters long"

        if len(username) > cls.MAX_LENGTH:
            return False, f"Username must not exceed {cls.MAX_LENGTH} characters"

        if not cls.VALID_PATTERN.match(username):
            return (
                False,
                "Username can only contain letters, numbers, dots, hyphens, and underscores",
            )

        if username[0] in "._-" or username[-1] in "._-":
            return False, "Username cannot start or end with a special character"

        return True, None


# Jamaican Taxpayer Registration Number: nine digits, often written 123-456-789
TRN_PATTERN = re.compile(r"^\d{3}-?\d{3}-?\d{3}$")


def normalize_trn(value: str) -> str:
    """Return the nine-digit TRN without separators, or raise ValueError."""
    value = value.strip()
    if not TRN_PATTERN.match(value):
        raise ValueError("TRN must be nine digits (e.g. 123-456-789)")
    return value.replace("-", "")


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """Truncate, drop null bytes and strip surrounding whitespace."""
    if not value:
        return ""
    return value[:max_length].replace("\x00", "").strip()


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach Jamaica time to a datetime sent without an offset."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=JAMAICA_TZ)
