"""Structured logging configuration for the application."""

from datetime import UTC, datetime
import json
import logging
import sys

from app.core.config import settings


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def setup_logging() -> None:
    """Configure application logging based on environment."""
    log_level = logging.INFO
    if settings.ENVIRONMENT == "development":
        log_level = logging.DEBUG
    elif settings.ENVIRONMENT == "production":
        log_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.ENVIRONMENT == "production":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


class SecurityLogger:
    """Specialized logger for security events."""

    def __init__(self) -> None:
        self.logger = get_logger("security")

    def _emit(self, level: int, message: str, **fields) -> None:
        self.logger.log(level, message, extra={"extra_fields": fields})

    def log_login_attempt(
        self,
        username: str,
        success: bool,
        ip_address: str | None = None,
        user_agent: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Log a login attempt."""
        fields = {
            "event_type": "login_attempt",
            "username": username,
            "success": success,
            "ip_address": ip_address,
            "user_agent": user_agent,
        }
        if not success and reason:
            fields["failure_reason"] = reason

        message = f"Login {'succeeded' if success else 'failed'} for user: {username}"
        self._emit(logging.INFO if success else logging.WARNING, message, **fields)

    def log_token_creation(self, user_id: str, token_type: str = "access") -> None:
        self._emit(
            logging.INFO,
            f"Token created for user: {user_id}",
            event_type="token_created",
            user_id=user_id,
            token_type=token_type,
        )

    def log_unauthorized_access(
        self,
        resource: str,
        user_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        self._emit(
            logging.WARNING,
            f"Unauthorized access attempt to: {resource}",
            event_type="unauthorized_access",
            resource=resource,
            user_id=user_id,
            reason=reason,
        )

    def log_user_registration(
        self, username: str, role: str, observer_id: str | None = None
    ) -> None:
        self._emit(
            logging.INFO,
            f"New user registered: {username}",
            event_type="user_registration",
            username=username,
            role=role,
            observer_id=observer_id,
        )

    def log_role_change(
        self, user_id: str, old_role: str | None, new_role: str, changed_by: str
    ) -> None:
        self._emit(
            logging.WARNING,
            f"Role changed for user {user_id}: {old_role} -> {new_role}",
            event_type="role_change",
            user_id=user_id,
            old_role=old_role,
            new_role=new_role,
            changed_by=changed_by,
        )


# Global security logger instance
security_logger = SecurityLogger()
