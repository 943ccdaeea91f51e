"""In-memory rate limiting for login attempts."""

from collections import defaultdict
from datetime import UTC, datetime, timedelta
import threading


class RateLimiter:
    """
    Sliding-window attempt counter keyed by an identifier.

    State is per process; a multi-worker deployment limits per worker.
    """

    def __init__(self) -> None:
        self._attempts: dict[str, list[datetime]] = defaultdict(list)
        self._lock = threading.Lock()

    def is_rate_limited(
        self, identifier: str, max_attempts: int, window_seconds: int
    ) -> tuple[bool, int | None]:
        """
        Check if an identifier is rate limited.

        Returns:
            Tuple of (is_limited, retry_after_seconds)
        """
        with self._lock:
            now = datetime.now(UTC)
            cutoff = now - timedelta(seconds=window_seconds)
            recent = [ts for ts in self._attempts[identifier] if ts > cutoff]
            self._attempts[identifier] = recent

            if len(recent) >= max_attempts:
                retry_after = (
                    min(recent) + timedelta(seconds=window_seconds) - now
                ).total_seconds()
                return True, int(max(1, retry_after))

            return False, None

    def record_attempt(self, identifier: str) -> None:
        with self._lock:
            self._attempts[identifier].append(datetime.now(UTC))

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._attempts.pop(identifier, None)


class LoginRateLimiter:
    """Per-username and per-IP limits with a temporary account lockout."""

    MAX_ATTEMPTS_PER_USERNAME = 5
    MAX_ATTEMPTS_PER_IP = 10
    WINDOW_SECONDS = 300
    LOCKOUT_DURATION = 900

    def __init__(self) -> None:
        self.username_limiter = RateLimiter()
        self.ip_limiter = RateLimiter()
        self._lockouts: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def check_login_allowed(
        self, username: str, ip_address: str | None = None
    ) -> tuple[bool, str | None]:
        """
        Check if a login attempt is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        remaining = self._lockout_remaining(username)
        if remaining:
            return False, f"Account temporarily locked. Try again in {remaining} seconds"

        username_limited, _ = self.username_limiter.is_rate_limited(
            username, self.MAX_ATTEMPTS_PER_USERNAME, self.WINDOW_SECONDS
        )
        if username_limited:
            with self._lock:
                self._lockouts[username] = datetime.now(UTC) + timedelta(
                    seconds=self.LOCKOUT_DURATION
                )
            return (
                False,
                f"Too many failed attempts. Account locked for {self.LOCKOUT_DURATION // 60} minutes",
            )

        if ip_address:
            ip_limited, ip_retry = self.ip_limiter.is_rate_limited(
                ip_address, self.MAX_ATTEMPTS_PER_IP, self.WINDOW_SECONDS
            )
            if ip_limited:
                return (
                    False,
                    f"Too many requests from your IP. Try again in {ip_retry} seconds",
                )

        return True, None

    def record_failed_attempt(self, username: str, ip_address: str | None = None) -> None:
        self.username_limiter.record_attempt(username)
        if ip_address:
            self.ip_limiter.record_attempt(ip_address)

    def record_successful_login(
        self, username: str, ip_address: str | None = None
    ) -> None:
        self.username_limiter.reset(username)
        if ip_address:
            self.ip_limiter.reset(ip_address)
        with self._lock:
            self._lockouts.pop(username, None)

    def _lockout_remaining(self, username: str) -> int:
        with self._lock:
            expiry = self._lockouts.get(username)
            if expiry is None:
                return 0
            remaining = int((expiry - datetime.now(UTC)).total_seconds())
            if remaining <= 0:
                del self._lockouts[username]
                return 0
            return remaining


login_rate_limiter = LoginRateLimiter()
