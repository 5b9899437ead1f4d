"""
Fixed-window throttle for failed logins.

Attempts are grouped by identity key (lowercased email, or the client IP when
no email was given). A key is locked once it reaches ``max_attempts`` failures
and stays locked until ``window`` has passed since its *last* failure. The
failure counter itself restarts when ``window`` has passed since the first
failure of the current window.

State is process memory only; a restart clears every lock.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from config import LOGIN_LOCK_WINDOW_MINUTES, LOGIN_MAX_ATTEMPTS

logger = logging.getLogger("event_booking_api.throttle")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def login_key(email: str | None, client_ip: str | None) -> str:
    """Identity key for an attempt: the normalized email, else the client IP."""
    normalized = (email or "").strip().lower()
    return normalized or client_ip or "unknown"


class ThrottleReason(str, Enum):
    TOO_MANY_ATTEMPTS = "TooManyAttempts"


@dataclass(frozen=True)
class ThrottleDecision:
    allowed: bool
    reason: ThrottleReason | None = None
    retry_after: timedelta | None = None


@dataclass
class LoginAttemptEntry:
    key: str
    count: int
    window_start: datetime
    last_attempt: datetime


class LoginAttemptTracker:
    def __init__(
        self,
        max_attempts: int = LOGIN_MAX_ATTEMPTS,
        window: timedelta = timedelta(minutes=LOGIN_LOCK_WINDOW_MINUTES),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock
        self._entries: dict[str, LoginAttemptEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> LoginAttemptEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            return replace(entry) if entry else None

    def _decide(self, key: str, now: datetime) -> ThrottleDecision:
        # Uses the stored entry before any window reset is applied.
        entry = self._entries.get(key)
        if entry is None or entry.count < self.max_attempts:
            return ThrottleDecision(True)

        since_last = now - entry.last_attempt
        if since_last < self.window:
            return ThrottleDecision(
                False, ThrottleReason.TOO_MANY_ATTEMPTS, self.window - since_last
            )
        return ThrottleDecision(True)

    def _record(self, key: str, succeeded: bool, now: datetime) -> None:
        if succeeded:
            self._entries.pop(key, None)
            return

        entry = self._entries.get(key)
        if entry is None:
            entry = LoginAttemptEntry(key=key, count=0, window_start=now, last_attempt=now)
        elif now - entry.window_start > self.window:
            entry.count = 0
            entry.window_start = now

        entry.count += 1
        entry.last_attempt = now
        self._entries[key] = entry

        if entry.count >= self.max_attempts:
            logger.warning(f"Login locked for key={key} after {entry.count} failed attempts")

    def check(self, key: str) -> ThrottleDecision:
        with self._lock:
            return self._decide(key, self._clock())

    def record(self, key: str, succeeded: bool) -> None:
        with self._lock:
            self._record(key, succeeded, self._clock())

    def check_and_record(self, key: str, succeeded: bool) -> ThrottleDecision:
        """Evaluate an attempt and, unless it is denied, record its outcome."""
        with self._lock:
            now = self._clock()
            decision = self._decide(key, now)
            if decision.allowed:
                self._record(key, succeeded, now)
            return decision

    def purge_stale(self) -> int:
        """Drop entries that can neither deny nor keep accumulating."""
        now = self._clock()
        with self._lock:
            stale = [
                key
                for key, e in self._entries.items()
                if now - e.last_attempt >= self.window and now - e.window_start > self.window
            ]
            for key in stale:
                del self._entries[key]
        return len(stale)
