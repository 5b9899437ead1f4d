import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from config import JWT_ACCESS_TOKEN_EXPIRE_MINUTES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _SessionEntry:
    data: dict[str, Any]
    expires_at: datetime


class SessionStore:
    """In-process key-value bags keyed by an opaque session id."""

    def __init__(
        self,
        lifetime: timedelta = timedelta(minutes=JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.lifetime = lifetime
        self._clock = clock
        self._sessions: dict[str, _SessionEntry] = {}
        self._lock = threading.Lock()

    def create(self, data: dict[str, Any], lifetime: timedelta | None = None) -> str:
        session_id = secrets.token_urlsafe(32)
        expires_at = self._clock() + (lifetime or self.lifetime)
        with self._lock:
            self._sessions[session_id] = _SessionEntry(dict(data), expires_at)
        return session_id

    def get(self, session_id: str | None) -> dict[str, Any] | None:
        if not session_id:
            return None
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._sessions[session_id]
                return None
            return dict(entry.data)

    def update(self, session_id: str, **values: Any) -> bool:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return False
            entry.data.update(values)
            return True

    def delete(self, session_id: str | None) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, e in self._sessions.items() if now > e.expires_at]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)
