import secrets
import threading
import time
from dataclasses import dataclass


@dataclass(frozen=True)
class SessionData:
    session_id: str
    user_id: int
    role: str
    username: str
    expires_at: float


class SessionStore:
    """
    Server-side sessions keyed by an opaque random id.

    Safe to share between request threads. Sessions live at most `max_age_s`
    seconds. Expired entries are dropped on lookup and swept whenever a new
    session is issued.
    """

    def __init__(self, max_age_s: int, clock=time.time):
        self.max_age_s = int(max_age_s)
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionData] = {}

    def issue(self, *, user_id: int, role: str, username: str) -> SessionData:
        now = self._clock()
        session = SessionData(
            session_id=secrets.token_urlsafe(32),
            user_id=int(user_id),
            role=role,
            username=username,
            expires_at=now + self.max_age_s,
        )
        with self._lock:
            self._purge_locked(now)
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str | None) -> SessionData | None:
        if not session_id:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if session.expires_at <= now:
                del self._sessions[session_id]
                return None
            return session

    def revoke(self, session_id: str | None) -> bool:
        if not session_id:
            return False
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            return self._purge_locked(now)

    def _purge_locked(self, now: float) -> int:
        expired = [sid for sid, s in self._sessions.items() if s.expires_at <= now]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
