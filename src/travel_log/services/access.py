"""Access sessions gated by the shared access code."""

import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from travel_log.domain.access import SessionRecord

DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def new_session_id() -> str:
    """Generate an opaque, cryptographically random session token."""
    return secrets.token_hex(16)


def access_code_matches(supplied: str, expected: str) -> bool:
    """Compare a supplied access code against the configured secret."""
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


class SessionStore(Protocol):
    """Tracks which opaque session tokens are currently authenticated."""

    def create(self) -> str:
        """Register a new unauthenticated session and return its id."""

    def authenticate(self, session_id: str, supplied_code: str) -> bool:
        """Mark the session authenticated when the access code matches."""

    def is_valid(self, session_id: str) -> bool:
        """Return true for a live authenticated session, extending its expiry."""

    def invalidate(self, session_id: str) -> None:
        """Remove a session entirely."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local session store for single-instance deployments."""

    access_code: str
    ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    clock: Callable[[], datetime] = utc_now
    _sessions: dict[str, SessionRecord] = field(default_factory=dict, repr=False)

    def create(self) -> str:
        now = self.clock()
        self._purge_expired(now)
        session_id = new_session_id()
        self._sessions[session_id] = SessionRecord(
            id=session_id,
            authenticated=False,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        return session_id

    def authenticate(self, session_id: str, supplied_code: str) -> bool:
        session = self._live_session(session_id)
        if session is None:
            return False
        if not access_code_matches(supplied_code, self.access_code):
            return False
        self._sessions[session_id] = SessionRecord(
            id=session.id,
            authenticated=True,
            created_at=session.created_at,
            expires_at=self.clock() + timedelta(seconds=self.ttl_seconds),
        )
        return True

    def is_valid(self, session_id: str) -> bool:
        session = self._live_session(session_id)
        if session is None or not session.authenticated:
            return False
        self._sessions[session_id] = SessionRecord(
            id=session.id,
            authenticated=True,
            created_at=session.created_at,
            expires_at=self.clock() + timedelta(seconds=self.ttl_seconds),
        )
        return True

    def invalidate(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def get(self, session_id: str) -> SessionRecord | None:
        """Return the raw record without touching its expiry."""
        return self._sessions.get(session_id)

    def _live_session(self, session_id: str) -> SessionRecord | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self.clock()):
            self._sessions.pop(session_id, None)
            return None
        return session

    def _purge_expired(self, now: datetime) -> None:
        expired = [
            key for key, record in self._sessions.items() if record.is_expired(now)
        ]
        for key in expired:
            del self._sessions[key]
