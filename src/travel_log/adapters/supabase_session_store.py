"""Supabase-backed access session store for multi-instance deployments."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from travel_log.domain.access import SessionRecord
from travel_log.domain.errors import StorageError
from travel_log.services.access import (
    DEFAULT_SESSION_TTL_SECONDS,
    SessionStore,
    access_code_matches,
    new_session_id,
    utc_now,
)

_TABLE = "access_sessions"


@dataclass
class SupabaseSessionStore(SessionStore):
    """Session store persisted in the ``access_sessions`` table."""

    client: Client
    access_code: str
    ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS
    clock: Callable[[], datetime] = utc_now

    def create(self) -> str:
        """Insert an unauthenticated session row and return its id."""
        now = self.clock()
        self._run(
            self.client.table(_TABLE).delete().lt("expires_at", now.isoformat()),
            "purge_sessions",
        )
        session_id = new_session_id()
        self._run(
            self.client.table(_TABLE).insert(
                {
                    "id": session_id,
                    "authenticated": False,
                    "created_at": now.isoformat(),
                    "expires_at": self._expiry(now).isoformat(),
                }
            ),
            "create_session",
        )
        return session_id

    def authenticate(self, session_id: str, supplied_code: str) -> bool:
        """Mark the session authenticated when the access code matches."""
        session = self._live_session(session_id)
        if session is None:
            return False
        if not access_code_matches(supplied_code, self.access_code):
            return False
        self._run(
            self.client.table(_TABLE)
            .update(
                {
                    "authenticated": True,
                    "expires_at": self._expiry(self.clock()).isoformat(),
                }
            )
            .eq("id", session_id),
            "authenticate_session",
        )
        return True

    def is_valid(self, session_id: str) -> bool:
        """Return true for a live authenticated session and slide its expiry."""
        session = self._live_session(session_id)
        if session is None or not session.authenticated:
            return False
        self._run(
            self.client.table(_TABLE)
            .update({"expires_at": self._expiry(self.clock()).isoformat()})
            .eq("id", session_id),
            "touch_session",
        )
        return True

    def invalidate(self, session_id: str) -> None:
        """Delete a session row."""
        self._run(
            self.client.table(_TABLE).delete().eq("id", session_id),
            "invalidate_session",
        )

    def _live_session(self, session_id: str) -> SessionRecord | None:
        response = self._run(
            self.client.table(_TABLE)
            .select("id, authenticated, created_at, expires_at")
            .eq("id", session_id)
            .limit(1),
            "get_session",
        )
        if not response.data:
            return None
        row = response.data[0]
        session = SessionRecord(
            id=row["id"],
            authenticated=bool(row["authenticated"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )
        if session.is_expired(self.clock()):
            self.invalidate(session_id)
            return None
        return session

    def _expiry(self, now: datetime) -> datetime:
        return now + timedelta(seconds=self.ttl_seconds)

    @staticmethod
    def _run(query, operation: str):  # type: ignore[no-untyped-def]
        try:
            return query.execute()
        except (APIError, httpx.HTTPError) as exc:
            raise StorageError(operation) from exc
