"""Session store abstractions."""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import uuid4

from content_engine.domain.sessions import Session, SessionState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def new_session_id() -> str:
    """Short opaque id that keeps callback data within Telegram's 64 bytes."""
    return uuid4().hex[:12]


class SessionStore(Protocol):
    """Keyed storage for live sessions with atomic per-key operations."""

    def create(
        self,
        user_id: int,
        chat_id: int,
        primary_media_ref: str,
        restaurant_name: str | None = None,
    ) -> Session:
        """Create a session with a fresh unique id and return it."""

    def get(self, session_id: str) -> Session | None:
        """Return a live session, or None when it is unknown or expired."""

    def save(self, session: Session) -> Session:
        """Replace a live session and return the stored record."""

    def delete(self, session_id: str) -> None:
        """Remove a session if present."""

    def find_collecting(self, user_id: int) -> Session | None:
        """Return the user's session that is collecting reference photos, if any."""

    def list_sessions(self) -> list[Session]:
        """Return all live sessions, newest first."""

    def purge_expired(self) -> list[str]:
        """Evict expired sessions and return their ids."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Process-local session store with idle expiry and terminal cleanup."""

    ttl_seconds: int = 3600
    terminal_retention_seconds: int = 300
    clock: Clock = utc_now
    id_factory: Callable[[], str] = new_session_id
    _sessions: dict[str, Session] = field(default_factory=dict, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False)

    def create(
        self,
        user_id: int,
        chat_id: int,
        primary_media_ref: str,
        restaurant_name: str | None = None,
    ) -> Session:
        """Create a session in the initial state."""
        with self._lock:
            session_id = self.id_factory()
            while session_id in self._sessions:
                session_id = self.id_factory()
            now = self.clock()
            session = Session(
                id=session_id,
                user_id=user_id,
                chat_id=chat_id,
                primary_media_ref=primary_media_ref,
                state=SessionState.AWAITING_REFERENCE_CHOICE,
                created_at=now,
                updated_at=now,
                restaurant_name=restaurant_name,
            )
            self._sessions[session_id] = session
            return session

    def get(self, session_id: str) -> Session | None:
        """Return a session if it hasn't expired."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._is_expired(session, self.clock()):
                self._sessions.pop(session_id, None)
                logger.info("Session expired", extra={"session_id": session_id})
                return None
            return session

    def save(self, session: Session) -> Session:
        """Store a new version of a live session, stamping updated_at."""
        with self._lock:
            if self.get(session.id) is None:
                raise KeyError(session.id)
            stamped = replace(session, updated_at=self.clock())
            self._sessions[session.id] = stamped
            return stamped

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def find_collecting(self, user_id: int) -> Session | None:
        with self._lock:
            for session in self.list_sessions():
                if (
                    session.user_id == user_id
                    and session.state == SessionState.COLLECTING_REFERENCES
                ):
                    return session
            return None

    def list_sessions(self) -> list[Session]:
        with self._lock:
            self.purge_expired()
            return sorted(
                self._sessions.values(),
                key=lambda session: session.created_at,
                reverse=True,
            )

    def purge_expired(self) -> list[str]:
        with self._lock:
            now = self.clock()
            expired = [
                session_id
                for session_id, session in self._sessions.items()
                if self._is_expired(session, now)
            ]
            for session_id in expired:
                self._sessions.pop(session_id, None)
            if expired:
                logger.info("Evicted expired sessions", extra={"count": len(expired)})
            return expired

    def _is_expired(self, session: Session, now: datetime) -> bool:
        if session.state.is_terminal:
            window = self.terminal_retention_seconds
        else:
            window = self.ttl_seconds
        return now >= session.updated_at + timedelta(seconds=window)

