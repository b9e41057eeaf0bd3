"""
Session Store - Persistence boundary for Session aggregates.

The store hands out copies and takes copies back. A caller can therefore
mutate a loaded session freely; nothing is visible to anybody else until
save() succeeds.

Optimistic concurrency:
- every stored session carries a version
- save() only succeeds if the caller's copy has the stored version, and
  then bumps it
- otherwise VersionConflictError, and the caller starts over
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import threading

from ..engine_core.errors import NotFoundError, ValidationError, VersionConflictError
from ..engine_core.state import Session


class SessionStore(ABC):
    """What the session manager needs from persistence."""

    @abstractmethod
    def create(self, session: Session) -> Session:
        """Store a brand new session. Returns the stored copy."""
        ...

    @abstractmethod
    def load(self, session_id: str) -> Session:
        """Independent copy of the stored session. NotFoundError if absent."""
        ...

    @abstractmethod
    def save(self, session: Session) -> Session:
        """Replace the stored session if versions match, else VersionConflictError."""
        ...

    @abstractmethod
    def list_ids(self) -> list[str]:
        ...

    @abstractmethod
    def delete(self, session_id: str):
        ...


class InMemorySessionStore(SessionStore):
    """
    Process-local store.

    Sessions are kept as private deep copies behind one short lock.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, session: Session) -> Session:
        with self._lock:
            if session.session_id in self._sessions:
                raise ValidationError(f"Session {session.session_id} already exists")
            stored = session.clone()
            stored.version = 1
            self._sessions[session.session_id] = stored
            session.version = stored.version
            return stored.clone()

    def load(self, session_id: str) -> Session:
        with self._lock:
            stored = self._sessions.get(session_id)
            if stored is None:
                raise NotFoundError(f"Session {session_id} not found")
            return stored.clone()

    def save(self, session: Session) -> Session:
        with self._lock:
            stored = self._sessions.get(session.session_id)
            if stored is None:
                raise NotFoundError(f"Session {session.session_id} not found")
            if stored.version != session.version:
                raise VersionConflictError(session.session_id, session.version, stored.version)
            replacement = session.clone()
            replacement.version = stored.version + 1
            self._sessions[session.session_id] = replacement
            session.version = replacement.version
            return replacement.clone()

    def list_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def delete(self, session_id: str):
        with self._lock:
            self._sessions.pop(session_id, None)
