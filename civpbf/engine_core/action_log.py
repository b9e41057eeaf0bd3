"""
Action Log - Append-only record of state-changing operations.

Each entry is either PUBLIC (shown to every player of the session) or
PRIVATE to one username (e.g. the identity of a hidden card just drawn).

Entries are produced by the reducer while an operation runs, buffered in
the ActionResult, and only handed to the sink once the session has been
saved. A sink never sees entries for an operation that did not happen.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import threading
import uuid


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class LogEntry:
    """One line of the game log."""
    entry_id: str
    session_id: str
    visibility: Visibility
    text: str
    created_at: float
    username: str | None = None  # recipient of a private entry
    related_draw_id: str | None = None

    @classmethod
    def public(
        cls,
        session_id: str,
        text: str,
        created_at: float,
        related_draw_id: str | None = None,
    ) -> LogEntry:
        return cls(
            entry_id=str(uuid.uuid4()),
            session_id=session_id,
            visibility=Visibility.PUBLIC,
            text=text,
            created_at=created_at,
            related_draw_id=related_draw_id,
        )

    @classmethod
    def private(
        cls,
        session_id: str,
        username: str,
        text: str,
        created_at: float,
        related_draw_id: str | None = None,
    ) -> LogEntry:
        return cls(
            entry_id=str(uuid.uuid4()),
            session_id=session_id,
            visibility=Visibility.PRIVATE,
            text=text,
            created_at=created_at,
            username=username,
            related_draw_id=related_draw_id,
        )

    def visible_to(self, username: str | None) -> bool:
        if self.visibility == Visibility.PUBLIC:
            return True
        return username is not None and self.username == username


class ActionLogSink(ABC):
    """
    Where finished log entries go.

    Implementations provide append() and entries(); the filtered queries
    are built on top of entries().
    """

    @abstractmethod
    def append(self, entry: LogEntry) -> None:
        """Durably store one entry. May raise on failure."""
        ...

    @abstractmethod
    def entries(self, session_id: str) -> list[LogEntry]:
        """All entries of a session in append order."""
        ...

    def public_entries(self, session_id: str) -> list[LogEntry]:
        return [e for e in self.entries(session_id) if e.visibility == Visibility.PUBLIC]

    def private_entries(self, session_id: str, username: str) -> list[LogEntry]:
        return [
            e for e in self.entries(session_id)
            if e.visibility == Visibility.PRIVATE and e.username == username
        ]

    def entries_for_draw(self, draw_id: str) -> list[LogEntry]:
        session_id = draw_id.rpartition(":")[0]
        return [e for e in self.entries(session_id) if e.related_draw_id == draw_id]


class InMemoryActionLog(ActionLogSink):
    """
    Process-local action log.

    Append and read are guarded by one lock; reads return copies of the
    matching entries in append order.
    """

    def __init__(self):
        self._entries: list[LogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self, session_id: str) -> list[LogEntry]:
        with self._lock:
            return [e for e in self._entries if e.session_id == session_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
