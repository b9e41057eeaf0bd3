"""
Session Module - Runs play-by-forum sessions.

A session is one game between 2 and 7 players:
- Created in FORMING with its own shuffled decks
- ACTIVE once every seat is taken
- FINISHED when a winner is declared or everybody has left

Every change goes through the SessionManager, which serializes writers
per session, retries on stale saves and publishes log entries and turn
notifications only after a successful save.
"""

from .manager import GameView, SessionManager
from .locks import SessionLockRegistry
from .notify import LoggingNotifier, Notifier, RecordingNotifier
from .store import InMemorySessionStore, SessionStore

__all__ = [
    "GameView",
    "SessionManager",
    "SessionLockRegistry",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "InMemorySessionStore",
    "SessionStore",
]
