"""
Notifier - Tells a player their turn has started.

Delivery (mail, chat, push) is somebody else's job. A failing delivery
must never undo a turn that has already been saved, so the base class
logs and swallows delivery errors.
"""

from __future__ import annotations
import logging
import threading

logger = logging.getLogger(__name__)


class Notifier:
    """
    Base notifier. Subclasses implement deliver().

    notify() is what the session manager calls, once per turn advance.
    """

    def notify(self, session_id: str, player_id: str):
        try:
            self.deliver(session_id, player_id)
        except Exception:
            logger.exception(
                "Could not notify player %s of their turn in session %s",
                player_id,
                session_id,
            )

    def deliver(self, session_id: str, player_id: str):
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Writes the notification to the log. Default for local runs."""

    def deliver(self, session_id: str, player_id: str):
        logger.info("It is now %s's turn in session %s", player_id, session_id)


class RecordingNotifier(Notifier):
    """Keeps every notification in memory."""

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def deliver(self, session_id: str, player_id: str):
        with self._lock:
            self.sent.append((session_id, player_id))

    def sent_to(self, player_id: str) -> int:
        with self._lock:
            return sum(1 for _, pid in self.sent if pid == player_id)
