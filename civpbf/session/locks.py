"""
Session Locks - One writer per session at a time.

Every session has its own lock; the registry lock is only held long
enough to look that lock up. No code path ever holds two session locks,
so sessions cannot deadlock on each other.

Locks are process-local. Several server processes sharing one store rely
on the store's version check instead.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator
import logging
import threading

from ..engine_core.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class SessionLockRegistry:
    """
    Hands out per-session locks with a bounded wait.

    Usage:
        locks = SessionLockRegistry(timeout=2.0)
        with locks.hold(session_id):
            ...  # load, mutate, save
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def lock_for(self, session_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[session_id] = lock
            return lock

    @contextmanager
    def hold(self, session_id: str, timeout: float | None = None) -> Iterator[None]:
        """
        Hold the session's lock for the duration of the block.

        Raises:
            ConcurrencyConflictError: the lock was not free within the timeout.
        """
        timeout = self.timeout if timeout is None else max(0.0, timeout)
        lock = self.lock_for(session_id)
        if not lock.acquire(timeout=timeout):
            logger.warning("Timed out after %.2fs waiting for session %s", timeout, session_id)
            raise ConcurrencyConflictError(
                f"Session {session_id} is busy, try again"
            )
        try:
            yield
        finally:
            lock.release()

    def discard(self, session_id: str):
        """Forget a deleted session's lock."""
        with self._registry_lock:
            self._locks.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        with self._registry_lock:
            return session_id in self._locks
