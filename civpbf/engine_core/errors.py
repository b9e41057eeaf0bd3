"""
Errors - Typed failures raised by the engine.

Every error carries a `category` that the request surface maps onto a
status class:
- not_found:     session or draw does not exist
- bad_request:   precondition failed (full session, not your turn, ...)
- forbidden:     caller is not a member, or acts on someone else's item
- conflict:      stale version, closed proposal
- busy:          lock timeout, or saves kept conflicting; retry later
- gone:          the requested pool is exhausted
- internal:      ruleset data is broken

Validation always happens before mutation, so any of these leaves the
session exactly as it was.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for all engine errors."""

    category = "bad_request"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(GameError):
    """A precondition of the operation does not hold."""

    category = "bad_request"


class NotFoundError(GameError):
    """Unknown session or draw record."""

    category = "not_found"


class AccessDeniedError(GameError):
    """Caller is not an active participant, or does not own the item."""

    category = "forbidden"


class ResourceExhaustedError(GameError):
    """The category pool has no more items to draw."""

    category = "gone"

    def __init__(self, category_label: str):
        self.category_label = category_label
        super().__init__(f"No more {category_label} to draw!")


class ProposalClosedError(GameError):
    """The undo proposal has already been resolved."""

    category = "conflict"


class ConcurrencyConflictError(GameError):
    """Lock could not be acquired in time, or saves kept conflicting."""

    category = "busy"


class VersionConflictError(GameError):
    """Raised by a session store when the optimistic version is stale."""

    category = "conflict"

    def __init__(self, session_id: str, expected: int, actual: int):
        self.session_id = session_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Session {session_id} is at version {actual}, expected {expected}"
        )


class ConfigurationError(GameError):
    """Unknown ruleset, or canonical deck data that does not validate."""

    category = "internal"


class FatalStartupError(GameError):
    """Canonical deck source could not be read at all."""

    category = "internal"
