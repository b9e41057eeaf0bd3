"""
Precondition checks shared by the action handlers.

All of these raise before anything is mutated.
"""

from __future__ import annotations

from .errors import AccessDeniedError, ValidationError
from .state import Category, Participant, Session, SessionStatus


def require_member(session: Session, player_id: str | None) -> Participant:
    """Return the non-withdrawn participant, or deny access."""
    if player_id:
        participant = session.get_participant(player_id)
        if participant is not None:
            return participant
        if session.get_withdrawn(player_id) is not None:
            raise AccessDeniedError(f"Player {player_id} has withdrawn from {session.name}")
    raise AccessDeniedError(f"Player {player_id} is not part of {session.name}")


def require_status(session: Session, status: SessionStatus, doing: str):
    if session.status != status:
        raise ValidationError(
            f"Cannot {doing}: game is {session.status.value}, must be {status.value}"
        )


def parse_category(raw: str | Category | None) -> Category:
    if isinstance(raw, Category):
        return raw
    category = Category.find(raw or "")
    if category is None:
        raise ValidationError(f"Unknown category: {raw}")
    return category
