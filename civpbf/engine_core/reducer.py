"""
Reducer - Applies actions to session state.

The reducer is the single point of state mutation.
All state changes must go through Reducer.apply().

Design principles:
- Works on the session it is given; the caller hands it a loaded copy and
  decides whether to save the result
- Validates before applying: handlers raise a GameError before touching
  anything, so a failed action leaves the copy unchanged
- Returns an ActionResult with the log entries and notifications to
  publish after the save
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import time

from .action import Action, ActionType, ActionResult, ActionPayload
from .errors import ValidationError
from .state import Session
from . import draw, research, turns, undo

Handler = Callable[[Session, ActionPayload, float], ActionResult]


@dataclass
class Reducer:
    """
    Reducer applies actions to a session.

    Stateless apart from the clock, which tests may replace.
    """
    clock: Callable[[], float] = field(default=time.time)

    def apply(self, session: Session, action: Action) -> ActionResult:
        """Apply an action to the session, raising GameError if it is not allowed."""
        handler = self._get_handler(action.action_type)
        if handler is None:
            raise ValidationError(f"No handler for action type: {action.action_type}")
        return handler(session, action.payload, self.clock())

    def _get_handler(self, action_type: ActionType) -> Handler | None:
        """Get the handler function for an action type."""
        handlers = {
            ActionType.JOIN: turns.join_session,
            ActionType.END_TURN: turns.end_turn,
            ActionType.WITHDRAW: turns.withdraw,
            ActionType.END_GAME: turns.end_game,
            ActionType.DRAW: draw.draw_item,
            ActionType.REVEAL_ITEM: draw.reveal_item,
            ActionType.DISCARD: draw.discard_item,
            ActionType.TRADE_ITEM: draw.trade_item,
            ActionType.INITIATE_UNDO: undo.initiate_undo,
            ActionType.VOTE_UNDO: undo.vote_undo,
            ActionType.CHOOSE_TECH: research.choose_tech,
            ActionType.REMOVE_TECH: research.remove_tech,
            ActionType.CHOOSE_SOCIAL_POLICY: research.choose_social_policy,
        }
        return handlers.get(action_type)


def apply_action(session: Session, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer()
    return reducer.apply(session, action)
