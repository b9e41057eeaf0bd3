"""
Action System - Actions, payloads, and results.

Actions represent everything a player can do to a session:
1. Roster actions (join, withdraw, end turn, end game)
2. Item actions (draw, reveal, discard, trade)
3. Undo actions (initiate, vote)
4. Research actions (choose/remove tech, choose social policy)

All state changes flow through actions and the reducer. A failing action
raises a GameError; a successful one returns an ActionResult carrying the
log entries and notifications to publish once the session is saved.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .action_log import LogEntry
from .state import Category, ItemRef


class ActionType(Enum):
    """Types of actions in the system."""
    # Roster
    JOIN = "join"
    END_TURN = "end_turn"
    WITHDRAW = "withdraw"
    END_GAME = "end_game"

    # Items
    DRAW = "draw"
    REVEAL_ITEM = "reveal_item"
    DISCARD = "discard"
    TRADE_ITEM = "trade_item"

    # Undo voting
    INITIATE_UNDO = "initiate_undo"
    VOTE_UNDO = "vote_undo"

    # Research
    CHOOSE_TECH = "choose_tech"
    REMOVE_TECH = "remove_tech"
    CHOOSE_SOCIAL_POLICY = "choose_social_policy"


@dataclass
class ActionPayload:
    """
    Parameters of an action.

    Different action types use different fields; the handler for each
    type validates what it needs.
    """
    player_id: str
    username: str | None = None
    category: Category | str | None = None  # validated by the draw engine
    item_ref: ItemRef | None = None
    target_player_id: str | None = None
    draw_id: str | None = None
    choice: bool | None = None
    name: str | None = None  # tech or social policy
    winner: str | None = None


@dataclass
class Action:
    """
    A complete action to be applied to a session.

    Actions are validated and applied atomically by the reducer.
    """
    action_type: ActionType
    payload: ActionPayload

    @classmethod
    def join(cls, player_id: str, username: str) -> Action:
        return cls(ActionType.JOIN, ActionPayload(player_id=player_id, username=username))

    @classmethod
    def end_turn(cls, player_id: str) -> Action:
        return cls(ActionType.END_TURN, ActionPayload(player_id=player_id))

    @classmethod
    def withdraw(cls, player_id: str) -> Action:
        return cls(ActionType.WITHDRAW, ActionPayload(player_id=player_id))

    @classmethod
    def end_game(cls, winner: str | None, player_id: str | None = None) -> Action:
        """player_id None means a system request, not made on behalf of a player."""
        return cls(ActionType.END_GAME, ActionPayload(player_id=player_id, winner=winner))

    @classmethod
    def draw(cls, player_id: str, category: Category | str) -> Action:
        return cls(ActionType.DRAW, ActionPayload(player_id=player_id, category=category))

    @classmethod
    def reveal_item(cls, player_id: str, item_ref: ItemRef) -> Action:
        return cls(ActionType.REVEAL_ITEM, ActionPayload(player_id=player_id, item_ref=item_ref))

    @classmethod
    def discard(cls, player_id: str, item_ref: ItemRef) -> Action:
        return cls(ActionType.DISCARD, ActionPayload(player_id=player_id, item_ref=item_ref))

    @classmethod
    def trade_item(cls, player_id: str, to_player_id: str, item_ref: ItemRef) -> Action:
        return cls(
            ActionType.TRADE_ITEM,
            ActionPayload(player_id=player_id, target_player_id=to_player_id, item_ref=item_ref),
        )

    @classmethod
    def initiate_undo(cls, player_id: str, draw_id: str) -> Action:
        return cls(ActionType.INITIATE_UNDO, ActionPayload(player_id=player_id, draw_id=draw_id))

    @classmethod
    def vote_undo(cls, player_id: str, draw_id: str, choice: bool) -> Action:
        return cls(
            ActionType.VOTE_UNDO,
            ActionPayload(player_id=player_id, draw_id=draw_id, choice=choice),
        )

    @classmethod
    def choose_tech(cls, player_id: str, tech_name: str) -> Action:
        return cls(ActionType.CHOOSE_TECH, ActionPayload(player_id=player_id, name=tech_name))

    @classmethod
    def remove_tech(cls, player_id: str, tech_name: str) -> Action:
        return cls(ActionType.REMOVE_TECH, ActionPayload(player_id=player_id, name=tech_name))

    @classmethod
    def choose_social_policy(cls, player_id: str, policy_name: str) -> Action:
        return cls(
            ActionType.CHOOSE_SOCIAL_POLICY,
            ActionPayload(player_id=player_id, name=policy_name),
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - The value returned to the caller (draw record, item, proposal, ...)
    - Log entries to append once the session is saved
    - Player IDs to notify that their turn has started
    """
    value: Any = None
    log_entries: list[LogEntry] = field(default_factory=list)
    notifications: list[str] = field(default_factory=list)

    # Human-readable summary, mostly for debugging
    state_changes: list[str] = field(default_factory=list)

    def log_public(self, session_id: str, text: str, at: float, related_draw_id: str | None = None):
        self.log_entries.append(LogEntry.public(session_id, text, at, related_draw_id))
        self.state_changes.append(text)

    def log_private(
        self,
        session_id: str,
        username: str,
        text: str,
        at: float,
        related_draw_id: str | None = None,
    ):
        self.log_entries.append(LogEntry.private(session_id, username, text, at, related_draw_id))

    def notify(self, player_id: str):
        self.notifications.append(player_id)
