"""
Engine Core - Session state management for play-by-forum games.

The engine is the runtime that:
1. Holds the Session aggregate (pools, hands, roster, draws)
2. Applies actions via the reducer
3. Draws, reveals, discards and trades items
4. Sequences turns and runs undo votes
5. Produces public and private log entries
"""

from .state import (
    Category,
    Item,
    ItemRef,
    Participant,
    RulesetType,
    Session,
    SessionStatus,
    DrawRecord,
    UndoProposal,
    UndoResolution,
)
from .action import Action, ActionType, ActionPayload, ActionResult
from .action_log import ActionLogSink, InMemoryActionLog, LogEntry, Visibility
from .errors import (
    GameError,
    ValidationError,
    NotFoundError,
    AccessDeniedError,
    ResourceExhaustedError,
    ProposalClosedError,
    ConcurrencyConflictError,
    VersionConflictError,
    ConfigurationError,
    FatalStartupError,
)
from .invariants import check_invariants
from .reducer import Reducer, apply_action

__all__ = [
    "Category",
    "Item",
    "ItemRef",
    "Participant",
    "RulesetType",
    "Session",
    "SessionStatus",
    "DrawRecord",
    "UndoProposal",
    "UndoResolution",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ActionLogSink",
    "InMemoryActionLog",
    "LogEntry",
    "Visibility",
    "GameError",
    "ValidationError",
    "NotFoundError",
    "AccessDeniedError",
    "ResourceExhaustedError",
    "ProposalClosedError",
    "ConcurrencyConflictError",
    "VersionConflictError",
    "ConfigurationError",
    "FatalStartupError",
    "check_invariants",
    "Reducer",
    "apply_action",
]
