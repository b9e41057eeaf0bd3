"""
API Module - Forum front end interface.

Exposes the session manager via REST API. A front end:
1. Creates a game and lets players join
2. Draws, reveals, discards and trades items for players
3. Runs undo votes
4. Shows the public log and each player's private log

Each route maps onto exactly one session operation.
"""

from .schemas import (
    # Requests
    CreateSessionRequest,
    DrawRequest,
    EndGameRequest,
    ItemRequest,
    JoinRequest,
    NameRequest,
    PlayerRequest,
    TradeRequest,
    VoteRequest,
    # Responses
    DrawResponse,
    ErrorResponse,
    GameViewResponse,
    SessionResponse,
    UndoResponse,
    # Shared
    DrawInfo,
    ItemInfo,
    PlayerInfo,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateSessionRequest",
    "DrawRequest",
    "EndGameRequest",
    "ItemRequest",
    "JoinRequest",
    "NameRequest",
    "PlayerRequest",
    "TradeRequest",
    "VoteRequest",
    # Responses
    "DrawResponse",
    "ErrorResponse",
    "GameViewResponse",
    "SessionResponse",
    "UndoResponse",
    # Shared
    "DrawInfo",
    "ItemInfo",
    "PlayerInfo",
    # Service
    "APIService",
    "create_app",
]
