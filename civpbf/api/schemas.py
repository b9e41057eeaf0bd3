"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between forum front ends and the
engine. All responses include explicit types for OpenAPI schema generation.

Error Codes:
- NOT_FOUND: Session or draw does not exist
- VALIDATION_ERROR: A precondition failed (full game, not your turn, ...)
- FORBIDDEN: Caller is not in the game or does not own the item
- CONFLICT: Undo proposal already resolved, or stale write
- EXHAUSTED: No more items in the requested category
- BUSY: Session is locked by another writer, retry later
- INTERNAL_ERROR: Ruleset data is broken
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    FORMING = "forming"
    ACTIVE = "active"
    FINISHED = "finished"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class UndoResolution(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ErrorCode(str, Enum):
    """Structured error codes."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    EXHAUSTED = "EXHAUSTED"
    BUSY = "BUSY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class ItemInfo(BaseModel):
    """An item as the caller may see it. name is None while hidden from them."""
    category: str
    name: Optional[str] = None
    hidden: bool = True
    used: bool = False
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class PlayerInfo(BaseModel):
    """Public information about a participant."""
    player_id: str
    username: str
    your_turn: bool = False
    item_count: int = 0
    tech_count: int = 0
    social_policies: list[str] = Field(default_factory=list)
    withdrawn: bool = False

    model_config = {"from_attributes": True}


class TechInfo(BaseModel):
    name: str
    level: int

    model_config = {"from_attributes": True}


class LogEntryInfo(BaseModel):
    """One line of the game log."""
    entry_id: str
    text: str
    created_at: float
    visibility: Visibility
    related_draw_id: Optional[str] = None


class UndoInfo(BaseModel):
    """State of an undo vote."""
    initiated_by: str
    votes: dict[str, bool] = Field(default_factory=dict)
    resolution: UndoResolution
    created_at: float
    resolved_at: Optional[float] = None


class DrawInfo(BaseModel):
    """A draw as recorded for audit and undo voting."""
    draw_id: str
    session_id: str
    category: str
    player_id: str
    created_at: float
    item: Optional[ItemInfo] = None
    undo: Optional[UndoInfo] = None


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to create a new game. The creator takes the first seat."""
    name: str
    ruleset: str = Field("base", description="base, fame_and_fortune, wisdom_and_warfare, dawn_of_civilization")
    capacity: int = Field(4, description="Number of players, 2 to 7")
    player_id: str
    username: str


class JoinRequest(BaseModel):
    player_id: str
    username: str


class PlayerRequest(BaseModel):
    """Request that only identifies the acting player."""
    player_id: str


class DrawRequest(BaseModel):
    player_id: str
    category: str = Field(..., description="Category label or name, e.g. 'Culture I' or 'CULTURE_1'")


class ItemRequest(BaseModel):
    """Identifies one item of the acting player."""
    player_id: str
    category: str
    name: str


class TradeRequest(BaseModel):
    player_id: str
    to_player_id: str
    category: str
    name: str


class VoteRequest(BaseModel):
    player_id: str
    vote: bool


class EndGameRequest(BaseModel):
    winner: Optional[str] = None
    player_id: Optional[str] = None


class NameRequest(BaseModel):
    """A tech or social policy picked by a player."""
    player_id: str
    name: str


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    api_version: str = Field("v1", description="API version")


class SessionResponse(BaseModel):
    """Public state of a session."""
    session_id: str
    name: str
    ruleset: str
    status: SessionStatus
    capacity: int
    players: list[PlayerInfo] = Field(default_factory=list)
    withdrawn: list[PlayerInfo] = Field(default_factory=list)
    current_turn_player_id: Optional[str] = None
    winner: Optional[str] = None
    pool_sizes: dict[str, int] = Field(default_factory=dict)
    discard_size: int = 0
    created_at: float = 0.0
    api_version: str = "v1"


class GameViewResponse(BaseModel):
    """Everything one player may see of a session."""
    session: SessionResponse
    player: PlayerInfo
    hand: list[ItemInfo] = Field(default_factory=list)
    techs: list[TechInfo] = Field(default_factory=list)
    public_log: list[LogEntryInfo] = Field(default_factory=list)
    private_log: list[LogEntryInfo] = Field(default_factory=list)
    api_version: str = "v1"


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    count: int


class PlayerListResponse(BaseModel):
    players: list[PlayerInfo]


class DrawResponse(BaseModel):
    """Result of a draw, shown to the drawer."""
    draw: DrawInfo
    item: ItemInfo


class ItemResponse(BaseModel):
    item: ItemInfo


class TurnResponse(BaseModel):
    session_id: str
    current_turn_player_id: str


class UndoResponse(BaseModel):
    draw_id: str
    undo: UndoInfo


class DrawListResponse(BaseModel):
    draws: list[DrawInfo]


class LogResponse(BaseModel):
    entries: list[LogEntryInfo]


class TechResponse(BaseModel):
    tech: TechInfo


class TechListResponse(BaseModel):
    techs: list[TechInfo]


class PolicyResponse(BaseModel):
    name: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
