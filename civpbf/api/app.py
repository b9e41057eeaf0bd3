"""
FastAPI Application - REST API for forum front ends.

Endpoints:
    POST   /api/v1/sessions                          Create a game
    GET    /api/v1/sessions                          List games
    GET    /api/v1/sessions/{id}                     Public game state
    DELETE /api/v1/sessions/{id}                     Remove a game
    GET    /api/v1/sessions/{id}/players             Roster
    GET    /api/v1/sessions/{id}/view                One player's view
    POST   /api/v1/sessions/{id}/join                Take a seat
    POST   /api/v1/sessions/{id}/end-turn            Pass the turn
    POST   /api/v1/sessions/{id}/withdraw            Leave the game
    POST   /api/v1/sessions/{id}/end                 Finish the game
    POST   /api/v1/sessions/{id}/draw                Draw from a category
    POST   /api/v1/sessions/{id}/items/reveal        Reveal an owned item
    POST   /api/v1/sessions/{id}/items/discard       Discard an owned item
    POST   /api/v1/sessions/{id}/items/trade         Give an item away
    GET    /api/v1/sessions/{id}/undos/active        Undo votes in progress
    GET    /api/v1/sessions/{id}/undos/finished      Resolved undo votes
    GET    /api/v1/sessions/{id}/log/public          Public log
    GET    /api/v1/sessions/{id}/log/private         Caller's private log
    GET    /api/v1/sessions/{id}/techs               Techs still available
    POST   /api/v1/sessions/{id}/techs/choose        Research a tech
    POST   /api/v1/sessions/{id}/techs/remove        Drop a tech
    POST   /api/v1/sessions/{id}/social-policies     Adopt a social policy
    POST   /api/v1/draws/{draw_id}/undo              Propose undoing a draw
    POST   /api/v1/draws/{draw_id}/vote              Vote on an undo

All responses are JSON with explicit Pydantic schemas. Engine errors come
back as ErrorResponse with a status code chosen by error kind.
"""

from typing import Callable, Optional, TypeVar
import logging
import random

from ..config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Error kind -> (HTTP status, ErrorCode value)
STATUS_BY_CATEGORY = {
    "not_found": (404, "NOT_FOUND"),
    "bad_request": (400, "VALIDATION_ERROR"),
    "forbidden": (403, "FORBIDDEN"),
    "conflict": (409, "CONFLICT"),
    "gone": (410, "EXHAUSTED"),
    "busy": (503, "BUSY"),
    "internal": (500, "INTERNAL_ERROR"),
}


def build_service(settings: Settings):
    """APIService wired with the runtime settings."""
    from .service import APIService
    from ..session import SessionLockRegistry, SessionManager

    manager = SessionManager(
        locks=SessionLockRegistry(timeout=settings.lock_timeout),
        max_retries=settings.max_retries,
        rng=random.Random(settings.seed),
    )
    return APIService(session_manager=manager)


def create_app(service=None, settings: Optional[Settings] = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from ..engine_core.errors import GameError
    from .schemas import (
        # Request models
        CreateSessionRequest,
        DrawRequest,
        EndGameRequest,
        ItemRequest,
        JoinRequest,
        NameRequest,
        PlayerRequest,
        TradeRequest,
        VoteRequest,
        # Response models
        DrawListResponse,
        DrawResponse,
        ErrorResponse,
        GameViewResponse,
        HealthResponse,
        ItemResponse,
        LogResponse,
        PlayerListResponse,
        PolicyResponse,
        SessionListResponse,
        SessionResponse,
        TechListResponse,
        TechResponse,
        TurnResponse,
        UndoResponse,
        # Enums
        ErrorCode,
    )

    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Civilization PBF API",
        description="""
Play-by-forum civilization board game sessions.

## Error Codes

| Code | Status | Description |
|------|--------|-------------|
| `NOT_FOUND` | 404 | Session or draw does not exist |
| `VALIDATION_ERROR` | 400 | Precondition failed (full game, not your turn, ...) |
| `FORBIDDEN` | 403 | Not a member, or not the item's owner |
| `CONFLICT` | 409 | Undo vote already resolved |
| `EXHAUSTED` | 410 | No more items in that category |
| `BUSY` | 503 | Session busy, retry |
| `INTERNAL_ERROR` | 500 | Ruleset data is broken |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or build_service(settings)
    app.state.service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
            ).model_dump(mode="json"),
        )

    def guarded(call: Callable[[], T]):
        """Run a service call, turning engine errors into error responses."""
        try:
            return call()
        except GameError as e:
            status_code, code = STATUS_BY_CATEGORY.get(e.category, (500, "INTERNAL_ERROR"))
            if status_code >= 500:
                logger.error("%s: %s", type(e).__name__, e.message)
            return make_error_response(ErrorCode(code), e.message, status_code)

    # =========================================================================
    # Sessions
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        status_code=201,
        tags=["Sessions"],
        summary="Create a game",
    )
    def create_session(request: CreateSessionRequest):
        return guarded(lambda: api_service.create_session(request))

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List games",
    )
    def list_sessions(include_finished: bool = Query(True)):
        return guarded(lambda: api_service.list_sessions(include_finished))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        tags=["Sessions"],
        summary="Public game state",
    )
    def get_session(session_id: str):
        return guarded(lambda: api_service.get_session(session_id))

    @app.get(
        "/api/v1/sessions/{session_id}/players",
        response_model=PlayerListResponse,
        tags=["Sessions"],
    )
    def players(session_id: str):
        return guarded(lambda: api_service.players(session_id))

    @app.get(
        "/api/v1/sessions/{session_id}/view",
        response_model=GameViewResponse,
        tags=["Sessions"],
        summary="Everything one player may see",
    )
    def game_view(session_id: str, player_id: str = Query(...)):
        return guarded(lambda: api_service.game_view(session_id, player_id))

    # =========================================================================
    # Turns
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/join",
        response_model=SessionResponse,
        tags=["Turns"],
    )
    def join(session_id: str, request: JoinRequest):
        return guarded(lambda: api_service.join(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/end-turn",
        response_model=TurnResponse,
        tags=["Turns"],
    )
    def end_turn(session_id: str, request: PlayerRequest):
        return guarded(lambda: api_service.end_turn(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/withdraw",
        response_model=SessionResponse,
        tags=["Turns"],
    )
    def withdraw(session_id: str, request: PlayerRequest):
        return guarded(lambda: api_service.withdraw(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/end",
        response_model=SessionResponse,
        tags=["Turns"],
    )
    def end_game(session_id: str, request: EndGameRequest):
        return guarded(lambda: api_service.end_game(session_id, request))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        tags=["Sessions"],
    )
    def delete_session(session_id: str):
        return guarded(lambda: api_service.delete_session(session_id))

    # =========================================================================
    # Items
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/draw",
        response_model=DrawResponse,
        tags=["Items"],
    )
    def draw(session_id: str, request: DrawRequest):
        return guarded(lambda: api_service.draw(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/items/reveal",
        response_model=ItemResponse,
        tags=["Items"],
    )
    def reveal_item(session_id: str, request: ItemRequest):
        return guarded(lambda: api_service.reveal_item(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/items/discard",
        response_model=ItemResponse,
        tags=["Items"],
    )
    def discard(session_id: str, request: ItemRequest):
        return guarded(lambda: api_service.discard(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/items/trade",
        response_model=ItemResponse,
        tags=["Items"],
    )
    def trade_item(session_id: str, request: TradeRequest):
        return guarded(lambda: api_service.trade_item(session_id, request))

    # =========================================================================
    # Undo votes
    # =========================================================================

    @app.post(
        "/api/v1/draws/{draw_id}/undo",
        response_model=UndoResponse,
        tags=["Undo"],
    )
    def initiate_undo(draw_id: str, request: PlayerRequest):
        return guarded(lambda: api_service.initiate_undo(draw_id, request))

    @app.post(
        "/api/v1/draws/{draw_id}/vote",
        response_model=UndoResponse,
        tags=["Undo"],
    )
    def vote(draw_id: str, request: VoteRequest):
        return guarded(lambda: api_service.vote(draw_id, request))

    @app.get(
        "/api/v1/sessions/{session_id}/undos/active",
        response_model=DrawListResponse,
        tags=["Undo"],
    )
    def active_undos(session_id: str, player_id: Optional[str] = Query(None)):
        return guarded(lambda: api_service.active_undos(session_id, player_id))

    @app.get(
        "/api/v1/sessions/{session_id}/undos/finished",
        response_model=DrawListResponse,
        tags=["Undo"],
    )
    def finished_undos(session_id: str, player_id: Optional[str] = Query(None)):
        return guarded(lambda: api_service.finished_undos(session_id, player_id))

    # =========================================================================
    # Logs
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/log/public",
        response_model=LogResponse,
        tags=["Logs"],
    )
    def public_log(session_id: str):
        return guarded(lambda: api_service.public_log(session_id))

    @app.get(
        "/api/v1/sessions/{session_id}/log/private",
        response_model=LogResponse,
        tags=["Logs"],
    )
    def private_log(session_id: str, player_id: str = Query(...)):
        return guarded(lambda: api_service.private_log(session_id, player_id))

    # =========================================================================
    # Research
    # =========================================================================

    @app.get(
        "/api/v1/sessions/{session_id}/techs",
        response_model=TechListResponse,
        tags=["Research"],
    )
    def available_techs(session_id: str, player_id: str = Query(...)):
        return guarded(lambda: api_service.available_techs(session_id, player_id))

    @app.post(
        "/api/v1/sessions/{session_id}/techs/choose",
        response_model=TechResponse,
        tags=["Research"],
    )
    def choose_tech(session_id: str, request: NameRequest):
        return guarded(lambda: api_service.choose_tech(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/techs/remove",
        response_model=TechResponse,
        tags=["Research"],
    )
    def remove_tech(session_id: str, request: NameRequest):
        return guarded(lambda: api_service.remove_tech(session_id, request))

    @app.post(
        "/api/v1/sessions/{session_id}/social-policies",
        response_model=PolicyResponse,
        tags=["Research"],
    )
    def choose_social_policy(session_id: str, request: NameRequest):
        return guarded(lambda: api_service.choose_social_policy(session_id, request))

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="civpbf",
            version="1.0.0",
        )

    @app.get("/", tags=["System"])
    def root():
        """Root endpoint with API info."""
        return {
            "name": "Civilization PBF API",
            "version": "1.0.0",
            "docs": "/api/docs",
            "health": "/health",
        }

    return app
