"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to SessionManager calls
2. Hides item identities the caller is not allowed to see
3. Formats responses

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
Engine errors (GameError) pass through unchanged; the web layer maps
them onto status codes.
"""

from __future__ import annotations
from dataclasses import dataclass, field

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
    DrawListResponse,
    DrawResponse,
    GameViewResponse,
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
    # Shared
    DrawInfo,
    ItemInfo,
    LogEntryInfo,
    PlayerInfo,
    TechInfo,
    UndoInfo,
)
from ..engine_core.action_log import LogEntry
from ..engine_core.guards import parse_category
from ..engine_core.state import DrawRecord, Item, ItemRef, Participant, Session, UndoProposal
from ..session import SessionManager


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        session = service.create_session(CreateSessionRequest(...))
        service.join(session.session_id, JoinRequest(player_id="p2", username="bob"))
        draw = service.draw(session.session_id, DrawRequest(player_id="p2", category="Infantry"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions and turns
    # =========================================================================

    def create_session(self, request: CreateSessionRequest) -> SessionResponse:
        session = self.session_manager.create_session(
            name=request.name,
            ruleset=request.ruleset,
            capacity=request.capacity,
            player_id=request.player_id,
            username=request.username,
        )
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse:
        return self._session_to_response(self.session_manager.get_session(session_id))

    def list_sessions(self, include_finished: bool = True) -> SessionListResponse:
        sessions = [
            self._session_to_response(s)
            for s in self.session_manager.list_sessions(include_finished=include_finished)
        ]
        return SessionListResponse(sessions=sessions, count=len(sessions))

    def players(self, session_id: str) -> PlayerListResponse:
        return PlayerListResponse(
            players=[self._player_info(p) for p in self.session_manager.players(session_id)]
        )

    def join(self, session_id: str, request: JoinRequest) -> SessionResponse:
        session = self.session_manager.join(session_id, request.player_id, request.username)
        return self._session_to_response(session)

    def end_turn(self, session_id: str, request: PlayerRequest) -> TurnResponse:
        holder = self.session_manager.end_turn(session_id, request.player_id)
        return TurnResponse(session_id=session_id, current_turn_player_id=holder.player_id)

    def withdraw(self, session_id: str, request: PlayerRequest) -> SessionResponse:
        return self._session_to_response(
            self.session_manager.withdraw(session_id, request.player_id)
        )

    def end_game(self, session_id: str, request: EndGameRequest) -> SessionResponse:
        session = self.session_manager.end(session_id, request.winner, request.player_id)
        return self._session_to_response(session)

    def delete_session(self, session_id: str) -> SessionResponse:
        return self._session_to_response(self.session_manager.delete_session(session_id))

    def game_view(self, session_id: str, player_id: str) -> GameViewResponse:
        view = self.session_manager.game_view(session_id, player_id)
        return GameViewResponse(
            session=self._session_to_response(view.session),
            player=self._player_info(view.player),
            hand=[self._item_info(item, player_id) for item in view.hand],
            techs=[TechInfo.model_validate(t) for t in view.player.techs_chosen],
            public_log=[self._log_info(e) for e in view.public_log],
            private_log=[self._log_info(e) for e in view.private_log],
        )

    # =========================================================================
    # Items
    # =========================================================================

    def draw(self, session_id: str, request: DrawRequest) -> DrawResponse:
        record = self.session_manager.draw(session_id, request.player_id, request.category)
        return DrawResponse(
            draw=self._draw_info(record, request.player_id),
            item=self._item_info(record.item, request.player_id),
        )

    def reveal_item(self, session_id: str, request: ItemRequest) -> ItemResponse:
        item = self.session_manager.reveal_item(
            session_id, request.player_id, self._item_ref(request.category, request.name)
        )
        return ItemResponse(item=self._item_info(item, request.player_id))

    def discard(self, session_id: str, request: ItemRequest) -> ItemResponse:
        item = self.session_manager.discard(
            session_id, request.player_id, self._item_ref(request.category, request.name)
        )
        return ItemResponse(item=self._item_info(item, request.player_id))

    def trade_item(self, session_id: str, request: TradeRequest) -> ItemResponse:
        item = self.session_manager.trade_item(
            session_id,
            request.player_id,
            request.to_player_id,
            self._item_ref(request.category, request.name),
        )
        return ItemResponse(item=self._item_info(item, request.player_id))

    # =========================================================================
    # Undo votes
    # =========================================================================

    def initiate_undo(self, draw_id: str, request: PlayerRequest) -> UndoResponse:
        proposal = self.session_manager.initiate_undo(draw_id, request.player_id)
        return UndoResponse(draw_id=draw_id, undo=self._undo_info(proposal))

    def vote(self, draw_id: str, request: VoteRequest) -> UndoResponse:
        proposal = self.session_manager.vote(draw_id, request.player_id, request.vote)
        return UndoResponse(draw_id=draw_id, undo=self._undo_info(proposal))

    def active_undos(self, session_id: str, viewer_id: str | None = None) -> DrawListResponse:
        return DrawListResponse(
            draws=[self._draw_info(d, viewer_id) for d in self.session_manager.active_undos(session_id)]
        )

    def finished_undos(self, session_id: str, viewer_id: str | None = None) -> DrawListResponse:
        return DrawListResponse(
            draws=[self._draw_info(d, viewer_id) for d in self.session_manager.finished_undos(session_id)]
        )

    # =========================================================================
    # Logs
    # =========================================================================

    def public_log(self, session_id: str) -> LogResponse:
        return LogResponse(
            entries=[self._log_info(e) for e in self.session_manager.public_log(session_id)]
        )

    def private_log(self, session_id: str, player_id: str) -> LogResponse:
        return LogResponse(
            entries=[
                self._log_info(e)
                for e in self.session_manager.private_log(session_id, player_id)
            ]
        )

    # =========================================================================
    # Research
    # =========================================================================

    def available_techs(self, session_id: str, player_id: str) -> TechListResponse:
        techs = self.session_manager.available_techs(session_id, player_id)
        return TechListResponse(techs=[TechInfo.model_validate(t) for t in techs])

    def choose_tech(self, session_id: str, request: NameRequest) -> TechResponse:
        tech = self.session_manager.choose_tech(session_id, request.player_id, request.name)
        return TechResponse(tech=TechInfo.model_validate(tech))

    def remove_tech(self, session_id: str, request: NameRequest) -> TechResponse:
        tech = self.session_manager.remove_tech(session_id, request.player_id, request.name)
        return TechResponse(tech=TechInfo.model_validate(tech))

    def choose_social_policy(self, session_id: str, request: NameRequest) -> PolicyResponse:
        policy = self.session_manager.choose_social_policy(
            session_id, request.player_id, request.name
        )
        return PolicyResponse(name=policy)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _item_ref(self, category: str, name: str) -> ItemRef:
        return ItemRef(parse_category(category), name)

    def _session_to_response(self, session: Session) -> SessionResponse:
        holder = session.turn_holder
        return SessionResponse(
            session_id=session.session_id,
            name=session.name,
            ruleset=session.ruleset.value,
            status=session.status.value,
            capacity=session.capacity,
            players=[self._player_info(p) for p in session.participants],
            withdrawn=[self._player_info(p) for p in session.withdrawn],
            current_turn_player_id=holder.player_id if holder else None,
            winner=session.winner,
            pool_sizes={c.label: len(pool) for c, pool in session.pools.items()},
            discard_size=len(session.discard),
            created_at=session.created_at,
        )

    def _player_info(self, participant: Participant) -> PlayerInfo:
        return PlayerInfo(
            player_id=participant.player_id,
            username=participant.username,
            your_turn=participant.your_turn,
            item_count=len(participant.items),
            tech_count=len(participant.techs_chosen),
            social_policies=list(participant.social_policies),
            withdrawn=participant.withdrawn,
        )

    def _item_info(self, item: Item, viewer_id: str | None) -> ItemInfo:
        visible = not item.hidden or (viewer_id is not None and item.owner_id == viewer_id)
        return ItemInfo(
            category=item.category.label,
            name=item.name if visible else None,
            hidden=item.hidden,
            used=item.used,
            description=item.payload.describe() if visible else None,
        )

    def _draw_info(self, record: DrawRecord, viewer_id: str | None) -> DrawInfo:
        visible = not record.item.hidden or record.player_id == viewer_id
        return DrawInfo(
            draw_id=record.draw_id,
            session_id=record.session_id,
            category=record.category.label,
            player_id=record.player_id,
            created_at=record.created_at,
            item=ItemInfo(
                category=record.item.category.label,
                name=record.item.name if visible else None,
                hidden=record.item.hidden,
                used=record.item.used,
                description=record.item.payload.describe() if visible else None,
            ),
            undo=self._undo_info(record.undo) if record.undo else None,
        )

    def _undo_info(self, proposal: UndoProposal) -> UndoInfo:
        return UndoInfo(
            initiated_by=proposal.initiated_by,
            votes=dict(proposal.votes),
            resolution=proposal.resolution.value,
            created_at=proposal.created_at,
            resolved_at=proposal.resolved_at,
        )

    def _log_info(self, entry: LogEntry) -> LogEntryInfo:
        return LogEntryInfo(
            entry_id=entry.entry_id,
            text=entry.text,
            created_at=entry.created_at,
            visibility=entry.visibility.value,
            related_draw_id=entry.related_draw_id,
        )
