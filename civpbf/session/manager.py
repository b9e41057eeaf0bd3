"""
Session Manager - Runs every operation against a session.

LIFECYCLE OF A MUTATING OPERATION:
1. Take the session's lock (bounded wait, ConcurrencyConflictError on timeout)
2. Flush log entries parked by an earlier operation
3. Load a private copy from the store
4. Apply exactly one Action through the reducer (raises before mutating)
5. Save with the loaded version; on VersionConflictError go back to 3,
   at most max_retries times
6. Publish the action's log entries, then release the lock
7. Send turn notifications

Nothing is visible to anybody until step 5 succeeds, so a failed operation
leaves no trace.

READS:
- Load a copy from the store without taking the lock. They see the state
  as of the last completed save.
- Log reads go to the sink and may lag behind entries that are still
  parked in the outbox.

Sessions share nothing: every session has its own lock, its own random
generator and its own pools.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import logging
import random
import threading
import time
import uuid

from ..deck_catalog import DeckCatalog
from ..deck_catalog.reader import parse_ruleset
from ..engine_core.action import Action, ActionResult
from ..engine_core.action_log import ActionLogSink, InMemoryActionLog, LogEntry
from ..engine_core.errors import (
    AccessDeniedError,
    ConcurrencyConflictError,
    NotFoundError,
    ValidationError,
    VersionConflictError,
)
from ..engine_core.guards import parse_category
from ..engine_core.reducer import Reducer
from ..engine_core.research import available_techs
from ..engine_core.state import (
    Category,
    DrawRecord,
    Item,
    ItemRef,
    Participant,
    RulesetType,
    Session,
    SessionStatus,
    Tech,
    UndoProposal,
)
from .locks import SessionLockRegistry
from .notify import LoggingNotifier, Notifier
from .store import InMemorySessionStore, SessionStore

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_PLAYERS = 7


@dataclass
class GameView:
    """
    One player's view of a session.

    Pool sizes are public; item identities are only shown for the
    caller's own hand and for items revealed to everybody.
    """
    session: Session
    player: Participant | None
    hand: list[Item] = field(default_factory=list)
    pool_sizes: dict[Category, int] = field(default_factory=dict)
    discard_size: int = 0
    public_log: list[LogEntry] = field(default_factory=list)
    private_log: list[LogEntry] = field(default_factory=list)

    @property
    def turn_holder(self) -> Participant | None:
        return self.session.turn_holder


class SessionManager:
    """
    Entry point for every session operation.

    Usage:
        manager = SessionManager()
        session = manager.create_session("Game 1", "base", 4, "p1", "alice")
        manager.join(session.session_id, "p2", "bob")
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        catalog: DeckCatalog | None = None,
        log_sink: ActionLogSink | None = None,
        notifier: Notifier | None = None,
        locks: SessionLockRegistry | None = None,
        reducer: Reducer | None = None,
        rng: random.Random | None = None,
        max_retries: int = 3,
        publish_attempts: int = 3,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.catalog = catalog if catalog is not None else DeckCatalog()
        self.log_sink = log_sink if log_sink is not None else InMemoryActionLog()
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self.locks = locks if locks is not None else SessionLockRegistry()
        self.reducer = reducer if reducer is not None else Reducer(clock=clock)
        self.max_retries = max(1, max_retries)
        self.publish_attempts = max(1, publish_attempts)
        self.clock = clock

        self._rng = rng if rng is not None else random.Random()
        self._rng_lock = threading.Lock()
        self._outbox: dict[str, list[LogEntry]] = {}
        self._outbox_lock = threading.Lock()

    # =========================================================================
    # Creation
    # =========================================================================

    def create_session(
        self,
        name: str,
        ruleset: RulesetType | str,
        capacity: int,
        player_id: str,
        username: str,
    ) -> Session:
        """
        Create a session in FORMING with the creator already seated.

        The decks are built before anything is stored, so a broken ruleset
        leaves nothing behind.
        """
        if not name or not name.strip():
            raise ValidationError("A game needs a name")
        if not MIN_PLAYERS <= capacity <= MAX_PLAYERS:
            raise ValidationError(
                f"Number of players must be between {MIN_PLAYERS} and {MAX_PLAYERS}"
            )
        ruleset = parse_ruleset(ruleset)

        with self._rng_lock:
            session_rng = random.Random(self._rng.getrandbits(64))
        deck_set = self.catalog.build_deck_set(ruleset, session_rng)

        now = self.clock()
        session = Session(
            session_id=uuid.uuid4().hex,
            name=name.strip(),
            ruleset=ruleset,
            capacity=capacity,
            created_at=now,
            pools=deck_set.pools,
            deck_sizes=deck_set.deck_sizes,
            techs=deck_set.techs,
            social_policies=deck_set.social_policies,
            rng=session_rng,
        )

        result = ActionResult()
        result.log_public(session.session_id, f"{username} created {session.name}", now)
        joined = self.reducer.apply(session, Action.join(player_id, username))
        result.log_entries.extend(joined.log_entries)

        stored = self.store.create(session)
        logger.info(
            "Created session %s (%s, %d players) for %s",
            session.session_id,
            ruleset.value,
            capacity,
            username,
        )
        with self.locks.hold(session.session_id):
            self._publish(session.session_id, result.log_entries)
        return stored

    def delete_session(self, session_id: str) -> Session:
        """
        Remove a session from the store and forget its lock.

        Log entries already in the sink stay there; entries still parked
        in the outbox are dropped with the session.
        """
        with self.locks.hold(session_id):
            session = self.store.load(session_id)
            self.store.delete(session_id)
            with self._outbox_lock:
                dropped = self._outbox.pop(session_id, [])
        self.locks.discard(session_id)
        if dropped:
            logger.warning(
                "Dropped %d parked log entries of deleted session %s",
                len(dropped),
                session_id,
            )
        logger.info("Deleted session %s", session_id)
        return session

    # =========================================================================
    # Turn Sequencer
    # =========================================================================

    def join(self, session_id: str, player_id: str, username: str) -> Session:
        session, _ = self._mutate(session_id, Action.join(player_id, username))
        if session.status == SessionStatus.ACTIVE:
            logger.info("Session %s is now active", session_id)
        return session

    def end_turn(self, session_id: str, player_id: str) -> Participant:
        """Returns the participant who now holds the turn."""
        _, result = self._mutate(session_id, Action.end_turn(player_id))
        return result.value

    def withdraw(self, session_id: str, player_id: str) -> Session:
        session, _ = self._mutate(session_id, Action.withdraw(player_id))
        return session

    def end(self, session_id: str, winner: str | None = None, player_id: str | None = None) -> Session:
        session, _ = self._mutate(session_id, Action.end_game(winner, player_id))
        logger.info("Session %s finished, winner %s", session_id, winner)
        return session

    # =========================================================================
    # Draw Engine
    # =========================================================================

    def draw(self, session_id: str, player_id: str, category: Category | str) -> DrawRecord:
        # Fail on an unknown category before taking the lock
        category = parse_category(category)
        _, result = self._mutate(session_id, Action.draw(player_id, category))
        return result.value

    def reveal_item(self, session_id: str, player_id: str, item_ref: ItemRef) -> Item:
        _, result = self._mutate(session_id, Action.reveal_item(player_id, item_ref))
        return result.value

    def discard(self, session_id: str, player_id: str, item_ref: ItemRef) -> Item:
        _, result = self._mutate(session_id, Action.discard(player_id, item_ref))
        return result.value

    def trade_item(
        self,
        session_id: str,
        player_id: str,
        to_player_id: str,
        item_ref: ItemRef,
    ) -> Item:
        _, result = self._mutate(session_id, Action.trade_item(player_id, to_player_id, item_ref))
        return result.value

    # =========================================================================
    # Undo-Vote Coordinator
    # =========================================================================

    def initiate_undo(self, draw_id: str, player_id: str) -> UndoProposal:
        session_id = self._session_of_draw(draw_id)
        _, result = self._mutate(session_id, Action.initiate_undo(player_id, draw_id))
        return result.value

    def vote(self, draw_id: str, player_id: str, choice: bool) -> UndoProposal:
        session_id = self._session_of_draw(draw_id)
        _, result = self._mutate(session_id, Action.vote_undo(player_id, draw_id, choice))
        proposal = result.value
        if not proposal.is_open:
            logger.info("Undo of draw %s %s", draw_id, proposal.resolution.value)
        return proposal

    # =========================================================================
    # Research
    # =========================================================================

    def choose_tech(self, session_id: str, player_id: str, tech_name: str) -> Tech:
        _, result = self._mutate(session_id, Action.choose_tech(player_id, tech_name))
        return result.value

    def remove_tech(self, session_id: str, player_id: str, tech_name: str) -> Tech:
        _, result = self._mutate(session_id, Action.remove_tech(player_id, tech_name))
        return result.value

    def choose_social_policy(self, session_id: str, player_id: str, policy_name: str) -> str:
        _, result = self._mutate(session_id, Action.choose_social_policy(player_id, policy_name))
        return result.value

    # =========================================================================
    # Reads
    # =========================================================================

    def get_session(self, session_id: str) -> Session:
        return self.store.load(session_id)

    def list_sessions(self, include_finished: bool = True) -> list[Session]:
        sessions = []
        for session_id in self.store.list_ids():
            try:
                session = self.store.load(session_id)
            except NotFoundError:
                continue  # deleted meanwhile
            if include_finished or session.status != SessionStatus.FINISHED:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.created_at)

    def players(self, session_id: str) -> list[Participant]:
        return self.store.load(session_id).participants

    def public_log(self, session_id: str) -> list[LogEntry]:
        self.store.load(session_id)
        return self.log_sink.public_entries(session_id)

    def private_log(self, session_id: str, player_id: str) -> list[LogEntry]:
        session = self.store.load(session_id)
        member = self._any_member(session, player_id)
        return self.log_sink.private_entries(session_id, member.username)

    def active_undos(self, session_id: str) -> list[DrawRecord]:
        session = self.store.load(session_id)
        return [d for d in session.draws if d.undo is not None and d.undo.is_open]

    def finished_undos(self, session_id: str) -> list[DrawRecord]:
        session = self.store.load(session_id)
        return [d for d in session.draws if d.undo is not None and not d.undo.is_open]

    def available_techs(self, session_id: str, player_id: str) -> list[Tech]:
        session = self.store.load(session_id)
        return available_techs(session, self._any_member(session, player_id))

    def game_view(self, session_id: str, player_id: str) -> GameView:
        """Everything one player may see of a session."""
        session = self.store.load(session_id)
        member = self._any_member(session, player_id)
        return GameView(
            session=session,
            player=member,
            hand=list(member.items),
            pool_sizes={category: len(pool) for category, pool in session.pools.items()},
            discard_size=len(session.discard),
            public_log=self.log_sink.public_entries(session_id),
            private_log=self.log_sink.private_entries(session_id, member.username),
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _mutate(self, session_id: str, action: Action) -> tuple[Session, ActionResult]:
        with self.locks.hold(session_id):
            self._flush_outbox(session_id)
            for attempt in range(1, self.max_retries + 1):
                session = self.store.load(session_id)
                result = self.reducer.apply(session, action)
                try:
                    self.store.save(session)
                except VersionConflictError as e:
                    logger.info(
                        "Retrying %s on session %s (attempt %d/%d): %s",
                        action.action_type.value,
                        session_id,
                        attempt,
                        self.max_retries,
                        e.message,
                    )
                    continue
                break
            else:
                raise ConcurrencyConflictError(
                    f"Session {session_id} kept changing, gave up after {self.max_retries} attempts"
                )
            logger.debug(
                "%s on session %s by %s",
                action.action_type.value,
                session_id,
                action.payload.player_id,
            )
            self._publish(session_id, result.log_entries)

        for player_id in result.notifications:
            self.notifier.notify(session_id, player_id)
        return session, result

    def _publish(self, session_id: str, entries: list[LogEntry]):
        """
        Hand entries to the sink in order.

        If the sink keeps failing, the failed entry and everything after it
        wait in the session's outbox for the next operation.
        """
        with self._outbox_lock:
            pending = self._outbox.pop(session_id, []) + list(entries)
        for index, entry in enumerate(pending):
            if not self._append(entry):
                parked = pending[index:]
                with self._outbox_lock:
                    self._outbox[session_id] = parked
                logger.error(
                    "Action log unavailable, %d entries of session %s parked",
                    len(parked),
                    session_id,
                )
                return

    def _append(self, entry: LogEntry) -> bool:
        for attempt in range(1, self.publish_attempts + 1):
            try:
                self.log_sink.append(entry)
                return True
            except Exception:
                logger.warning(
                    "Action log append failed (attempt %d/%d)",
                    attempt,
                    self.publish_attempts,
                    exc_info=True,
                )
        return False

    def _flush_outbox(self, session_id: str):
        with self._outbox_lock:
            waiting = bool(self._outbox.get(session_id))
        if waiting:
            self._publish(session_id, [])

    def pending_log_entries(self, session_id: str) -> list[LogEntry]:
        """Entries parked because the sink was failing."""
        with self._outbox_lock:
            return list(self._outbox.get(session_id, []))

    def _session_of_draw(self, draw_id: str) -> str:
        session_id = DrawRecord.session_id_of(draw_id or "")
        if session_id is None:
            raise NotFoundError(f"No draw {draw_id}")
        return session_id

    def _any_member(self, session: Session, player_id: str) -> Participant:
        member = session.get_participant(player_id) or session.get_withdrawn(player_id)
        if member is None:
            raise AccessDeniedError(f"Player {player_id} is not part of {session.name}")
        return member
