"""
Turn Sequencer - Session lifecycle and turn handoff.

FORMING -> ACTIVE -> FINISHED, no way back.

- The session becomes ACTIVE exactly once, when the last seat is taken.
  That is the only place a turn holder is picked at random.
- Afterwards the turn moves through the roster in join order, wrapping
  around. Withdrawn participants are no longer in the roster, so they are
  skipped.
- A withdrawing turn holder hands the turn on before leaving; their hand
  goes to the discard pile, never back into a live pool.
- A withdrawal shrinks the roster undo votes are counted against, so open
  proposals are settled again right away.
"""

from __future__ import annotations

from .action import ActionPayload, ActionResult
from .errors import ValidationError
from .guards import require_member, require_status
from .state import Participant, Session, SessionStatus
from .undo import reevaluate_open


def join_session(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Take a seat; start the game when the last seat is filled."""
    require_status(session, SessionStatus.FORMING, "join")
    if session.get_participant(payload.player_id) is not None:
        raise ValidationError(f"{payload.username or payload.player_id} has already joined")
    if session.get_withdrawn(payload.player_id) is not None:
        raise ValidationError(f"{payload.player_id} has withdrawn and cannot rejoin")
    if payload.username and any(m.username == payload.username for m in session.all_members()):
        raise ValidationError(f"The name {payload.username} is already taken in {session.name}")
    if session.is_full:
        raise ValidationError("Cannot join the game. Its full.")
    if not payload.username:
        raise ValidationError("A username is required to join")

    participant = Participant(player_id=payload.player_id, username=payload.username)
    session.participants.append(participant)

    result = ActionResult(value=participant)
    result.log_public(session.session_id, f"{participant.username} joined {session.name}", now)

    if session.is_full:
        _start(session, result, now)
    return result


def _start(session: Session, result: ActionResult, now: float):
    first = session.rng.choice(session.participants)
    first.your_turn = True
    session.status = SessionStatus.ACTIVE
    result.log_public(session.session_id, f"Starting player is {first.username}", now)
    result.notify(first.player_id)


def next_in_roster(session: Session, current: Participant) -> Participant:
    """The participant after `current` in roster order, wrapping around."""
    index = session.participants.index(current)
    return session.participants[(index + 1) % len(session.participants)]


def _hand_over(session: Session, current: Participant, result: ActionResult) -> Participant:
    following = next_in_roster(session, current)
    current.your_turn = False
    following.your_turn = True
    result.notify(following.player_id)
    return following


def end_turn(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Pass the turn to the next participant."""
    participant = require_member(session, payload.player_id)
    require_status(session, SessionStatus.ACTIVE, "end turn")
    if not participant.your_turn:
        raise ValidationError(f"It is not {participant.username}'s turn")

    result = ActionResult()
    following = _hand_over(session, participant, result)
    result.value = following
    result.log_public(
        session.session_id,
        f"{participant.username} ended their turn. It is now {following.username}'s turn",
        now,
    )
    return result


def withdraw(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Leave the game at any stage, handing on the turn and the hand."""
    participant = require_member(session, payload.player_id)
    result = ActionResult(value=participant)

    if participant.your_turn:
        if len(session.participants) > 1:
            following = _hand_over(session, participant, result)
            result.log_public(
                session.session_id,
                f"It is now {following.username}'s turn",
                now,
            )
        participant.your_turn = False

    for item in participant.items:
        item.owner_id = None
        item.used = False
        session.discard.append(item)
    participant.items = []

    session.participants.remove(participant)
    participant.withdrawn = True
    session.withdrawn.append(participant)
    result.log_public(session.session_id, f"{participant.username} withdrew from the game", now)
    if session.participants:
        reevaluate_open(session, result, now)

    if session.status == SessionStatus.ACTIVE and not session.participants:
        session.status = SessionStatus.FINISHED
        result.log_public(session.session_id, "Game ended: every player has withdrawn", now)
    return result


def end_game(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Finish an active game, optionally naming a winner."""
    if session.status == SessionStatus.FINISHED:
        raise ValidationError("Game has already ended")
    require_status(session, SessionStatus.ACTIVE, "end the game")
    if payload.player_id is not None:
        require_member(session, payload.player_id)
    if payload.winner is not None and not any(
        m.player_id == payload.winner for m in session.all_members()
    ):
        raise ValidationError(f"Winner {payload.winner} is not part of {session.name}")

    for participant in session.participants:
        participant.your_turn = False
    session.status = SessionStatus.FINISHED
    session.winner = payload.winner

    result = ActionResult(value=session.winner)
    if session.winner:
        text = f"Game ended. {session.username_of(session.winner)} won"
    else:
        text = "Game ended without a winner"
    result.log_public(session.session_id, text, now)
    return result
