"""
Draw Engine - Moves items between pools, hands and the discard pile.

Rules:
- draw pops the FRONT of the category pool (the shuffle order is fixed
  when the session is created)
- a drawn item is hidden unless its category is public by default
- only the owner may reveal, discard or trade an item
- units are not tradable

Every draw produces exactly one public and one private log entry and a
DrawRecord that can later be the target of an undo vote.
"""

from __future__ import annotations

from .action import ActionPayload, ActionResult
from .errors import AccessDeniedError, ResourceExhaustedError, ValidationError
from .guards import parse_category, require_member, require_status
from .research import grant_starting_tech
from .state import DrawRecord, Item, ItemRef, Participant, Session, SessionStatus


def draw_item(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Handle a draw from a category pool."""
    category = parse_category(payload.category)
    require_status(session, SessionStatus.ACTIVE, "draw")
    participant = require_member(session, payload.player_id)

    pool = session.pools.get(category, [])
    if not pool:
        raise ResourceExhaustedError(category.label)

    item = pool.pop(0)
    item.owner_id = participant.player_id
    item.hidden = not category.is_public
    participant.items.append(item)

    record = DrawRecord(
        draw_id=DrawRecord.make_id(session.session_id, len(session.draws) + 1),
        session_id=session.session_id,
        category=category,
        item=item.snapshot(),
        player_id=participant.player_id,
        created_at=now,
    )
    session.draws.append(record)

    result = ActionResult(value=record)
    if item.hidden:
        public_text = f"{participant.username} drew a {category.label} card"
    else:
        public_text = f"{participant.username} drew {item.reveal_all()}"
    result.log_public(session.session_id, public_text, now, record.draw_id)
    result.log_private(
        session.session_id,
        participant.username,
        f"{participant.username} drew {item.reveal_all()}",
        now,
        record.draw_id,
    )
    return result


def reveal_item(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Flip an owned hidden item face up for everybody."""
    participant = require_member(session, payload.player_id)
    item = _require_owned(session, participant, payload.item_ref)
    if not item.hidden:
        raise ValidationError(f"{item.reveal_all()} is already revealed")

    item.hidden = False
    starting_tech = grant_starting_tech(session, participant, item)

    result = ActionResult(value=item)
    result.log_public(
        session.session_id,
        f"{participant.username} revealed {item.reveal_all()}",
        now,
    )
    if starting_tech is not None:
        result.log_public(
            session.session_id,
            f"{participant.username} starts with {starting_tech.name}",
            now,
        )
    return result


def discard_item(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Move an owned item from the hand to the discard pile."""
    participant = require_member(session, payload.player_id)
    item = _require_owned(session, participant, payload.item_ref)

    was_hidden = item.hidden
    participant.remove_item(item.ref)
    item.owner_id = None
    item.used = False
    session.discard.append(item)

    shown = item.reveal_public() if was_hidden else item.reveal_all()
    result = ActionResult(value=item)
    result.log_public(session.session_id, f"{participant.username} discarded {shown}", now)
    if was_hidden:
        result.log_private(
            session.session_id,
            participant.username,
            f"{participant.username} discarded {item.reveal_all()}",
            now,
        )
    return result


def trade_item(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Give an owned item to another active participant."""
    giver = require_member(session, payload.player_id)
    item = _require_owned(session, giver, payload.item_ref)
    if item.category.is_unit:
        raise ValidationError(f"{item.category.label} cannot be traded")
    if payload.target_player_id == giver.player_id:
        raise ValidationError("Cannot trade an item to yourself")
    receiver = session.get_participant(payload.target_player_id or "")
    if receiver is None:
        raise ValidationError(f"Player {payload.target_player_id} is not an active participant")

    giver.remove_item(item.ref)
    item.owner_id = receiver.player_id
    receiver.items.append(item)

    shown = item.reveal_public() if item.hidden else item.reveal_all()
    result = ActionResult(value=item)
    result.log_public(
        session.session_id,
        f"{giver.username} gave {shown} to {receiver.username}",
        now,
    )
    result.log_private(
        session.session_id,
        receiver.username,
        f"{receiver.username} received {item.reveal_all()} from {giver.username}",
        now,
    )
    return result


def _require_owned(session: Session, participant: Participant, ref: ItemRef | None) -> Item:
    if ref is None:
        raise ValidationError("No item given")
    item = participant.find_item(ref)
    if item is not None:
        return item
    if session.locate_item(ref) is None:
        raise ValidationError(f"No item {ref.name} in {ref.category.label}")
    raise AccessDeniedError(f"{participant.username} does not own {ref.name}")
