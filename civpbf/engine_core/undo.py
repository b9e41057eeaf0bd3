"""
Undo-Vote Coordinator - Roster-wide votes on reversing a draw.

Lifecycle of a proposal (one per DrawRecord):

    PENDING --(yes majority)--> APPROVED
    PENDING --(approval impossible)--> REJECTED

Counting rules:
- Only votes of the CURRENT non-withdrawn roster count. A voter who later
  withdraws simply drops out of the tally, and the roster size N shrinks.
- Approve once 2 * yes > N (strict majority of the whole roster, not of
  the votes cast).
- Reject once even all remaining roster members voting yes could not
  reach that majority: 2 * (N - no) <= N.
- The proposal is evaluated after every vote, including the initiator's
  implicit yes, and again after every withdrawal.

Resolution is monotonic: a resolved proposal never goes back to PENDING.
"""

from __future__ import annotations

from .action import ActionPayload, ActionResult
from .errors import NotFoundError, ProposalClosedError, ValidationError
from .guards import require_member
from .state import DrawRecord, Session, UndoProposal, UndoResolution


def initiate_undo(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Open a proposal to reverse a draw, voting yes on behalf of the requester."""
    record = _require_draw(session, payload.draw_id)
    requester = require_member(session, payload.player_id)
    if record.undo is not None:
        if record.undo.is_open:
            raise ValidationError(f"An undo of draw {record.draw_id} is already being voted on")
        raise ProposalClosedError(
            f"Undo of draw {record.draw_id} was already {record.undo.resolution.value}"
        )
    _require_in_play(session, record)

    proposal = UndoProposal(initiated_by=requester.player_id, created_at=now)
    proposal.votes[requester.player_id] = True
    record.undo = proposal

    result = ActionResult(value=proposal)
    result.log_public(
        session.session_id,
        f"{requester.username} wants to undo the draw of {_describe(session, record)}",
        now,
        record.draw_id,
    )
    _evaluate(session, record, result, now)
    return result


def vote_undo(session: Session, payload: ActionPayload, now: float) -> ActionResult:
    """Record (or overwrite) one roster member's vote."""
    record = _require_draw(session, payload.draw_id)
    voter = require_member(session, payload.player_id)
    proposal = record.undo
    if proposal is None:
        raise ValidationError(f"No undo has been initiated for draw {record.draw_id}")
    if not proposal.is_open:
        raise ProposalClosedError(
            f"Undo of draw {record.draw_id} was already {proposal.resolution.value}"
        )
    if payload.choice is None:
        raise ValidationError("A vote must be yes or no")
    # An approval on this vote would touch the item, so check it first
    _require_in_play(session, record)

    proposal.votes[voter.player_id] = payload.choice

    result = ActionResult(value=proposal)
    result.log_public(
        session.session_id,
        f"{voter.username} has voted {'yes' if payload.choice else 'no'} "
        f"to undo the draw of {_describe(session, record)}",
        now,
        record.draw_id,
    )
    _evaluate(session, record, result, now)
    return result


def reevaluate_open(session: Session, result: ActionResult, now: float):
    """Settle every open proposal against the current roster."""
    for record in session.draws:
        if record.undo is None or not record.undo.is_open:
            continue
        found = session.locate_item(record.item.ref)
        if found is None or found[0] == "pool":
            continue
        _evaluate(session, record, result, now)


def resolution_for(proposal: UndoProposal, roster: set[str]) -> UndoResolution:
    """What the proposal resolves to given the current roster."""
    size = len(roster)
    yes, no = proposal.tally(roster)
    if 2 * yes > size:
        return UndoResolution.APPROVED
    if 2 * (size - no) <= size:
        return UndoResolution.REJECTED
    return UndoResolution.PENDING


def _evaluate(session: Session, record: DrawRecord, result: ActionResult, now: float):
    proposal = record.undo
    outcome = resolution_for(proposal, session.roster_ids)
    if outcome == UndoResolution.PENDING:
        return

    proposal.resolution = outcome
    proposal.resolved_at = now
    if outcome == UndoResolution.APPROVED:
        _return_to_pool(session, record)
        result.log_public(
            session.session_id,
            f"Undo approved: {_describe(session, record)} went back into the deck",
            now,
            record.draw_id,
        )
    else:
        result.log_public(
            session.session_id,
            f"Undo rejected: {_describe(session, record)} stays in play",
            now,
            record.draw_id,
        )


def _return_to_pool(session: Session, record: DrawRecord):
    place, holder, item = session.locate_item(record.item.ref)
    if place == "hand":
        holder.items.remove(item)
    else:
        session.discard.remove(item)

    item.owner_id = None
    item.hidden = True
    item.used = False

    pool = session.pools.setdefault(record.category, [])
    pool.insert(0, item)
    # Shuffle the whole pool so nobody can tell where the item went
    session.rng.shuffle(pool)


def _require_draw(session: Session, draw_id: str | None) -> DrawRecord:
    record = session.find_draw(draw_id or "")
    if record is None:
        raise NotFoundError(f"No draw {draw_id} in {session.name}")
    return record


def _require_in_play(session: Session, record: DrawRecord):
    found = session.locate_item(record.item.ref)
    if found is None or found[0] == "pool":
        raise ValidationError(f"{record.item.reveal_all()} is no longer in play")


def _describe(session: Session, record: DrawRecord) -> str:
    return f"{session.username_of(record.player_id)}'s {record.category.label} card"
