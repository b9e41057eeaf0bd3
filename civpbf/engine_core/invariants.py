"""
Session Invariants - Consistency checks over a Session.

Checks that:
1. Roster never exceeds capacity
2. Exactly one participant holds the turn while ACTIVE
3. For every category, pool + discard + all hands == canonical deck size
4. Every item has exactly one location and a consistent owner reference
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass

from .state import Session, SessionStatus


@dataclass
class InvariantReport:
    """Result of checking a session."""
    valid: bool
    errors: list[str]


def check_invariants(session: Session) -> InvariantReport:
    """Check all invariants of a session and collect violations."""
    errors: list[str] = []

    if len(session.participants) > session.capacity:
        errors.append(
            f"{len(session.participants)} participants exceed capacity {session.capacity}"
        )

    holders = [p for p in session.participants if p.your_turn]
    if session.status == SessionStatus.ACTIVE and len(holders) != 1:
        errors.append(f"Active session has {len(holders)} turn holders")
    if session.status != SessionStatus.ACTIVE and holders:
        errors.append(f"Turn flag set while session is {session.status.value}")
    if any(p.your_turn for p in session.withdrawn):
        errors.append("Withdrawn participant holds the turn")

    errors.extend(_check_item_conservation(session))
    errors.extend(_check_ownership(session))

    return InvariantReport(valid=not errors, errors=errors)


def category_counts(session: Session) -> dict:
    """Total number of items per category across pool, discard and hands."""
    totals: Counter = Counter()
    for category, pool in session.pools.items():
        totals[category] += len(pool)
    for item in session.discard:
        totals[item.category] += 1
    for member in session.all_members():
        for item in member.items:
            totals[item.category] += 1
    return dict(totals)


def _check_item_conservation(session: Session) -> list[str]:
    errors = []
    totals = category_counts(session)
    for category, expected in session.deck_sizes.items():
        actual = totals.get(category, 0)
        if actual != expected:
            errors.append(
                f"{category.label}: {actual} items accounted for, deck has {expected}"
            )

    seen: Counter = Counter()
    for pool in session.pools.values():
        seen.update(item.ref for item in pool)
    seen.update(item.ref for item in session.discard)
    for member in session.all_members():
        seen.update(item.ref for item in member.items)
    for ref, count in seen.items():
        if count > 1:
            errors.append(f"{ref} appears {count} times")
    return errors


def _check_ownership(session: Session) -> list[str]:
    errors = []
    for pool in session.pools.values():
        for item in pool:
            if item.owner_id is not None:
                errors.append(f"{item.ref} is in the pool but owned by {item.owner_id}")
    for item in session.discard:
        if item.owner_id is not None:
            errors.append(f"{item.ref} is discarded but owned by {item.owner_id}")
    for member in session.all_members():
        for item in member.items:
            if item.owner_id != member.player_id:
                errors.append(
                    f"{item.ref} is in {member.username}'s hand but owned by {item.owner_id}"
                )
    return errors
