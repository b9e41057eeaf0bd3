"""
Pytest fixtures for civpbf tests.
"""

import random

import pytest

from ..engine_core.reducer import Reducer
from ..engine_core.state import (
    CardText,
    Category,
    CivTraits,
    Item,
    Participant,
    RulesetType,
    Session,
    SessionStatus,
    Tech,
    UnitStats,
)
from ..session import RecordingNotifier, SessionLockRegistry, SessionManager

NOW = 1_700_000_000.0

PLAYERS = [("p1", "alice"), ("p2", "bob"), ("p3", "carol"), ("p4", "dave")]


def _items(category, names, payload=None):
    return [Item(category=category, name=n, payload=payload or CardText()) for n in names]


@pytest.fixture
def reducer() -> Reducer:
    """Reducer with a frozen clock."""
    return Reducer(clock=lambda: NOW)


@pytest.fixture
def small_pools() -> dict:
    """Hand-made pools, small enough to exhaust in a test."""
    return {
        Category.INFANTRY: [
            Item(Category.INFANTRY, f"Infantry 1.3 #{n}", UnitStats(1, 3)) for n in range(1, 4)
        ],
        Category.CIV: [
            Item(Category.CIV, "Rome", CivTraits(starting_tech="Code of Laws")),
            Item(Category.CIV, "China", CivTraits(starting_tech="Writing")),
        ],
        Category.CULTURE_1: _items(Category.CULTURE_1, ["Allies", "Breakthrough"]),
        Category.ANCIENT_WONDERS: _items(Category.ANCIENT_WONDERS, ["Colossus", "Stonehenge"]),
        Category.HUTS: [],
    }


@pytest.fixture
def forming_session(small_pools) -> Session:
    """A 4-seat session in FORMING with nobody seated yet."""
    return Session(
        session_id="s1",
        name="Test Game",
        ruleset=RulesetType.BASE,
        capacity=4,
        created_at=NOW,
        pools=small_pools,
        deck_sizes={category: len(pool) for category, pool in small_pools.items()},
        techs=[Tech("Code of Laws", 1), Tech("Writing", 1), Tech("Pottery", 1), Tech("Monarchy", 2)],
        social_policies=["Rationalism", "Patronage"],
        rng=random.Random(1),
    )


@pytest.fixture
def active_session(forming_session) -> Session:
    """
    Four players seated, ACTIVE, alice (p1) holds the turn.

    Roster order: alice, bob, carol, dave.
    """
    session = forming_session
    for player_id, username in PLAYERS:
        session.participants.append(Participant(player_id=player_id, username=username))
    session.participants[0].your_turn = True
    session.status = SessionStatus.ACTIVE
    return session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def manager(notifier) -> SessionManager:
    """Manager with a seeded random source and a short lock timeout."""
    return SessionManager(
        notifier=notifier,
        locks=SessionLockRegistry(timeout=1.0),
        rng=random.Random(42),
        clock=lambda: NOW,
    )


@pytest.fixture
def manager_session(manager) -> Session:
    """A 4-player base game created by alice, still FORMING."""
    return manager.create_session("Forum Game", "base", 4, "p1", "alice")


@pytest.fixture
def started_session(manager, manager_session) -> Session:
    """The same game with all four seats taken."""
    session = manager_session
    for player_id, username in PLAYERS[1:]:
        session = manager.join(session.session_id, player_id, username)
    return session
