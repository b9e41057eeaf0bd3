"""
Session State - The authoritative per-session aggregate.

Design principles:
- One Session object owns everything a play-by-forum game needs:
  item pools, discard pile, roster, draw records, status
- Serializable: the store keeps deep copies, so a Session can be
  loaded, mutated by the reducer and saved back as a unit
- Closed set of categories: every Category maps to exactly one payload
  kind, so draw/reveal/discard never need to guess what an item is
- Items move between exactly three places: a category pool, the discard
  pile, or one participant's hand
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union
from copy import deepcopy
import random
import re


class SessionStatus(Enum):
    """Lifecycle of a session. FINISHED is terminal."""
    FORMING = "forming"
    ACTIVE = "active"
    FINISHED = "finished"


class RulesetType(Enum):
    """Rulesets with their own canonical deck."""
    BASE = "base"
    FAME_AND_FORTUNE = "fame_and_fortune"
    WISDOM_AND_WARFARE = "wisdom_and_warfare"
    DAWN_OF_CIVILIZATION = "dawn_of_civilization"


class Category(Enum):
    """Drawable item categories. Value is the display label."""
    CIV = "Civ"
    CULTURE_1 = "Culture I"
    CULTURE_2 = "Culture II"
    CULTURE_3 = "Culture III"
    GREAT_PERSON = "Great Person"
    INFANTRY = "Infantry"
    ARTILLERY = "Artillery"
    MOUNTED = "Mounted"
    AIRCRAFT = "Aircraft"
    VILLAGES = "Villages"
    HUTS = "Huts"
    ANCIENT_WONDERS = "Ancient Wonders"
    MEDIEVAL_WONDERS = "Medieval Wonders"
    MODERN_WONDERS = "Modern Wonders"
    TILES = "Tiles"
    CITY_STATES = "City-states"

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def find(cls, name: str) -> Category | None:
        """
        Look up a category by label or enum name.

        Whitespace, hyphens and case are ignored, so "Culture I",
        "culture_1" and "CULTURE_1" all resolve.
        """
        if not name:
            return None
        wanted = _normalize(name)
        for category in cls:
            if _normalize(category.value) == wanted or _normalize(category.name) == wanted:
                return category
        return None

    @property
    def is_unit(self) -> bool:
        return self in UNITS

    @property
    def is_public(self) -> bool:
        return self in PUBLIC_CATEGORIES


def _normalize(name: str) -> str:
    return re.sub(r"[\s_\-]", "", name).lower()


UNITS = frozenset({Category.INFANTRY, Category.ARTILLERY, Category.MOUNTED, Category.AIRCRAFT})
CULTURE_CARDS = frozenset({Category.CULTURE_1, Category.CULTURE_2, Category.CULTURE_3})
WONDERS = frozenset({Category.ANCIENT_WONDERS, Category.MEDIEVAL_WONDERS, Category.MODERN_WONDERS})

# Drawn face up: everybody at the table sees these anyway
PUBLIC_CATEGORIES = WONDERS | {Category.TILES}


# =============================================================================
# Item payloads (tagged variants)
# =============================================================================

@dataclass(frozen=True)
class UnitStats:
    """Combat values of a unit card."""
    attack: int
    health: int

    def describe(self) -> str:
        return f"{self.attack}.{self.health}"


@dataclass(frozen=True)
class CivTraits:
    """A civilization sheet and the tech it starts with."""
    starting_tech: str
    ability: str = ""

    def describe(self) -> str:
        return f"starts with {self.starting_tech}"


@dataclass(frozen=True)
class CardText:
    """Any other card: just a rules text."""
    description: str = ""

    def describe(self) -> str:
        return self.description


ItemPayload = Union[UnitStats, CivTraits, CardText]

PAYLOAD_KINDS: dict[Category, type] = {
    Category.CIV: CivTraits,
    Category.CULTURE_1: CardText,
    Category.CULTURE_2: CardText,
    Category.CULTURE_3: CardText,
    Category.GREAT_PERSON: CardText,
    Category.INFANTRY: UnitStats,
    Category.ARTILLERY: UnitStats,
    Category.MOUNTED: UnitStats,
    Category.AIRCRAFT: UnitStats,
    Category.VILLAGES: CardText,
    Category.HUTS: CardText,
    Category.ANCIENT_WONDERS: CardText,
    Category.MEDIEVAL_WONDERS: CardText,
    Category.MODERN_WONDERS: CardText,
    Category.TILES: CardText,
    Category.CITY_STATES: CardText,
}


@dataclass(frozen=True)
class ItemRef:
    """Identifies an item inside a session: (category, name)."""
    category: Category
    name: str

    def __str__(self) -> str:
        return f"{self.category.name}/{self.name}"


@dataclass
class Item:
    """
    One physical card or unit of a session.

    owner_id is None while the item sits in a pool or the discard pile.
    """
    category: Category
    name: str
    payload: ItemPayload = field(default_factory=CardText)
    owner_id: str | None = None
    hidden: bool = True
    used: bool = False

    @property
    def ref(self) -> ItemRef:
        return ItemRef(self.category, self.name)

    def reveal_public(self) -> str:
        """What everybody may know about a hidden item."""
        return self.category.label

    def reveal_all(self) -> str:
        """Full identity of the item."""
        return f"{self.category.label}: {self.name}"

    def snapshot(self) -> Item:
        return deepcopy(self)


@dataclass(frozen=True)
class Tech:
    """A tech card participants can research."""
    name: str
    level: int


# =============================================================================
# Roster
# =============================================================================

@dataclass
class Participant:
    """
    A player's membership and hand within a session.

    Never deleted: on withdrawal it moves to Session.withdrawn.
    """
    player_id: str
    username: str
    your_turn: bool = False
    items: list[Item] = field(default_factory=list)
    techs_chosen: list[Tech] = field(default_factory=list)
    social_policies: list[str] = field(default_factory=list)
    withdrawn: bool = False

    def find_item(self, ref: ItemRef) -> Item | None:
        for item in self.items:
            if item.category == ref.category and item.name == ref.name:
                return item
        return None

    def remove_item(self, ref: ItemRef) -> Item:
        item = self.find_item(ref)
        if item is None:
            raise KeyError(str(ref))
        self.items.remove(item)
        return item

    def count_in(self, category: Category) -> int:
        return sum(1 for item in self.items if item.category == category)


# =============================================================================
# Draws and undo
# =============================================================================

class UndoResolution(Enum):
    """Three-state lifecycle of an undo proposal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class UndoProposal:
    """A roster-wide vote on reversing one draw."""
    initiated_by: str
    created_at: float
    votes: dict[str, bool] = field(default_factory=dict)
    resolution: UndoResolution = UndoResolution.PENDING
    resolved_at: float | None = None

    @property
    def is_open(self) -> bool:
        return self.resolution == UndoResolution.PENDING

    def tally(self, roster: set[str]) -> tuple[int, int]:
        """(yes, no) counted over the given roster only."""
        yes = sum(1 for pid, choice in self.votes.items() if pid in roster and choice)
        no = sum(1 for pid, choice in self.votes.items() if pid in roster and not choice)
        return yes, no


@dataclass
class DrawRecord:
    """
    Audit entry for one draw; the target of a possible undo.

    The item is a snapshot taken at draw time and is never updated.
    """
    draw_id: str
    session_id: str
    category: Category
    item: Item
    player_id: str
    created_at: float
    undo: UndoProposal | None = None

    @staticmethod
    def make_id(session_id: str, number: int) -> str:
        return f"{session_id}:{number}"

    @staticmethod
    def session_id_of(draw_id: str) -> str | None:
        """Owning session of a draw id, or None if malformed."""
        session_id, sep, number = draw_id.rpartition(":")
        if not sep or not session_id or not number.isdigit():
            return None
        return session_id


# =============================================================================
# Session
# =============================================================================

@dataclass
class Session:
    """
    Complete state of one play-by-forum game.

    pools[category][0] is the next item drawn from that category.
    """
    session_id: str
    name: str
    ruleset: RulesetType
    capacity: int
    created_at: float

    status: SessionStatus = SessionStatus.FORMING
    participants: list[Participant] = field(default_factory=list)
    withdrawn: list[Participant] = field(default_factory=list)

    pools: dict[Category, list[Item]] = field(default_factory=dict)
    discard: list[Item] = field(default_factory=list)
    deck_sizes: dict[Category, int] = field(default_factory=dict)

    techs: list[Tech] = field(default_factory=list)
    social_policies: list[str] = field(default_factory=list)

    draws: list[DrawRecord] = field(default_factory=list)
    winner: str | None = None

    # Optimistic concurrency token, owned by the store
    version: int = 0

    # Per-session random source (shuffles, starting player)
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.capacity

    @property
    def turn_holder(self) -> Participant | None:
        for p in self.participants:
            if p.your_turn:
                return p
        return None

    @property
    def roster_ids(self) -> set[str]:
        return {p.player_id for p in self.participants}

    def get_participant(self, player_id: str) -> Participant | None:
        """Non-withdrawn participant by ID."""
        for p in self.participants:
            if p.player_id == player_id:
                return p
        return None

    def get_withdrawn(self, player_id: str) -> Participant | None:
        for p in self.withdrawn:
            if p.player_id == player_id:
                return p
        return None

    def username_of(self, player_id: str) -> str:
        member = self.get_participant(player_id) or self.get_withdrawn(player_id)
        return member.username if member else player_id

    def all_members(self) -> list[Participant]:
        return self.participants + self.withdrawn

    def find_draw(self, draw_id: str) -> DrawRecord | None:
        for record in self.draws:
            if record.draw_id == draw_id:
                return record
        return None

    def locate_item(self, ref: ItemRef) -> tuple[str, Participant | None, Item] | None:
        """
        Find where an item currently is.

        Returns (place, holder, item) where place is "hand", "pool" or
        "discard" and holder is set only for "hand".
        """
        for member in self.all_members():
            item = member.find_item(ref)
            if item is not None:
                return "hand", member, item
        for item in self.pools.get(ref.category, []):
            if item.name == ref.name:
                return "pool", None, item
        for item in self.discard:
            if item.category == ref.category and item.name == ref.name:
                return "discard", None, item
        return None

    def clone(self) -> Session:
        """Deep copy the session."""
        return deepcopy(self)
