"""
Deck Catalog - Builds the per-session copy of a ruleset's decks.

Every call returns brand new Item objects in a fresh random order. The
composition of each category is fixed by the canonical source; only the
order depends on the random generator passed in.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import random

from ..engine_core.state import Category, Item, RulesetType, Tech
from .cache import DeckSourceCache


@dataclass
class DeckSet:
    """Everything a new session needs from its ruleset."""
    pools: dict[Category, list[Item]] = field(default_factory=dict)
    deck_sizes: dict[Category, int] = field(default_factory=dict)
    techs: list[Tech] = field(default_factory=list)
    social_policies: list[str] = field(default_factory=list)


class DeckCatalog:
    """
    Hands out shuffled deck sets.

    Usage:
        catalog = DeckCatalog()
        deck_set = catalog.build_deck_set(RulesetType.BASE, random.Random(7))
    """

    def __init__(self, cache: DeckSourceCache | None = None):
        self.cache = cache if cache is not None else DeckSourceCache()

    def build_deck_set(
        self,
        ruleset: RulesetType | str,
        rng: random.Random | None = None,
    ) -> DeckSet:
        """
        Build the pools for one session.

        Raises ConfigurationError or FatalStartupError if the ruleset's
        source is unknown or broken.
        """
        rng = rng if rng is not None else random.Random()
        source = self.cache.get(ruleset)

        pools: dict[Category, list[Item]] = {}
        for category, cards in source.cards.items():
            pool = [card.to_item() for card in cards]
            rng.shuffle(pool)
            pools[category] = pool

        return DeckSet(
            pools=pools,
            deck_sizes=dict(source.deck_sizes),
            techs=list(source.techs),
            social_policies=list(source.social_policies),
        )

    def deck_sizes(self, ruleset: RulesetType | str) -> dict[Category, int]:
        """Canonical number of items per category."""
        return dict(self.cache.get(ruleset).deck_sizes)
