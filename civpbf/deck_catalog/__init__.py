"""
Deck Catalog - Canonical decks per ruleset and per-session shuffled copies.
"""

from .reader import CardDefinition, DeckSource, parse_ruleset, read_source
from .cache import DeckSourceCache
from .catalog import DeckCatalog, DeckSet

__all__ = [
    "CardDefinition",
    "DeckSource",
    "parse_ruleset",
    "read_source",
    "DeckSourceCache",
    "DeckCatalog",
    "DeckSet",
]
