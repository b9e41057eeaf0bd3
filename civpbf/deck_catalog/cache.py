"""
Deck Source Cache - Keeps parsed canonical decks in memory.

The cache:
- Uses the ruleset as key, so it never holds more entries than there are
  rulesets
- Evicts the least recently used entry when full
- Reads sources OUTSIDE its lock; only the lookup and the swap-in are
  locked, so a slow first read never blocks readers of other rulesets

Dropping an entry only drops the parsed source. Pools already built for
live sessions are separate objects and are never touched.
"""

from __future__ import annotations
from collections import OrderedDict
from typing import Callable
import logging
import threading

from ..engine_core.state import RulesetType
from .reader import DeckSource, parse_ruleset, read_source

logger = logging.getLogger(__name__)


class DeckSourceCache:
    """
    In-memory LRU cache of DeckSources.

    Usage:
        cache = DeckSourceCache()
        source = cache.get(RulesetType.BASE)   # reads on first use
        cache.invalidate(RulesetType.BASE)     # next get reads again
    """

    def __init__(
        self,
        loader: Callable[[RulesetType], DeckSource] = read_source,
        maxsize: int = len(RulesetType),
    ):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._loader = loader
        self.maxsize = maxsize
        self._entries: OrderedDict[RulesetType, DeckSource] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, ruleset: RulesetType | str) -> DeckSource:
        """Cached source for the ruleset, reading it on a miss."""
        ruleset = parse_ruleset(ruleset)
        with self._lock:
            source = self._entries.get(ruleset)
            if source is not None:
                self._entries.move_to_end(ruleset)
                return source

        logger.info("Loading deck source for %s", ruleset.value)
        loaded = self._loader(ruleset)

        with self._lock:
            # Another thread may have loaded it meanwhile; keep the first one
            source = self._entries.setdefault(ruleset, loaded)
            self._entries.move_to_end(ruleset)
            while len(self._entries) > self.maxsize:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted deck source for %s", evicted.value)
            return source

    def invalidate(self, ruleset: RulesetType | str):
        """Forget the cached source of one ruleset."""
        ruleset = parse_ruleset(ruleset)
        with self._lock:
            self._entries.pop(ruleset, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def cached(self) -> list[RulesetType]:
        """Cached rulesets, least recently used first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
