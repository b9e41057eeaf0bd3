"""
Deck Reader - Parses the canonical card list of a ruleset.

Source format (one JSON document per ruleset):

    {
      "ruleset": "fame_and_fortune",
      "extends": "base",                  # optional
      "categories": {
        "Civ": [{"name": ..., "starting_tech": ..., "ability": ...}],
        "Infantry": [{"attack": 1, "health": 3, "count": 5}],
        "Culture I": [{"name": ..., "description": ...}]
      },
      "techs": {"1": ["Pottery", ...], ..., "5": [...]},
      "social_policies": ["Rationalism", ...]
    }

Unit entries carry a count instead of a name; each copy gets a generated
name that is unique within its category.

Errors:
- source missing, unreadable or not JSON -> FatalStartupError
- anything structurally wrong -> ConfigurationError
"""

from __future__ import annotations
from dataclasses import dataclass, field
from importlib.resources import files
from typing import Any, Callable
import json
import logging

from ..engine_core.errors import ConfigurationError, FatalStartupError
from ..engine_core.research import MAX_TECH_LEVEL, MIN_TECH_LEVEL
from ..engine_core.state import (
    PAYLOAD_KINDS,
    CardText,
    Category,
    CivTraits,
    Item,
    ItemPayload,
    RulesetType,
    Tech,
    UnitStats,
)

logger = logging.getLogger(__name__)

DATA_PACKAGE = "civpbf.games.civilization"

SourceLoader = Callable[[str], str]


@dataclass(frozen=True)
class CardDefinition:
    """One card of the canonical list. Sessions get Items built from it."""
    category: Category
    name: str
    payload: ItemPayload

    def to_item(self) -> Item:
        return Item(category=self.category, name=self.name, payload=self.payload)


@dataclass
class DeckSource:
    """The parsed canonical content of one ruleset."""
    ruleset: RulesetType
    cards: dict[Category, list[CardDefinition]] = field(default_factory=dict)
    techs: list[Tech] = field(default_factory=list)
    social_policies: list[str] = field(default_factory=list)

    @property
    def deck_sizes(self) -> dict[Category, int]:
        return {category: len(cards) for category, cards in self.cards.items()}


def parse_ruleset(value: RulesetType | str) -> RulesetType:
    if isinstance(value, RulesetType):
        return value
    try:
        return RulesetType(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(f"Unknown ruleset: {value}") from None


def load_packaged_text(name: str) -> str:
    """Read data/<name>.json shipped with the package."""
    return (files(DATA_PACKAGE) / "data" / f"{name}.json").read_text(encoding="utf-8")


def read_source(
    ruleset: RulesetType | str,
    loader: SourceLoader = load_packaged_text,
) -> DeckSource:
    """Read and validate the canonical source of a ruleset, following `extends`."""
    ruleset = parse_ruleset(ruleset)
    return _read(ruleset, loader, seen=set())


def _read(ruleset: RulesetType, loader: SourceLoader, seen: set[RulesetType]) -> DeckSource:
    if ruleset in seen:
        raise ConfigurationError(f"Ruleset {ruleset.value} extends itself")
    seen.add(ruleset)

    document = _load_document(ruleset, loader)

    parent = document.get("extends")
    if parent:
        source = _read(parse_ruleset(parent), loader, seen)
        source.ruleset = ruleset
    else:
        source = DeckSource(ruleset=ruleset)

    categories = document.get("categories", {})
    if not isinstance(categories, dict):
        raise ConfigurationError(f"{ruleset.value}: 'categories' must be an object")
    for label, entries in categories.items():
        category = Category.find(label)
        if category is None:
            raise ConfigurationError(f"{ruleset.value}: unknown category {label!r}")
        if not isinstance(entries, list):
            raise ConfigurationError(f"{ruleset.value}: {label} must be a list")
        _add_cards(source, category, entries)

    _add_techs(source, document.get("techs", {}))
    _add_policies(source, document.get("social_policies", []))
    _check_starting_techs(source)

    logger.debug(
        "Read ruleset %s: %d cards, %d techs",
        ruleset.value,
        sum(source.deck_sizes.values()),
        len(source.techs),
    )
    return source


def _load_document(ruleset: RulesetType, loader: SourceLoader) -> dict[str, Any]:
    try:
        text = loader(ruleset.value)
    except (OSError, ModuleNotFoundError) as e:
        raise FatalStartupError(f"Cannot read deck source for {ruleset.value}: {e}") from e
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise FatalStartupError(f"Deck source for {ruleset.value} is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ConfigurationError(f"Deck source for {ruleset.value} must be a JSON object")
    return document


def _add_cards(source: DeckSource, category: Category, entries: list[Any]):
    cards = source.cards.setdefault(category, [])
    names = {card.name for card in cards}
    kind = PAYLOAD_KINDS[category]

    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{category.label}: every entry must be an object")
        for definition in _definitions(category, kind, entry, len(cards)):
            if definition.name in names:
                raise ConfigurationError(f"{category.label}: duplicate card {definition.name!r}")
            names.add(definition.name)
            cards.append(definition)


def _definitions(
    category: Category,
    kind: type,
    entry: dict[str, Any],
    already: int,
) -> list[CardDefinition]:
    try:
        if kind is UnitStats:
            stats = UnitStats(attack=int(entry["attack"]), health=int(entry["health"]))
            count = int(entry.get("count", 1))
            if count < 1:
                raise ValueError("count must be positive")
            return [
                CardDefinition(
                    category,
                    f"{category.label} {stats.describe()} #{already + n}",
                    stats,
                )
                for n in range(1, count + 1)
            ]
        name = str(entry["name"]).strip()
        if not name:
            raise ValueError("empty name")
        if kind is CivTraits:
            payload = CivTraits(
                starting_tech=str(entry["starting_tech"]),
                ability=str(entry.get("ability", "")),
            )
        else:
            payload = CardText(description=str(entry.get("description", "")))
        return [CardDefinition(category, name, payload)]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"{category.label}: invalid entry {entry!r} ({e})") from e


def _add_techs(source: DeckSource, techs: Any):
    if not isinstance(techs, dict):
        raise ConfigurationError(f"{source.ruleset.value}: 'techs' must be an object")
    known = {tech.name for tech in source.techs}
    for level_key, names in techs.items():
        try:
            level = int(level_key)
        except ValueError:
            raise ConfigurationError(f"Tech level {level_key!r} is not a number") from None
        if not MIN_TECH_LEVEL <= level <= MAX_TECH_LEVEL:
            raise ConfigurationError(f"Tech level {level} out of range")
        for name in names:
            if name in known:
                raise ConfigurationError(f"Duplicate tech {name!r}")
            known.add(name)
            source.techs.append(Tech(name=name, level=level))
    source.techs.sort(key=lambda t: (t.level, t.name))


def _add_policies(source: DeckSource, policies: Any):
    if not isinstance(policies, list):
        raise ConfigurationError(f"{source.ruleset.value}: 'social_policies' must be a list")
    for policy in policies:
        if policy in source.social_policies:
            raise ConfigurationError(f"Duplicate social policy {policy!r}")
        source.social_policies.append(str(policy))


def _check_starting_techs(source: DeckSource):
    known = {tech.name for tech in source.techs}
    for card in source.cards.get(Category.CIV, []):
        if card.payload.starting_tech not in known:
            raise ConfigurationError(
                f"{card.name} starts with unknown tech {card.payload.starting_tech!r}"
            )
