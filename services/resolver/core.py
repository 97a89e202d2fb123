from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union
import re

from services.resolver.distance import levenshtein

DEFAULT_LIMIT = 3

TIER_EXACT = "exact"
TIER_SUBSTRING = "substring"
TIER_FUZZY = "fuzzy"

# Same semantics as a regex split: leading/trailing runs yield empty words.
_WS = re.compile(r"\s+")


@dataclass(frozen=True)
class Entity:
    id: int
    symbol: str
    name: str


@dataclass(frozen=True)
class _Folded:
    symbol: str
    name: str
    words: Tuple[str, ...]


def _fold(entity: Entity) -> _Folded:
    name = entity.name.lower()
    return _Folded(symbol=entity.symbol.lower(), name=name, words=tuple(_WS.split(name)))


@dataclass(frozen=True)
class Catalog:
    """Immutable, ordered collection of listed companies.

    Order is the tie-break order for equal scores. Lower-cased fields are
    computed once here so ranking does not re-fold them per query.
    """
    entities: Tuple[Entity, ...] = ()
    _folded: Tuple[_Folded, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "entities", tuple(self.entities))
        object.__setattr__(self, "_folded", tuple(_fold(e) for e in self.entities))

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __getitem__(self, idx: int) -> Entity:
        return self.entities[idx]

    def find_symbol(self, symbol: str) -> Optional[Entity]:
        """Exact (case-sensitive) symbol lookup; first occurrence wins."""
        for e in self.entities:
            if e.symbol == symbol:
                return e
        return None


EntityLike = Union[Entity, Tuple[int, str, str]]


def build_catalog(entities: Iterable[EntityLike]) -> Catalog:
    out: List[Entity] = []
    for e in entities:
        if not isinstance(e, Entity):
            eid, symbol, name = e
            e = Entity(id=int(eid), symbol=symbol, name=name)
        out.append(e)
    return Catalog(tuple(out))


@dataclass(frozen=True)
class Match:
    entity: Entity
    score: int  # lower is better
    tier: str


def _score(query: str, entity: Entity, f: _Folded) -> Match:
    if query == f.symbol or query == f.name:
        return Match(entity, 0, TIER_EXACT)
    if query in f.symbol or query in f.name:
        return Match(entity, 1, TIER_SUBSTRING)
    best = min(
        levenshtein(query, f.symbol),
        levenshtein(query, f.name),
        min(levenshtein(query, w) for w in f.words),
    )
    return Match(entity, best, TIER_FUZZY)


def score_entity(query: str, entity: Entity) -> Match:
    """Score one entity against a free-text query.

    Tiers, first applicable wins:
    - exact symbol or name (case-insensitive) => 0
    - query is a substring of symbol or name => 1
    - otherwise the smallest edit distance to the symbol, the full name,
      or any single word of the name
    """
    return _score(query.lower(), entity, _fold(entity))


def rank(catalog: Catalog, query: str) -> List[Match]:
    """Score every entity and order best-first.

    sorted() is stable, so equal scores keep catalog order.
    """
    q = query.lower()
    matches = [_score(q, e, f) for e, f in zip(catalog.entities, catalog._folded)]
    return sorted(matches, key=lambda m: m.score)


def search(catalog: Catalog, query: str, limit: int = DEFAULT_LIMIT) -> List[Entity]:
    """Return up to `limit` best matching entities for `query`.

    Always returns min(limit, len(catalog)) entities; a poor match is still a
    match. An empty query returns the first entries in catalog order.
    """
    return [m.entity for m in rank(catalog, query)[:limit]]


def top_matches(catalog: Catalog, query: str, limit: int = DEFAULT_LIMIT) -> Sequence[Match]:
    return rank(catalog, query)[:limit]
