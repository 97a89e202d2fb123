"""Company resolver package.

Resolves free-text input ("john keells", "JKH") to listed companies from an
in-memory catalog. Pure-python, deterministic, no I/O. See
`services/resolver/core.py`.
"""

from .core import Catalog, Entity, Match, build_catalog, rank, score_entity, search
from .distance import levenshtein

__all__ = [
    "Catalog",
    "Entity",
    "Match",
    "build_catalog",
    "levenshtein",
    "rank",
    "score_entity",
    "search",
]
