"""Autocomplete suggestions harvested from meal expense metadata."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from expensehub.db.dal import Database
from expensehub.models.constants import MEAL_TYPES
from expensehub.models.metadata import MealMeta
from .metadata_normalizer import normalize


def _meal_metadata(db: Database) -> Iterable[MealMeta]:
    for line in db.list_lines_of_types(MEAL_TYPES):
        meta = normalize(line.type, line.metadata)
        if isinstance(meta, MealMeta):
            yield meta


def _distinct(names: Iterable[str], query: Optional[str], limit: int) -> List[str]:
    seen = {}
    needle = (query or "").strip().lower()
    for name in names:
        key = name.lower()
        if key in seen or (needle and needle not in key):
            continue
        seen[key] = name
    return sorted(seen.values(), key=str.lower)[:limit]


def _suggest(
    db: Database,
    pick: Callable[[MealMeta], Iterable[str]],
    query: Optional[str],
    limit: int,
) -> List[str]:
    names = (name for meta in _meal_metadata(db) for name in pick(meta))
    return _distinct(names, query, limit)


def suggest_customers(db: Database, query: Optional[str] = None, limit: int = 20) -> List[str]:
    return _suggest(db, lambda m: [m.customer] if m.customer else [], query, limit)


def suggest_colleagues(db: Database, query: Optional[str] = None, limit: int = 20) -> List[str]:
    return _suggest(db, lambda m: m.colleagues, query, limit)
