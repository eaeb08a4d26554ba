"""Seeded selection of templates and pool ingredients.

This module handles the discrete selection phase: picking a template and one
ingredient per template slot, while enforcing the trailing 7-day repeat caps.
When every candidate has reached its cap the cap is relaxed and the least
recently used candidate is taken; the caller records that as a forced repeat.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Generic, Optional, Sequence, TypeVar

from mealgen.templates.models import PoolIngredient, RecipeTemplate
from mealgen.templates.rng import SplitMix64

T = TypeVar("T")

REPEAT_WINDOW_DAYS = 7

_FAT_LIKE = re.compile(r"avocado|olijf|olie|noten|kokos|tahini|boter")


@dataclass(frozen=True)
class UsageRecord:
    """One placed meal, as seen by the repeat caps."""

    order: int
    date: date
    template_id: str
    protein_key: str


class UsageHistory:
    """Meals placed so far in the plan being built, in fill order."""

    def __init__(self) -> None:
        self.records: list[UsageRecord] = []

    def add(self, on: date, template_id: str, protein_key: str) -> None:
        self.records.append(
            UsageRecord(
                order=len(self.records),
                date=on,
                template_id=template_id,
                protein_key=protein_key,
            )
        )

    def window_counts(
        self, attr: str, on: date, days: int = REPEAT_WINDOW_DAYS
    ) -> Counter:
        """Usage counts for ``attr`` in the trailing window ending at ``on``."""
        start = on - timedelta(days=days - 1)
        return Counter(
            getattr(r, attr) for r in self.records if start <= r.date <= on
        )

    def last_used(self, attr: str) -> dict[str, int]:
        """Most recent fill order per key for ``attr``."""
        last: dict[str, int] = {}
        for r in self.records:
            last[getattr(r, attr)] = r.order
        return last

    def total_counts(self, attr: str) -> Counter:
        return Counter(getattr(r, attr) for r in self.records)


@dataclass(frozen=True)
class Pick(Generic[T]):
    """A selected candidate and whether its repeat cap had to be relaxed."""

    item: T
    forced: bool = False


def least_recently_used(
    candidates: Sequence[T],
    key: Callable[[T], str],
    last_used: dict[str, int],
) -> T:
    """Candidate whose last use is oldest; never-used first, ties by pool order."""
    if not candidates:
        raise IndexError("no candidates to choose from")
    best_index = min(
        range(len(candidates)),
        key=lambda i: (last_used.get(key(candidates[i]), -1), i),
    )
    return candidates[best_index]


def pick_with_cap(
    candidates: Sequence[T],
    key: Callable[[T], str],
    counts: Counter,
    cap: int,
    last_used: dict[str, int],
    rng: SplitMix64,
) -> Pick[T]:
    """Uniform seeded pick among candidates under their 7-day cap.

    Args:
        candidates: Candidates in configuration order
        key: Identity of a candidate for counting
        counts: Usage counts in the trailing window
        cap: Maximum allowed uses in the window
        last_used: Most recent fill order per key (for relaxation)
        rng: Seeded generator for this (date, slot)

    Returns:
        Pick with ``forced=True`` when every candidate was capped.
    """
    eligible = [c for c in candidates if counts.get(key(c), 0) < cap]
    if eligible:
        return Pick(rng.choice(eligible))
    return Pick(least_recently_used(candidates, key, last_used), forced=True)


def pick_template(
    templates: Sequence[RecipeTemplate],
    history: UsageHistory,
    on: date,
    cap: int,
    rng: SplitMix64,
) -> Pick[RecipeTemplate]:
    return pick_with_cap(
        templates,
        key=lambda t: t.id,
        counts=history.window_counts("template_id", on),
        cap=cap,
        last_used=history.last_used("template_id"),
        rng=rng,
    )


def pick_protein(
    pool: Sequence[PoolIngredient],
    history: UsageHistory,
    on: date,
    cap: int,
    rng: SplitMix64,
) -> Pick[PoolIngredient]:
    return pick_with_cap(
        pool,
        key=lambda p: p.key,
        counts=history.window_counts("protein_key", on),
        cap=cap,
        last_used=history.last_used("protein_key"),
        rng=rng,
    )


def pick_distinct(
    pool: Sequence[PoolIngredient],
    exclude_keys: set[str],
    rng: SplitMix64,
) -> PoolIngredient:
    """Pick an ingredient not already in the meal; falls back to the full pool."""
    available = [p for p in pool if p.key not in exclude_keys]
    return rng.choice(available or list(pool))


def is_fat_like(name: str) -> bool:
    """Name suggests a fat source (avocado, oil, nuts, coconut, tahini, butter)."""
    return _FAT_LIKE.search(name.lower()) is not None


def pick_fat(
    pool: Sequence[PoolIngredient],
    meal_items: Sequence[PoolIngredient],
    exclude_keys: set[str],
    rng: SplitMix64,
) -> PoolIngredient:
    """Pick the fat, avoiding a second fat source when the meal already has one.

    Falls back to the full pool when every fat is fat-like.
    """
    candidates = list(pool)
    if any(is_fat_like(item.name) for item in meal_items):
        candidates = [f for f in pool if not is_fat_like(f.name)] or candidates
    return pick_distinct(candidates, exclude_keys, rng)


def pick_flavors(
    pool: Sequence[T],
    max_items: int,
    exclude_keys: set[str],
    rng: SplitMix64,
    key: Optional[Callable[[T], str]] = None,
) -> list[T]:
    """Pick between 0 and ``max_items`` distinct flavor items."""
    key = key or (lambda item: item.key)
    available = [f for f in pool if key(f) not in exclude_keys]
    if not available or max_items <= 0:
        return []
    count = rng.randint(0, min(max_items, len(available)))
    return rng.sample(available, count)
