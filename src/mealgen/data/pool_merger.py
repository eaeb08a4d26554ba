"""Merge admin-curated pool items with catalog candidates.

The merged universe is a union keyed by normalised item key. Admin items win
over catalog candidates with the same key. Flavor items come from the admin
pool only. Fruits are folded into the veg pool.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from mealgen.data.pool_sanitizer import (
    CandidatePool,
    Candidate,
    PoolMetrics,
    candidate_key,
    matches_any_term,
    normalize_terms,
)
from mealgen.templates.models import FlavorIngredient, PoolIngredient, PoolItem, TemplatePools

logger = logging.getLogger(__name__)

# Pool category -> candidate categories feeding it
CANDIDATE_SOURCES = {
    "protein": ("proteins",),
    "veg": ("vegetables", "fruits"),
    "fat": ("fats",),
}


def pool_item_identity(item: PoolItem) -> str:
    """Normalised identity of an admin item, comparable with catalog candidates."""
    return candidate_key(item.name, item.nevo_code)


def _from_admin(item: PoolItem) -> PoolIngredient:
    return PoolIngredient(
        key=item.item_key,
        name=item.name,
        nevo_code=item.nevo_code,
        kcal_per_100g=item.kcal_per_100g,
        source="admin",
    )


def _from_candidate(c: Candidate) -> PoolIngredient:
    return PoolIngredient(
        key=c.key,
        name=c.name,
        nevo_code=c.nevo_code,
        kcal_per_100g=c.kcal_per_100g,
        source="catalog",
    )


def _flavor(item: PoolItem) -> FlavorIngredient:
    return FlavorIngredient(
        key=item.item_key,
        name=item.name,
        nevo_code=item.nevo_code,
        kcal_per_100g=item.kcal_per_100g,
        source="admin",
        min_grams=item.min_grams,
        default_grams=item.default_grams,
        max_grams=item.max_grams,
    )


def merge_pools(
    pool_items_by_category: Mapping[str, Iterable[PoolItem]],
    candidate_pool: Optional[CandidatePool] = None,
    exclude_terms: Optional[Iterable[str]] = None,
    metrics: Optional[PoolMetrics] = None,
) -> TemplatePools:
    """Build the per-category ingredient universe for the generator.

    Args:
        pool_items_by_category: Admin pool items (from the config loader)
        candidate_pool: Sanitized catalog candidates, or None
        exclude_terms: Terms that also remove admin items (allergies,
            dislikes, guardrail terms); catalog candidates are expected to be
            filtered already by ``sanitize_pool``
        metrics: Sanitizer metrics to carry along for telemetry

    Returns:
        TemplatePools with protein, veg, fat and flavor tuples.
    """
    terms = normalize_terms(exclude_terms)
    candidate_pool = candidate_pool or CandidatePool()
    removed_admin = 0

    def _admin_items(category: str) -> list[PoolItem]:
        nonlocal removed_admin
        items = [i for i in pool_items_by_category.get(category, ()) if i.is_active]
        kept = [i for i in items if matches_any_term(i.name, terms) is None]
        removed_admin += len(items) - len(kept)
        return kept

    merged: dict[str, tuple[PoolIngredient, ...]] = {}
    for category, sources in CANDIDATE_SOURCES.items():
        by_key: dict[str, PoolIngredient] = {}
        for item in _admin_items(category):
            by_key.setdefault(pool_item_identity(item), _from_admin(item))
        for source in sources:
            for c in getattr(candidate_pool, source):
                by_key.setdefault(c.key, _from_candidate(c))
        merged[category] = tuple(by_key.values())

    flavors: dict[str, FlavorIngredient] = {}
    for item in _admin_items("flavor"):
        flavors.setdefault(item.item_key, _flavor(item))

    pool_metrics = metrics.to_dict() if metrics is not None else {}
    if removed_admin:
        pool_metrics["removed_admin_items"] = removed_admin
    pools = TemplatePools(
        protein=merged["protein"],
        veg=merged["veg"],
        fat=merged["fat"],
        flavor=tuple(flavors.values()),
        metrics=pool_metrics or None,
    )
    logger.debug("Merged pools: %s (admin items excluded: %d)", pools.counts(), removed_admin)
    return pools
