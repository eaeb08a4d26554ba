"""Variety scorecard for a generated plan.

Purely reporting; nothing here blocks a plan. Targets are defined per week
and scaled down for shorter plans so a 2-day plan can still meet them.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from math import ceil
from typing import Any, Optional

from mealgen.templates.models import MealPlanResult

REFERENCE_DAYS = 7
TOP_REPEATS = 10


@dataclass(frozen=True)
class VarietyTargets:
    """Weekly variety targets."""

    unique_veg_min: int = 5
    protein_rotation_min: int = 3
    max_repeat_same_meal_within_days: int = 7

    def scaled(self, num_days: int) -> "VarietyTargets":
        """Targets for a plan of ``num_days`` days (minimums never below 1)."""
        num_days = max(1, num_days)
        scale = min(1.0, num_days / REFERENCE_DAYS)
        return VarietyTargets(
            unique_veg_min=max(1, ceil(self.unique_veg_min * scale)),
            protein_rotation_min=max(1, ceil(self.protein_rotation_min * scale)),
            max_repeat_same_meal_within_days=min(self.max_repeat_same_meal_within_days, num_days),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "unique_veg_min": self.unique_veg_min,
            "protein_rotation_min": self.protein_rotation_min,
            "max_repeat_same_meal_within_days": self.max_repeat_same_meal_within_days,
        }


@dataclass(frozen=True)
class VarietyScorecard:
    unique_veg_count: int
    unique_protein_count: int
    max_repeat_within_days: int
    repeat_window_days: int
    targets: VarietyTargets
    top_repeats: list[tuple[str, int]] = field(default_factory=list)

    @property
    def meets_unique_veg(self) -> bool:
        return self.unique_veg_count >= self.targets.unique_veg_min

    @property
    def meets_protein_rotation(self) -> bool:
        return self.unique_protein_count >= self.targets.protein_rotation_min

    @property
    def meets_repeat_window(self) -> bool:
        return self.max_repeat_within_days <= 1

    @property
    def meets_all(self) -> bool:
        return self.meets_unique_veg and self.meets_protein_rotation and self.meets_repeat_window

    def to_dict(self) -> dict[str, Any]:
        return {
            "unique_veg_count": self.unique_veg_count,
            "unique_protein_count": self.unique_protein_count,
            "max_repeat_within_days": self.max_repeat_within_days,
            "repeat_window_days": self.repeat_window_days,
            "targets": self.targets.to_dict(),
            "meets_targets": {
                "unique_veg": self.meets_unique_veg,
                "protein_rotation": self.meets_protein_rotation,
                "repeat_window": self.meets_repeat_window,
            },
            "top_repeats": [{"name": n, "count": c} for n, c in self.top_repeats],
        }


def max_repeat_within_days(plan: MealPlanResult, window_days: int) -> tuple[int, list[tuple[str, int]]]:
    """Max times one meal name occurs in any window of ``window_days`` consecutive days.

    Returns:
        (max count in a window, names occurring more than once over the plan)
    """
    days = sorted(plan.days, key=lambda d: d.date)
    if window_days < 1 or not days:
        return 0, []

    worst = 0
    for start in range(len(days) - window_days + 1):
        in_window = Counter(
            meal.name.strip().lower() or "unknown"
            for day in days[start : start + window_days]
            for meal in day.meals
        )
        worst = max(worst, max(in_window.values(), default=0))

    totals = Counter(meal.name.strip().lower() or "unknown" for day in days for meal in day.meals)
    repeats = sorted(
        ((name, count) for name, count in totals.items() if count > 1),
        key=lambda kv: (-kv[1], kv[0]),
    )
    return worst, repeats[:TOP_REPEATS]


def build_variety_scorecard(
    plan: MealPlanResult, targets: Optional[VarietyTargets] = None
) -> VarietyScorecard:
    """Count unique vegetables and proteins and the worst meal-name repeat.

    Args:
        plan: Generated plan
        targets: Weekly targets; defaults apply when omitted

    Returns:
        VarietyScorecard with targets scaled to the plan length.
    """
    scaled = (targets or VarietyTargets()).scaled(len(plan.days))
    veg_keys = set()
    protein_keys = set()
    for meal in plan.iter_meals():
        for ref in meal.ingredient_refs:
            if ref.slot_key in ("veg1", "veg2"):
                veg_keys.add(ref.item_key)
            elif ref.slot_key == "protein":
                protein_keys.add(ref.item_key)

    window = scaled.max_repeat_same_meal_within_days
    worst, repeats = max_repeat_within_days(plan, window)
    return VarietyScorecard(
        unique_veg_count=len(veg_keys),
        unique_protein_count=len(protein_keys),
        max_repeat_within_days=worst,
        repeat_window_days=window,
        targets=scaled,
        top_repeats=repeats,
    )
