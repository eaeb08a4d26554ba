"""Compare two generated plans (two seeds or two config snapshots)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from mealgen.templates.models import Meal, MealPlanResult


@dataclass
class PlanSummary:
    """Summary of a single generated plan."""

    diet_key: str
    seed: int
    attempts: int
    meal_count: int
    repeats_forced: int
    average_score: Optional[float]
    ingredient_keys: set[str]


@dataclass
class MealDifference:
    """A (date, slot) whose meal differs between the two plans."""

    date: str
    slot: str
    name_a: Optional[str]
    name_b: Optional[str]
    ingredients_only_in_a: list[str]
    ingredients_only_in_b: list[str]


@dataclass
class PlanComparison:
    """Comparison between two generated plans."""

    plan_a: PlanSummary
    plan_b: PlanSummary
    repeats_forced_difference: int
    average_score_difference: Optional[float]
    changed_meals: list[MealDifference]
    ingredients_only_in_a: list[str]
    ingredients_only_in_b: list[str]
    ingredients_in_both: list[str]

    @property
    def identical(self) -> bool:
        return not self.changed_meals


def summarize_plan(plan: MealPlanResult) -> PlanSummary:
    scores = [mq.score for mq in plan.template_info.meal_qualities]
    return PlanSummary(
        diet_key=plan.diet_key,
        seed=plan.generator.seed,
        attempts=plan.attempts,
        meal_count=plan.total_meals,
        repeats_forced=plan.quality.repeats_forced,
        average_score=sum(scores) / len(scores) if scores else None,
        ingredient_keys={r.item_key for m in plan.iter_meals() for r in m.ingredient_refs},
    )


def _meals_by_slot(plan: MealPlanResult) -> dict[tuple[str, str], Meal]:
    return {(m.date, m.slot): m for m in plan.iter_meals()}


def _meal_keys(meal: Optional[Meal]) -> set[str]:
    return {r.item_key for r in meal.ingredient_refs} if meal else set()


def _same_meal(a: Meal, b: Meal) -> bool:
    return a.name == b.name and [(r.item_key, r.grams) for r in a.ingredient_refs] == [
        (r.item_key, r.grams) for r in b.ingredient_refs
    ]


def compare_plans(plan_a: MealPlanResult, plan_b: MealPlanResult) -> PlanComparison:
    """Compare two plans meal by meal.

    Args:
        plan_a: Baseline plan
        plan_b: Plan to compare against the baseline

    Returns:
        PlanComparison; differences are B minus A.
    """
    summary_a = summarize_plan(plan_a)
    summary_b = summarize_plan(plan_b)

    meals_a = _meals_by_slot(plan_a)
    meals_b = _meals_by_slot(plan_b)
    changed = []
    for key in sorted(set(meals_a) | set(meals_b)):
        a, b = meals_a.get(key), meals_b.get(key)
        if a is not None and b is not None and _same_meal(a, b):
            continue
        keys_a, keys_b = _meal_keys(a), _meal_keys(b)
        changed.append(
            MealDifference(
                date=key[0],
                slot=key[1],
                name_a=a.name if a else None,
                name_b=b.name if b else None,
                ingredients_only_in_a=sorted(keys_a - keys_b),
                ingredients_only_in_b=sorted(keys_b - keys_a),
            )
        )

    score_diff = None
    if summary_a.average_score is not None and summary_b.average_score is not None:
        score_diff = summary_b.average_score - summary_a.average_score

    return PlanComparison(
        plan_a=summary_a,
        plan_b=summary_b,
        repeats_forced_difference=summary_b.repeats_forced - summary_a.repeats_forced,
        average_score_difference=score_diff,
        changed_meals=changed,
        ingredients_only_in_a=sorted(summary_a.ingredient_keys - summary_b.ingredient_keys),
        ingredients_only_in_b=sorted(summary_b.ingredient_keys - summary_a.ingredient_keys),
        ingredients_in_both=sorted(summary_a.ingredient_keys & summary_b.ingredient_keys),
    )


def format_plan_comparison(comparison: PlanComparison) -> dict[str, Any]:
    """Format plan comparison for JSON output."""

    def _summary(s: PlanSummary) -> dict[str, Any]:
        return {
            "diet_key": s.diet_key,
            "seed": s.seed,
            "attempts": s.attempts,
            "meal_count": s.meal_count,
            "repeats_forced": s.repeats_forced,
            "average_score": round(s.average_score, 2) if s.average_score is not None else None,
        }

    return {
        "plan_a": _summary(comparison.plan_a),
        "plan_b": _summary(comparison.plan_b),
        "differences": {
            "repeats_forced": comparison.repeats_forced_difference,
            "average_score": (
                round(comparison.average_score_difference, 2)
                if comparison.average_score_difference is not None
                else None
            ),
            "changed_meal_count": len(comparison.changed_meals),
        },
        "changed_meals": [
            {
                "date": d.date,
                "slot": d.slot,
                "name_a": d.name_a,
                "name_b": d.name_b,
                "only_in_a": d.ingredients_only_in_a,
                "only_in_b": d.ingredients_only_in_b,
            }
            for d in comparison.changed_meals
        ],
        "ingredients": {
            "only_in_a": comparison.ingredients_only_in_a,
            "only_in_b": comparison.ingredients_only_in_b,
            "in_both": comparison.ingredients_in_both,
            "overlap_count": len(comparison.ingredients_in_both),
        },
    }
