"""Structural sanity checks on a finished meal plan.

Pure, no I/O. Everything needed is carried by the plan itself: requested
date range and slots, ``max_ingredients`` and each ingredient's gram range.
Any issue is fatal for the caller; a plan is never partially accepted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

from mealgen.templates.models import Meal, MealPlanResult

PLACEHOLDER_NAMES = frozenset(
    {
        "tbd",
        "n/a",
        "na",
        "meal",
        "recept",
        "recipe",
        "unknown",
        "ontbijt",
        "lunch",
        "diner",
        "avondeten",
    }
)
MIN_INGREDIENTS = 1


@dataclass(frozen=True)
class SanityIssue:
    code: str
    message: str
    date: Optional[str] = None
    slot: Optional[str] = None
    meal_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "date": self.date,
            "slot": self.slot,
            "meal_id": self.meal_id,
        }


@dataclass(frozen=True)
class SanityResult:
    ok: bool
    issues: list[SanityIssue] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [i.message for i in self.issues]

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "issues": [i.to_dict() for i in self.issues]}


def is_placeholder_name(name: str) -> bool:
    n = name.strip().lower()
    return not n or n in PLACEHOLDER_NAMES or len(n) <= 2


def _expected_dates(start: str, end: str) -> list[str]:
    first, last = date.fromisoformat(start), date.fromisoformat(end)
    return [(first + timedelta(days=i)).isoformat() for i in range((last - first).days + 1)]


def _check_meal(meal: Meal, max_ingredients: int) -> list[SanityIssue]:
    issues: list[SanityIssue] = []
    where = {"date": meal.date, "slot": meal.slot, "meal_id": meal.id}

    name = (meal.name or "").strip()
    if not name:
        issues.append(SanityIssue("EMPTY_NAME", "Meal name is empty", **where))
    elif is_placeholder_name(name):
        issues.append(
            SanityIssue(
                "PLACEHOLDER_NAME", f'Meal name looks like a placeholder: "{name[:30]}"', **where
            )
        )

    refs = meal.ingredient_refs
    if not refs:
        issues.append(SanityIssue("EMPTY_INGREDIENTS", "Meal has no ingredients", **where))
    elif not MIN_INGREDIENTS <= len(refs) <= max_ingredients:
        issues.append(
            SanityIssue(
                "INGREDIENT_COUNT_OUT_OF_RANGE",
                f"Ingredient count {len(refs)} must be between "
                f"{MIN_INGREDIENTS} and {max_ingredients}",
                **where,
            )
        )

    seen: set[str] = set()
    for i, ref in enumerate(refs):
        if not ref.item_key:
            issues.append(
                SanityIssue("MISSING_INGREDIENT_KEY", f"Ingredient at index {i} has no key", **where)
            )
            continue
        if ref.item_key in seen:
            issues.append(
                SanityIssue(
                    "DUPLICATE_INGREDIENT", f"Duplicate ingredient in meal: {ref.item_key}", **where
                )
            )
        seen.add(ref.item_key)
        if not ref.min_grams <= ref.grams <= ref.max_grams:
            issues.append(
                SanityIssue(
                    "INGREDIENT_QTY_OUT_OF_RANGE",
                    f"{ref.item_key} ({ref.slot_key}): {ref.grams}g must be between "
                    f"{ref.min_grams}g and {ref.max_grams}g",
                    **where,
                )
            )
    return issues


def validate_sanity(plan: MealPlanResult) -> SanityResult:
    """Check days, slots, names, ingredient lists and gram ranges.

    Args:
        plan: Generated plan

    Returns:
        SanityResult; ``ok`` is True only when ``issues`` is empty.
    """
    issues: list[SanityIssue] = []
    expected = _expected_dates(plan.start_date, plan.end_date)
    expected_set = set(expected)
    requested_slots = list(plan.slots)
    max_ingredients = plan.generator.max_ingredients

    seen_dates: set[str] = set()
    for day in plan.days:
        if day.date not in expected_set:
            issues.append(
                SanityIssue("UNEXPECTED_DAY", f"Day {day.date} is outside the plan range", date=day.date)
            )
        elif day.date in seen_dates:
            issues.append(SanityIssue("DUPLICATE_DAY", f"Day {day.date} appears twice", date=day.date))
        seen_dates.add(day.date)

        if not day.meals:
            issues.append(SanityIssue("EMPTY_DAY", "Day has no meals", date=day.date))
            continue

        slot_counts: dict[str, int] = {}
        for meal in day.meals:
            slot_counts[meal.slot] = slot_counts.get(meal.slot, 0) + 1
            issues.extend(_check_meal(meal, max_ingredients))

        for slot in requested_slots:
            if slot not in slot_counts:
                issues.append(
                    SanityIssue(
                        "MISSING_SLOT", f"Day {day.date} has no {slot}", date=day.date, slot=slot
                    )
                )
        for slot, count in slot_counts.items():
            if slot not in requested_slots:
                issues.append(
                    SanityIssue(
                        "UNEXPECTED_SLOT",
                        f"Day {day.date} has an unrequested slot {slot}",
                        date=day.date,
                        slot=slot,
                    )
                )
            elif count > 1:
                issues.append(
                    SanityIssue(
                        "DUPLICATE_SLOT",
                        f"Day {day.date} has {count} {slot} meals",
                        date=day.date,
                        slot=slot,
                    )
                )

    for missing in (d for d in expected if d not in seen_dates):
        issues.append(SanityIssue("MISSING_DAY", f"Day {missing} is missing", date=missing))

    return SanityResult(ok=not issues, issues=issues)
