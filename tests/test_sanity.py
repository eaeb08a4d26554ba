"""Tests for the structural sanity check."""

from __future__ import annotations

import dataclasses

import pytest
from helpers import make_request

from mealgen.templates.generator import generate_plan
from mealgen.templates.models import Day
from mealgen.validation.sanity import is_placeholder_name, validate_sanity


@pytest.fixture
def plan(bowl_config, varied_pools):
    """Valid 3-day lunch+dinner plan."""
    return generate_plan(make_request(days=3, slots=("lunch", "dinner")), bowl_config, varied_pools, 0)


def _replace_meal(plan, day_index: int, meal_index: int, **changes):
    days = list(plan.days)
    meals = list(days[day_index].meals)
    meals[meal_index] = dataclasses.replace(meals[meal_index], **changes)
    days[day_index] = dataclasses.replace(days[day_index], meals=tuple(meals))
    return dataclasses.replace(plan, days=tuple(days))


def _codes(result) -> set[str]:
    return {i.code for i in result.issues}


class TestValidPlan:
    def test_generated_plan_passes(self, plan):
        result = validate_sanity(plan)
        assert result.ok
        assert result.issues == []
        assert result.to_dict() == {"ok": True, "issues": []}


class TestDayStructure:
    """Tests for day and slot coverage."""

    def test_missing_day(self, plan):
        broken = dataclasses.replace(plan, days=plan.days[:2])
        result = validate_sanity(broken)
        assert not result.ok
        assert _codes(result) == {"MISSING_DAY"}
        assert result.issues[0].date == "2026-01-07"

    def test_duplicate_day(self, plan):
        broken = dataclasses.replace(plan, days=(plan.days[0], plan.days[0], plan.days[2]))
        assert _codes(validate_sanity(broken)) == {"DUPLICATE_DAY", "MISSING_DAY"}

    def test_unexpected_day(self, plan):
        extra = dataclasses.replace(plan.days[0], date="2026-02-01")
        broken = dataclasses.replace(plan, days=(*plan.days, extra))
        assert "UNEXPECTED_DAY" in _codes(validate_sanity(broken))

    def test_empty_day(self, plan):
        broken = dataclasses.replace(plan, days=(Day(date="2026-01-05", meals=()), *plan.days[1:]))
        result = validate_sanity(broken)
        assert _codes(result) == {"EMPTY_DAY"}

    def test_missing_slot(self, plan):
        days = list(plan.days)
        days[1] = dataclasses.replace(days[1], meals=days[1].meals[:1])
        result = validate_sanity(dataclasses.replace(plan, days=tuple(days)))
        assert _codes(result) == {"MISSING_SLOT"}
        assert result.issues[0].slot == "dinner"

    def test_duplicate_slot(self, plan):
        broken = _replace_meal(plan, 0, 1, slot="lunch")
        assert _codes(validate_sanity(broken)) == {"DUPLICATE_SLOT", "MISSING_SLOT"}

    def test_unexpected_slot(self, plan):
        broken = _replace_meal(plan, 0, 1, slot="breakfast")
        assert _codes(validate_sanity(broken)) == {"UNEXPECTED_SLOT", "MISSING_SLOT"}


class TestMealChecks:
    """Tests for per-meal checks."""

    def test_empty_name(self, plan):
        assert _codes(validate_sanity(_replace_meal(plan, 0, 0, name="  "))) == {"EMPTY_NAME"}

    @pytest.mark.parametrize("name", ["TBD", "lunch", "Recept", "ab"])
    def test_placeholder_name(self, plan, name):
        assert _codes(validate_sanity(_replace_meal(plan, 0, 0, name=name))) == {"PLACEHOLDER_NAME"}

    def test_empty_ingredients(self, plan):
        result = validate_sanity(_replace_meal(plan, 0, 0, ingredient_refs=()))
        assert _codes(result) == {"EMPTY_INGREDIENTS"}

    def test_too_many_ingredients(self, plan):
        meal = plan.days[0].meals[0]
        refs = meal.ingredient_refs
        padding = tuple(
            dataclasses.replace(refs[0], item_key=f"extra-{i}") for i in range(11 - len(refs))
        )
        result = validate_sanity(_replace_meal(plan, 0, 0, ingredient_refs=refs + padding))
        assert _codes(result) == {"INGREDIENT_COUNT_OUT_OF_RANGE"}

    def test_duplicate_ingredient(self, plan):
        refs = plan.days[0].meals[0].ingredient_refs
        veg1 = refs[1]
        veg2 = dataclasses.replace(refs[2], item_key=veg1.item_key)
        broken = _replace_meal(plan, 0, 0, ingredient_refs=(refs[0], veg1, veg2, *refs[3:]))
        assert _codes(validate_sanity(broken)) == {"DUPLICATE_INGREDIENT"}

    def test_missing_ingredient_key(self, plan):
        refs = plan.days[0].meals[0].ingredient_refs
        broken = _replace_meal(
            plan, 0, 0, ingredient_refs=(dataclasses.replace(refs[0], item_key=""), *refs[1:])
        )
        assert _codes(validate_sanity(broken)) == {"MISSING_INGREDIENT_KEY"}

    def test_grams_out_of_range(self, plan):
        refs = plan.days[0].meals[0].ingredient_refs
        too_much = dataclasses.replace(refs[0], grams=refs[0].max_grams + 1)
        result = validate_sanity(_replace_meal(plan, 0, 0, ingredient_refs=(too_much, *refs[1:])))
        assert _codes(result) == {"INGREDIENT_QTY_OUT_OF_RANGE"}
        assert result.issues[0].meal_id == "tpl-2026-01-05-lunch"

    def test_messages(self, plan):
        result = validate_sanity(_replace_meal(plan, 0, 0, name=""))
        assert result.messages == ["Meal name is empty"]


class TestPlaceholderNames:
    @pytest.mark.parametrize("name,expected", [("", True), ("n/a", True), ("Diner", True), ("Bowl", False)])
    def test_is_placeholder_name(self, name, expected):
        assert is_placeholder_name(name) is expected
