"""Tests for the tuning advisor."""

from __future__ import annotations

import dataclasses

import pytest
from helpers import make_config, make_pools, make_request, make_template

from mealgen.explore.advisor import (
    MAX_SUGGESTIONS,
    AdvisorConfig,
    TuningAction,
    TuningSuggestion,
    advisor_config_from,
    get_tuning_suggestions,
)
from mealgen.templates.generator import generate_plan
from mealgen.templates.models import GeneratorSettings, RecipeTemplate, TemplateSlot


def _with_sanity(plan, *codes: str):
    sanity = {"ok": not codes, "issues": [{"code": c, "message": c} for c in codes]}
    return dataclasses.replace(plan, generator=dataclasses.replace(plan.generator, sanity=sanity))


def _three_templates():
    return (make_template("bowl"), make_template("wok", "Wok"), make_template("salad", "Salad"))


@pytest.fixture
def quiet_plan(varied_pools):
    """Two days from wide pools: nothing to suggest."""
    config = make_config(templates=_three_templates())
    return generate_plan(make_request(days=2), config, varied_pools, 0)


@pytest.fixture
def wide_advisor_config(varied_pools):
    return advisor_config_from(make_config(templates=_three_templates()), varied_pools)


class TestAdvisorConfig:
    def test_from_merged_pools(self, bowl_config, varied_pools):
        cfg = advisor_config_from(bowl_config, varied_pools)
        assert cfg.pool_counts == {"protein": 7, "veg": 6, "fat": 3, "flavor": 4}
        assert cfg.template_keys == ("bowl",)
        assert cfg.diet_key == "default"

    def test_from_admin_items(self, bowl_config):
        cfg = advisor_config_from(bowl_config)
        assert cfg.pool_counts == {}


class TestSuggestions:
    """Tests for the individual rules."""

    def test_nothing_to_suggest(self, quiet_plan, wide_advisor_config):
        assert get_tuning_suggestions(quiet_plan, wide_advisor_config) == []

    def test_repeats_forced(self, varied_pools):
        config = make_config(settings=GeneratorSettings(template_repeat_cap_7d=3))
        plan = generate_plan(make_request(days=7), config, varied_pools, 0)
        suggestions = get_tuning_suggestions(plan, advisor_config_from(config, varied_pools))
        repeats = next(s for s in suggestions if s.code == "REPEATS_FORCED")
        assert repeats.severity == "warn"
        assert 1 <= len(repeats.actions) <= 3
        assert repeats.kind == "pool"
        assert repeats.target == "pools:default"
        assert repeats.actions[1].target == "protein_repeat_cap_7d"
        assert "currently 2" in repeats.actions[1].hint

    def test_no_cap_hint_above_ceiling(self, varied_pools):
        settings = GeneratorSettings(template_repeat_cap_7d=5, protein_repeat_cap_7d=5)
        config = make_config(settings=settings)
        plan = generate_plan(make_request(days=7), config, varied_pools, 0)
        repeats = next(
            s
            for s in get_tuning_suggestions(plan, advisor_config_from(config, varied_pools))
            if s.code == "REPEATS_FORCED"
        )
        targets = [a.target for a in repeats.actions]
        assert "protein_repeat_cap_7d" not in targets
        assert "template_repeat_cap_7d" not in targets

    def test_pool_low(self, quiet_plan):
        cfg = AdvisorConfig(diet_key="vegan", pool_counts={"protein": 2, "veg": 8, "fat": 1})
        suggestions = get_tuning_suggestions(quiet_plan, cfg)
        pool_low = next(s for s in suggestions if s.code == "POOL_LOW")
        assert pool_low.target == "pools:vegan:category"
        assert "protein (2)" in pool_low.hint
        assert "fat (1)" in pool_low.hint
        assert "veg" not in pool_low.hint

    @pytest.mark.parametrize(
        "issue_code,suggestion_code",
        [
            ("INGREDIENT_COUNT_OUT_OF_RANGE", "SANITY_INGREDIENT_COUNT"),
            ("PLACEHOLDER_NAME", "SANITY_PLACEHOLDER"),
            ("EMPTY_NAME", "SANITY_PLACEHOLDER"),
            ("DUPLICATE_INGREDIENT", "SANITY_DUPLICATE_INGREDIENT"),
            ("EMPTY_DAY", "SANITY_EMPTY_DAY"),
            ("MISSING_SLOT", "SANITY_EMPTY_DAY"),
        ],
    )
    def test_sanity_issues(self, quiet_plan, wide_advisor_config, issue_code, suggestion_code):
        plan = _with_sanity(quiet_plan, issue_code)
        codes = [s.code for s in get_tuning_suggestions(plan, wide_advisor_config)]
        assert codes == [suggestion_code]

    def test_veg_monotony(self, bowl_config, wide_advisor_config):
        """Two vegetables over three meals: each is used three times."""
        plan = generate_plan(make_request(days=3), bowl_config, make_pools(), 0)
        suggestions = get_tuning_suggestions(plan, wide_advisor_config)
        monotony = next(s for s in suggestions if s.code == "VEG_MONOTONY")
        assert monotony.severity == "info"
        assert "used 3x" in monotony.hint

    def test_low_veg_portions(self, varied_pools, wide_advisor_config):
        lean = RecipeTemplate(
            id="lean",
            display_name="Lean",
            slots=(
                TemplateSlot("protein", 50, 120, 250),
                TemplateSlot("veg1", 10, 30, 300),
                TemplateSlot("veg2", 10, 30, 300),
                TemplateSlot("fat", 5, 10, 30),
            ),
        )
        plan = generate_plan(make_request(days=2), make_config(templates=(lean,)), varied_pools, 0)
        codes = [s.code for s in get_tuning_suggestions(plan, wide_advisor_config)]
        assert codes == ["VEG_PORTIONS_LOW"]


class TestOrdering:
    """Tests for ordering and truncation."""

    def test_warnings_first(self, bowl_config, wide_advisor_config):
        plan = generate_plan(make_request(days=3), bowl_config, make_pools(), 0)
        plan = _with_sanity(plan, "PLACEHOLDER_NAME")
        severities = [s.severity for s in get_tuning_suggestions(plan, wide_advisor_config)]
        assert severities == sorted(severities, key=["warn", "info"].index)
        assert severities[0] == "warn"
        assert severities[-1] == "info"

    def test_deterministic(self, quiet_plan):
        cfg = AdvisorConfig(diet_key="default", pool_counts={})
        plan = _with_sanity(quiet_plan, "DUPLICATE_INGREDIENT", "EMPTY_DAY")
        assert get_tuning_suggestions(plan, cfg) == get_tuning_suggestions(plan, cfg)

    def test_at_most_max_suggestions(self, bowl_config):
        plan = generate_plan(make_request(days=7), bowl_config, make_pools(), 0)
        plan = _with_sanity(
            plan,
            "INGREDIENT_COUNT_OUT_OF_RANGE",
            "PLACEHOLDER_NAME",
            "DUPLICATE_INGREDIENT",
            "EMPTY_DAY",
        )
        cfg = AdvisorConfig(diet_key="default", pool_counts={}, template_keys=("bowl",))
        assert len(get_tuning_suggestions(plan, cfg)) <= MAX_SUGGESTIONS


class TestModels:
    def test_invalid_action_kind(self):
        with pytest.raises(ValueError):
            TuningAction("delete", "pools", "no")

    def test_to_dict(self):
        suggestion = TuningSuggestion(
            "info", "X", "Title", (TuningAction("setting", "max_ingredients", "Raise it."),)
        )
        assert suggestion.to_dict() == {
            "severity": "info",
            "code": "X",
            "title": "Title",
            "actions": [{"kind": "setting", "target": "max_ingredients", "hint": "Raise it."}],
        }
