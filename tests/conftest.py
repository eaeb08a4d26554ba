"""Pytest fixtures for mealgen tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from helpers import make_config, make_pools, make_request

from mealgen.templates.models import GenerationConfig, MealPlanRequest, TemplatePools


@pytest.fixture
def bowl_config() -> GenerationConfig:
    """One 'bowl' template with default settings."""
    return make_config()


@pytest.fixture
def bowl_pools() -> TemplatePools:
    """protein: chicken, tofu; veg: broccoli, carrot; fat: oil."""
    return make_pools()


@pytest.fixture
def varied_pools() -> TemplatePools:
    """Pools large enough that no cap needs relaxing in a week."""
    return make_pools(
        protein=("chicken", "tofu", "salmon", "egg", "lentils", "tempeh", "beef"),
        veg=("broccoli", "carrot", "spinach", "zucchini", "pepper", "beans"),
        fat=("oil", "walnuts", "avocado"),
        flavors=("garlic", "ginger", "lemon", "parsley"),
    )


@pytest.fixture
def lunch_request() -> MealPlanRequest:
    """3 days x lunch."""
    return make_request()


# =============================================================================
# Config snapshot (YAML source)
# =============================================================================


def _slot_rows(protein=(50, 120, 250), veg1=(50, 150, 300), veg2=(30, 100, 300), fat=(5, 10, 30)):
    return [
        {"slot_key": key, "min_g": lo, "default_g": mid, "max_g": hi}
        for key, (lo, mid, hi) in (
            ("protein", protein),
            ("veg1", veg1),
            ("veg2", veg2),
            ("fat", fat),
        )
    ]


@pytest.fixture
def snapshot_data() -> dict:
    """Snapshot with a default diet, a vegetarian override and catalog candidates."""
    return {
        "templates": [
            {"template_key": "bowl", "display_name": "Bowl", "is_active": True, "slots": _slot_rows()},
            {"template_key": "wok", "display_name": "Wokgerecht", "is_active": True, "slots": _slot_rows()},
            {"template_key": "retired", "display_name": "Oud", "is_active": False, "slots": _slot_rows()},
            # Missing the fat slot: skipped by the loader
            {"template_key": "broken", "display_name": "Kapot", "slots": _slot_rows()[:3]},
        ],
        "pool_items": [
            {"category": "protein", "item_key": "chicken", "name": "Kipfilet", "nevo_code": "1433"},
            {"category": "protein", "item_key": "tofu", "name": "Tofu", "nevo_code": "2264"},
            {"category": "protein", "item_key": "egg", "name": "Ei"},
            {"category": "veg", "item_key": "broccoli", "name": "Broccoli", "nevo_code": "345"},
            {"category": "veg", "item_key": "carrot", "name": "Wortel"},
            {"category": "veg", "item_key": "spinach", "name": "Spinazie"},
            {"category": "fat", "item_key": "olive_oil", "name": "Olijfolie"},
            {"category": "fat", "item_key": "walnuts", "name": "Walnoten"},
            {"category": "fat", "item_key": "butter", "name": "Boter", "is_active": False},
            {"category": "flavor", "item_key": "garlic", "name": "Knoflook", "min_g": 2, "default_g": 5, "max_g": 10},
            {
                "diet_key": "vegetarian",
                "category": "protein",
                "item_key": "tempeh",
                "name": "Tempeh",
            },
            {
                "diet_key": "vegetarian",
                "category": "flavor",
                "item_key": "garlic",
                "name": "Knoflook",
                "min_g": 3,
                "default_g": 6,
                "max_g": 12,
            },
        ],
        "generator_settings": [
            {"diet_key": "default", "max_ingredients": 8, "max_flavor_items": 1},
            {"diet_key": "vegetarian", "max_ingredients": 6},
        ],
        "name_patterns": [
            {"template_key": "bowl", "slot": "lunch", "pattern": "{templateName} met {protein}"},
            {"template_key": "wok", "slot": "lunch", "pattern": "Wok met {protein} en {veg1}"},
            {
                "diet_key": "vegetarian",
                "template_key": "bowl",
                "slot": "lunch",
                "pattern": "Groene bowl met {protein}",
            },
        ],
        "candidates": {
            "default": {
                "proteins": [{"name": "Kipfilet", "nevo_code": "1433"}, {"name": "Kalkoen"}],
                "vegetables": [{"name": "Paprika"}, {"name": "paprika "}],
                "fruits": [{"name": "Appel"}],
                "fats": [],
            }
        },
        "guardrail_terms": {
            "default": {"nl": []},
            "vegetarian": {"nl": ["kip", "kalkoen"], "en": ["chicken"]},
        },
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict) -> Path:
    """snapshot_data written to a YAML file."""
    path = tmp_path / "generator.yaml"
    with open(path, "w") as f:
        yaml.dump(snapshot_data, f, sort_keys=False, allow_unicode=True)
    return path
