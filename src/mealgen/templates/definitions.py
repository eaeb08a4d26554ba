"""Built-in starter configuration snapshot.

``mealgen config init`` writes this snapshot to disk as a starting point for
curation. It is plain row data in the snapshot format read by
``mealgen.data.sources.YamlSource``; nothing here bypasses the loader's
validation.
"""

from __future__ import annotations

import copy
from typing import Any


# =============================================================================
# Slot rows (reusable building blocks)
# =============================================================================


def _slot(slot_key: str, min_g: int, default_g: int, max_g: int) -> dict[str, Any]:
    return {"slot_key": slot_key, "min_g": min_g, "default_g": default_g, "max_g": max_g}


def _template(key: str, name: str, protein: int, veg: int, fat: int, steps: int = 6) -> dict[str, Any]:
    """Template row with the standard protein/veg1/veg2/fat slots around the given defaults."""
    return {
        "template_key": key,
        "display_name": name,
        "is_active": True,
        "step_count": steps,
        "slots": [
            _slot("protein", max(1, protein // 2), protein, protein * 2),
            _slot("veg1", max(1, veg // 2), veg, veg * 2),
            _slot("veg2", max(1, veg // 3), veg * 2 // 3, veg * 2),
            _slot("fat", max(1, fat // 2), fat, fat * 3),
        ],
    }


def _item(category: str, key: str, name: str, nevo_code: str, kcal: float, **grams: int) -> dict[str, Any]:
    row: dict[str, Any] = {
        "diet_key": "default",
        "category": category,
        "item_key": key,
        "name": name,
        "nevo_code": nevo_code,
        "kcal_per_100g": kcal,
        "is_active": True,
    }
    row.update(grams)
    return row


def _flavor(key: str, name: str, nevo_code: str, kcal: float, min_g: int, default_g: int, max_g: int):
    return _item("flavor", key, name, nevo_code, kcal, min_g=min_g, default_g=default_g, max_g=max_g)


# =============================================================================
# Starter snapshot
# =============================================================================

STARTER_TEMPLATES = [
    _template("bowl", "Bowl", protein=120, veg=150, fat=10),
    _template("wok", "Wokgerecht", protein=130, veg=175, fat=15, steps=5),
    _template("sheet_pan", "Ovenschotel", protein=140, veg=200, fat=15, steps=4),
    _template("salad", "Maaltijdsalade", protein=100, veg=125, fat=15, steps=3),
]

STARTER_POOL_ITEMS = [
    _item("protein", "chicken_breast", "Kipfilet", "1433", 110),
    _item("protein", "salmon", "Zalm", "1108", 200),
    _item("protein", "tofu", "Tofu", "2264", 120),
    _item("protein", "egg", "Ei", "83", 140),
    _item("protein", "chickpeas", "Kikkererwten", "2031", 120),
    _item("veg", "broccoli", "Broccoli", "345", 30),
    _item("veg", "carrot", "Wortel", "328", 35),
    _item("veg", "bell_pepper", "Paprika", "396", 25),
    _item("veg", "spinach", "Spinazie", "338", 20),
    _item("veg", "zucchini", "Courgette", "346", 15),
    _item("veg", "green_beans", "Sperziebonen", "325", 30),
    _item("fat", "olive_oil", "Olijfolie", "2001", 900),
    _item("fat", "walnuts", "Walnoten", "1154", 700),
    _item("fat", "avocado", "Avocado", "420", 200),
    _flavor("garlic", "Knoflook", "349", 130, 2, 5, 10),
    _flavor("ginger", "Gember", "2152", 60, 2, 5, 10),
    _flavor("lemon", "Citroensap", "508", 25, 5, 10, 20),
    _flavor("parsley", "Peterselie", "350", 50, 2, 5, 10),
]

STARTER_SETTINGS = [
    {
        "diet_key": "default",
        "max_ingredients": 10,
        "max_flavor_items": 2,
        "protein_repeat_cap_7d": 2,
        "template_repeat_cap_7d": 3,
        "signature_retry_limit": 8,
        "veg_threshold_low_g": 80,
        "veg_threshold_mid_g": 150,
        "veg_threshold_high_g": 250,
        "veg_score_low": 1,
        "veg_score_mid": 2,
        "veg_score_high": 4,
    }
]

STARTER_NAME_PATTERNS = [
    {"diet_key": "default", "template_key": key, "slot": slot, "pattern": pattern}
    for key in ("bowl", "wok", "sheet_pan", "salad")
    for slot in ("breakfast", "lunch", "dinner")
    for pattern in (
        "{templateName} met {protein} en {veg1}",
        "{protein} met {veg1} en {veg2} ({flavor})",
    )
]

STARTER_GUARDRAIL_TERMS = {
    "default": {"nl": [], "en": []},
    "vegetarian": {"nl": ["kip", "zalm", "vlees"], "en": ["chicken", "salmon", "meat"]},
}

STARTER_SNAPSHOT: dict[str, Any] = {
    "templates": STARTER_TEMPLATES,
    "pool_items": STARTER_POOL_ITEMS,
    "generator_settings": STARTER_SETTINGS,
    "name_patterns": STARTER_NAME_PATTERNS,
    "candidates": {"default": {"proteins": [], "vegetables": [], "fruits": [], "fats": []}},
    "guardrail_terms": STARTER_GUARDRAIL_TERMS,
}


def starter_snapshot() -> dict[str, Any]:
    """Deep copy of the starter snapshot, safe to modify."""
    return copy.deepcopy(STARTER_SNAPSHOT)


def list_starter_templates() -> list[str]:
    return [t["template_key"] for t in STARTER_TEMPLATES]
