"""Meal names from name patterns."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from mealgen.templates.models import IngredientRef, NamePattern
from mealgen.templates.rng import SplitMix64

MIN_NAME_LENGTH = 3

_TOKENS = ("templateName", "protein", "veg1", "veg2", "flavor")


def render_pattern(
    pattern: str,
    refs: Sequence[IngredientRef],
    template_name: str,
) -> str:
    """Substitute tokens with display names and tidy the result.

    Empty parentheses and dangling dashes left by a missing flavor are removed.

    Example:
        >>> render_pattern("{protein} met {veg1} ({flavor})", refs, "Bowl")
        'Kipfilet met Broccoli'
    """
    by_slot: dict[str, str] = {}
    for ref in refs:
        by_slot.setdefault(ref.slot_key, ref.display_name.strip())

    values = {
        "templateName": template_name,
        "protein": by_slot.get("protein", ""),
        "veg1": by_slot.get("veg1", ""),
        "veg2": by_slot.get("veg2", ""),
        "flavor": by_slot.get("flavor", ""),
    }
    out = pattern
    for token in _TOKENS:
        out = out.replace("{" + token + "}", values[token])

    out = re.sub(r"\(\s*\)", " ", out)
    out = re.sub(r"\s*[–-]\s*$", "", out)
    out = re.sub(r"^\s*[–-]\s*", "", out)
    out = re.sub(r"\s*([–-])\s*[–-]\s*", r" \1 ", out)
    return re.sub(r"\s+", " ", out).strip()


def build_meal_name(
    patterns: Sequence[NamePattern],
    refs: Sequence[IngredientRef],
    template_name: str,
    rng: Optional[SplitMix64] = None,
) -> str:
    """Render one of the active patterns, or fall back to the template name."""
    if not patterns:
        return template_name
    pattern = rng.choice(patterns) if rng is not None else patterns[0]
    name = render_pattern(pattern.pattern, refs, template_name)
    if len(name) < MIN_NAME_LENGTH:
        return template_name
    return name
