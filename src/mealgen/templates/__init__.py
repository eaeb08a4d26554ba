"""Template-based meal composition.

A plan is built slot by slot: pick a recipe template, fill its protein, veg1,
veg2 and fat slots from the merged ingredient pools, assign grams within the
slot ranges, add a few flavor items and name the meal. Selection is seeded
and repeat-capped over a trailing 7-day window, so the same inputs always
give the same plan.
"""

from __future__ import annotations

from mealgen.templates.generator import generate_plan
from mealgen.templates.models import (
    GenerationConfig,
    GeneratorSettings,
    MealPlanRequest,
    MealPlanResult,
    PoolItem,
    Profile,
    RecipeTemplate,
    TemplatePools,
    TemplateSlot,
)

__all__ = [
    "GenerationConfig",
    "GeneratorSettings",
    "MealPlanRequest",
    "MealPlanResult",
    "PoolItem",
    "Profile",
    "RecipeTemplate",
    "TemplatePools",
    "TemplateSlot",
    "generate_plan",
]
