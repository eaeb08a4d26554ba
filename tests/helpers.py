"""Builders for templates, pools, configs and requests used across tests."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional

from mealgen.templates.models import (
    FlavorIngredient,
    GenerationConfig,
    GeneratorSettings,
    MealPlanRequest,
    PoolIngredient,
    Profile,
    RecipeTemplate,
    TemplatePools,
    TemplateSlot,
)

START = date(2026, 1, 5)


def make_template(template_id: str = "bowl", display_name: str = "Bowl") -> RecipeTemplate:
    """4-slot template with generous ranges."""
    return RecipeTemplate(
        id=template_id,
        display_name=display_name,
        slots=(
            TemplateSlot("protein", 50, 120, 250),
            TemplateSlot("veg1", 50, 150, 300),
            TemplateSlot("veg2", 30, 100, 300),
            TemplateSlot("fat", 5, 10, 30),
        ),
    )


def ingredient(key: str, kcal: Optional[float] = None) -> PoolIngredient:
    return PoolIngredient(key=key, name=key.replace("_", " ").capitalize(), kcal_per_100g=kcal)


def flavor(key: str, min_g: int = 2, default_g: int = 5, max_g: int = 10) -> FlavorIngredient:
    return FlavorIngredient(
        key=key,
        name=key.capitalize(),
        min_grams=min_g,
        default_grams=default_g,
        max_grams=max_g,
    )


def make_pools(
    protein=("chicken", "tofu"),
    veg=("broccoli", "carrot"),
    fat=("oil",),
    flavors=(),
) -> TemplatePools:
    return TemplatePools(
        protein=tuple(ingredient(k) for k in protein),
        veg=tuple(ingredient(k) for k in veg),
        fat=tuple(ingredient(k) for k in fat),
        flavor=tuple(flavor(k) for k in flavors),
    )


def make_config(
    templates: Optional[tuple[RecipeTemplate, ...]] = None,
    settings: Optional[GeneratorSettings] = None,
    name_patterns=(),
) -> GenerationConfig:
    return GenerationConfig(
        diet_key="default",
        templates=templates if templates is not None else (make_template(),),
        pool_items_by_category={},
        settings=settings or GeneratorSettings(),
        name_patterns=tuple(name_patterns),
    )


def make_request(
    days: int = 3,
    slots=("lunch",),
    calorie_target: Optional[float] = None,
    diet_key: str = "default",
    allergies=(),
) -> MealPlanRequest:
    return MealPlanRequest(
        start_date=START,
        end_date=START + timedelta(days=days - 1),
        slots=tuple(slots),
        profile=Profile(
            diet_key=diet_key,
            allergies=tuple(allergies),
            calorie_target=calorie_target,
        ),
    )
