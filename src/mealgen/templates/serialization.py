"""Serialization utilities for MealPlanResult round-trip.

``serialize_plan`` produces the JSON document written by ``mealgen generate
--format json``; ``deserialize_plan`` reads it back so saved plans can be
validated, scored, advised on and compared later.
"""

from __future__ import annotations

from typing import Any, Optional

from mealgen.errors import InvalidRequestError
from mealgen.templates.models import (
    Day,
    GeneratorMetadata,
    IngredientRef,
    Meal,
    MealPlanResult,
    MealQuality,
    TemplateInfo,
    TemplateQuality,
)


def _pairs(rows: Any, key_name: str) -> tuple[tuple[str, int], ...]:
    return tuple((str(r[key_name]), int(r["count"])) for r in rows or [])


def serialize_quality(quality: TemplateQuality) -> dict[str, Any]:
    return {
        "repeats_forced": quality.repeats_forced,
        "repeats_avoided": quality.repeats_avoided,
        "template_repeats_forced": quality.template_repeats_forced,
        "protein_repeats_forced": quality.protein_repeats_forced,
        "signature_repeats_forced": quality.signature_repeats_forced,
        "protein_counts_top": [
            {"item_key": key, "count": count} for key, count in quality.protein_counts_top
        ],
        "template_counts": [{"id": key, "count": count} for key, count in quality.template_counts],
    }


def serialize_plan(plan: MealPlanResult) -> dict[str, Any]:
    """Convert a MealPlanResult to a JSON-serializable dict.

    The output contains no timestamps, so identical plans serialize to
    identical documents.
    """
    info = plan.template_info
    gen = plan.generator
    return {
        "diet_key": plan.diet_key,
        "start_date": plan.start_date,
        "end_date": plan.end_date,
        "slots": list(plan.slots),
        "days": [
            {
                "date": day.date,
                "meals": [
                    {
                        "id": meal.id,
                        "slot": meal.slot,
                        "name": meal.name,
                        "template_id": meal.template_id,
                        "ingredient_refs": [
                            {
                                "item_key": r.item_key,
                                "display_name": r.display_name,
                                "grams": r.grams,
                                "slot_key": r.slot_key,
                                "min_grams": r.min_grams,
                                "max_grams": r.max_grams,
                                "nevo_code": r.nevo_code,
                            }
                            for r in meal.ingredient_refs
                        ],
                    }
                    for meal in day.meals
                ],
            }
            for day in plan.days
        ],
        "metadata": {
            "generator": {
                "mode": gen.mode,
                "attempts": gen.attempts,
                "seed": gen.seed,
                "max_ingredients": gen.max_ingredients,
                "template_info": {
                    "rotation": list(info.rotation),
                    "used_template_ids": list(info.used_template_ids),
                    "quality": serialize_quality(info.quality),
                    "meal_qualities": [
                        {
                            "date": mq.date,
                            "slot": mq.slot,
                            "score": mq.score,
                            "reasons": list(mq.reasons),
                        }
                        for mq in info.meal_qualities
                    ],
                },
                "pool_metrics": gen.pool_metrics,
                "sanity": gen.sanity,
            }
        },
    }


def _deserialize_meal(data: dict[str, Any], day_date: str) -> Meal:
    return Meal(
        id=str(data.get("id", "")),
        date=str(data.get("date", day_date)),
        slot=str(data.get("slot", "")),
        name=str(data.get("name") or ""),
        template_id=str(data.get("template_id", "")),
        ingredient_refs=tuple(
            IngredientRef(
                item_key=str(r.get("item_key") or ""),
                display_name=str(r.get("display_name") or ""),
                grams=int(r["grams"]),
                slot_key=str(r.get("slot_key", "")),
                min_grams=int(r["min_grams"]),
                max_grams=int(r["max_grams"]),
                nevo_code=r.get("nevo_code"),
            )
            for r in data.get("ingredient_refs") or []
        ),
    )


def deserialize_plan(data: dict[str, Any]) -> MealPlanResult:
    """Convert a dict from ``serialize_plan`` back to a MealPlanResult.

    Raises:
        InvalidRequestError: If required fields are missing or malformed.
    """
    try:
        gen: dict[str, Any] = (data.get("metadata") or {}).get("generator") or {}
        info: dict[str, Any] = gen.get("template_info") or {}
        q: dict[str, Any] = info.get("quality") or {}
        days = tuple(
            Day(
                date=str(d["date"]),
                meals=tuple(_deserialize_meal(m, str(d["date"])) for m in d.get("meals") or []),
            )
            for d in data.get("days") or []
        )
        quality = TemplateQuality(
            repeats_forced=int(q.get("repeats_forced", 0)),
            repeats_avoided=int(q.get("repeats_avoided", 0)),
            template_repeats_forced=int(q.get("template_repeats_forced", 0)),
            protein_repeats_forced=int(q.get("protein_repeats_forced", 0)),
            signature_repeats_forced=int(q.get("signature_repeats_forced", 0)),
            protein_counts_top=_pairs(q.get("protein_counts_top"), "item_key"),
            template_counts=_pairs(q.get("template_counts"), "id"),
        )
        sanity: Optional[dict[str, Any]] = gen.get("sanity")
        return MealPlanResult(
            diet_key=str(data.get("diet_key", "default")),
            start_date=str(data["start_date"]),
            end_date=str(data["end_date"]),
            slots=tuple(data.get("slots") or ()),
            days=days,
            generator=GeneratorMetadata(
                mode=str(gen.get("mode", "template")),
                attempts=int(gen.get("attempts", 1)),
                seed=int(gen.get("seed", 0)),
                max_ingredients=int(gen.get("max_ingredients", 10)),
                template_info=TemplateInfo(
                    rotation=tuple(info.get("rotation") or ()),
                    used_template_ids=tuple(info.get("used_template_ids") or ()),
                    quality=quality,
                    meal_qualities=tuple(
                        MealQuality(
                            date=str(mq["date"]),
                            slot=str(mq["slot"]),
                            score=int(mq["score"]),
                            reasons=tuple(mq.get("reasons") or ()),
                        )
                        for mq in info.get("meal_qualities") or []
                    ),
                ),
                pool_metrics=gen.get("pool_metrics"),
                sanity=sanity,
            ),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidRequestError(f"Malformed meal plan document: {e}") from e
