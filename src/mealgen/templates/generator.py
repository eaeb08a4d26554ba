"""Template-based meal plan generation.

For every date (ascending) and every requested meal slot (request order):

1. Derive a sub-seed from (seed, date, slot).
2. Pick a template under the 7-day template cap.
3. Fill protein/veg1/veg2/fat from the merged pools, protein under its cap.
   A meal whose protein or vegetables are already a fat source gets a
   non-fat-like fat item when the pool has one.
4. Assign grams (defaults, or calorie-scaled within slot ranges).
5. Append up to ``max_flavor_items`` flavor items with seeded grams.
6. Drop flavors until the meal fits ``max_ingredients``.
7. Retry template/ingredient draws while the meal signature repeats, up to
   ``signature_retry_limit`` attempts; then accept the duplicate.
8. Render the meal name from a name pattern.
9. Score vegetable adequacy.

Cap relaxations and accepted duplicate signatures are never errors; they are
counted in ``TemplateQuality``. The only failure is a starved pool.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from mealgen.errors import InsufficientAllowedIngredientsError
from mealgen.templates.models import (
    CORE_CATEGORIES,
    FLAVOR_SLOT_KEY,
    TEMPLATE_SLOT_KEYS,
    Day,
    GenerationConfig,
    GeneratorMetadata,
    GeneratorSettings,
    IngredientRef,
    Meal,
    MealPlanRequest,
    MealPlanResult,
    MealQuality,
    PoolIngredient,
    RecipeTemplate,
    TemplateInfo,
    TemplatePools,
    TemplateQuality,
)
from mealgen.templates.naming import build_meal_name
from mealgen.templates.portions import assign_core_grams, flavor_grams, meal_calorie_target
from mealgen.templates.rng import SplitMix64, derive_seed
from mealgen.templates.selector import (
    UsageHistory,
    pick_distinct,
    pick_fat,
    pick_flavors,
    pick_protein,
    pick_template,
)

logger = logging.getLogger(__name__)

GENERATOR_MODE = "template"
TOP_PROTEIN_COUNTS = 5


def meal_signature(refs: list[IngredientRef]) -> tuple[str, ...]:
    """Multiset of the core slot item keys, order-independent."""
    return tuple(sorted(r.item_key for r in refs if r.slot_key in TEMPLATE_SLOT_KEYS))


def score_vegetables(veg_grams: int, settings: GeneratorSettings) -> tuple[int, str]:
    """Map veg1+veg2 grams to a score and a reason.

    Below the low threshold scores low, at or above the high threshold scores
    high, anything in between scores mid.
    """
    if veg_grams < settings.veg_threshold_low_g:
        return settings.veg_score_low, (
            f"Low vegetable portion ({veg_grams}g < {settings.veg_threshold_low_g}g)"
        )
    if veg_grams >= settings.veg_threshold_high_g:
        return settings.veg_score_high, f"Generous vegetable portion ({veg_grams}g)"
    if veg_grams < settings.veg_threshold_mid_g:
        return settings.veg_score_mid, (
            f"Vegetable portion below target ({veg_grams}g < {settings.veg_threshold_mid_g}g)"
        )
    return settings.veg_score_mid, f"Adequate vegetable portion ({veg_grams}g)"


def _check_pools(config: GenerationConfig, pools: TemplatePools) -> None:
    if not config.templates:
        raise InsufficientAllowedIngredientsError(
            f"No active templates for diet '{config.diet_key}'", ["template"]
        )
    empty = [cat for cat in CORE_CATEGORIES if not pools.for_category(cat)]
    if empty:
        raise InsufficientAllowedIngredientsError(
            f"No allowed ingredients for {', '.join(empty)} in diet '{config.diet_key}'. "
            "Relax the diet rules or add pool items.",
            empty,
        )


@dataclass
class _Draft:
    """One attempt at filling a meal."""

    template: RecipeTemplate
    core: list[PoolIngredient]
    template_forced: bool
    protein_forced: bool
    signature: tuple[str, ...] = ()


@dataclass
class _QualityCounters:
    repeats_avoided: int = 0
    template_forced: int = 0
    protein_forced: int = 0
    signature_forced: int = 0


class _PlanBuilder:
    """Mutable state for one generation run; discarded afterwards."""

    def __init__(
        self,
        request: MealPlanRequest,
        config: GenerationConfig,
        pools: TemplatePools,
        seed: int,
    ):
        self.request = request
        self.config = config
        self.settings = config.settings
        self.pools = pools
        self.seed = seed
        self.history = UsageHistory()
        self.used_signatures: set[tuple[str, ...]] = set()
        self.counters = _QualityCounters()
        self.meal_qualities: list[MealQuality] = []
        self.target_kcal = meal_calorie_target(
            request.profile.calorie_target, len(request.slots)
        )

    def _draw(self, on: date, rng: SplitMix64) -> _Draft:
        settings = self.settings
        template_pick = pick_template(
            self.config.templates, self.history, on, settings.template_repeat_cap_7d, rng
        )
        protein_pick = pick_protein(
            self.pools.protein, self.history, on, settings.protein_repeat_cap_7d, rng
        )
        protein = protein_pick.item
        used = {protein.key}
        veg1 = pick_distinct(self.pools.veg, used, rng)
        used.add(veg1.key)
        veg2 = pick_distinct(self.pools.veg, used, rng)
        used.add(veg2.key)
        fat = pick_fat(self.pools.fat, (protein, veg1, veg2), used, rng)
        core = [protein, veg1, veg2, fat]
        return _Draft(
            template=template_pick.item,
            core=core,
            template_forced=template_pick.forced,
            protein_forced=protein_pick.forced,
            signature=tuple(sorted(i.key for i in core)),
        )

    def _select(self, on: date, rng: SplitMix64) -> tuple[_Draft, int, bool]:
        """Draw until the signature is new or the retry limit is reached.

        Returns:
            (draft, attempts used, whether a duplicate signature was accepted)
        """
        limit = self.settings.signature_retry_limit
        draft = None
        for attempt in range(1, limit + 1):
            draft = self._draw(on, rng)
            if draft.signature not in self.used_signatures:
                return draft, attempt, False
        return draft, limit, True

    def _build_refs(
        self, draft: _Draft, rng: SplitMix64
    ) -> tuple[list[IngredientRef], Optional[str]]:
        slots = draft.template.slots
        grams, portion_reason = assign_core_grams(slots, draft.core, self.target_kcal)
        refs = [
            IngredientRef(
                item_key=item.key,
                display_name=item.name,
                grams=g,
                slot_key=slot.slot_key,
                min_grams=slot.min_grams,
                max_grams=slot.max_grams,
                nevo_code=item.nevo_code,
            )
            for slot, item, g in zip(slots, draft.core, grams)
        ]

        flavors = pick_flavors(
            self.pools.flavor,
            self.settings.max_flavor_items,
            exclude_keys={r.item_key for r in refs},
            rng=rng,
        )
        for item in flavors:
            refs.append(
                IngredientRef(
                    item_key=item.key,
                    display_name=item.name,
                    grams=flavor_grams(item, rng),
                    slot_key=FLAVOR_SLOT_KEY,
                    min_grams=item.min_grams,
                    max_grams=item.max_grams,
                    nevo_code=item.nevo_code,
                )
            )

        # Flavors are lowest priority: drop from the end until under the cap
        while len(refs) > self.settings.max_ingredients and refs[-1].slot_key == FLAVOR_SLOT_KEY:
            refs.pop()
        return refs, portion_reason

    def build_meal(self, on: date, slot: str) -> Meal:
        date_str = on.isoformat()
        rng = SplitMix64(derive_seed(self.seed, date_str, slot))

        draft, attempts, duplicate = self._select(on, rng)
        refs, portion_reason = self._build_refs(draft, rng)
        signature = meal_signature(refs)

        reasons: list[str] = []
        veg_grams = sum(r.grams for r in refs if r.slot_key in ("veg1", "veg2"))
        score, veg_reason = score_vegetables(veg_grams, self.settings)
        reasons.append(veg_reason)

        if draft.template_forced:
            self.counters.template_forced += 1
            reasons.append(f"Template repeat cap relaxed for '{draft.template.id}'")
        if draft.protein_forced:
            self.counters.protein_forced += 1
            reasons.append(f"Protein repeat cap relaxed for '{draft.core[0].name}'")
        if duplicate:
            self.counters.signature_forced += 1
            reasons.append(f"Duplicate meal signature accepted after {attempts} attempts")
        elif attempts > 1:
            self.counters.repeats_avoided += 1
            reasons.append(f"Repeated signature avoided after {attempts} attempts")
        if portion_reason:
            reasons.append(portion_reason)

        self.used_signatures.add(signature)
        self.history.add(on, draft.template.id, draft.core[0].key)

        name = build_meal_name(
            self.config.patterns_for(draft.template.id, slot),
            refs,
            draft.template.display_name,
            rng,
        )
        self.meal_qualities.append(
            MealQuality(date=date_str, slot=slot, score=score, reasons=tuple(reasons))
        )
        if draft.template_forced or draft.protein_forced or duplicate:
            logger.debug("Forced repeat on %s/%s: %s", date_str, slot, "; ".join(reasons[1:]))

        return Meal(
            id=f"tpl-{date_str}-{slot}",
            date=date_str,
            slot=slot,
            name=name,
            template_id=draft.template.id,
            ingredient_refs=tuple(refs),
        )

    def quality(self) -> TemplateQuality:
        c = self.counters
        protein_counts = self.history.total_counts("protein_key")
        template_counts = self.history.total_counts("template_id")
        top_proteins = sorted(protein_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return TemplateQuality(
            repeats_forced=c.template_forced + c.protein_forced + c.signature_forced,
            repeats_avoided=c.repeats_avoided,
            template_repeats_forced=c.template_forced,
            protein_repeats_forced=c.protein_forced,
            signature_repeats_forced=c.signature_forced,
            protein_counts_top=tuple(top_proteins[:TOP_PROTEIN_COUNTS]),
            template_counts=tuple(
                (t.id, template_counts[t.id])
                for t in self.config.templates
                if template_counts[t.id]
            ),
        )


def generate_plan(
    request: MealPlanRequest,
    config: GenerationConfig,
    pools: TemplatePools,
    seed: int = 0,
) -> MealPlanResult:
    """Generate a meal plan from templates and merged pools.

    Identical arguments always give an identical plan.

    Args:
        request: Validated meal plan request
        config: Merged generator configuration for the diet
        pools: Merged ingredient pools (see ``mealgen.data.pool_merger``)
        seed: Master seed

    Returns:
        MealPlanResult with ``generator.attempts == 1``.

    Raises:
        InsufficientAllowedIngredientsError: If templates or a core pool are empty.
    """
    _check_pools(config, pools)

    builder = _PlanBuilder(request, config, pools, seed)
    days: list[Day] = []
    for on in request.dates():
        meals = tuple(builder.build_meal(on, slot) for slot in request.slots)
        days.append(Day(date=on.isoformat(), meals=meals))

    quality = builder.quality()
    used_ids = {m.template_id for d in days for m in d.meals}
    template_info = TemplateInfo(
        rotation=tuple(t.id for t in config.templates),
        used_template_ids=tuple(t.id for t in config.templates if t.id in used_ids),
        quality=quality,
        meal_qualities=tuple(builder.meal_qualities),
    )
    logger.debug(
        "Generated %d days for diet '%s' (seed=%d, repeats_forced=%d)",
        len(days),
        config.diet_key,
        seed,
        quality.repeats_forced,
    )

    return MealPlanResult(
        diet_key=config.diet_key,
        start_date=request.start_date.isoformat(),
        end_date=request.end_date.isoformat(),
        slots=request.slots,
        days=tuple(days),
        generator=GeneratorMetadata(
            mode=GENERATOR_MODE,
            attempts=1,
            seed=seed,
            max_ingredients=config.settings.max_ingredients,
            template_info=template_info,
            pool_metrics=pools.metrics,
        ),
    )
