"""Tuning advisor: configuration suggestions from a generated plan.

Read-only analysis of a plan's telemetry plus a summary of the config that
produced it. Never mutates configuration.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

from mealgen.templates.models import (
    GenerationConfig,
    GeneratorSettings,
    MealPlanResult,
    TemplatePools,
)

ACTION_KINDS = ("setting", "pool", "slot")
SEVERITIES = ("warn", "info")

MAX_SUGGESTIONS = 8
VEG_MONOTONY_THRESHOLD = 3
# Repeat caps at or above this are not worth raising further
CAP_SUGGESTION_CEILING = 5
# Minimum pool sizes before variety suffers
MIN_POOL_SIZES = {"protein": 3, "veg": 3, "fat": 2}


@dataclass(frozen=True)
class AdvisorConfig:
    """Config summary the advisor needs; buildable from admin data."""

    diet_key: str
    pool_counts: dict[str, int]
    settings: GeneratorSettings = field(default_factory=GeneratorSettings)
    template_keys: tuple[str, ...] = ()


def advisor_config_from(config: GenerationConfig, pools: Optional[TemplatePools] = None) -> AdvisorConfig:
    """Summarise a config; merged pool counts are preferred over admin counts."""
    if pools is not None:
        counts = pools.counts()
    else:
        counts = {cat: len(items) for cat, items in config.pool_items_by_category.items()}
    return AdvisorConfig(
        diet_key=config.diet_key,
        pool_counts=counts,
        settings=config.settings,
        template_keys=tuple(t.id for t in config.templates),
    )


@dataclass(frozen=True)
class TuningAction:
    kind: str
    target: str
    hint: str

    def __post_init__(self) -> None:
        if self.kind not in ACTION_KINDS:
            raise ValueError(f"kind must be one of {ACTION_KINDS}, got {self.kind!r}")

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "target": self.target, "hint": self.hint}


@dataclass(frozen=True)
class TuningSuggestion:
    """One suggestion with up to three concrete actions."""

    severity: str
    code: str
    title: str
    actions: tuple[TuningAction, ...]

    @property
    def kind(self) -> str:
        return self.actions[0].kind

    @property
    def target(self) -> str:
        return self.actions[0].target

    @property
    def hint(self) -> str:
        return self.actions[0].hint

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "title": self.title,
            "actions": [a.to_dict() for a in self.actions],
        }


def _repeats_forced(plan: MealPlanResult, cfg: AdvisorConfig) -> Optional[TuningSuggestion]:
    q = plan.quality
    if not (q.repeats_forced or q.protein_repeats_forced or q.template_repeats_forced):
        return None
    s = cfg.settings
    actions = [
        TuningAction(
            "pool",
            f"pools:{cfg.diet_key}",
            "Add protein/veg/fat items to reduce repetition.",
        )
    ]
    if s.protein_repeat_cap_7d < CAP_SUGGESTION_CEILING:
        actions.append(
            TuningAction(
                "setting",
                "protein_repeat_cap_7d",
                f"Consider +1 (currently {s.protein_repeat_cap_7d}).",
            )
        )
    if s.template_repeat_cap_7d < CAP_SUGGESTION_CEILING:
        actions.append(
            TuningAction(
                "setting",
                "template_repeat_cap_7d",
                f"Consider +1 (currently {s.template_repeat_cap_7d}).",
            )
        )
    if q.protein_counts_top:
        top = ", ".join(f"{key} ({count}x)" for key, count in q.protein_counts_top[:3])
        actions.append(TuningAction("pool", "protein", f"Most repeated: {top}."))
    if q.template_counts:
        ranked = sorted(q.template_counts, key=lambda kv: (-kv[1], kv[0]))[:2]
        top = ", ".join(f"{key} ({count}x)" for key, count in ranked)
        actions.append(TuningAction("slot", "templates", f"Most used: {top}."))
    return TuningSuggestion("warn", "REPEATS_FORCED", "Forced repeats in plan", tuple(actions[:3]))


def _pool_low(cfg: AdvisorConfig) -> Optional[TuningSuggestion]:
    low = [
        f"{cat} ({cfg.pool_counts.get(cat, 0)})"
        for cat, minimum in MIN_POOL_SIZES.items()
        if cfg.pool_counts.get(cat, 0) < minimum
    ]
    if not low:
        return None
    return TuningSuggestion(
        "warn",
        "POOL_LOW",
        "Pools too small for variety",
        (
            TuningAction(
                "pool",
                f"pools:{cfg.diet_key}:category",
                f"Add at least 5-10 items to: {', '.join(low)}.",
            ),
        ),
    )


def _sanity(plan: MealPlanResult, cfg: AdvisorConfig) -> list[TuningSuggestion]:
    sanity = plan.generator.sanity or {}
    codes = {issue.get("code") for issue in sanity.get("issues") or []}
    out: list[TuningSuggestion] = []
    if "INGREDIENT_COUNT_OUT_OF_RANGE" in codes:
        actions = [
            TuningAction(
                "setting",
                "max_ingredients",
                f"Adjust (currently {cfg.settings.max_ingredients}) or check slot gram ranges.",
            )
        ]
        if cfg.template_keys:
            actions.append(TuningAction("slot", "templates:slots", "Raise veg2/fat default_g if needed."))
        out.append(
            TuningSuggestion(
                "warn", "SANITY_INGREDIENT_COUNT", "Ingredient count out of range", tuple(actions)
            )
        )
    if "PLACEHOLDER_NAME" in codes or "EMPTY_NAME" in codes:
        out.append(
            TuningSuggestion(
                "warn",
                "SANITY_PLACEHOLDER",
                "Placeholder meal names",
                (
                    TuningAction("pool", f"pools:{cfg.diet_key}", "Widen pools for more variety."),
                    TuningAction("slot", "name_patterns", "Add name patterns for every template and slot."),
                ),
            )
        )
    if "DUPLICATE_INGREDIENT" in codes:
        out.append(
            TuningSuggestion(
                "warn",
                "SANITY_DUPLICATE_INGREDIENT",
                "Same ingredient twice in a meal",
                (
                    TuningAction(
                        "pool",
                        f"pools:{cfg.diet_key}:veg",
                        "Add vegetables so veg1 and veg2 can differ.",
                    ),
                ),
            )
        )
    if "EMPTY_DAY" in codes or "MISSING_SLOT" in codes:
        out.append(
            TuningSuggestion(
                "warn",
                "SANITY_EMPTY_DAY",
                "Day without meals",
                (
                    TuningAction("pool", f"pools:{cfg.diet_key}", "Pools or caps too strict; add items."),
                    TuningAction(
                        "setting",
                        "protein_repeat_cap_7d / template_repeat_cap_7d",
                        "Consider raising the caps.",
                    ),
                ),
            )
        )
    return out


def _veg_monotony(plan: MealPlanResult, cfg: AdvisorConfig) -> Optional[TuningSuggestion]:
    counts = Counter(
        ref.item_key
        for meal in plan.iter_meals()
        for ref in meal.ingredient_refs
        if ref.slot_key in ("veg1", "veg2")
    )
    if not counts:
        return None
    key, count = max(counts.items(), key=lambda kv: (kv[1], kv[0]))
    if count < VEG_MONOTONY_THRESHOLD:
        return None
    return TuningSuggestion(
        "info",
        "VEG_MONOTONY",
        "Same vegetable repeated often",
        (
            TuningAction("pool", f"pools:{cfg.diet_key}:veg", f"Expand the veg pool ({key} used {count}x)."),
            TuningAction("setting", "protein_repeat_cap_7d", "Optionally adjust to steer repetition."),
        ),
    )


def _low_veg_scores(plan: MealPlanResult, cfg: AdvisorConfig) -> Optional[TuningSuggestion]:
    s = cfg.settings
    scores = [mq.score for mq in plan.template_info.meal_qualities]
    if not scores or s.veg_score_low == s.veg_score_mid:
        return None
    low = sum(1 for score in scores if score <= s.veg_score_low)
    if low * 2 < len(scores):
        return None
    return TuningSuggestion(
        "info",
        "VEG_PORTIONS_LOW",
        "Vegetable portions often below target",
        (
            TuningAction(
                "slot",
                "templates:slots:veg1/veg2",
                f"Raise veg default_g; {low} of {len(scores)} meals are under "
                f"{s.veg_threshold_low_g}g vegetables.",
            ),
        ),
    )


def get_tuning_suggestions(plan: MealPlanResult, advisor_config: AdvisorConfig) -> list[TuningSuggestion]:
    """Deterministic suggestions, warnings first, at most ``MAX_SUGGESTIONS``."""
    out: list[TuningSuggestion] = []
    for suggestion in (
        _repeats_forced(plan, advisor_config),
        _pool_low(advisor_config),
        *_sanity(plan, advisor_config),
        _veg_monotony(plan, advisor_config),
        _low_veg_scores(plan, advisor_config),
    ):
        if suggestion is not None:
            out.append(suggestion)

    # Stable sort keeps rule order within a severity
    out.sort(key=lambda s: SEVERITIES.index(s.severity))
    return out[:MAX_SUGGESTIONS]
