"""Data models for template-based meal plan generation.

Configuration entities (templates, pool items, settings, name patterns) are
loaded read-only per generation call and never mutated by the generator.
A ``MealPlanResult`` is created fresh per call; retries produce a new result
instead of patching an existing one, so every model here is frozen.

Invariants are checked at construction time, which turns malformed database
rows into ``InvalidConfigError`` / ``InvalidRequestError`` before anything
reaches the generator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Mapping, Optional

from mealgen.errors import InvalidConfigError, InvalidRequestError

DEFAULT_DIET_KEY = "default"

# Structural roles inside a recipe template, in fixed order
TEMPLATE_SLOT_KEYS = ("protein", "veg1", "veg2", "fat")
FLAVOR_SLOT_KEY = "flavor"

# Meal-time roles inside a day
MEAL_SLOTS = ("breakfast", "lunch", "dinner")

POOL_CATEGORIES = ("protein", "veg", "fat", "flavor")
CORE_CATEGORIES = ("protein", "veg", "fat")

# Template slot -> pool category it is filled from
SLOT_CATEGORY = {
    "protein": "protein",
    "veg1": "veg",
    "veg2": "veg",
    "fat": "fat",
}

MAX_TEMPLATE_SLOT_GRAMS = 2000
MAX_FLAVOR_GRAMS = 500
MAX_PLAN_DAYS = 31


def _check_gram_range(
    label: str, min_g: int, default_g: int, max_g: int, ceiling: int
) -> None:
    for name, value in (("min", min_g), ("default", default_g), ("max", max_g)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise InvalidConfigError(f"{label}: {name} grams must be an integer, got {value!r}")
        if value < 1 or value > ceiling:
            raise InvalidConfigError(
                f"{label}: {name} grams must be between 1 and {ceiling}, got {value}"
            )
    if not min_g <= default_g <= max_g:
        raise InvalidConfigError(
            f"{label}: expected min <= default <= max, got {min_g}/{default_g}/{max_g}"
        )


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class TemplateSlot:
    """One structural slot of a recipe template with its serving range."""

    slot_key: str
    min_grams: int
    default_grams: int
    max_grams: int

    def __post_init__(self) -> None:
        if self.slot_key not in TEMPLATE_SLOT_KEYS:
            raise InvalidConfigError(
                f"slot_key must be one of {TEMPLATE_SLOT_KEYS}, got '{self.slot_key}'"
            )
        _check_gram_range(
            f"slot {self.slot_key}",
            self.min_grams,
            self.default_grams,
            self.max_grams,
            MAX_TEMPLATE_SLOT_GRAMS,
        )

    @property
    def category(self) -> str:
        return SLOT_CATEGORY[self.slot_key]


@dataclass(frozen=True)
class RecipeTemplate:
    """Recipe template: exactly one slot per key in ``TEMPLATE_SLOT_KEYS``.

    Attributes:
        id: Stable template key (e.g. "bowl")
        display_name: Human-readable name, used when no name pattern applies
        slots: Slots ordered protein, veg1, veg2, fat
        step_count: Fixed number of preparation steps
    """

    id: str
    display_name: str
    slots: tuple[TemplateSlot, ...]
    step_count: int = 6

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidConfigError("template id must not be empty")
        keys = [s.slot_key for s in self.slots]
        if len(keys) != len(TEMPLATE_SLOT_KEYS) or set(keys) != set(TEMPLATE_SLOT_KEYS):
            raise InvalidConfigError(
                f"template '{self.id}' must have exactly the slots "
                f"{', '.join(TEMPLATE_SLOT_KEYS)}, got {keys}"
            )
        # Normalise ordering so slot(i) lookups are positional
        ordered = tuple(sorted(self.slots, key=lambda s: TEMPLATE_SLOT_KEYS.index(s.slot_key)))
        object.__setattr__(self, "slots", ordered)

    def slot(self, slot_key: str) -> TemplateSlot:
        return self.slots[TEMPLATE_SLOT_KEYS.index(slot_key)]


@dataclass(frozen=True)
class PoolItem:
    """Admin-curated candidate ingredient for a diet and category.

    Only flavor items carry a gram range; for protein/veg/fat the template
    slot range governs the serving size.
    """

    diet_key: str
    category: str
    item_key: str
    name: str
    nevo_code: Optional[str] = None
    is_active: bool = True
    min_grams: Optional[int] = None
    default_grams: Optional[int] = None
    max_grams: Optional[int] = None
    kcal_per_100g: Optional[float] = None

    def __post_init__(self) -> None:
        if self.category not in POOL_CATEGORIES:
            raise InvalidConfigError(
                f"pool item '{self.item_key}': category must be one of "
                f"{POOL_CATEGORIES}, got '{self.category}'"
            )
        if not self.item_key or not self.name:
            raise InvalidConfigError("pool item requires item_key and name")
        grams = (self.min_grams, self.default_grams, self.max_grams)
        if self.category == "flavor":
            if any(g is None for g in grams):
                raise InvalidConfigError(
                    f"flavor item '{self.item_key}' requires min/default/max grams"
                )
            _check_gram_range(
                f"flavor item {self.item_key}",
                self.min_grams,
                self.default_grams,
                self.max_grams,
                MAX_FLAVOR_GRAMS,
            )
        elif any(g is not None for g in grams):
            raise InvalidConfigError(
                f"pool item '{self.item_key}' ({self.category}) must not carry a gram range"
            )


@dataclass(frozen=True)
class GeneratorSettings:
    """Per-diet generator tuning settings."""

    max_ingredients: int = 10
    max_flavor_items: int = 2
    protein_repeat_cap_7d: int = 2
    template_repeat_cap_7d: int = 3
    signature_retry_limit: int = 8
    veg_threshold_low_g: int = 80
    veg_threshold_mid_g: int = 150
    veg_threshold_high_g: int = 250
    veg_score_low: int = 1
    veg_score_mid: int = 2
    veg_score_high: int = 4

    # (field, lower bound, upper bound)
    _BOUNDS = (
        ("max_ingredients", len(TEMPLATE_SLOT_KEYS), 20),
        ("max_flavor_items", 0, 5),
        ("protein_repeat_cap_7d", 1, 14),
        ("template_repeat_cap_7d", 1, 21),
        ("signature_retry_limit", 1, 20),
        ("veg_threshold_low_g", 1, 2000),
        ("veg_threshold_mid_g", 1, 2000),
        ("veg_threshold_high_g", 1, 2000),
        ("veg_score_low", 0, 20),
        ("veg_score_mid", 0, 20),
        ("veg_score_high", 0, 20),
    )

    def __post_init__(self) -> None:
        for name, low, high in self._BOUNDS:
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
            if value < low or value > high:
                raise InvalidConfigError(f"{name} must be between {low} and {high}, got {value}")
        if not (
            self.veg_threshold_low_g <= self.veg_threshold_mid_g <= self.veg_threshold_high_g
        ):
            raise InvalidConfigError("veg thresholds must satisfy low <= mid <= high")
        if not self.veg_score_low <= self.veg_score_mid <= self.veg_score_high:
            raise InvalidConfigError("veg scores must satisfy low <= mid <= high")

    def to_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name, _, _ in self._BOUNDS}


@dataclass(frozen=True)
class NamePattern:
    """Meal naming pattern for a (diet, template, meal slot) combination.

    Recognised tokens: {templateName}, {protein}, {veg1}, {veg2}, {flavor}.
    """

    diet_key: str
    template_key: str
    slot: str
    pattern: str
    is_active: bool = True


@dataclass(frozen=True)
class GenerationConfig:
    """Immutable merged configuration for one diet key."""

    diet_key: str
    templates: tuple[RecipeTemplate, ...]
    pool_items_by_category: Mapping[str, tuple[PoolItem, ...]]
    settings: GeneratorSettings = field(default_factory=GeneratorSettings)
    name_patterns: tuple[NamePattern, ...] = ()

    def pool_items(self, category: str) -> tuple[PoolItem, ...]:
        return tuple(self.pool_items_by_category.get(category, ()))

    def patterns_for(self, template_key: str, slot: str) -> list[NamePattern]:
        return [
            p
            for p in self.name_patterns
            if p.is_active and p.template_key == template_key and p.slot == slot
        ]


# =============================================================================
# Merged pools (generator input)
# =============================================================================


@dataclass(frozen=True)
class PoolIngredient:
    """One eligible ingredient in the merged per-slot universe.

    ``key`` is the normalised identity (``nevo:<code>`` or ``name:<slug>``).
    """

    key: str
    name: str
    nevo_code: Optional[str] = None
    kcal_per_100g: Optional[float] = None
    source: str = "admin"  # "admin" or "catalog"


@dataclass(frozen=True)
class FlavorIngredient(PoolIngredient):
    """Flavor pool item with its own serving range."""

    min_grams: int = 1
    default_grams: int = 2
    max_grams: int = 5


@dataclass(frozen=True)
class TemplatePools:
    """Final per-category ingredient universe consumed by the generator."""

    protein: tuple[PoolIngredient, ...] = ()
    veg: tuple[PoolIngredient, ...] = ()
    fat: tuple[PoolIngredient, ...] = ()
    flavor: tuple[FlavorIngredient, ...] = ()
    metrics: Optional[dict[str, Any]] = None

    def for_category(self, category: str) -> tuple[PoolIngredient, ...]:
        if category not in POOL_CATEGORIES:
            raise KeyError(f"Unknown pool category: {category}")
        return getattr(self, category)

    def counts(self) -> dict[str, int]:
        return {cat: len(self.for_category(cat)) for cat in POOL_CATEGORIES}


# =============================================================================
# Request
# =============================================================================


@dataclass(frozen=True)
class Profile:
    """Eater profile relevant to generation."""

    diet_key: str = DEFAULT_DIET_KEY
    allergies: tuple[str, ...] = ()
    dislikes: tuple[str, ...] = ()
    calorie_target: Optional[float] = None  # kcal per day
    prep_preferences: tuple[str, ...] = ()

    @property
    def exclude_terms(self) -> list[str]:
        return [t for t in (*self.allergies, *self.dislikes) if t and t.strip()]


@dataclass(frozen=True)
class MealPlanRequest:
    """Date range (inclusive) and meal slots to fill per day."""

    start_date: date
    end_date: date
    slots: tuple[str, ...]
    profile: Profile = field(default_factory=Profile)

    def __post_init__(self) -> None:
        object.__setattr__(self, "slots", tuple(self.slots))
        if self.start_date > self.end_date:
            raise InvalidRequestError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        n_days = (self.end_date - self.start_date).days + 1
        if n_days > MAX_PLAN_DAYS:
            raise InvalidRequestError(f"plan spans {n_days} days; maximum is {MAX_PLAN_DAYS}")
        if not self.slots:
            raise InvalidRequestError("at least one meal slot is required")
        unknown = [s for s in self.slots if s not in MEAL_SLOTS]
        if unknown:
            raise InvalidRequestError(f"slots must be drawn from {MEAL_SLOTS}, got {unknown}")
        if len(set(self.slots)) != len(self.slots):
            raise InvalidRequestError(f"duplicate meal slots in {list(self.slots)}")
        target = self.profile.calorie_target
        if target is not None and target <= 0:
            raise InvalidRequestError(f"calorie_target must be positive, got {target}")

    @property
    def diet_key(self) -> str:
        return self.profile.diet_key.strip() or DEFAULT_DIET_KEY

    def dates(self) -> list[date]:
        """All dates in the range, ascending."""
        n_days = (self.end_date - self.start_date).days + 1
        return [self.start_date + timedelta(days=i) for i in range(n_days)]


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class IngredientRef:
    """Selected ingredient with grams and the range it was drawn from."""

    item_key: str
    display_name: str
    grams: int
    slot_key: str
    min_grams: int
    max_grams: int
    nevo_code: Optional[str] = None


@dataclass(frozen=True)
class Meal:
    id: str
    date: str
    slot: str
    name: str
    template_id: str
    ingredient_refs: tuple[IngredientRef, ...]

    def refs_for(self, slot_key: str) -> list[IngredientRef]:
        return [r for r in self.ingredient_refs if r.slot_key == slot_key]


@dataclass(frozen=True)
class Day:
    date: str
    meals: tuple[Meal, ...]


@dataclass(frozen=True)
class MealQuality:
    """Per-meal quality score with human-readable reasons."""

    date: str
    slot: str
    score: int
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateQuality:
    """Plan-level repetition telemetry.

    ``repeats_forced`` is the sum of the three forced counters; each forced
    repeat is a cap relaxation or an accepted duplicate signature.
    """

    repeats_forced: int = 0
    repeats_avoided: int = 0
    template_repeats_forced: int = 0
    protein_repeats_forced: int = 0
    signature_repeats_forced: int = 0
    protein_counts_top: tuple[tuple[str, int], ...] = ()
    template_counts: tuple[tuple[str, int], ...] = ()


@dataclass(frozen=True)
class TemplateInfo:
    rotation: tuple[str, ...]
    used_template_ids: tuple[str, ...]
    quality: TemplateQuality
    meal_qualities: tuple[MealQuality, ...]


@dataclass(frozen=True)
class GeneratorMetadata:
    """Telemetry block attached to every generated plan."""

    mode: str
    attempts: int
    seed: int
    max_ingredients: int
    template_info: TemplateInfo
    pool_metrics: Optional[dict[str, Any]] = None
    sanity: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class MealPlanResult:
    """A generated multi-day meal plan."""

    diet_key: str
    start_date: str
    end_date: str
    slots: tuple[str, ...]
    days: tuple[Day, ...]
    generator: GeneratorMetadata

    @property
    def template_info(self) -> TemplateInfo:
        return self.generator.template_info

    @property
    def quality(self) -> TemplateQuality:
        return self.generator.template_info.quality

    @property
    def attempts(self) -> int:
        return self.generator.attempts

    def iter_meals(self):
        for day in self.days:
            yield from day.meals

    @property
    def total_meals(self) -> int:
        return sum(len(d.meals) for d in self.days)
