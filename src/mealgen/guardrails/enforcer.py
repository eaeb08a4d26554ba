"""Hard-block term enforcement around the template generator.

A generated plan is scanned for guardrail terms in ingredient and meal names.
A violating plan is regenerated exactly once with ``seed + 1``; if that plan
still violates, ``GuardrailsViolationError`` is raised. A plan with
violations is never returned.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from mealgen.data.pool_sanitizer import matches_any_term, normalize_terms
from mealgen.errors import GuardrailsViolationError
from mealgen.templates.generator import generate_plan
from mealgen.templates.models import (
    GenerationConfig,
    MealPlanRequest,
    MealPlanResult,
    TemplatePools,
)

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 2


@dataclass(frozen=True)
class GenerationOptions:
    """Feature switches decided once by the caller.

    Attributes:
        enforce_guardrails: Scan for hard-block terms and retry once
        locale: Locale of the guardrail term list
        sanity_check: Run the structural sanity check on the final plan
    """

    enforce_guardrails: bool = True
    locale: str = "nl"
    sanity_check: bool = True


@dataclass(frozen=True)
class GuardrailViolation:
    """A blocked term found in a meal."""

    term: str
    date: str
    slot: str
    meal_id: str
    ingredient: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "date": self.date,
            "slot": self.slot,
            "meal_id": self.meal_id,
            "ingredient": self.ingredient,
        }


def scan_plan_for_terms(plan: MealPlanResult, terms: Iterable[str]) -> list[GuardrailViolation]:
    """Find every meal containing a blocked term.

    Ingredients are checked first; the meal name is only reported when no
    ingredient of that meal matched.
    """
    normalized = normalize_terms(terms)
    if not normalized:
        return []

    violations: list[GuardrailViolation] = []
    for meal in plan.iter_meals():
        found = False
        for ref in meal.ingredient_refs:
            term = matches_any_term(ref.display_name, normalized)
            if term is not None:
                found = True
                violations.append(
                    GuardrailViolation(
                        term=term,
                        date=meal.date,
                        slot=meal.slot,
                        meal_id=meal.id,
                        ingredient=ref.display_name,
                    )
                )
        if not found:
            term = matches_any_term(meal.name, normalized)
            if term is not None:
                violations.append(
                    GuardrailViolation(term=term, date=meal.date, slot=meal.slot, meal_id=meal.id)
                )
    return violations


def enforce_guardrails(
    request: MealPlanRequest,
    config: GenerationConfig,
    pools: TemplatePools,
    seed: int,
    terms: Iterable[str],
    options: Optional[GenerationOptions] = None,
) -> MealPlanResult:
    """Generate a plan that contains no blocked term.

    Args:
        request: Validated meal plan request
        config: Merged generator configuration
        pools: Merged ingredient pools
        seed: Seed for the first attempt; the retry uses ``seed + 1``
        terms: Hard-block terms for the diet and locale
        options: Generation switches; guardrails are skipped when disabled

    Returns:
        MealPlanResult with ``generator.attempts`` set to 1 or 2.

    Raises:
        GuardrailsViolationError: If both attempts contain a blocked term.
        InsufficientAllowedIngredientsError: Propagated from the generator.
    """
    options = options or GenerationOptions()
    terms = list(terms)

    if not options.enforce_guardrails or not normalize_terms(terms):
        return generate_plan(request, config, pools, seed)

    violations: list[GuardrailViolation] = []
    for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
        attempt_seed = seed + attempt - 1
        plan = generate_plan(request, config, pools, attempt_seed)
        violations = scan_plan_for_terms(plan, terms)
        if not violations:
            return dataclasses.replace(
                plan, generator=dataclasses.replace(plan.generator, attempts=attempt)
            )
        logger.info(
            "Guardrails: attempt %d (seed=%d) has %d violation(s): %s",
            attempt,
            attempt_seed,
            len(violations),
            ", ".join(sorted({v.term for v in violations})),
        )

    raise GuardrailsViolationError(
        f"Plan still contains blocked terms after {MAX_GENERATION_ATTEMPTS} attempts",
        violations,
        attempts=MAX_GENERATION_ATTEMPTS,
    )
