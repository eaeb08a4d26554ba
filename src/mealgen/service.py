"""End-to-end meal plan generation.

All I/O (config rows, catalog candidates, guardrail terms) happens here,
before generation starts. The generator, enforcer and validator below it are
pure.

Usage:
    from mealgen.data.sources import YamlSource
    from mealgen.service import generate_meal_plan

    source = YamlSource.from_file("generator.yaml")
    plan = generate_meal_plan(request, source, seed=0)
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from mealgen.data.config_loader import load_generation_config
from mealgen.data.pool_merger import merge_pools
from mealgen.data.pool_sanitizer import PoolMetrics, SanitizedPool, sanitize_pool
from mealgen.data.sources import CandidatePoolSource, ConfigSource, GuardrailTermSource
from mealgen.errors import MealPlanSanityError
from mealgen.explore.advisor import (
    AdvisorConfig,
    TuningSuggestion,
    advisor_config_from,
    get_tuning_suggestions,
)
from mealgen.explore.scorecard import VarietyScorecard, VarietyTargets, build_variety_scorecard
from mealgen.guardrails.enforcer import GenerationOptions, enforce_guardrails
from mealgen.templates.models import GenerationConfig, MealPlanRequest, MealPlanResult, TemplatePools
from mealgen.validation.sanity import validate_sanity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sources:
    """The three collaborators; one object may play every role."""

    config: ConfigSource
    candidates: Optional[CandidatePoolSource] = None
    guardrail_terms: Optional[GuardrailTermSource] = None

    @classmethod
    def single(cls, source) -> "Sources":
        return cls(config=source, candidates=source, guardrail_terms=source)


@dataclass(frozen=True)
class PreparedInputs:
    """Everything the generator needs, fetched and merged."""

    config: GenerationConfig
    pools: TemplatePools
    guardrail_terms: list[str]
    sanitized: Optional[SanitizedPool] = None


@dataclass(frozen=True)
class GenerationPreview:
    """Plan plus read-only analysis, for admin preview and compare."""

    plan: MealPlanResult
    suggestions: list[TuningSuggestion]
    scorecard: VarietyScorecard


def _as_sources(sources: Union[Sources, object]) -> Sources:
    return sources if isinstance(sources, Sources) else Sources.single(sources)


def prepare_inputs(
    sources: Union[Sources, object],
    diet_key: str,
    profile_terms: Sequence[str] = (),
    options: Optional[GenerationOptions] = None,
) -> PreparedInputs:
    """Load config, candidates and terms, then sanitize and merge the pools.

    Args:
        sources: A ``Sources`` bundle or one object implementing all three roles
        diet_key: Diet to load configuration for
        profile_terms: Allergies and dislikes to exclude from every pool
        options: Generation switches (guardrails, locale)
    """
    options = options or GenerationOptions()
    sources = _as_sources(sources)
    profile_terms = list(profile_terms)

    config = load_generation_config(sources.config, diet_key)

    terms: list[str] = []
    if options.enforce_guardrails and sources.guardrail_terms is not None:
        terms = sources.guardrail_terms.fetch_terms(diet_key, options.locale)
        logger.debug("Loaded %d guardrail terms for %s/%s", len(terms), diet_key, options.locale)

    sanitized = None
    metrics: Optional[PoolMetrics] = None
    if sources.candidates is not None:
        raw = sources.candidates.fetch_candidates(diet_key)
        sanitized = sanitize_pool(raw, exclude_terms=terms, profile_terms=profile_terms)
        metrics = sanitized.metrics

    pools = merge_pools(
        config.pool_items_by_category,
        sanitized.pool if sanitized is not None else None,
        exclude_terms=[*profile_terms, *terms],
        metrics=metrics,
    )
    return PreparedInputs(config=config, pools=pools, guardrail_terms=terms, sanitized=sanitized)


def generate_meal_plan(
    request: MealPlanRequest,
    sources: Union[Sources, object],
    seed: int = 0,
    options: Optional[GenerationOptions] = None,
) -> MealPlanResult:
    """Generate a guarded, sanity-checked meal plan.

    Args:
        request: Validated meal plan request
        sources: A ``Sources`` bundle, or one object implementing all three
            source interfaces (e.g. ``YamlSource``)
        seed: Master seed
        options: Generation switches

    Returns:
        MealPlanResult with pool metrics and the sanity result attached.

    Raises:
        InvalidConfigError: Malformed configuration rows.
        InsufficientAllowedIngredientsError: A core pool is empty.
        GuardrailsViolationError: Blocked terms after the single retry.
        MealPlanSanityError: The final plan breaks a structural invariant.
    """
    options = options or GenerationOptions()
    inputs = prepare_inputs(
        sources, request.diet_key, request.profile.exclude_terms, options
    )

    plan = enforce_guardrails(
        request, inputs.config, inputs.pools, seed, inputs.guardrail_terms, options
    )

    if options.sanity_check:
        sanity = validate_sanity(plan)
        if not sanity.ok:
            logger.warning("Sanity check failed with %d issue(s)", len(sanity.issues))
            raise MealPlanSanityError(
                f"Generated plan failed {len(sanity.issues)} sanity check(s): "
                + "; ".join(sanity.messages[:3]),
                sanity.issues,
            )
        plan = dataclasses.replace(
            plan, generator=dataclasses.replace(plan.generator, sanity=sanity.to_dict())
        )

    logger.info(
        "Generated %d meals for diet '%s' (seed=%d, attempts=%d)",
        plan.total_meals,
        plan.diet_key,
        seed,
        plan.attempts,
    )
    return plan


def preview_generation(
    request: MealPlanRequest,
    sources: Union[Sources, object],
    seed: int = 0,
    options: Optional[GenerationOptions] = None,
    targets: Optional[VarietyTargets] = None,
) -> GenerationPreview:
    """Generate a plan and attach tuning suggestions and a variety scorecard.

    Sanity issues do not abort a preview; they are recorded on the plan so the
    advisor can turn them into suggestions.
    """
    options = options or GenerationOptions()
    inputs = prepare_inputs(
        sources, request.diet_key, request.profile.exclude_terms, options
    )
    plan = enforce_guardrails(
        request, inputs.config, inputs.pools, seed, inputs.guardrail_terms, options
    )
    sanity = validate_sanity(plan)
    plan = dataclasses.replace(
        plan, generator=dataclasses.replace(plan.generator, sanity=sanity.to_dict())
    )
    suggestions = get_tuning_suggestions(plan, advisor_config_from(inputs.config, inputs.pools))
    return GenerationPreview(
        plan=plan,
        suggestions=suggestions,
        scorecard=build_variety_scorecard(plan, targets),
    )


def load_advisor_config(
    sources: Union[Sources, object],
    diet_key: str,
    options: Optional[GenerationOptions] = None,
) -> AdvisorConfig:
    """Advisor summary for ``diet_key`` using the merged pool sizes."""
    inputs = prepare_inputs(sources, diet_key, options=options)
    return advisor_config_from(inputs.config, inputs.pools)
