"""Gram assignment for template slots.

Slots get their default grams. When the profile has a daily calorie target
and calorie data is known for every core ingredient, quantities are scaled
with a small QP:

    min ||x - default_grams||^2
    s.t. target * (1 - tol) <= sum(kcal_i * x_i / 100) <= target * (1 + tol)
         min_grams_i <= x_i <= max_grams_i

The meal target is the daily target split evenly across the requested slots.
"""

from __future__ import annotations

import logging
import warnings
from typing import Optional, Sequence

import numpy as np
from qpsolvers import solve_qp
from qpsolvers.exceptions import ProblemError, SolverError
from scipy.sparse import csc_matrix, identity

from mealgen.templates.models import FlavorIngredient, PoolIngredient, TemplateSlot
from mealgen.templates.rng import SplitMix64

logger = logging.getLogger(__name__)

CALORIE_TOLERANCE = 0.10


def meal_calorie_target(daily_target: Optional[float], slots_per_day: int) -> Optional[float]:
    if daily_target is None or slots_per_day <= 0:
        return None
    return daily_target / slots_per_day


def default_grams(slots: Sequence[TemplateSlot]) -> list[int]:
    return [s.default_grams for s in slots]


def scale_to_calorie_target(
    slots: Sequence[TemplateSlot],
    ingredients: Sequence[PoolIngredient],
    target_kcal: float,
    tolerance: float = CALORIE_TOLERANCE,
) -> Optional[list[int]]:
    """Solve for grams closest to the defaults that hit the calorie band.

    Args:
        slots: Template slots, aligned with ``ingredients``
        ingredients: Selected core ingredients
        target_kcal: Calorie target for this meal
        tolerance: Relative half-width of the accepted calorie band

    Returns:
        Whole grams per slot (clamped into slot range), or None when
        calorie data is missing or the band is unreachable.
    """
    if any(i.kcal_per_100g is None for i in ingredients):
        return None

    n_vars = len(slots)
    defaults = np.array([s.default_grams for s in slots], dtype=float)
    lb = np.array([s.min_grams for s in slots], dtype=float)
    ub = np.array([s.max_grams for s in slots], dtype=float)

    # ||x - d||^2 = x'x - 2 d'x + const  ->  P = 2I, q = -2d
    P = csc_matrix(2.0 * identity(n_vars))
    q = -2.0 * defaults

    cal_row = np.array([float(i.kcal_per_100g) / 100.0 for i in ingredients])
    G = csc_matrix(np.vstack([-cal_row, cal_row]))
    h = np.array([-target_kcal * (1.0 - tolerance), target_kcal * (1.0 + tolerance)])

    try:
        with warnings.catch_warnings():
            # Infeasible bands are reported through the returned None
            warnings.simplefilter("ignore", UserWarning)
            solution = solve_qp(P=P, q=q, G=G, h=h, lb=lb, ub=ub, solver="clarabel")
    except (ProblemError, SolverError) as e:
        logger.debug("Calorie scaling QP failed: %s", e)
        return None

    if solution is None:
        return None

    return [
        int(min(max(round(float(x)), s.min_grams), s.max_grams))
        for x, s in zip(solution, slots)
    ]


def assign_core_grams(
    slots: Sequence[TemplateSlot],
    ingredients: Sequence[PoolIngredient],
    target_kcal: Optional[float],
) -> tuple[list[int], Optional[str]]:
    """Grams for the four core slots, plus a quality reason when relevant."""
    if target_kcal is None:
        return default_grams(slots), None

    scaled = scale_to_calorie_target(slots, ingredients, target_kcal)
    if scaled is None:
        if any(i.kcal_per_100g is None for i in ingredients):
            return default_grams(slots), "Calorie data incomplete; default portions used"
        return default_grams(slots), "Calorie target unreachable within slot ranges"
    return scaled, f"Portions scaled toward {target_kcal:.0f} kcal"


def flavor_grams(item: FlavorIngredient, rng: SplitMix64) -> int:
    """Uniform seeded grams within the flavor item's own range."""
    return rng.randint(item.min_grams, item.max_grams)
