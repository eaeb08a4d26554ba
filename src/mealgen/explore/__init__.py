"""Explore module for tuning advice, variety reporting and plan comparison."""

from __future__ import annotations

from mealgen.explore.advisor import get_tuning_suggestions
from mealgen.explore.compare import compare_plans
from mealgen.explore.scorecard import build_variety_scorecard

__all__ = [
    "build_variety_scorecard",
    "compare_plans",
    "get_tuning_suggestions",
]
