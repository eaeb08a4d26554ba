"""Error taxonomy for meal plan generation.

Every error carries a stable ``code`` so callers (CLI, admin preview, job
runners) can decide whether to retry with another seed, fall back to a cached
plan, or report the failure upstream.
"""

from __future__ import annotations

from typing import Any, Optional


class MealGenError(Exception):
    """Base exception for mealgen errors."""

    code = "MEALGEN_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidConfigError(MealGenError):
    """Raised when generator configuration rows are malformed."""

    code = "MEAL_PLAN_CONFIG_INVALID"


class InvalidRequestError(MealGenError, ValueError):
    """Raised when a meal plan request fails input validation."""

    code = "MEAL_PLAN_REQUEST_INVALID"


class InsufficientAllowedIngredientsError(MealGenError):
    """Raised when a required pool has no eligible items for the diet.

    This is a configuration defect and is never retried internally.
    """

    code = "INSUFFICIENT_ALLOWED_INGREDIENTS"

    def __init__(self, message: str, categories: Optional[list[str]] = None):
        self.categories = list(categories or [])
        super().__init__(message, {"categories": self.categories})

    @property
    def category(self) -> Optional[str]:
        """First starved category, if any."""
        return self.categories[0] if self.categories else None


class GuardrailsViolationError(MealGenError):
    """Raised when a plan still contains hard-blocked terms after the retry."""

    code = "GUARDRAILS_VIOLATION"

    def __init__(self, message: str, violations: list, attempts: int):
        self.violations = list(violations)
        self.attempts = attempts
        super().__init__(
            message,
            {
                "attempts": attempts,
                "violations": [v.to_dict() for v in self.violations],
            },
        )


class MealPlanSanityError(MealGenError):
    """Raised when a finished plan breaks a structural invariant."""

    code = "MEAL_PLAN_SANITY_FAILED"

    def __init__(self, message: str, issues: list):
        self.issues = list(issues)
        super().__init__(message, {"issues": [i.to_dict() for i in self.issues]})
