"""Hard-block ingredient term enforcement."""

from __future__ import annotations

from mealgen.guardrails.enforcer import (
    GenerationOptions,
    GuardrailViolation,
    enforce_guardrails,
    scan_plan_for_terms,
)

__all__ = [
    "GenerationOptions",
    "GuardrailViolation",
    "enforce_guardrails",
    "scan_plan_for_terms",
]
