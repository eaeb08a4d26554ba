"""Structural checks on generated plans."""

from __future__ import annotations

from mealgen.validation.sanity import SanityIssue, SanityResult, validate_sanity

__all__ = ["SanityIssue", "SanityResult", "validate_sanity"]
