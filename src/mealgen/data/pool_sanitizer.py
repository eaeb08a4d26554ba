"""Candidate pool sanitization: dedupe, exclude-term filtering and metrics.

Pure functions, no I/O. Usage:
    from mealgen.data.pool_sanitizer import sanitize_pool

    result = sanitize_pool(raw, exclude_terms=["varkensvlees"])
    result.pool.proteins, result.metrics.removed_by_guardrails_terms
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from mealgen.errors import InvalidConfigError

logger = logging.getLogger(__name__)

# Categories reported in metrics; fruits are merged into vegetables downstream
CANDIDATE_CATEGORIES = ("proteins", "vegetables", "fruits", "fats")


@dataclass(frozen=True)
class Candidate:
    """Raw ingredient candidate from the external catalog."""

    name: str
    nevo_code: Optional[str] = None
    kcal_per_100g: Optional[float] = None

    @property
    def key(self) -> str:
        return candidate_key(self.name, self.nevo_code)


@dataclass(frozen=True)
class CandidatePool:
    proteins: tuple[Candidate, ...] = ()
    vegetables: tuple[Candidate, ...] = ()
    fruits: tuple[Candidate, ...] = ()
    fats: tuple[Candidate, ...] = ()

    def counts(self) -> dict[str, int]:
        return {cat: len(getattr(self, cat)) for cat in CANDIDATE_CATEGORIES}


@dataclass(frozen=True)
class PoolMetrics:
    """Observability counts for ``metadata.generator.pool_metrics``."""

    before: dict[str, int] = field(default_factory=dict)
    after: dict[str, int] = field(default_factory=dict)
    removed_duplicates: int = 0
    removed_by_profile_terms: int = 0
    removed_by_guardrails_terms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "before": dict(self.before),
            "after": dict(self.after),
            "removed_duplicates": self.removed_duplicates,
            "removed_by_profile_terms": self.removed_by_profile_terms,
            "removed_by_guardrails_terms": self.removed_by_guardrails_terms,
        }


@dataclass(frozen=True)
class SanitizedPool:
    pool: CandidatePool
    metrics: PoolMetrics


def normalize_name(name: str) -> str:
    """Trim, lowercase, collapse whitespace and drop punctuation."""
    text = re.sub(r"\s+", " ", name.strip().lower())
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def slugify(name: str) -> str:
    return normalize_name(name).replace(" ", "-")


def candidate_key(name: str, nevo_code: Optional[str] = None) -> str:
    """Stable item key: ``nevo:<code>`` when a catalog code exists, else ``name:<slug>``."""
    code = (nevo_code or "").strip()
    if code:
        return f"nevo:{code}"
    return f"name:{slugify(name) or 'unknown'}"


def normalize_terms(terms: Optional[Iterable[str]]) -> list[str]:
    return [t for t in (normalize_name(term) for term in (terms or [])) if t]


def matches_any_term(name: str, normalized_terms: Sequence[str]) -> Optional[str]:
    """First term contained in the normalised name, or None."""
    normalized = normalize_name(name)
    for term in normalized_terms:
        if term in normalized:
            return term
    return None


def dedupe_candidates(candidates: Sequence[Candidate]) -> tuple[list[Candidate], int]:
    """Keep the first candidate per item key; returns (kept, removed count)."""
    seen: set[str] = set()
    kept: list[Candidate] = []
    for c in candidates:
        if c.key in seen:
            continue
        seen.add(c.key)
        kept.append(c)
    return kept, len(candidates) - len(kept)


def filter_by_terms(
    candidates: Sequence[Candidate], normalized_terms: Sequence[str]
) -> tuple[list[Candidate], int]:
    """Drop candidates whose name contains any term; returns (kept, removed count)."""
    if not normalized_terms:
        return list(candidates), 0
    kept = [c for c in candidates if matches_any_term(c.name, normalized_terms) is None]
    return kept, len(candidates) - len(kept)


def candidate_pool_from_dict(data: Mapping[str, Any]) -> CandidatePool:
    """Build a CandidatePool from ``{category: [{name, nevo_code, kcal_per_100g}]}``.

    Plain strings are accepted as names.

    Raises:
        InvalidConfigError: If a category is not a list or a row has no name.
    """
    if not isinstance(data, Mapping):
        raise InvalidConfigError("Candidate pool must be a mapping of categories")

    def _to_candidates(cat: str, rows: Any) -> tuple[Candidate, ...]:
        if rows is None:
            return ()
        if not isinstance(rows, list):
            raise InvalidConfigError(f"Candidates for '{cat}' must be a list")
        out = []
        for i, row in enumerate(rows):
            if isinstance(row, str):
                out.append(Candidate(name=row))
                continue
            if not isinstance(row, Mapping) or not row.get("name"):
                raise InvalidConfigError(
                    f"Candidate {cat}[{i}] needs a name, got {row!r}", {"category": cat}
                )
            code = row.get("nevo_code")
            kcal = row.get("kcal_per_100g")
            try:
                kcal_value = float(kcal) if kcal is not None else None
            except (TypeError, ValueError) as e:
                raise InvalidConfigError(
                    f"Candidate {cat}[{i}]: kcal_per_100g must be a number, got {kcal!r}",
                    {"category": cat},
                ) from e
            out.append(
                Candidate(
                    name=str(row["name"]),
                    nevo_code=str(code) if code is not None else None,
                    kcal_per_100g=kcal_value,
                )
            )
        return tuple(out)

    return CandidatePool(**{cat: _to_candidates(cat, data.get(cat)) for cat in CANDIDATE_CATEGORIES})


def sanitize_pool(
    raw: CandidatePool,
    exclude_terms: Optional[Iterable[str]] = None,
    profile_terms: Optional[Iterable[str]] = None,
) -> SanitizedPool:
    """Dedupe each category and remove blocked candidates.

    Args:
        raw: Raw candidates per category
        exclude_terms: Hard-block guardrail terms; removals are counted in
            ``removed_by_guardrails_terms``
        profile_terms: Allergies/dislikes; removals are counted in
            ``removed_by_profile_terms``

    Returns:
        SanitizedPool with the filtered pool and metrics.
    """
    guard_terms = normalize_terms(exclude_terms)
    user_terms = normalize_terms(profile_terms)

    removed_dupes = 0
    removed_profile = 0
    removed_guard = 0
    cleaned: dict[str, tuple[Candidate, ...]] = {}

    for cat in CANDIDATE_CATEGORIES:
        kept, dupes = dedupe_candidates(getattr(raw, cat))
        kept, by_profile = filter_by_terms(kept, user_terms)
        kept, by_guard = filter_by_terms(kept, guard_terms)
        removed_dupes += dupes
        removed_profile += by_profile
        removed_guard += by_guard
        cleaned[cat] = tuple(kept)

    pool = CandidatePool(**cleaned)
    logger.debug(
        "Sanitized candidates: %d duplicates, %d profile, %d guardrail removals",
        removed_dupes,
        removed_profile,
        removed_guard,
    )
    return SanitizedPool(
        pool=pool,
        metrics=PoolMetrics(
            before=raw.counts(),
            after=pool.counts(),
            removed_duplicates=removed_dupes,
            removed_by_profile_terms=removed_profile,
            removed_by_guardrails_terms=removed_guard,
        ),
    )
