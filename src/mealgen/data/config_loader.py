"""Generator configuration loading and diet/default merging.

Every configuration table follows one rule: rows tagged with the requested
diet key take precedence, rows tagged ``"default"`` fill the gaps. Rows are
validated here, at the boundary, so the generator only ever sees a
well-formed ``GenerationConfig``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from mealgen.errors import InvalidConfigError
from mealgen.templates.models import (
    DEFAULT_DIET_KEY,
    POOL_CATEGORIES,
    GenerationConfig,
    GeneratorSettings,
    NamePattern,
    PoolItem,
    RecipeTemplate,
    TemplateSlot,
)

if TYPE_CHECKING:
    from mealgen.data.sources import ConfigSource

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


@dataclass(frozen=True)
class ConfigRows:
    """Raw configuration rows for a diet key and the default key."""

    templates: tuple[Row, ...] = ()
    pool_items: tuple[Row, ...] = ()
    generator_settings: tuple[Row, ...] = ()
    name_patterns: tuple[Row, ...] = ()


def effective_diet_key(diet_key: Optional[str]) -> str:
    return (diet_key or "").strip() or DEFAULT_DIET_KEY


def _as_int(value: Any, label: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidConfigError(f"{label}: expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise InvalidConfigError(f"{label}: expected an integer, got {value!r}")


def _as_float(value: Any, label: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"{label}: expected a number, got {value!r}") from e


def _row_diet(row: Row) -> str:
    return effective_diet_key(row.get("diet_key"))


def _rows_for(rows: Iterable[Row], diet_key: str) -> tuple[list[Row], list[Row]]:
    """Split rows into (default rows, diet rows); other diets are ignored."""
    defaults = [r for r in rows if _row_diet(r) == DEFAULT_DIET_KEY]
    if diet_key == DEFAULT_DIET_KEY:
        return defaults, []
    return defaults, [r for r in rows if _row_diet(r) == diet_key]


def _is_active(row: Row) -> bool:
    return bool(row.get("is_active", True))


# =============================================================================
# Templates
# =============================================================================


def parse_template(row: Row) -> RecipeTemplate:
    """Build a RecipeTemplate from a row with nested ``slots``."""
    key = str(row.get("template_key") or row.get("id") or "")
    slots = tuple(
        TemplateSlot(
            slot_key=str(s.get("slot_key") or s.get("slot")),
            min_grams=_as_int(s.get("min_g", s.get("min_grams")), f"{key}.min_g"),
            default_grams=_as_int(s.get("default_g", s.get("default_grams")), f"{key}.default_g"),
            max_grams=_as_int(s.get("max_g", s.get("max_grams")), f"{key}.max_g"),
        )
        for s in row.get("slots") or []
    )
    return RecipeTemplate(
        id=key,
        display_name=str(row.get("display_name") or row.get("name_nl") or key),
        slots=slots,
        step_count=_as_int(row.get("step_count", row.get("max_steps")), f"{key}.step_count") or 6,
    )


def merge_templates(rows: Iterable[Row], diet_key: str) -> tuple[RecipeTemplate, ...]:
    """Active, structurally valid templates; invalid ones are skipped."""
    defaults, diet_rows = _rows_for(list(rows), diet_key)
    by_key: dict[str, Row] = {}
    for row in [*defaults, *diet_rows]:
        by_key[str(row.get("template_key") or row.get("id") or "")] = row

    templates: list[RecipeTemplate] = []
    for key, row in by_key.items():
        if not _is_active(row):
            continue
        try:
            templates.append(parse_template(row))
        except InvalidConfigError as e:
            logger.debug("Skipping template '%s': %s", key, e)
    return tuple(templates)


# =============================================================================
# Pool items
# =============================================================================


def parse_pool_item(row: Row) -> PoolItem:
    item_key = str(row.get("item_key") or "")
    code = row.get("nevo_code")
    return PoolItem(
        diet_key=_row_diet(row),
        category=str(row.get("category") or ""),
        item_key=item_key,
        name=str(row.get("name") or item_key),
        nevo_code=str(code) if code not in (None, "") else None,
        is_active=_is_active(row),
        min_grams=_as_int(row.get("min_g"), f"{item_key}.min_g"),
        default_grams=_as_int(row.get("default_g"), f"{item_key}.default_g"),
        max_grams=_as_int(row.get("max_g"), f"{item_key}.max_g"),
        kcal_per_100g=_as_float(row.get("kcal_per_100g"), f"{item_key}.kcal_per_100g"),
    )


def merge_pool_items(rows: Iterable[Row], diet_key: str) -> dict[str, tuple[PoolItem, ...]]:
    """Active pool items per category, deduplicated by (category, item_key).

    Raises:
        InvalidConfigError: If an active row is malformed.
    """
    defaults, diet_rows = _rows_for(list(rows), diet_key)
    by_key: dict[tuple[str, str], PoolItem] = {}
    for row in [*defaults, *diet_rows]:
        if not _is_active(row):
            continue
        item = parse_pool_item(row)
        by_key[(item.category, item.item_key)] = item

    return {
        cat: tuple(item for (c, _), item in by_key.items() if c == cat)
        for cat in POOL_CATEGORIES
    }


# =============================================================================
# Settings and name patterns
# =============================================================================


def parse_settings(row: Optional[Row]) -> GeneratorSettings:
    """Settings from a row; missing fields fall back to the built-in defaults."""
    if row is None:
        return GeneratorSettings()
    base = GeneratorSettings().to_dict()
    values = {
        name: _as_int(row[name], name) if row.get(name) is not None else default
        for name, default in base.items()
    }
    return GeneratorSettings(**values)


def resolve_settings(rows: Iterable[Row], diet_key: str) -> GeneratorSettings:
    defaults, diet_rows = _rows_for(list(rows), diet_key)
    row = diet_rows[0] if diet_rows else (defaults[0] if defaults else None)
    return parse_settings(row)


def merge_name_patterns(rows: Iterable[Row], diet_key: str) -> tuple[NamePattern, ...]:
    """Diet patterns replace default patterns per (template_key, slot)."""
    defaults, diet_rows = _rows_for([r for r in rows if _is_active(r)], diet_key)

    def _group(group_rows: list[Row]) -> dict[tuple[str, str], list[NamePattern]]:
        grouped: dict[tuple[str, str], list[NamePattern]] = {}
        for r in group_rows:
            pattern = NamePattern(
                diet_key=_row_diet(r),
                template_key=str(r.get("template_key") or ""),
                slot=str(r.get("slot") or ""),
                pattern=str(r.get("pattern") or "").strip(),
            )
            if not pattern.pattern:
                continue
            bucket = grouped.setdefault((pattern.template_key, pattern.slot), [])
            if all(p.pattern != pattern.pattern for p in bucket):
                bucket.append(pattern)
        return grouped

    merged = _group(defaults)
    merged.update(_group(diet_rows))
    return tuple(p for bucket in merged.values() for p in bucket)


# =============================================================================
# Entry points
# =============================================================================


def build_generation_config(rows: ConfigRows, diet_key: Optional[str]) -> GenerationConfig:
    """Merge raw rows into an immutable GenerationConfig for ``diet_key``."""
    key = effective_diet_key(diet_key)
    config = GenerationConfig(
        diet_key=key,
        templates=merge_templates(rows.templates, key),
        pool_items_by_category=merge_pool_items(rows.pool_items, key),
        settings=resolve_settings(rows.generator_settings, key),
        name_patterns=merge_name_patterns(rows.name_patterns, key),
    )
    logger.info(
        "Loaded generator config for diet '%s': %d templates, pools %s",
        key,
        len(config.templates),
        {cat: len(items) for cat, items in config.pool_items_by_category.items()},
    )
    return config


def load_generation_config(source: "ConfigSource", diet_key: Optional[str]) -> GenerationConfig:
    """Fetch rows for ``diet_key`` (and the default key) and merge them."""
    key = effective_diet_key(diet_key)
    return build_generation_config(source.fetch_config_rows(key), key)
