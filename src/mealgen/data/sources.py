"""External collaborators feeding the generator, and a YAML snapshot backend.

The generator never performs I/O. Everything it needs is fetched up front
through these three interfaces:

- ConfigSource: raw configuration rows for a diet key
- CandidatePoolSource: raw catalog candidates for a diet key
- GuardrailTermSource: hard-block terms for a diet key and locale

``YamlSource`` implements all three over one snapshot file that mirrors the
admin export format.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union

import yaml

from mealgen.data.config_loader import ConfigRows
from mealgen.data.pool_sanitizer import CandidatePool, candidate_pool_from_dict
from mealgen.errors import InvalidConfigError
from mealgen.templates.models import DEFAULT_DIET_KEY

logger = logging.getLogger(__name__)

CONFIG_TABLES = ("templates", "pool_items", "generator_settings", "name_patterns")


class ConfigSource(Protocol):
    def fetch_config_rows(self, diet_key: str) -> ConfigRows:
        """Rows tagged with ``diet_key`` or the default key."""
        ...


class CandidatePoolSource(Protocol):
    def fetch_candidates(self, diet_key: str) -> CandidatePool:
        """Raw, unsanitized candidates for ``diet_key``."""
        ...


class GuardrailTermSource(Protocol):
    def fetch_terms(self, diet_key: str, locale: str) -> list[str]:
        """Hard-block terms for ``diet_key`` in ``locale``."""
        ...


class YamlSource:
    """Config, candidate and guardrail-term source backed by a YAML snapshot.

    Snapshot layout::

        templates: [{template_key, display_name, is_active, step_count, slots: [...]}]
        pool_items: [{diet_key, category, item_key, name, nevo_code, min_g, ...}]
        generator_settings: [{diet_key, max_ingredients, ...}]
        name_patterns: [{diet_key, template_key, slot, pattern, is_active}]
        candidates:
          <diet_key>: {proteins: [...], vegetables: [...], fruits: [...], fats: [...]}
        guardrail_terms:
          <diet_key>: {<locale>: [term, ...]}
    """

    def __init__(self, data: dict[str, Any], path: Optional[Path] = None):
        if not isinstance(data, dict):
            raise InvalidConfigError("Config snapshot must be a mapping at the top level")
        for table in CONFIG_TABLES:
            if not isinstance(data.get(table) or [], list):
                raise InvalidConfigError(f"Config snapshot section '{table}' must be a list")
        self.data = data
        self.path = path

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "YamlSource":
        """Load a snapshot file.

        Raises:
            InvalidConfigError: If the file is missing or not valid YAML.
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise InvalidConfigError(f"Config snapshot not found: {path}", {"path": str(path)})
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidConfigError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e
        logger.debug("Loaded config snapshot from %s", path)
        return cls(data, path=path)

    def _rows(self, table: str, diet_key: str) -> tuple[dict[str, Any], ...]:
        wanted = {DEFAULT_DIET_KEY, diet_key}
        rows = []
        for i, row in enumerate(self.data.get(table) or []):
            if not isinstance(row, dict):
                raise InvalidConfigError(
                    f"{table}[{i}] must be a mapping, got {row!r}", {"table": table}
                )
            if (row.get("diet_key") or DEFAULT_DIET_KEY) in wanted:
                rows.append(row)
        return tuple(rows)

    def fetch_config_rows(self, diet_key: str) -> ConfigRows:
        return ConfigRows(
            templates=self._rows("templates", diet_key),
            pool_items=self._rows("pool_items", diet_key),
            generator_settings=self._rows("generator_settings", diet_key),
            name_patterns=self._rows("name_patterns", diet_key),
        )

    def fetch_candidates(self, diet_key: str) -> CandidatePool:
        """Diet candidates, or the default diet's when the diet has none."""
        candidates = self.data.get("candidates") or {}
        if not isinstance(candidates, dict):
            raise InvalidConfigError("Config snapshot section 'candidates' must be a mapping")
        raw = candidates.get(diet_key) or candidates.get(DEFAULT_DIET_KEY) or {}
        return candidate_pool_from_dict(raw)

    def fetch_terms(self, diet_key: str, locale: str) -> list[str]:
        """Default terms plus diet terms for the locale, without duplicates."""
        by_diet = self.data.get("guardrail_terms") or {}
        terms: list[str] = []
        for key in dict.fromkeys((DEFAULT_DIET_KEY, diet_key)):
            for term in (by_diet.get(key) or {}).get(locale) or []:
                term = str(term).strip()
                if term and term not in terms:
                    terms.append(term)
        return terms
