"""Configuration loading and ingredient pool preparation."""

from __future__ import annotations

from mealgen.data.config_loader import load_generation_config
from mealgen.data.pool_merger import merge_pools
from mealgen.data.pool_sanitizer import sanitize_pool
from mealgen.data.sources import YamlSource

__all__ = [
    "YamlSource",
    "load_generation_config",
    "merge_pools",
    "sanitize_pool",
]
