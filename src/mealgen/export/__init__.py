"""Export module for plan output formats."""

from __future__ import annotations

from mealgen.export.formatters import (
    JSONFormatter,
    MarkdownFormatter,
    TableFormatter,
    format_plan,
)

__all__ = [
    "JSONFormatter",
    "MarkdownFormatter",
    "TableFormatter",
    "format_plan",
]
