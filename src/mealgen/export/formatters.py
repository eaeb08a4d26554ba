"""Output formatters for generated meal plans."""

from __future__ import annotations

import json
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mealgen.templates.models import Meal, MealPlanResult
from mealgen.templates.serialization import serialize_plan

OUTPUT_FORMATS = ("table", "json", "markdown")


def _ingredient_summary(meal: Meal) -> str:
    return ", ".join(f"{r.display_name} {r.grams}g" for r in meal.ingredient_refs)


def _scores(plan: MealPlanResult) -> dict[tuple[str, str], int]:
    return {(mq.date, mq.slot): mq.score for mq in plan.template_info.meal_qualities}


class TableFormatter:
    """Format plans as Rich tables for terminal display."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize the formatter.

        Args:
            console: Rich console for output. If None, creates a new one.
        """
        self.console = console or Console()

    def format(self, plan: MealPlanResult) -> None:
        """Print formatted tables to console."""
        q = plan.quality
        header_lines = [
            f"[bold]MEAL PLAN[/bold] - {plan.start_date} to {plan.end_date}",
            f"Diet: {plan.diet_key}  Seed: {plan.generator.seed}  "
            f"Attempts: {plan.attempts}",
            f"Repeats forced: {q.repeats_forced}  Repeats avoided: {q.repeats_avoided}",
        ]
        sanity = plan.generator.sanity
        if sanity is not None:
            color = "green" if sanity.get("ok") else "red"
            label = "OK" if sanity.get("ok") else "FAILED"
            header_lines.append(f"Sanity: [{color}]{label}[/{color}]")
        self.console.print(Panel("\n".join(header_lines), title="Meal Plan"))

        scores = _scores(plan)
        table = Table(title="Meals")
        table.add_column("Date", style="dim")
        table.add_column("Slot")
        table.add_column("Meal", style="cyan", max_width=40)
        table.add_column("Ingredients", max_width=70)
        table.add_column("Score", justify="right", style="green")

        for day in plan.days:
            for meal in day.meals:
                score = scores.get((meal.date, meal.slot))
                table.add_row(
                    day.date,
                    meal.slot,
                    meal.name,
                    _ingredient_summary(meal),
                    str(score) if score is not None else "-",
                )
        self.console.print(table)

        if plan.generator.pool_metrics:
            m = plan.generator.pool_metrics
            parts = [f"Pool before: {m.get('before')}", f"after: {m.get('after')}"]
            self.console.print(f"[dim]{' | '.join(parts)}[/dim]")


class JSONFormatter:
    """Format plans as JSON for programmatic use."""

    def format(self, plan: MealPlanResult) -> str:
        return json.dumps(serialize_plan(plan), indent=2)


class MarkdownFormatter:
    """Format plans as Markdown for sharing or documentation."""

    def format(self, plan: MealPlanResult) -> str:
        """Return Markdown string."""
        q = plan.quality
        lines = [
            "# Meal Plan",
            "",
            f"**Diet:** {plan.diet_key}",
            f"**Period:** {plan.start_date} to {plan.end_date}",
            f"**Seed:** {plan.generator.seed} (attempts: {plan.attempts})",
            f"**Repeats forced:** {q.repeats_forced}",
        ]

        scores = _scores(plan)
        for day in plan.days:
            lines.extend(["", f"## {day.date}", ""])
            for meal in day.meals:
                score = scores.get((meal.date, meal.slot))
                suffix = f" (score {score})" if score is not None else ""
                lines.append(f"### {meal.slot.capitalize()}: {meal.name}{suffix}")
                lines.extend(["", "| Ingredient | Amount | Slot |", "|------------|--------|------|"])
                for r in meal.ingredient_refs:
                    lines.append(f"| {r.display_name} | {r.grams}g | {r.slot_key} |")
                lines.append("")

        return "\n".join(lines).rstrip() + "\n"


def format_plan(
    plan: MealPlanResult,
    output_format: str = "table",
    console: Optional[Console] = None,
) -> Optional[str]:
    """Format a plan in the specified format.

    Args:
        plan: Generated plan
        output_format: One of 'table', 'json', 'markdown'
        console: Rich console (for table format)

    Returns:
        Formatted string for json/markdown, None for table (prints directly)
    """
    if output_format == "table":
        TableFormatter(console).format(plan)
        return None
    elif output_format == "json":
        return JSONFormatter().format(plan)
    elif output_format == "markdown":
        return MarkdownFormatter().format(plan)
    else:
        raise ValueError(f"Unknown output format: {output_format}")
