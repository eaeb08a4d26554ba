"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from mealgen.config.settings import Settings, get_settings, reload_settings
from mealgen.errors import InvalidRequestError, MealGenError

app = typer.Typer(
    help="Template-based meal plan generation",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

config_app = typer.Typer(help="Manage mealgen settings")
app.add_typer(config_app, name="config")


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict, file=None) -> None:
    """Output JSON response to stdout or file."""
    json_str = json.dumps(response, indent=2)
    if file:
        file.write(json_str)
    else:
        print(json_str)


def configure_logging(level: str) -> None:
    """Route library logging through Rich on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def fail(error: Exception, json_output: bool = False) -> None:
    """Report an error and exit with status 1."""
    if json_output:
        if isinstance(error, MealGenError):
            output_json({"success": False, "error": error.to_dict()})
        else:
            output_json({"success": False, "error": {"message": str(error)}})
    elif isinstance(error, MealGenError):
        console.print(f"[red]{error.code}: {escape(error.message)}[/red]")
    else:
        console.print(f"[red]{escape(str(error))}[/red]")
    raise typer.Exit(1)


def _parse_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidRequestError(f"Invalid date '{value}', expected YYYY-MM-DD") from e


def _split(value: Optional[str]) -> tuple[str, ...]:
    return tuple(s.strip() for s in (value or "").split(",") if s.strip())


def _snapshot_path(config_path: Optional[Path]) -> Path:
    return config_path or get_settings().sources.config_path


def build_request(
    start: Optional[str],
    days: int,
    slots: str,
    diet: str,
    allergies: Optional[list[str]] = None,
    dislikes: Optional[list[str]] = None,
    calories: Optional[float] = None,
):
    """MealPlanRequest from CLI options."""
    from mealgen.templates.models import MealPlanRequest, Profile

    if days < 1:
        raise InvalidRequestError(f"--days must be at least 1, got {days}")
    start_date = _parse_date(start)
    return MealPlanRequest(
        start_date=start_date,
        end_date=start_date + timedelta(days=days - 1),
        slots=_split(slots),
        profile=Profile(
            diet_key=diet,
            allergies=tuple(allergies or ()),
            dislikes=tuple(dislikes or ()),
            calorie_target=calories,
        ),
    )


def build_options(no_guardrails: bool, no_sanity: bool, locale: Optional[str]):
    """GenerationOptions from settings, overridden by CLI flags."""
    from mealgen.guardrails.enforcer import GenerationOptions

    gen = get_settings().generation
    return GenerationOptions(
        enforce_guardrails=gen.enforce_guardrails and not no_guardrails,
        locale=locale or gen.locale,
        sanity_check=gen.sanity_check and not no_sanity,
    )


def load_plan_file(path: Path):
    """Read a plan written by ``generate --format json``."""
    from mealgen.templates.serialization import deserialize_plan

    if not path.exists():
        raise InvalidRequestError(f"Plan file not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidRequestError(f"Invalid JSON in plan file: {e}") from e
    return deserialize_plan(data)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="Settings file (default ~/.mealgen/config.yaml)"
    ),
) -> None:
    """Template-based meal plan generation."""
    settings = reload_settings(settings_file) if settings_file else get_settings()
    configure_logging("DEBUG" if verbose else settings.logging.level)


# ============================================================================
# Generation
# ============================================================================


@app.command()
def generate(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Generator config snapshot (YAML)"
    ),
    diet: str = typer.Option("default", "--diet", "-d", help="Diet key"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date YYYY-MM-DD (default today)"),
    days: int = typer.Option(7, "--days", "-n", help="Number of days to plan"),
    slots: str = typer.Option("lunch,dinner", "--slots", help="Comma-separated meal slots"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed (default from settings)"),
    allergy: Optional[list[str]] = typer.Option(None, "--allergy", help="Allergy term. Repeatable."),
    dislike: Optional[list[str]] = typer.Option(None, "--dislike", help="Disliked term. Repeatable."),
    calories: Optional[float] = typer.Option(None, "--calories", help="Daily calorie target"),
    output_format: Optional[str] = typer.Option(
        None, "--format", "-f", help="Output format: table, json, markdown"
    ),
    no_guardrails: bool = typer.Option(False, "--no-guardrails", help="Skip guardrail enforcement"),
    no_sanity: bool = typer.Option(False, "--no-sanity", help="Skip the sanity check"),
    locale: Optional[str] = typer.Option(None, "--locale", help="Guardrail term locale"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write output to file"),
) -> None:
    """Generate a meal plan from a config snapshot."""
    from mealgen.data.sources import YamlSource
    from mealgen.export.formatters import OUTPUT_FORMATS, format_plan
    from mealgen.service import generate_meal_plan

    settings = get_settings()
    fmt = output_format or settings.defaults.output_format
    if fmt not in OUTPUT_FORMATS:
        console.print(f"[red]Unknown output format: {fmt}[/red]")
        raise typer.Exit(1)

    try:
        request = build_request(start, days, slots, diet, allergy, dislike, calories)
        source = YamlSource.from_file(_snapshot_path(config_path))
        plan = generate_meal_plan(
            request,
            source,
            seed=settings.generation.default_seed if seed is None else seed,
            options=build_options(no_guardrails, no_sanity, locale),
        )
    except MealGenError as e:
        fail(e, json_output=fmt == "json")

    if output is not None and fmt == "table":
        fmt = "json"
    rendered = format_plan(plan, fmt, console=console)
    if rendered is None:
        return
    if output is not None:
        output.write_text(rendered)
        console.print(f"[green]Plan written to {output}[/green]")
    else:
        print(rendered)


@app.command()
def sanitize(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Generator config snapshot (YAML)"
    ),
    diet: str = typer.Option("default", "--diet", "-d", help="Diet key"),
    locale: Optional[str] = typer.Option(None, "--locale", help="Guardrail term locale"),
    allergy: Optional[list[str]] = typer.Option(None, "--allergy", help="Allergy term. Repeatable."),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Sanitize the catalog candidate pool and show what was removed."""
    from mealgen.data.pool_sanitizer import sanitize_pool
    from mealgen.data.sources import YamlSource

    try:
        source = YamlSource.from_file(_snapshot_path(config_path))
        terms = source.fetch_terms(diet, locale or get_settings().generation.locale)
        result = sanitize_pool(
            source.fetch_candidates(diet), exclude_terms=terms, profile_terms=allergy
        )
    except MealGenError as e:
        fail(e, json_output)

    metrics = result.metrics
    if json_output:
        output_json({"success": True, "diet_key": diet, "guardrail_terms": terms, "metrics": metrics.to_dict()})
        return

    table = Table(title=f"Candidate pool ({diet})")
    table.add_column("Category")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right", style="green")
    for cat, before in metrics.before.items():
        table.add_row(cat, str(before), str(metrics.after.get(cat, 0)))
    console.print(table)
    console.print(
        f"Removed: {metrics.removed_duplicates} duplicates, "
        f"{metrics.removed_by_profile_terms} by profile terms, "
        f"{metrics.removed_by_guardrails_terms} by guardrail terms"
    )


# ============================================================================
# Analysis of saved plans
# ============================================================================


@app.command()
def validate(
    plan_file: Path = typer.Argument(..., help="Plan JSON written by 'generate --format json'"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Run the structural sanity check on a saved plan."""
    from mealgen.validation.sanity import validate_sanity

    try:
        plan = load_plan_file(plan_file)
    except MealGenError as e:
        fail(e, json_output)

    result = validate_sanity(plan)
    if json_output:
        output_json(result.to_dict())
    elif result.ok:
        console.print("[green]Plan passes all sanity checks[/green]")
    else:
        table = Table(title=f"Sanity issues ({len(result.issues)})")
        table.add_column("Code", style="red")
        table.add_column("Date")
        table.add_column("Slot")
        table.add_column("Message")
        for issue in result.issues:
            table.add_row(issue.code, issue.date or "-", issue.slot or "-", issue.message)
        console.print(table)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def advise(
    plan_file: Path = typer.Argument(..., help="Plan JSON written by 'generate --format json'"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Generator config snapshot (YAML)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Suggest configuration changes for a saved plan."""
    from mealgen.data.sources import YamlSource
    from mealgen.explore.advisor import get_tuning_suggestions
    from mealgen.service import load_advisor_config

    try:
        plan = load_plan_file(plan_file)
        source = YamlSource.from_file(_snapshot_path(config_path))
        advisor_config = load_advisor_config(
            source, plan.diet_key, build_options(False, False, None)
        )
    except MealGenError as e:
        fail(e, json_output)

    suggestions = get_tuning_suggestions(plan, advisor_config)
    if json_output:
        output_json({"success": True, "suggestions": [s.to_dict() for s in suggestions]})
        return
    if not suggestions:
        console.print("[green]No tuning suggestions[/green]")
        return
    for s in suggestions:
        color = "yellow" if s.severity == "warn" else "cyan"
        console.print(f"[{color}]{s.severity.upper()}[/{color}] [bold]{s.code}[/bold]: {s.title}")
        for action in s.actions:
            console.print(f"  - ({action.kind}) {action.target}: {action.hint}")


@app.command()
def scorecard(
    plan_file: Path = typer.Argument(..., help="Plan JSON written by 'generate --format json'"),
    veg_min: int = typer.Option(5, "--veg-min", help="Weekly unique vegetable target"),
    protein_min: int = typer.Option(3, "--protein-min", help="Weekly unique protein target"),
    repeat_window: int = typer.Option(7, "--repeat-window", help="Meal name repeat window in days"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Report variety of a saved plan against weekly targets."""
    from mealgen.explore.scorecard import VarietyTargets, build_variety_scorecard

    try:
        plan = load_plan_file(plan_file)
    except MealGenError as e:
        fail(e, json_output)

    card = build_variety_scorecard(
        plan,
        VarietyTargets(
            unique_veg_min=veg_min,
            protein_rotation_min=protein_min,
            max_repeat_same_meal_within_days=repeat_window,
        ),
    )
    if json_output:
        output_json(card.to_dict())
        return

    def _mark(ok: bool) -> str:
        return "[green]OK[/green]" if ok else "[red]![/red]"

    table = Table(title="Variety scorecard")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Status", justify="center")
    table.add_row(
        "Unique vegetables",
        str(card.unique_veg_count),
        f">= {card.targets.unique_veg_min}",
        _mark(card.meets_unique_veg),
    )
    table.add_row(
        "Unique proteins",
        str(card.unique_protein_count),
        f">= {card.targets.protein_rotation_min}",
        _mark(card.meets_protein_rotation),
    )
    table.add_row(
        f"Max same meal in {card.repeat_window_days} days",
        str(card.max_repeat_within_days),
        "<= 1",
        _mark(card.meets_repeat_window),
    )
    console.print(table)


@app.command()
def compare(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Generator config snapshot A (YAML)"
    ),
    config_b: Optional[Path] = typer.Option(None, "--config-b", help="Snapshot B (default: same as A)"),
    seed_a: int = typer.Option(0, "--seed-a", help="Seed for plan A"),
    seed_b: Optional[int] = typer.Option(
        None, "--seed-b", help="Seed for plan B (default: seed A, or seed A + 1 with one snapshot)"
    ),
    diet: str = typer.Option("default", "--diet", "-d", help="Diet key"),
    start: Optional[str] = typer.Option(None, "--start", help="Start date YYYY-MM-DD (default today)"),
    days: int = typer.Option(7, "--days", "-n", help="Number of days to plan"),
    slots: str = typer.Option("lunch,dinner", "--slots", help="Comma-separated meal slots"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Compare plans from two seeds or two config snapshots."""
    from mealgen.data.sources import YamlSource
    from mealgen.explore.compare import compare_plans, format_plan_comparison
    from mealgen.service import generate_meal_plan

    if seed_b is None:
        seed_b = seed_a if config_b is not None else seed_a + 1

    try:
        request = build_request(start, days, slots, diet)
        options = build_options(False, False, None)
        source_a = YamlSource.from_file(_snapshot_path(config_path))
        source_b = YamlSource.from_file(config_b) if config_b is not None else source_a
        plan_a = generate_meal_plan(request, source_a, seed=seed_a, options=options)
        plan_b = generate_meal_plan(request, source_b, seed=seed_b, options=options)
    except MealGenError as e:
        fail(e, json_output)

    comparison = compare_plans(plan_a, plan_b)
    if json_output:
        output_json(format_plan_comparison(comparison))
        return

    console.print(
        f"[bold]A[/bold] seed {seed_a}: repeats forced {comparison.plan_a.repeats_forced}  "
        f"[bold]B[/bold] seed {seed_b}: repeats forced {comparison.plan_b.repeats_forced}"
    )
    if comparison.identical:
        console.print("[green]Plans are identical[/green]")
        return

    table = Table(title=f"Changed meals ({len(comparison.changed_meals)})")
    table.add_column("Date", style="dim")
    table.add_column("Slot")
    table.add_column("Plan A", style="cyan")
    table.add_column("Plan B", style="magenta")
    for d in comparison.changed_meals:
        table.add_row(d.date, d.slot, d.name_a or "-", d.name_b or "-")
    console.print(table)
    if comparison.ingredients_only_in_a:
        console.print(f"Only in A: {', '.join(comparison.ingredients_only_in_a)}")
    if comparison.ingredients_only_in_b:
        console.print(f"Only in B: {', '.join(comparison.ingredients_only_in_b)}")


# ============================================================================
# Settings
# ============================================================================


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the active settings."""
    data = get_settings().to_dict()
    if json_output:
        output_json(data)
    else:
        console.print(yaml.dump(data, default_flow_style=False, sort_keys=False).rstrip())


@config_app.command("init")
def config_init(
    directory: Optional[Path] = typer.Option(
        None, "--dir", help="Directory for config.yaml and generator.yaml (default ~/.mealgen)"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing files"),
) -> None:
    """Write default settings and a starter generator config snapshot."""
    from mealgen.config.settings import default_config_dir
    from mealgen.templates.definitions import starter_snapshot

    directory = (directory or default_config_dir()).expanduser()
    settings_path = directory / "config.yaml"
    snapshot_path = directory / "generator.yaml"

    existing = [p for p in (settings_path, snapshot_path) if p.exists()]
    if existing and not force:
        console.print(
            f"[red]Already exists: {', '.join(str(p) for p in existing)} (use --force)[/red]"
        )
        raise typer.Exit(1)

    settings = Settings()
    settings.sources.config_path = snapshot_path
    settings.save(settings_path)

    with open(snapshot_path, "w") as f:
        yaml.dump(starter_snapshot(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    console.print(f"[green]Settings written to {settings_path}[/green]")
    console.print(f"[green]Starter config written to {snapshot_path}[/green]")


if __name__ == "__main__":
    app()
