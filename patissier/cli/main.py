"""
Typer CLI for the patissier progress engine.

Operator tooling over a learner's stored state. Every command reads the
catalog from a JSON file and the state from the configured backend.

Commands:
    patissier stats      - Progress, streak, points and level
    patissier unlocks    - Lock state of paths and modules
    patissier recommend  - Ranked, trending or similar paths
    patissier complete   - Complete a module and show what it unlocked
    patissier export     - Write all learner state as JSON
    patissier import     - Replace learner state from an export
    patissier reset      - Erase all learner state

Usage:
    patissier --help
    patissier stats --catalog paths.json
    patissier complete m-2 --path p-1 --score 92 --catalog paths.json
    patissier recommend --catalog paths.json --similar p-1
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from config import get_settings
from patissier.catalog.loader import load_catalog
from patissier.catalog.models import LearningPath
from patissier.core.errors import PatissierError
from patissier.engine import LearningEngine
from patissier.recommendations.scorer import Recommendation, RecommendationFilters

app = typer.Typer(
    help="patissier: learner progress, unlocks, achievements and recommendations",
    no_args_is_help=True,
)

console = Console()

CatalogOption = typer.Option(..., "--catalog", "-c", help="Learning path catalog (JSON)")


def _open(catalog: Path) -> tuple[LearningEngine, list[LearningPath]]:
    try:
        paths = load_catalog(catalog)
    except PatissierError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    return LearningEngine.from_settings(get_settings()), paths


@app.command("stats")
def stats(catalog: Path = CatalogOption):
    """Show progress totals, streak, points and level."""
    engine, paths = _open(catalog)
    progress = engine.progress.get_progress_stats(paths)
    completion = engine.aggregator.get_completion_stats(paths)
    overview = engine.achievements.get_progress_overview(paths)

    table = Table(title="Learning Progress", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Paths completed", f"{progress.completed_paths}/{progress.total_paths}")
    table.add_row("Paths in progress", str(progress.in_progress_paths))
    table.add_row("Modules completed", f"{progress.completed_modules}/{progress.total_modules}")
    table.add_row("Time spent", f"{completion.total_time_spent:g} min")
    table.add_row("Average score", f"{completion.average_score:.1f}")
    table.add_row("Current streak", f"{completion.current_streak} days")
    table.add_row("Points", str(overview.total_points))
    level_name = overview.current_level.name if overview.current_level else "-"
    table.add_row("Level", f"{level_name} ({overview.next_level_progress:.0f}% to next)")
    console.print(table)

    levels = Table(title="By Level", box=box.SIMPLE)
    levels.add_column("Level")
    levels.add_column("Completed", justify="right")
    levels.add_column("Total", justify="right")
    for level, breakdown in progress.level_progress.items():
        levels.add_row(level.value, str(breakdown.completed), str(breakdown.total))
    console.print(levels)

    if completion.milestones:
        console.print(f"[green]Milestones:[/green] {', '.join(completion.milestones)}")
    unlocked = [a.title for a in overview.achievements if a.is_unlocked]
    if unlocked:
        console.print(f"[green]Achievements:[/green] {', '.join(unlocked)}")


@app.command("unlocks")
def unlocks(
    catalog: Path = CatalogOption,
    path_id: str | None = typer.Option(None, "--path", "-p", help="Show modules of one path"),
):
    """Show which paths and modules are unlocked or unlockable."""
    engine, paths = _open(catalog)
    resolver = engine.resolver

    try:
        if path_id is None:
            table = Table(title="Learning Paths", box=box.ROUNDED)
            table.add_column("Path", style="cyan")
            table.add_column("Title")
            table.add_column("State")
            table.add_column("Missing")
            for path in paths:
                check = resolver.check_path_prerequisites(path.id, paths)
                table.add_row(
                    path.id,
                    path.title,
                    _state(check.is_unlocked, check.can_unlock),
                    ", ".join(check.missing_prerequisite_ids),
                )
        else:
            path = next((p for p in paths if p.id == path_id), None)
            if path is None:
                console.print(f"[red]Path {path_id} not found[/red]")
                raise typer.Exit(1)
            table = Table(title=f"Modules of {path.title or path.id}", box=box.ROUNDED)
            table.add_column("Module", style="cyan")
            table.add_column("Title")
            table.add_column("State")
            table.add_column("Unmet")
            for module in path.modules:
                check = resolver.check_module_prerequisites(module.id, path, paths)
                table.add_row(
                    module.id,
                    module.title,
                    _state(check.is_unlocked, check.can_unlock),
                    "; ".join(c.description for c in check.unmet_conditions),
                )
    except PatissierError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(table)


@app.command("recommend")
def recommend(
    catalog: Path = CatalogOption,
    limit: int = typer.Option(5, "--limit", "-n", help="Number of paths to show"),
    exclude_completed: bool = typer.Option(False, "--exclude-completed", help="Skip finished paths"),
    trending: bool = typer.Option(False, "--trending", help="Show trending paths instead"),
    similar: str | None = typer.Option(None, "--similar", help="Show paths similar to this one"),
):
    """Rank learning paths for the learner."""
    engine, paths = _open(catalog)
    scorer = engine.recommendations

    try:
        if similar:
            results = scorer.get_similar_paths(similar, paths, limit=limit)
            title = f"Similar to {similar}"
        elif trending:
            results = scorer.get_trending(paths, limit=limit)
            title = "Trending"
        else:
            filters = RecommendationFilters(exclude_completed=exclude_completed)
            results = scorer.get_recommendations(paths, filters, limit=limit)
            title = "Recommended For You"
    except PatissierError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    _print_recommendations(title, results)


@app.command("complete")
def complete(
    module_id: str = typer.Argument(..., help="Module to mark complete"),
    path_id: str = typer.Option(..., "--path", "-p", help="Path containing the module"),
    catalog: Path = CatalogOption,
    score: float | None = typer.Option(None, "--score", "-s", help="Score achieved (0-100)"),
    time_spent: float | None = typer.Option(None, "--time", "-t", help="Minutes spent"),
):
    """Complete a module and show what it unlocked."""
    engine, paths = _open(catalog)
    try:
        result = engine.handle_module_completion(
            module_id, path_id, paths, score=score, time_spent=time_spent
        )
    except PatissierError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    record = engine.progress.get_path_progress(path_id)
    percentage = record.completion_percentage if record else 0
    console.print(f"[green]Completed {module_id}[/green] - path {path_id} at {percentage:g}%")
    for message in result.notifications:
        console.print(f"  [yellow]*[/yellow] {message}")


@app.command("export")
def export_state(
    output: Path | None = typer.Option(None, "--output", "-o", help="File to write (stdout if omitted)"),
):
    """Export progress, bookmarks and history as JSON."""
    engine = LearningEngine.from_settings(get_settings())
    data = engine.export_state()
    if output is None:
        typer.echo(data)
        return
    output.write_text(data, encoding="utf-8")
    console.print(f"[green]Exported learner state to {output}[/green]")


@app.command("import")
def import_state(
    source: Path = typer.Argument(..., help="Export file to import"),
    catalog: Path | None = typer.Option(
        None, "--catalog", "-c", help="Catalog used to rebuild path progress"
    ),
):
    """Replace learner state with an export."""
    if not source.exists():
        console.print(f"[red]File not found: {source}[/red]")
        raise typer.Exit(1)

    if catalog is None:
        engine, paths = LearningEngine.from_settings(get_settings()), None
    else:
        engine, paths = _open(catalog)
    if not engine.import_state(source.read_text(encoding="utf-8"), paths):
        console.print("[red]Import failed: file is not a valid export[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Imported learner state from {source}[/green]")


@app.command("reset")
def reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Erase all progress, unlocks, history, achievements and bookmarks."""
    if not yes and not typer.confirm("Erase all learner state?"):
        raise typer.Abort()
    LearningEngine.from_settings(get_settings()).reset_all()
    console.print("[green]Learner state reset[/green]")


def _state(is_unlocked: bool, can_unlock: bool) -> str:
    if is_unlocked:
        return "[green]unlocked[/green]"
    if can_unlock:
        return "[yellow]unlockable[/yellow]"
    return "[dim]locked[/dim]"


def _print_recommendations(title: str, results: list[Recommendation]) -> None:
    if not results:
        console.print("[yellow]No recommendations[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Path", style="cyan")
    table.add_column("Title")
    table.add_column("Score", justify="right")
    table.add_column("Priority")
    table.add_column("Why")
    for rec in results:
        table.add_row(
            rec.path_id,
            rec.path.title,
            f"{rec.score:.2f}",
            rec.priority.value,
            "; ".join(rec.reasons[:2]),
        )
    console.print(table)


def main() -> None:
    settings = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format="<level>{message}</level>")
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")
    app()


if __name__ == "__main__":
    main()
