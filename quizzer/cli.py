"""
Quizzer CLI - reporting over exported session summaries.

Usage:
    quizzer validate history/*.json      # Check summary files before import
    quizzer stats history/*.json         # Cross-session accuracy report
    quizzer weakest tracking.json        # Lowest-proficiency questions
    quizzer track tracking.json s.json   # Fold a summary into tracking data

The engine itself never touches the filesystem; this module is the outer
surface that reads and writes JSON and calls the pure engine functions.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from config import get_settings
from quizzer.core.proficiency import compute_weakest_areas, update_problem_tracking
from quizzer.stats import compute_aggregate_stats, deduplicate_sessions, validate_session_summary

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="quizzer",
    help="Quizzer - session summary reporting",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def configure_logging(level: str | None = None) -> None:
    """Route loguru to stderr at the configured level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or get_settings().log_level).upper(),
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    configure_logging("DEBUG" if verbose else None)


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_summaries(paths: list[Path]) -> list[tuple[Path, Any]]:
    """Each file may hold one summary or a list of summaries."""
    loaded: list[tuple[Path, Any]] = []
    for path in paths:
        try:
            data = _read_json(path)
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[red]✗ {path}: {e}[/]")
            raise typer.Exit(code=1) from e
        items = data if isinstance(data, list) else [data]
        loaded.extend((path, item) for item in items)
    return loaded


# =============================================================================
# Commands
# =============================================================================


@app.command()
def validate(
    files: Annotated[list[Path], typer.Argument(help="Session summary JSON files")],
) -> None:
    """
    Validate session summary files.

    Exits with status 1 when any summary is invalid.
    """
    invalid = 0
    for path, summary in _load_summaries(files):
        result = validate_session_summary(summary)
        if result.valid:
            console.print(f"[green]✓[/] {path}")
            continue
        invalid += 1
        console.print(f"[red]✗[/] {path}")
        for error in result.errors:
            console.print(f"    [dim]-[/] {error}")

    if invalid:
        console.print(f"[red]{invalid} invalid summar{'y' if invalid == 1 else 'ies'}[/]")
        raise typer.Exit(code=1)


@app.command()
def stats(
    files: Annotated[list[Path], typer.Argument(help="Session summary JSON files")],
    as_json: Annotated[bool, typer.Option("--json", help="Print raw aggregate JSON")] = False,
) -> None:
    """Aggregate accuracy across sessions."""
    settings = get_settings()
    sessions = []
    for path, summary in _load_summaries(files):
        result = validate_session_summary(summary)
        if not result.valid:
            logger.warning(f"Skipping invalid summary in {path}: {'; '.join(result.errors)}")
            continue
        sessions.append(summary)

    unique = deduplicate_sessions(sessions)
    if len(unique) < len(sessions):
        logger.info(f"Dropped {len(sessions) - len(unique)} duplicate session(s)")
    aggregate = compute_aggregate_stats(unique, most_missed_limit=settings.most_missed_limit)

    if as_json:
        console.print_json(json.dumps(aggregate))
        return

    overview = Table(title="Overall")
    overview.add_column("Metric", style="cyan")
    overview.add_column("Value", style="green")
    overview.add_row("Sessions", str(aggregate["sessionCount"]))
    overview.add_row("Answered", str(aggregate["totalAnswered"]))
    overview.add_row("Correct", str(aggregate["totalCorrect"]))
    overview.add_row("Accuracy", f"{aggregate['overallPercentage']}%")
    overview.add_row("Skipped", str(aggregate["totalSkipped"]))
    overview.add_row("Timed out", str(aggregate["totalTimedOut"]))
    console.print(overview)

    for title, key in (("By type", "byType"), ("By tag", "byTag"), ("By unit", "byUnit"), ("By chapter", "byChapter")):
        groups = aggregate[key]
        if not groups:
            continue
        table = Table(title=title)
        table.add_column("Group", style="cyan")
        table.add_column("Correct", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("%", justify="right", style="green")
        for name, entry in sorted(groups.items()):
            table.add_row(name, str(entry["correct"]), str(entry["total"]), str(entry["percentage"]))
        console.print(table)

    if aggregate["mostMissed"]:
        missed = Table(title="Most missed")
        missed.add_column("ID", style="cyan")
        missed.add_column("Question")
        missed.add_column("Wrong", justify="right", style="red")
        missed.add_column("Seen", justify="right")
        for entry in aggregate["mostMissed"]:
            missed.add_row(entry["id"], entry["question"], str(entry["wrongCount"]), str(entry["seenCount"]))
        console.print(missed)


@app.command()
def weakest(
    tracking_file: Annotated[Path, typer.Argument(help="Tracking JSON keyed by question id")],
    questions: Annotated[
        Path | None, typer.Option("--questions", "-q", help="Question set JSON for display text")
    ] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Rows to show")] = 10,
) -> None:
    """List the questions with the lowest proficiency."""
    tracking = _read_json(tracking_file)
    by_id: dict[str, Any] = {}
    if questions is not None:
        by_id = {str(q.get("id")): q for q in _read_json(questions) if isinstance(q, dict)}

    areas = compute_weakest_areas(
        tracking,
        by_id,
        limit=limit,
        decay_rate=get_settings().proficiency_decay_rate,
    )
    if not areas:
        console.print("[yellow]No tracked questions yet.[/]")
        return

    table = Table(title="Weakest areas")
    table.add_column("ID", style="cyan")
    table.add_column("Question")
    table.add_column("Proficiency", justify="right", style="yellow")
    table.add_column("Correct/Seen", justify="right")
    for area in areas:
        table.add_row(area.id, area.question, f"{area.proficiency:.2f}", f"{area.correct}/{area.seen}")
    console.print(table)


@app.command()
def track(
    tracking_file: Annotated[Path, typer.Argument(help="Tracking JSON (created if missing)")],
    summary_file: Annotated[Path, typer.Argument(help="Session summary JSON")],
) -> None:
    """Fold a session summary into per-question tracking data."""
    summary = _read_json(summary_file)
    result = validate_session_summary(summary)
    if not result.valid:
        for error in result.errors:
            console.print(f"[red]✗[/] {error}")
        raise typer.Exit(code=1)

    existing = _read_json(tracking_file) if tracking_file.exists() else {}
    updated = update_problem_tracking(existing, summary)
    with open(tracking_file, "w", encoding="utf-8") as f:
        json.dump({k: v.to_dict() for k, v in updated.items()}, f, indent=2)
    console.print(f"[green]✓[/] Tracking updated: {len(updated)} question(s)")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
