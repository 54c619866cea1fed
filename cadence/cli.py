"""
Cadence CLI - spaced-repetition scheduling from the terminal.

Drives the scheduling core from JSON files so schedules can be inspected
and replayed without a running service.

Usage:
    cadence review state.json --rating good --response-ms 4000
    cadence queue states.json --limit 20 --budget 15 --explain
    cadence retention 10 5
    cadence interval 10 --target 0.9
    cadence params --weights-file weights.json

State files hold one schedule object (review) or a list of them (queue):
    {"item_id": "net-101", "stability": 4.2, "difficulty": 5.1,
     "state": "REVIEW", "due_at": "2026-10-01T09:00:00Z",
     "last_reviewed_at": "2026-09-27T09:00:00Z", "reps": 4, "lapses": 0,
     "concept_id": "subnetting", "item_type": "recall"}
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from cadence.config import Settings, get_settings
from cadence.core.errors import CadenceError
from cadence.core.models import QueueItem, Rating, ScheduleState
from cadence.core.timeutils import parse_timestamp, utc_now
from cadence.scheduler.fsrs import FSRSScheduler, calculate_optimal_interval, calculate_retention
from cadence.scheduler.parameters import FSRSParameters
from cadence.semantic.similarity import HttpSimilarityIndex, SimilarityIndex, StaticSimilarityIndex
from cadence.study.explainability import explain_queue_item, explain_queue_summary
from cadence.study.queue_builder import QueueStrategy
from cadence.study.session import item_load_score
from cadence.study.study_service import StudyService

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="cadence",
    help="Cadence - spaced-repetition scheduling core",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/]")
    raise typer.Exit(1)


def _load_json(path: Path) -> Any:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _load_states(path: Path) -> list[ScheduleState]:
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("items", [data])
    try:
        return [ScheduleState.from_dict(entry) for entry in data]
    except (KeyError, TypeError, ValueError) as e:
        _fail(f"Invalid schedule in {path}: {e}")
        return []


def _similarity_index(path: Path | None, settings: Settings) -> SimilarityIndex | None:
    if path is not None:
        return StaticSimilarityIndex(_load_json(path))
    if settings.similarity_base_url:
        return HttpSimilarityIndex(settings.similarity_base_url, timeout=settings.similarity_timeout_seconds)
    return None


def _close_index(index: SimilarityIndex | None) -> None:
    if isinstance(index, HttpSimilarityIndex):
        index.close()


def _parse_now(value: str | None) -> datetime:
    try:
        return parse_timestamp(value) or utc_now()
    except ValueError as e:
        _fail(f"Invalid --now timestamp {value!r}: {e}")
        raise


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


# =============================================================================
# Scheduling Commands
# =============================================================================


@app.command()
def review(
    state_file: Annotated[Path, typer.Argument(help="JSON file with the item's schedule")],
    rating: Annotated[
        str, typer.Option("--rating", "-r", help="again | hard | good | easy (or learner label)")
    ] = "good",
    response_ms: Annotated[
        float, typer.Option("--response-ms", help="Response time in milliseconds")
    ] = 0.0,
    now: Annotated[
        str | None, typer.Option("--now", help="Review time (ISO-8601, default: now)")
    ] = None,
    neighbors_file: Annotated[
        Path | None, typer.Option("--neighbors", help="JSON list of neighbour schedules for boosts")
    ] = None,
    similarity_file: Annotated[
        Path | None, typer.Option("--similarity", help="JSON map of item_id -> similar item ids")
    ] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the replacement schedule as JSON")
    ] = False,
) -> None:
    """
    Apply one review and show the replacement schedule.

    Examples:
        cadence review card.json --rating again
        cadence review card.json -r easy --response-ms 2500 --now 2026-10-19T08:00:00Z
    """
    settings = get_settings()
    states = _load_states(state_file)
    if len(states) != 1:
        _fail(f"Expected exactly one schedule in {state_file}, found {len(states)}")

    review_time = _parse_now(now)
    neighbors = {s.item_id: s for s in _load_states(neighbors_file)} if neighbors_file else None

    index = _similarity_index(similarity_file, settings)
    try:
        service = StudyService(
            scheduler=FSRSScheduler(
                params=settings.get_fsrs_parameters(),
                clock=lambda: review_time,
                enable_fuzz=settings.fsrs_enable_fuzz,
            ),
            similarity_index=index,
            settings=settings,
        )
        outcome = service.process_review(states[0], rating, response_ms, neighbors=neighbors)
    except CadenceError as e:
        _fail(str(e))
        return
    finally:
        _close_index(index)

    new_state = outcome.state
    if as_json:
        console.print_json(json.dumps(new_state.to_dict()))
        return

    table = Table(title=f"Review: {new_state.item_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Before", style="white")
    table.add_column("After", style="green")
    before = states[0]
    table.add_row("State", before.state.name, new_state.state.name)
    table.add_row("Stability", f"{before.stability:.2f}", f"{new_state.stability:.2f}")
    table.add_row("Difficulty", f"{before.difficulty:.2f}", f"{new_state.difficulty:.2f}")
    table.add_row("Reps", str(before.reps), str(new_state.reps))
    table.add_row("Lapses", str(before.lapses), str(new_state.lapses))
    table.add_row("Due", _fmt_time(before.due_at), _fmt_time(new_state.due_at))
    console.print(table)

    console.print(
        f"Rating: [bold]{Rating.from_label(rating).label}[/]  "
        f"Interval: [bold]{outcome.result.interval_days}d[/]  "
        f"Retention at review: [bold]{outcome.result.retention:.1%}[/]"
    )
    for update in outcome.boost_updates:
        console.print(
            f"[yellow]Boosted {update.item_id}:[/] {_fmt_time(update.previous_due_at)} -> "
            f"{_fmt_time(update.new_due_at)}"
        )


@app.command()
def queue(
    states_file: Annotated[Path, typer.Argument(help="JSON list of schedules")],
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", help="Session item limit")
    ] = None,
    budget: Annotated[
        float | None, typer.Option("--budget", "-b", help="Maximum session load")
    ] = None,
    strategy: Annotated[
        QueueStrategy | None, typer.Option("--strategy", "-s", help="Prioritization strategy")
    ] = None,
    now: Annotated[
        str | None, typer.Option("--now", help="Request time (ISO-8601, default: now)")
    ] = None,
    similarity_file: Annotated[
        Path | None, typer.Option("--similarity", help="JSON map of item_id -> similar item ids")
    ] = None,
    explain: Annotated[
        bool, typer.Option("--explain", "-e", help="Explain each item's place in the queue")
    ] = False,
) -> None:
    """
    Build a study session from a list of schedules.

    Examples:
        cadence queue states.json
        cadence queue states.json --limit 10 --budget 8.5 --strategy due_first --explain
    """
    settings = get_settings()
    states = _load_states(states_file)
    request_time = _parse_now(now)

    index = _similarity_index(similarity_file, settings)
    try:
        options = settings.get_queue_options(now=request_time)
        if strategy is not None:
            options.strategy = strategy
        service = StudyService(
            scheduler=FSRSScheduler(params=settings.get_fsrs_parameters(), clock=lambda: request_time),
            similarity_index=index,
            settings=settings,
        )
        session = service.generate_session(
            states,
            options=options,
            now=request_time,
            session_limit=limit,
            max_load_budget=budget,
        )
    except CadenceError as e:
        _fail(str(e))
        return
    finally:
        _close_index(index)

    if not session.items:
        console.print("[yellow]No items are currently due for review.[/]")
        return

    table = Table(title=f"Session ({session.count} of {len(states)} items)")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Item", style="cyan")
    table.add_column("State", style="white")
    table.add_column("Due", style="white", justify="right")
    table.add_column("Priority", style="green", justify="right")
    table.add_column("Load", style="yellow", justify="right")

    queue_items = [entry for entry in session.items if isinstance(entry, QueueItem)]
    for position, item in enumerate(queue_items, start=1):
        table.add_row(
            str(position),
            item.item_id,
            item.schedule.state.display_name,
            f"{item.eligibility.context.days_until_due:+d}d",
            f"{item.priority:.1f}",
            f"{item_load_score(item):.1f}",
        )
    console.print(table)

    report = session.load_report
    console.print(Panel(
        f"Session load: [bold]{report.session_load_score:.2f}[/]\n"
        f"Historical average: {report.average_historical_load:.2f}\n"
        f"Deviation: {report.deviation:+.1%}",
        title="Load Report",
        border_style="blue",
    ))

    if explain:
        console.print(f"\n{explain_queue_summary(queue_items)}")
        for item in queue_items:
            explanation = explain_queue_item(item)
            console.print(f"[cyan]{item.item_id}[/]: {explanation.explanation}")


# =============================================================================
# Model Commands
# =============================================================================


@app.command()
def retention(
    stability: Annotated[float, typer.Argument(help="Stability in days")],
    days: Annotated[float, typer.Argument(help="Days since last review")],
) -> None:
    """Probability of recall after DAYS for a memory of STABILITY."""
    params = get_settings().get_fsrs_parameters()
    value = calculate_retention(stability, days, params)
    console.print(f"Retention after {days:g} days (S={stability:g}): [bold green]{value:.1%}[/]")


@app.command()
def interval(
    stability: Annotated[float, typer.Argument(help="Stability in days")],
    target: Annotated[
        float | None, typer.Option("--target", "-t", help="Target retention (0-1, exclusive)")
    ] = None,
) -> None:
    """Days until retention falls to the target."""
    settings = get_settings()
    target = settings.fsrs_desired_retention if target is None else target
    try:
        days = calculate_optimal_interval(stability, target, settings.get_fsrs_parameters())
    except CadenceError as e:
        _fail(str(e))
        return
    console.print(f"Optimal interval for S={stability:g} at {target:.0%}: [bold green]{days} days[/]")


@app.command()
def params(
    weights_file: Annotated[
        Path | None, typer.Option("--weights-file", "-w", help="JSON list of 21 weights")
    ] = None,
) -> None:
    """Validate and show an FSRS parameter set."""
    try:
        if weights_file is not None:
            parameters = FSRSParameters.from_list(_load_json(weights_file)).ensure_valid()
        else:
            parameters = get_settings().get_fsrs_parameters()
    except CadenceError as e:
        _fail(str(e))
        return

    table = Table(title="FSRS Parameters")
    table.add_column("Weight", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for index, value in enumerate(parameters.to_list()):
        table.add_row(f"w{index}", f"{value:g}")
    console.print(table)

    for warning in parameters.bound_warnings():
        console.print(f"[yellow]Warning:[/] {warning}")
    console.print("[green]Parameters are valid.[/]")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
) -> None:
    """
    Cadence - spaced-repetition scheduling core

    \b
    Quick Start:
      cadence review card.json -r good   # Apply a review
      cadence queue states.json          # Build a session
      cadence interval 10                # Optimal interval for S=10
    """
    settings = get_settings()
    level = "DEBUG" if verbose else settings.log_level

    logger.remove()
    logger.add(sys.stderr, level=level, format="<level>{message}</level>")
    if settings.log_file:
        logger.add(settings.log_file, level=level, rotation="1 MB")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
