"""
Mindrift CLI

Command-line interface for the thought-drift analytics engine.
Provides commands for importing edit history, viewing the composed drift
insight and timeline, classifying single edits and annotating days.

Commands:
    mindrift import-edits <file>      Import edit records from a JSON array
    mindrift insight                  Show growth angle, forecast, warning and mode
    mindrift timeline                 Show the daily drift series and summary
    mindrift classify <file>          Classify one edit described in JSON
    mindrift annotate <date> <label>  Add or update a daily annotation
    mindrift annotations              List recent annotations with statistics

Usage:
    $ mindrift import-edits ./history.json
    $ mindrift insight --days 30 --tz Asia/Tokyo
    $ mindrift annotate 2024-05-01 breakthrough --note "It finally clicked"
"""

import json
import logging
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import typer
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from mindrift import __version__
from mindrift.annotation import AnnotationValidationError, get_annotation_stats
from mindrift.change import classify_change, serialize_change_detail
from mindrift.change.serialization import change_detail_from_dict
from mindrift.insight import generate_insight
from mindrift.models import (
    AnnotationLabel,
    DriftInsight,
    EditRecord,
    SemanticChangeDetail,
    Severity,
    Trend,
    WarningState,
)
from mindrift.storage import DEFAULT_DB_PATH, Database, upsert_annotation
from mindrift.timeline import aggregate_daily_drift, build_timeline, describe_timeline

# Initialize Typer app and Rich console
app = typer.Typer(
    name="mindrift",
    help="Mindrift: thought-drift analytics for your notes",
    add_completion=False,
)
console = Console()

DB_OPTION_HELP = "Path to the database file (default: .mindrift/mindrift.db)"

STATE_COLORS = {
    WarningState.STABLE: "green",
    WarningState.OVERHEAT: "red",
    WarningState.STAGNATION: "yellow",
}
TREND_ICONS = {
    Trend.RISING: "↗",
    Trend.FALLING: "↘",
    Trend.FLAT: "→",
}


def _open_db(db_path: Optional[Path]) -> Database:
    return Database(db_path or Path(DEFAULT_DB_PATH))


def _resolve_timezone(name: Optional[str]) -> tzinfo:
    if name is None:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        console.print(f"[bold red]Error:[/bold red] Unknown timezone: {name}")
        raise typer.Exit(1)


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[bold red]Error:[/bold red] {path} is not valid JSON: {e}")
        raise typer.Exit(1)


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing Z for UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _parse_edit_record(item: dict[str, Any]) -> EditRecord:
    """Build an EditRecord from its camelCase JSON form."""
    try:
        detail = item.get("changeDetail")
        diff = item.get("semanticDiff")
        return EditRecord(
            timestamp=_parse_timestamp(item["timestamp"]),
            semantic_diff=float(diff) if diff is not None else None,
            note_id=item.get("noteId"),
            change_detail=change_detail_from_dict(detail) if detail else None,
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed edit record {item!r}: {e!r}") from e


@app.command("import-edits")
def import_edits(
    file: Path = typer.Argument(
        ...,
        help="JSON file with an array of {timestamp, semanticDiff, noteId?, changeDetail?}",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", "-d", help=DB_OPTION_HELP, envvar="MINDRIFT_DB"
    ),
) -> None:
    """
    Import edit-history records into the database.
    """
    data = _load_json(file)
    if not isinstance(data, list):
        console.print("[bold red]Error:[/bold red] Expected a JSON array of edit records.")
        raise typer.Exit(1)

    try:
        records = [_parse_edit_record(item) for item in data]
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    db = _open_db(db_path)
    count = db.save_edits(records)
    console.print(
        f"[bold green]✓[/bold green] Imported {count} edit record(s) into [cyan]{db.path}[/cyan]"
    )


@app.command()
def insight(
    days: int = typer.Option(30, "--days", "-n", min=1, help="Trailing window in days"),
    tz_name: Optional[str] = typer.Option(
        None, "--tz", help="Timezone for calendar days (default: UTC)"
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", "-d", help=DB_OPTION_HELP, envvar="MINDRIFT_DB"
    ),
) -> None:
    """
    Show the composed drift insight.

    Shows:
    - Growth angle and trend
    - 3 and 7 day forecast
    - Overheat / stagnation warning
    - Behavioral mode and advice
    """
    tz = _resolve_timezone(tz_name)
    db = _open_db(db_path)
    now = datetime.now(timezone.utc)
    records = db.load_edits(since=now - timedelta(days=days + 1))

    if not records:
        console.print(
            "[yellow]No edit history found.[/yellow] "
            "Run [bold]mindrift import-edits <file>[/bold] first."
        )
        raise typer.Exit(0)

    result = generate_insight(records, window_days=days, now=now, tz=tz)
    _print_insight(result, days)


@app.command()
def timeline(
    days: int = typer.Option(90, "--days", "-n", min=1, help="Trailing window in days"),
    tz_name: Optional[str] = typer.Option(
        None, "--tz", help="Timezone for calendar days (default: UTC)"
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", "-d", help=DB_OPTION_HELP, envvar="MINDRIFT_DB"
    ),
) -> None:
    """
    Show the daily drift series and its summary.
    """
    tz = _resolve_timezone(tz_name)
    db = _open_db(db_path)
    now = datetime.now(timezone.utc)
    series = aggregate_daily_drift(
        db.load_edits(since=now - timedelta(days=days + 1)),
        window_days=days,
        now=now,
        tz=tz,
    )

    if not series:
        console.print("[yellow]No drift recorded in this window.[/yellow]")
        raise typer.Exit(0)

    result = build_timeline(series, range_days=days)

    table = Table(title=f"Drift Timeline ({days}d)", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Drift", justify="right")
    table.add_column("EMA", justify="right", style="bold")

    for day in result.days:
        table.add_row(day.date.isoformat(), f"{day.drift:.4f}", f"{day.ema:.4f}")

    console.print(table)

    summary = result.summary
    color = STATE_COLORS[summary.state]
    console.print(
        f"\n[bold]State:[/bold] [{color}]{summary.state.value}[/{color}]  "
        f"[bold]Trend:[/bold] {TREND_ICONS[summary.trend]} {summary.trend.value}  "
        f"[dim](mean {summary.mean:.4f}, sd {summary.std_dev:.4f})[/dim]"
    )
    console.print(f"[dim]{describe_timeline(summary)}[/dim]")


@app.command()
def classify(
    file: Path = typer.Argument(
        ...,
        help="JSON file with oldText, newText, oldEmbedding, newEmbedding and optional magnitude",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the serialized detail instead of a table"
    ),
    with_direction: bool = typer.Option(
        False, "--direction", help="Include the direction vector in JSON output"
    ),
) -> None:
    """
    Classify a single edit as expansion, contraction, pivot, deepening or refinement.
    """
    data = _load_json(file)
    if not isinstance(data, dict):
        console.print("[bold red]Error:[/bold red] Expected a JSON object describing one edit.")
        raise typer.Exit(1)

    try:
        magnitude = data.get("magnitude")
        detail = classify_change(
            data["oldText"],
            data["newText"],
            [float(v) for v in data["oldEmbedding"]],
            [float(v) for v in data["newEmbedding"]],
            magnitude=float(magnitude) if magnitude is not None else None,
        )
    except KeyError as e:
        console.print(f"[bold red]Error:[/bold red] Missing field {e}")
        raise typer.Exit(1)
    except (TypeError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(serialize_change_detail(detail, include_direction=with_direction))
        return

    _print_change_detail(detail)


@app.command()
def annotate(
    date: str = typer.Argument(..., help="Day to annotate (YYYY-MM-DD)"),
    label: str = typer.Argument(
        ...,
        help="One of: " + ", ".join(label.value for label in AnnotationLabel),
    ),
    note: Optional[str] = typer.Option(None, "--note", help="Free-text note"),
    phase: Optional[str] = typer.Option(
        None, "--phase", help="Automatically detected phase (creation/destruction/neutral)"
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", "-d", help=DB_OPTION_HELP, envvar="MINDRIFT_DB"
    ),
) -> None:
    """
    Add or update the annotation for a day.
    """
    db = _open_db(db_path)

    try:
        annotation = upsert_annotation(db, date, label, note=note, auto_phase=phase)
    except AnnotationValidationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    phase_text = annotation.auto_phase.value if annotation.auto_phase else "-"
    console.print(
        f"[bold green]✓[/bold green] {annotation.date.isoformat()} "
        f"[cyan]{annotation.label.value}[/cyan] [dim](phase: {phase_text})[/dim]"
    )


@app.command()
def annotations(
    days: int = typer.Option(90, "--days", "-n", min=1, help="Trailing window in days"),
    db_path: Optional[Path] = typer.Option(
        None, "--db", "-d", help=DB_OPTION_HELP, envvar="MINDRIFT_DB"
    ),
) -> None:
    """
    List recent annotations and how well they agree with the detected phase.
    """
    db = _open_db(db_path)
    today = datetime.now(timezone.utc).date()
    items = db.get_recent_annotations(days=days, today=today)

    if not items:
        console.print("[yellow]No annotations recorded.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Annotations", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Label", style="bold")
    table.add_column("Phase")
    table.add_column("Note", style="dim")

    for item in items:
        table.add_row(
            item.date.isoformat(),
            item.label.value,
            item.auto_phase.value if item.auto_phase else "-",
            item.note or "",
        )
    console.print(table)

    stats = get_annotation_stats(items, window_days=days, today=today)
    match = stats.phase_match
    console.print(
        f"\n[bold]Total:[/bold] {stats.total}  "
        f"[green]matched {match.matched}[/green]  "
        f"[yellow]mismatched {match.mismatched}[/yellow]  "
        f"[dim]unknown {match.unknown}[/dim]"
    )


# Helper functions for output formatting

def _print_insight(result: DriftInsight, days: int) -> None:
    """Print the composed insight as a panel."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")

    angle = result.angle
    warning = result.warning
    color = STATE_COLORS[warning.state]

    table.add_row("Today drift", f"{result.today_drift:.4f}")
    table.add_row("Today EMA", f"{result.today_ema:.4f}")
    table.add_row(
        "Trend",
        f"{TREND_ICONS[angle.trend]} {angle.trend.value} ({angle.angle_degrees:+.2f}°)",
    )
    table.add_row("Velocity", f"{angle.velocity:+.4f}/day")
    table.add_row(
        "Forecast",
        f"3d {result.forecast.forecast_3d:.4f} / 7d {result.forecast.forecast_7d:.4f} "
        f"[dim]({result.forecast.confidence.value} confidence)[/dim]",
    )
    severity = f" ({warning.severity.value})" if warning.severity != Severity.NONE else ""
    table.add_row("Warning", f"[{color}]{warning.state.value}{severity}[/{color}]")
    table.add_row("Mode", result.mode.value)

    if result.extended_warning and result.extended_warning.base_state != WarningState.STABLE:
        table.add_row("Pattern", result.extended_warning.extended_type.value)

    panel = Panel(table, title=f"[bold blue]Drift Insight ({days}d)[/bold blue]", border_style=color)
    console.print(panel)

    console.print(f"\n[bold]Advice:[/bold] {result.advice}")
    if result.extended_warning and result.extended_warning.base_state != WarningState.STABLE:
        console.print(f"[dim]{result.extended_warning.insight}[/dim]")


def _print_change_detail(detail: SemanticChangeDetail) -> None:
    """Print a change classification as a table."""
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Label", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Type", f"[cyan]{detail.type.value}[/cyan]")
    table.add_row("Confidence", f"{detail.confidence:.3f}")
    table.add_row("Magnitude", f"{detail.magnitude:.3f}")
    table.add_row("Length ratio", f"{detail.metrics.content_length_ratio:.3f}")
    table.add_row("Topic shift", f"{detail.metrics.topic_shift:.3f}")
    table.add_row("Vocabulary overlap", f"{detail.metrics.vocabulary_overlap:.3f}")
    table.add_row("Structural similarity", f"{detail.metrics.structural_similarity:.3f}")

    console.print(Panel(table, title="[bold]Semantic Change[/bold]", border_style="blue"))


# Version and logging options
@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log engine details to stderr",
    ),
) -> None:
    """
    Mindrift: thought-drift analytics for your notes.
    """
    if version:
        console.print(f"[bold]Mindrift[/bold] version {__version__}")
        raise typer.Exit()

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()
