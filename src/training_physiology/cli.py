#!/usr/bin/env python3
"""
Training physiology CLI.

Estimates fitness, fatigue and threshold pace from a JSON export of workouts
(a list of workout objects, or an object with a "workouts" list).

Usage:
    training-physiology threshold workouts.json --vdot 50
    training-physiology fitness workouts.json --days 14
    training-physiology vdot --distance 10k --time 42:30
    training-physiology zones --vdot 50
    training-physiology predict --vdot 50 --quality high
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import get_settings
from .exceptions import TrainingPhysiologyError
from .metrics.fitness import (
    assess_ramp_rate,
    build_fitness_series,
    calculate_ramp_rate,
    get_fitness_status,
    get_training_recommendation,
)
from .metrics.threshold import detect_threshold_pace
from .metrics.vdot import (
    DataQuality,
    RaceDistance,
    adjust_pace_zones_for_weather,
    format_pace,
    pace_zones,
    parse_race_time,
    predict_race_times,
    vdot_from_performance,
    weather_pace_adjustment,
)
from .models.workouts import WorkoutRecord

logger = logging.getLogger(__name__)

console = Console()


def configure_logging(level: str) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def load_workouts(path: Path) -> List[WorkoutRecord]:
    """
    Read workouts from a JSON file.

    Rows that cannot be parsed at all are skipped with a warning; the
    estimators filter implausible values themselves.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    rows = data.get("workouts", []) if isinstance(data, dict) else data

    workouts = []
    for i, row in enumerate(rows):
        try:
            workouts.append(WorkoutRecord.from_dict(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping workout row {i}: {e}")
    return workouts


def get_risk_color(risk_zone: str) -> str:
    """Get rich color for risk zone."""
    colors = {
        "optimal": "green",
        "undertrained": "blue",
        "caution": "yellow",
        "danger": "red",
    }
    return colors.get(risk_zone, "white")


def _parse_as_of(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def cmd_threshold(args) -> None:
    """Estimate threshold pace from the workout log."""
    settings = get_settings()
    workouts = load_workouts(args.file)
    estimate = detect_threshold_pace(
        workouts,
        known_vdot=args.vdot,
        config=settings.engine_config(),
        as_of=_parse_as_of(args.as_of),
    )

    console.print()
    console.print(Panel("[bold]Threshold Pace[/bold]"))

    evidence = estimate.evidence
    if not estimate.has_estimate:
        console.print(
            f"[yellow]Insufficient data[/yellow]: {evidence.workouts_analyzed} usable workouts."
        )
        console.print()
        return

    console.print(
        f"Threshold pace: [bold cyan]{format_pace(estimate.threshold_pace_seconds_per_mile)}[/bold cyan]"
        f"  method: {estimate.method.value}  confidence: {estimate.confidence:.0%}"
    )
    console.print(
        f"Workouts analyzed: {evidence.workouts_analyzed} ({evidence.workouts_with_hr} with HR)"
    )
    if evidence.deflection_pace is not None:
        console.print(f"HR deflection: {format_pace(evidence.deflection_pace)}")
    if evidence.sustainability_boundary_pace is not None:
        console.print(f"Drift boundary: {format_pace(evidence.sustainability_boundary_pace)}")

    if evidence.threshold_efforts:
        table = Table(title="Threshold Efforts", box=box.ROUNDED)
        table.add_column("Date", style="cyan")
        table.add_column("Pace", justify="right")
        table.add_column("Minutes", justify="right")
        table.add_column("Score", justify="right")
        for effort in evidence.threshold_efforts[:10]:
            table.add_row(
                effort.workout_date.isoformat(),
                format_pace(effort.pace),
                f"{effort.duration_seconds / 60:.0f}",
                f"{effort.score:.2f}",
            )
        console.print(table)

    if estimate.vdot_validation:
        v = estimate.vdot_validation
        color = {"strong": "green", "moderate": "yellow", "weak": "red"}[v.agreement.value]
        console.print(
            f"VDOT check: expected {format_pace(v.vdot_threshold_pace)}, "
            f"difference {v.difference_seconds:+.0f}s ",
            Text(v.agreement.value.upper(), style=color),
        )
    console.print()


def cmd_fitness(args) -> None:
    """Show fitness metrics (CTL, ATL, TSB, ACWR)."""
    settings = get_settings()
    workouts = load_workouts(args.file)
    metrics = build_fitness_series(
        workouts,
        end=_parse_as_of(args.as_of),
        config=settings.engine_config(),
    )

    console.print()
    console.print(Panel("[bold]Fitness Metrics[/bold]"))

    if not metrics:
        console.print("No usable workouts found.")
        console.print()
        return

    table = Table(title=f"Fitness Metrics (Last {args.days} Days)", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Load", justify="right")
    table.add_column("CTL", justify="right")
    table.add_column("ATL", justify="right")
    table.add_column("TSB", justify="right")
    table.add_column("ACWR", justify="right")
    table.add_column("Risk", style="bold")

    for m in metrics[-args.days:]:
        tsb_color = "green" if m.tsb > 0 else "yellow" if m.tsb > -10 else "red"
        table.add_row(
            m.date.isoformat(),
            f"{m.daily_load:.1f}",
            f"{m.ctl:.1f}",
            f"{m.atl:.1f}",
            Text(f"{m.tsb:+.1f}", style=tsb_color),
            f"{m.acwr:.2f}",
            Text(m.risk_zone.upper(), style=get_risk_color(m.risk_zone)),
        )
    console.print(table)

    latest = metrics[-1]
    ramp = calculate_ramp_rate(metrics)
    console.print(f"Form: {get_fitness_status(latest.tsb).replace('_', ' ')}")
    ramp_text = f"{ramp:+.1f} pts/week" if ramp is not None else "n/a"
    console.print(f"CTL ramp rate: {ramp_text} ({assess_ramp_rate(ramp)})")
    console.print(get_training_recommendation(latest.tsb, latest.acwr))
    console.print()


def cmd_vdot(args) -> None:
    """Calculate VDOT from a race result."""
    distance = RaceDistance.from_string(args.distance)
    seconds = parse_race_time(args.time)
    vdot = vdot_from_performance(distance.value, seconds)

    console.print()
    console.print(Panel(f"[bold]VDOT {vdot:.1f}[/bold] from {distance.display_name} in {args.time}"))
    _print_predictions(vdot, DataQuality.HIGH)


def cmd_zones(args) -> None:
    """Show training pace zones for a VDOT."""
    table = Table(title=f"Pace Zones (VDOT {args.vdot:.1f})", box=box.ROUNDED)
    table.add_column("Zone", style="cyan")
    table.add_column("Target", justify="right")
    table.add_column("Range", justify="right")
    table.add_column("Purpose")

    zones = pace_zones(args.vdot)
    if args.temperature is not None:
        zones = adjust_pace_zones_for_weather(zones, args.temperature, args.humidity, args.dew_point)

    for zone in zones.values():
        table.add_row(
            zone.display_name,
            format_pace(zone.pace_seconds_per_mile),
            zone.pace_range_formatted,
            zone.description,
        )
    console.print()
    console.print(table)
    if args.temperature is not None:
        adjustment = weather_pace_adjustment(args.temperature, args.humidity, args.dew_point)
        console.print(
            f"[dim]Adjusted for {args.temperature:.0f}°F, {args.humidity:.0f}% humidity: "
            f"+{adjustment}s/mi on easy paces[/dim]"
        )
    console.print()


def cmd_predict(args) -> None:
    """Predict race times for a VDOT."""
    console.print()
    _print_predictions(args.vdot, DataQuality(args.quality))


def _print_predictions(vdot: float, quality: DataQuality) -> None:
    table = Table(title=f"Race Predictions ({quality.value} confidence)", box=box.ROUNDED)
    table.add_column("Distance", style="cyan")
    table.add_column("Time", justify="right", style="bold")
    table.add_column("Pace", justify="right")
    table.add_column("Range", justify="right")

    for name, prediction in predict_race_times(vdot, quality).items():
        table.add_row(
            name,
            prediction.time_formatted,
            format_pace(prediction.pace_seconds_per_mile),
            prediction.range_formatted,
        )
    console.print(table)
    console.print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="training-physiology",
        description="Training load, VDOT and threshold pace from workout history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  training-physiology threshold workouts.json --vdot 50
  training-physiology fitness workouts.json --days 14
  training-physiology vdot --distance half --time 1:45:00
  training-physiology zones --vdot 50
  training-physiology predict --vdot 50 --quality low
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    threshold_p = subparsers.add_parser("threshold", help="Estimate threshold pace")
    threshold_p.add_argument("file", type=Path, help="Workouts JSON file")
    threshold_p.add_argument("--vdot", type=float, help="Known VDOT for cross-validation")
    threshold_p.add_argument("--as-of", help="Reference date (YYYY-MM-DD), default today")

    fitness_p = subparsers.add_parser("fitness", help="Show fitness metrics")
    fitness_p.add_argument("file", type=Path, help="Workouts JSON file")
    fitness_p.add_argument(
        "--days", "-d", type=int, default=7, help="Number of days to show"
    )
    fitness_p.add_argument("--as-of", help="Last day of the series (YYYY-MM-DD)")

    vdot_p = subparsers.add_parser("vdot", help="Calculate VDOT from a race")
    vdot_p.add_argument(
        "--distance", required=True, help="Race distance (mile, 5k, 10k, half, marathon)"
    )
    vdot_p.add_argument("--time", required=True, help="Finish time (e.g. '1:45:00' or '25:00')")

    zones_p = subparsers.add_parser("zones", help="Show training pace zones")
    zones_p.add_argument("--vdot", type=float, required=True)
    zones_p.add_argument("--temperature", type=float, help="Air temperature in °F")
    zones_p.add_argument("--humidity", type=float, default=50.0, help="Relative humidity %%")
    zones_p.add_argument("--dew-point", type=float, help="Dew point in °F")

    predict_p = subparsers.add_parser("predict", help="Predict race times")
    predict_p.add_argument("--vdot", type=float, required=True)
    predict_p.add_argument(
        "--quality",
        choices=[q.value for q in DataQuality],
        default=DataQuality.MEDIUM.value,
        help="Data quality tier (sets prediction interval width)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else get_settings().log_level)

    commands = {
        "threshold": cmd_threshold,
        "fitness": cmd_fitness,
        "vdot": cmd_vdot,
        "zones": cmd_zones,
        "predict": cmd_predict,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    try:
        command(args)
    except TrainingPhysiologyError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        return 2
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
