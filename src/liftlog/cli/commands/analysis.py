"""Analysis commands: history, stats, exercises, effort."""

import json
from dataclasses import asdict
from typing import Annotated, Optional

import typer

from ...core.aggregation import AggregationEngine
from ...core.catalog import display_name
from ...io.serializers import ValidationError, session_to_dict
from .. import views
from ..app import DataDirOption, app, get_store, load_history_or_exit

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]


@app.command()
def history(
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", help="Show only the most recent N workouts"),
    ] = None,
    json_out: JsonOption = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show completed workouts.
    """
    sessions = load_history_or_exit(get_store(data_dir))
    if limit is not None:
        sessions = sessions[-limit:] if limit > 0 else []

    if json_out:
        print(json.dumps([session_to_dict(s) for s in sessions], indent=2))
        return

    views.print_history(sessions)


@app.command()
def stats(json_out: JsonOption = False, data_dir: DataDirOption = None) -> None:
    """
    Show workout totals, streaks and weekday distribution.
    """
    agg = AggregationEngine(get_store(data_dir))
    try:
        snapshot = agg.stats()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        data = asdict(snapshot)
        data["favorite_weekday_name"] = snapshot.favorite_weekday_name
        print(json.dumps(data, indent=2))
        return

    views.console.print()
    views.print_stats(snapshot)
    views.console.print()


@app.command()
def exercises(
    skipped: Annotated[
        bool,
        typer.Option("--skipped", "-s", help="Rank by skips and swaps instead of use"),
    ] = False,
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-x", help="Show recent logs for one exercise id"),
    ] = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", help="Number of exercises to list"),
    ] = None,
    json_out: JsonOption = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Rank exercises by use or by skips, or show one exercise's history.
    """
    agg = AggregationEngine(get_store(data_dir))
    try:
        if exercise is not None:
            logs = agg.exercise_history(exercise, limit or 10)
            averages = agg.recent_averages(exercise)
        elif skipped:
            skip_items = agg.most_skipped(limit)
        else:
            used_items = agg.most_used(limit)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if exercise is not None:
        if json_out:
            print(json.dumps({
                "exercise_id": exercise,
                "name": display_name(exercise),
                "recent_averages": asdict(averages) if averages else None,
                "logs": [asdict(log) for log in logs],
            }, indent=2))
            return
        views.print_exercise_detail(exercise, logs, averages)
        return

    if skipped:
        if json_out:
            print(json.dumps([asdict(i) for i in skip_items], indent=2))
            return
        if not skip_items:
            views.console.print("[yellow]No skipped exercises.[/yellow]")
            return
        views.console.print(views.format_skips_table(skip_items))
        return

    if json_out:
        print(json.dumps([asdict(i) for i in used_items], indent=2))
        return
    if not used_items:
        views.console.print("[yellow]No exercises logged yet.[/yellow]")
        return
    views.console.print(views.format_usage_table(used_items))


@app.command()
def effort(
    points: Annotated[
        Optional[int],
        typer.Option("--points", "-n", help="Number of recent rated workouts to plot"),
    ] = None,
    svg: Annotated[
        bool,
        typer.Option("--svg", help="Print SVG path data for the curve instead of a chart"),
    ] = False,
    json_out: JsonOption = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Plot the overall effort trend of recent workouts.
    """
    agg = AggregationEngine(get_store(data_dir))
    try:
        series = agg.effort_points(points)
        curve = agg.effort_trend(points)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if json_out:
        print(json.dumps({
            "points": [{"date": p.day.isoformat(), "effort": p.effort} for p in series],
            "average": curve.summary.average,
            "latest": curve.summary.latest,
            "delta": curve.summary.delta,
            "path": curve.svg_path(),
        }, indent=2))
        return

    if svg:
        print(curve.svg_path())
        print(curve.area_path())
        return

    views.print_trend(curve, series)
