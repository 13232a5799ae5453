"""Calendar commands: calendar, year, rest, backlog, clear-day, toggle-day."""

from datetime import date
from typing import Annotated, Optional

import typer

from ...core.aggregation import AggregationEngine
from ...io.kv_store import StorageFailure
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, get_store, parse_day_or_exit

DayArgument = Annotated[
    Optional[str],
    typer.Argument(help="Date as YYYY-MM-DD (default: today)"),
]


def _parse_month(value: str) -> tuple[int, int]:
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
        if not 1 <= month <= 12:
            raise ValueError
    except ValueError:
        views.print_error(f"Invalid month: {value}. Expected YYYY-MM")
        raise typer.Exit(1)
    return year, month


@app.command()
def calendar(
    month: Annotated[
        Optional[str],
        typer.Option("--month", "-m", help="Month to show as YYYY-MM (default: current)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show the current week and a month calendar with streaks.
    """
    agg = AggregationEngine(get_store(data_dir))
    today = agg.today
    year, month_num = _parse_month(month) if month else (today.year, today.month)

    try:
        week = agg.week()
        cal = agg.month(year, month_num)
        current = agg.current_streak()
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_week(week, today)
    views.console.print()
    views.print_month_calendar(cal, today)
    views.console.print()
    views.console.print(f"Current streak: [bold]{current}[/bold] day{'s' if current != 1 else ''}")


@app.command()
def year(
    year_num: Annotated[
        Optional[int],
        typer.Option("--year", "-y", help="Calendar year (default: current)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Show the contribution grid for a year.
    """
    agg = AggregationEngine(get_store(data_dir))
    try:
        grid = agg.year(year_num)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    views.print_contribution_grid(grid, agg.today)


def _check_not_future(day: date) -> None:
    if day > date.today():
        views.print_error(f"{day.isoformat()} is in the future.")
        raise typer.Exit(1)


@app.command()
def rest(day: DayArgument = None, data_dir: DataDirOption = None) -> None:
    """
    Mark a day as a rest day.
    """
    target = parse_day_or_exit(day)
    store = get_store(data_dir)
    try:
        ok = store.set_rest_day(target)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if not ok:
        views.print_error(f"{target.isoformat()} has a logged workout and cannot be a rest day.")
        raise typer.Exit(1)
    views.print_success(f"{target.isoformat()} marked as rest day.")


@app.command()
def backlog(day: DayArgument = None, data_dir: DataDirOption = None) -> None:
    """
    Record that you worked out on a day without logging it.
    """
    target = parse_day_or_exit(day)
    _check_not_future(target)
    store = get_store(data_dir)
    try:
        entry = store.mark_backlog(target)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if entry is None:
        views.print_info(f"{target.isoformat()} already has a workout.")
        return
    views.print_success(f"{target.isoformat()} marked as workout day.")


@app.command("clear-day")
def clear_day(day: DayArgument = None, data_dir: DataDirOption = None) -> None:
    """
    Remove rest and backlog markers from a day (logged workouts are kept).
    """
    target = parse_day_or_exit(day)
    store = get_store(data_dir)
    try:
        changed = store.clear_day(target)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if changed:
        views.print_success(f"Cleared markers on {target.isoformat()}.")
    else:
        views.print_info(f"Nothing to clear on {target.isoformat()}.")


@app.command("toggle-day")
def toggle_day(day: DayArgument = None, data_dir: DataDirOption = None) -> None:
    """
    Cycle a day through none → workout → rest → none.
    """
    target = parse_day_or_exit(day)
    _check_not_future(target)
    store = get_store(data_dir)
    try:
        new_status = store.toggle_day(target)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if new_status == "protected":
        views.print_warning(f"{target.isoformat()} has a logged workout and cannot be changed.")
        return
    views.print_success(f"{target.isoformat()}: {new_status}")
