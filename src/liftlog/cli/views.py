"""
CLI view formatters using Rich for pretty console output.

Handles table formatting and display of sessions, calendars and stats.
"""

from datetime import date

from rich.console import Console
from rich.table import Table

from ..core.aggregation import (
    ContributionGrid,
    EffortPoint,
    ExerciseSkips,
    ExerciseUsage,
    MonthCalendar,
    RecentAverages,
    StatsSnapshot,
)
from ..core.ascii_plot import create_weekday_chart, render_trend
from ..core.catalog import ExerciseInfo, WorkoutTemplate, display_name
from ..core.config import CARDIO_TYPE_LABELS, EFFORT_LABELS, WEEKDAY_NAMES
from ..core.models import (
    CalendarDayAggregate,
    ExerciseLog,
    ExerciseRef,
    SavedWorkout,
    SlotKey,
    WorkoutSession,
)
from ..core.session_engine import SessionEngine
from ..core.trend import TrendCurve, effort_color

console = Console()

# Calendar cell glyphs by day kind
DAY_GLYPHS = {
    "strength": "[green]■[/green]",
    "cardio": "[cyan]■[/cyan]",
    "both": "[magenta]■[/magenta]",
    "rest": "[blue]○[/blue]",
    "none": "[dim]·[/dim]",
}


def format_duration(seconds: int | None) -> str:
    """Format seconds as '1h 05m', '42m' or '45s'."""
    if not seconds:
        return "-"
    if seconds < 60:
        return f"{seconds}s"
    minutes = round(seconds / 60)
    if minutes < 60:
        return f"{minutes}m"
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _fmt_weight(weight: float | None) -> str:
    if weight is None:
        return ""
    return f"{weight:g} kg"


def format_target(ref: ExerciseRef) -> str:
    """Describe the configured target for an exercise, e.g. '3×10 @ 16 kg'."""
    parts = []
    if ref.reps is not None:
        reps = str(ref.reps)
        parts.append(f"{ref.sets}×{reps}" if ref.sets else f"{reps} reps")
    if ref.duration is not None:
        parts.append(format_duration(ref.duration))
    if ref.weight:
        parts.append(f"@ {_fmt_weight(ref.weight)}")
    return " ".join(parts) or "-"


def format_log(log: ExerciseLog) -> str:
    """One-line summary of a logged exercise."""
    parts = []
    if log.reps is not None:
        parts.append(f"{log.reps} reps")
    if log.duration is not None:
        parts.append(format_duration(log.duration))
    if log.weight:
        parts.append(f"@ {_fmt_weight(log.weight)}")
    if log.effort is not None:
        parts.append(f"RPE {log.effort}")
    return " ".join(parts) or "done"


def session_kind(session: WorkoutSession) -> str:
    if session.is_backlog:
        return "backlog"
    if session.cardio is not None:
        return CARDIO_TYPE_LABELS.get(session.cardio.cardio_type, session.cardio.cardio_type)
    if session.blocks is None:
        return "quick"
    return "strength"


# =============================================================================
# ACTIVE SESSION
# =============================================================================


def print_session_status(engine: SessionEngine) -> None:
    """Print the active session with its blocks, cursor and logs."""
    session = engine.session
    if session is None:
        console.print("[yellow]No active session.[/yellow]")
        return

    done, total = engine.progress()
    header = f"[bold cyan]{session.name}[/bold cyan]  elapsed {format_duration(engine.elapsed_seconds())}"
    if total:
        header += f"  [dim]{done}/{total} exercises[/dim]"
    console.print(header)

    if session.cardio is not None:
        console.print(f"Cardio: {session_kind(session)}")

    if session.blocks is None:
        if not session.logs:
            console.print("[dim]No exercises logged yet.[/dim]")
        for log in session.logs:
            console.print(f"  ✓ {display_name(log.exercise_id)}  {format_log(log)}")
        return

    logged = {log.slot for log in session.logs if log.slot is not None}
    skipped = set(session.skipped or [])
    cursor = engine.cursor.slot

    table = Table(show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("#", style="dim")
    table.add_column("Exercise")
    table.add_column("Target")
    table.add_column("Logged")

    for b, block in enumerate(session.blocks):
        table.add_row("", "", f"[bold]{block.name}[/bold] [dim]({block.kind})[/dim]", "", "")
        for e, ref in enumerate(block.exercises):
            slot = SlotKey(b, e)
            name = display_name(session.effective_exercise_id(slot))
            if slot in session.substitutions:
                name += f" [dim](for {display_name(ref.exercise_id)})[/dim]"
            if slot == cursor:
                marker = "[bold yellow]▶[/bold yellow]"
            elif slot in logged:
                marker = "[green]✓[/green]"
            elif slot in skipped:
                marker = "[dim]⤼[/dim]"
            else:
                marker = ""
            logs = [format_log(log) for log in session.logs if log.slot == slot]
            table.add_row(marker, f"{b + 1}.{e + 1}", name, format_target(ref), "; ".join(logs))

    console.print(table)


def print_current_exercise(engine: SessionEngine) -> None:
    """Print the exercise at the cursor."""
    ref = engine.current_exercise()
    block = engine.current_block()
    if ref is None or block is None:
        return
    cursor = engine.cursor
    console.print(
        f"[bold]▶ {display_name(engine.current_exercise_id() or ref.exercise_id)}[/bold]"
        f"  {format_target(ref)}"
        f"  [dim]{block.name} {cursor.block_index + 1}.{cursor.exercise_index + 1}[/dim]"
    )


def print_completed_summary(session: WorkoutSession) -> None:
    console.print(f"[bold green]Workout complete: {session.name}[/bold green]")
    console.print(f"  Duration:  {format_duration(session.total_duration)}")
    console.print(f"  Exercises: {len(session.logs)}")
    if session.effort is not None:
        console.print(f"  Effort:    {session.effort} ({EFFORT_LABELS[session.effort]})")
    if session.cardio is not None and session.cardio.distance is not None:
        console.print(f"  Distance:  {session.cardio.distance:g} km")


# =============================================================================
# HISTORY AND STATS
# =============================================================================


def format_history_table(sessions: list[WorkoutSession]) -> Table:
    """
    Create a Rich table displaying session history.

    Args:
        sessions: Sessions to display, oldest first

    Returns:
        Rich Table object
    """
    table = Table(title="Workout History")

    table.add_column("Date", style="cyan")
    table.add_column("Name")
    table.add_column("Type", style="magenta")
    table.add_column("Duration", justify="right")
    table.add_column("Exercises", justify="right")
    table.add_column("Effort", justify="right")
    table.add_column("Id", style="dim")

    for session in sessions:
        table.add_row(
            session.local_date.isoformat(),
            session.name,
            session_kind(session),
            format_duration(session.total_duration),
            str(len(session.logs)),
            str(session.effort) if session.effort is not None else "-",
            session.session_id,
        )

    return table


def print_history(sessions: list[WorkoutSession]) -> None:
    if not sessions:
        console.print("[yellow]No workouts recorded yet.[/yellow]")
        return
    console.print(format_history_table(sessions))


def format_stats_display(stats: StatsSnapshot) -> str:
    """Format headline statistics as a text block."""
    lines = [
        "Workout stats",
        f"- Total workouts:   {stats.total_workouts}",
        f"- This week:        {stats.this_week}",
        f"- This month:       {stats.this_month}",
        f"- Average duration: {format_duration(stats.average_duration)}",
        f"- Total time:       {stats.total_minutes} min",
        f"- Current streak:   {stats.current_streak} day{'s' if stats.current_streak != 1 else ''}",
        f"- Best streak:      {stats.longest_streak} day{'s' if stats.longest_streak != 1 else ''}",
    ]
    if stats.favorite_weekday_name is not None:
        lines.append(f"- Favorite day:     {stats.favorite_weekday_name}")
    return "\n".join(lines)


def print_stats(stats: StatsSnapshot) -> None:
    console.print(format_stats_display(stats))
    if stats.total_workouts:
        console.print()
        console.print(create_weekday_chart(stats.workouts_by_weekday))


def format_usage_table(items: list[ExerciseUsage]) -> Table:
    table = Table(title="Most Used Exercises")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Exercise")
    table.add_column("Times logged", justify="right")
    for i, item in enumerate(items, 1):
        table.add_row(str(i), display_name(item.exercise_id), str(item.count))
    return table


def format_skips_table(items: list[ExerciseSkips]) -> Table:
    table = Table(title="Most Skipped Exercises")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Exercise")
    table.add_column("Skipped", justify="right")
    table.add_column("Swapped", justify="right")
    for i, item in enumerate(items, 1):
        table.add_row(str(i), display_name(item.exercise_id), str(item.skips), str(item.swaps))
    return table


def print_exercise_detail(exercise_id: str, logs: list[ExerciseLog], averages: RecentAverages | None) -> None:
    console.print(f"[bold]{display_name(exercise_id)}[/bold]")
    if averages is not None:
        console.print(
            f"Last 7 days: {averages.log_count} log(s), "
            f"avg {averages.avg_reps} reps @ {averages.avg_weight} kg"
        )
    if not logs:
        console.print("[yellow]Not logged yet.[/yellow]")
        return
    for log in logs:
        console.print(f"  {log.local_date.isoformat()}  {format_log(log)}")


def print_trend(curve: TrendCurve, points: list[EffortPoint]) -> None:
    if not points:
        console.print("[yellow]No rated workouts yet.[/yellow]")
        return
    color = effort_color(points[-1].effort)
    chart = render_trend(curve, labels=[p.label for p in points])
    console.print(f"[{color}]{chart}[/{color}]", highlight=False)


def print_templates(templates: list[WorkoutTemplate]) -> None:
    table = Table(title="Workout Templates")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Blocks", justify="right")
    table.add_column("Exercises", justify="right")
    table.add_column("Est. time", justify="right")
    for t in templates:
        table.add_row(
            t.template_id,
            t.name,
            str(len(t.blocks)),
            str(t.exercise_count),
            f"{t.estimated_minutes} min" if t.estimated_minutes else "-",
        )
    console.print(table)


def print_saved_workouts(workouts: list[SavedWorkout]) -> None:
    if not workouts:
        print_info("No saved workouts yet. Use 'liftlog save-workout NAME' during or after a session.")
        return
    table = Table(title="Saved Workouts")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Blocks", justify="right")
    table.add_column("Exercises", justify="right")
    table.add_column("Updated")
    for w in workouts:
        table.add_row(
            w.workout_id,
            w.name,
            str(len(w.blocks)),
            str(w.exercise_count),
            (w.updated_at or "")[:10] or "-",
        )
    console.print(table)


def print_catalog(exercises: list[ExerciseInfo]) -> None:
    table = Table(title="Exercise Catalog")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Area")
    table.add_column("Equipment")
    for info in exercises:
        table.add_row(info.exercise_id, info.name, info.area, info.equipment)
    console.print(table)


# =============================================================================
# CALENDARS
# =============================================================================


def _cell(day: CalendarDayAggregate | None, today: date) -> str:
    if day is None:
        return " "
    glyph = DAY_GLYPHS[day.kind]
    if day.day == today:
        return f"[reverse]{glyph}[/reverse]"
    return glyph


def print_week(days: list[CalendarDayAggregate], today: date) -> None:
    """One line for the current Monday-start week."""
    names = " ".join(WEEKDAY_NAMES[(d.day.weekday() + 1) % 7][:2] for d in days)
    cells = " ".join(f"{_cell(d, today)} " for d in days)
    console.print(f"This week  {names}")
    console.print(f"           {cells}")


def print_month_calendar(cal: MonthCalendar, today: date) -> None:
    console.print(f"[bold]{cal.title}[/bold]")
    console.print("    Mo Tu We Th Fr Sa Su")
    for i, week in enumerate(cal.weeks):
        marker = "▶" if i == cal.current_week_index else " "
        cells = []
        for day in week:
            if day is None:
                cells.append("  ")
            elif day.kind == "none":
                label = f"{day.day.day:2d}"
                cells.append(f"[reverse]{label}[/reverse]" if day.day == today else f"[dim]{label}[/dim]")
            else:
                cells.append(f"{_cell(day, today)} ")
        console.print(f"  {marker} " + " ".join(cells))


def print_contribution_grid(grid: ContributionGrid, today: date) -> None:
    """Year grid: one column per week, one row per weekday (Monday first)."""
    width = len(grid.weeks)
    label_line = [" "] * width
    for index, label in grid.month_labels:
        for j, c in enumerate(label):
            if index + j < width:
                label_line[index + j] = c
    console.print(f"[bold]{grid.year}[/bold]")
    console.print("    " + "".join(label_line))
    row_names = ["Mo", "  ", "We", "  ", "Fr", "  ", "Su"]
    for row in range(7):
        cells = "".join(_cell(week[row], today) for week in grid.weeks)
        console.print(f"{row_names[row]}  {cells}")
    if grid.current_week_index >= 0:
        console.print("    " + " " * grid.current_week_index + "▲")
    console.print(
        f"    {DAY_GLYPHS['strength']} strength  {DAY_GLYPHS['cardio']} cardio  "
        f"{DAY_GLYPHS['both']} both  {DAY_GLYPHS['rest']} rest"
    )


# =============================================================================
# MESSAGES
# =============================================================================


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]Error: {message}[/red]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]{message}[/blue]")


def confirm_action(message: str) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message

    Returns:
        True if confirmed, False otherwise
    """
    response = console.input(f"{message} [y/N]: ")
    return response.lower() in ("y", "yes")
