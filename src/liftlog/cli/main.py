"""
CLI entry point using Typer.

Provides commands for workout logging and review:
- start / status / log / next / prev / skip / swap / goto / add / remove /
  complete / cancel: run a workout session
- workouts / save-workout / delete-workout / catalog / add-exercise /
  delete-exercise: workout library and custom exercises
- history / stats / exercises / effort: review past workouts
- calendar / year / rest / backlog / clear-day / toggle-day: calendar views
  and manual day markers
- export / import / backfill-effort / delete: data maintenance
"""

import typer

from . import views
from .app import app
from .commands import analysis, data, days, library, session  # noqa: F401  (registers commands)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """
    Workout logger. Run without a command for interactive mode.
    """
    if ctx.invoked_subcommand is not None:
        return

    # Interactive main menu
    views.console.print()
    views.console.print("[bold cyan]liftlog[/bold cyan]: workout logger")
    views.console.print()

    menu = {
        "1": (session.status, "Active session"),
        "2": (analysis.stats, "Stats"),
        "3": (days.calendar, "Calendar"),
        "4": (days.year, "Year grid"),
        "5": (analysis.history, "History"),
        "6": (analysis.effort, "Effort trend"),
        "7": (analysis.exercises, "Most used exercises"),
        "t": (session.templates, "Workout templates"),
        "w": (library.workouts, "Saved workouts"),
        "0": (None, "Quit"),
    }

    for key, (_, desc) in menu.items():
        views.console.print(f"  \\[{key}] {desc}")

    views.console.print()
    choice = views.console.input("Choose [1]: ").strip() or "1"

    if choice not in menu:
        views.print_error(f"Unknown choice: {choice}")
        raise typer.Exit(1)

    command = menu[choice][0]
    if command is None:
        raise typer.Exit(0)
    ctx.invoke(command)


if __name__ == "__main__":
    app()
