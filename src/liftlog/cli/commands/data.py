"""Data commands: export, import, backfill-effort, delete."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from ...io.kv_store import StorageFailure
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, get_store, load_history_or_exit


@app.command()
def export(
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Write the backup to this file (default: stdout)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Export workout history and rest days as a JSON backup.
    """
    store = get_store(data_dir)
    try:
        text = store.export_json()
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if output is None:
        print(text)
        return

    try:
        output.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        views.print_error(f"Cannot write {output}: {e}")
        raise typer.Exit(1)
    views.print_success(f"Exported {len(store.load_history())} workout(s) to {output}")


@app.command("import")
def import_backup(
    source: Annotated[Path, typer.Argument(help="Backup JSON file to import")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Import workouts from a JSON backup, skipping ones already present.
    """
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as e:
        views.print_error(f"Cannot read {source}: {e}")
        raise typer.Exit(1)

    store = get_store(data_dir)
    try:
        added = store.import_json(text)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    views.print_success(f"Imported {added} new workout(s).")


@app.command("backfill-effort")
def backfill_effort(
    default: Annotated[
        Optional[int],
        typer.Option("--default", "-d", help="Effort for workouts with no logged effort (1-10)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Give an effort rating to completed workouts that lack one.
    """
    store = get_store(data_dir)
    try:
        repaired = store.backfill_effort(default)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)

    if repaired:
        views.print_success(f"Added effort to {repaired} workout(s).")
    else:
        views.print_info("All workouts already have an effort rating.")


@app.command()
def delete(
    session_id: Annotated[str, typer.Argument(help="Workout id (see the Id column in 'history')")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove a workout from history by its id.
    """
    store = get_store(data_dir)
    sessions = load_history_or_exit(store)
    target = next((s for s in sessions if s.session_id == session_id), None)
    if target is None:
        views.print_error(f"No workout with id {session_id}")
        raise typer.Exit(1)

    views.console.print(f"Workout to delete: [bold]{target.local_date}[/bold] ({target.name})")
    if not force and not views.confirm_action("Delete this workout?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_session(session_id)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    views.print_success(f"Deleted workout {session_id}")
