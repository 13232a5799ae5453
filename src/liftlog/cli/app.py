"""Shared Typer app object, shared option types, and store/engine utilities."""

import warnings
from datetime import date
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.catalog import set_custom_exercises
from ..core.session_engine import DataIntegrityWarning, SessionEngine
from ..io.history_store import HistoryStore, get_default_data_dir
from ..io.kv_store import JsonFileStore, StorageFailure
from ..io.serializers import ValidationError, parse_date
from . import views

# Shared --data-dir option type used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-p", help="Data directory (default: ~/.liftlog or $LIFTLOG_HOME)"),
]

app = typer.Typer(
    name="liftlog",
    help="Workout logger: guided sessions, streaks, calendars and effort trends.",
    no_args_is_help=False,
    invoke_without_command=True,
)


def get_store(data_dir: Path | None) -> HistoryStore:
    """Get history store from a data directory or the default location, registering custom exercises."""
    if data_dir is None:
        data_dir = get_default_data_dir()
    store = HistoryStore(JsonFileStore(data_dir))
    try:
        set_custom_exercises(store.load_custom_exercises())
    except (ValidationError, StorageFailure) as e:
        views.print_warning(f"Custom exercises not loaded: {e}")
    return store


def get_engine(data_dir: Path | None) -> SessionEngine:
    """Build a session engine and resume any active session, reporting repairs."""
    engine = SessionEngine(get_store(data_dir))
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", DataIntegrityWarning)
        engine.resume()
    for w in caught:
        views.print_warning(str(w.message))
    return engine


def finish(engine: SessionEngine) -> None:
    """Flush pending writes before the command exits."""
    if not engine.flush():
        views.print_warning("Some changes could not be saved yet; they will be retried next time.")


def load_history_or_exit(store: HistoryStore):
    try:
        return store.load_history()
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)


def parse_day_or_exit(value: str | None) -> date:
    """Parse a YYYY-MM-DD argument ('today' or None means today)."""
    if value is None or value == "today":
        return date.today()
    try:
        return parse_date(value)
    except ValidationError as e:
        views.print_error(str(e))
        raise typer.Exit(1)
