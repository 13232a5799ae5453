"""Library commands: workouts, save-workout, delete-workout, catalog, add-exercise, delete-exercise."""

import copy
import dataclasses
from typing import Annotated, Optional

import typer

from ...core.catalog import exercise_registry, set_custom_exercises, template_registry
from ...core.config import CUSTOM_EXERCISE_PREFIX
from ...core.models import Block, WorkoutSession
from ...io.kv_store import StorageFailure
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, finish, get_engine, get_store, load_history_or_exit


def _performed_blocks(session: WorkoutSession) -> list[Block]:
    """The session's blocks with substitutions written into them."""
    blocks = copy.deepcopy(session.blocks or [])
    for slot, exercise_id in session.substitutions.items():
        if session.slot_exists(slot):
            exercises = blocks[slot.block_index].exercises
            exercises[slot.exercise_index] = dataclasses.replace(
                exercises[slot.exercise_index], exercise_id=exercise_id
            )
    return blocks


@app.command()
def workouts(data_dir: DataDirOption = None) -> None:
    """
    List the saved workouts in your library.
    """
    store = get_store(data_dir)
    try:
        saved = store.load_saved_workouts()
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    views.print_saved_workouts(saved)


@app.command("save-workout")
def save_workout(
    name: Annotated[str, typer.Argument(help="Name for the saved workout")],
    minutes: Annotated[
        Optional[int],
        typer.Option("--minutes", "-m", help="Estimated duration in minutes"),
    ] = None,
    workout_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Overwrite the saved workout with this id"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Save the layout of the active session (or the last structured workout) to your library.

    Swapped exercises are saved as performed.
    """
    engine = get_engine(data_dir)
    source = engine.session
    if source is None or not source.blocks:
        history = load_history_or_exit(engine.store)
        candidates = [s for s in history if s.blocks and not s.is_backlog]
        source = candidates[-1] if candidates else None
    if source is None:
        views.print_error("No structured workout to save. Start one from a template first.")
        finish(engine)
        raise typer.Exit(1)

    try:
        saved = engine.store.save_workout(
            name,
            _performed_blocks(source),
            estimated_minutes=minutes,
            workout_id=workout_id,
            reserved=template_registry(),
        )
    except (ValidationError, StorageFailure, ValueError) as e:
        views.print_error(str(e))
        finish(engine)
        raise typer.Exit(1)

    views.print_success(f"Saved '{saved.name}' as {saved.workout_id} ({saved.exercise_count} exercises)")
    views.print_info(f"Start it with: liftlog start {saved.workout_id}")
    finish(engine)


@app.command("delete-workout")
def delete_workout(
    workout_id: Annotated[str, typer.Argument(help="Saved workout id (see 'liftlog workouts')")],
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove a workout from your library.
    """
    store = get_store(data_dir)
    try:
        target = store.get_saved_workout(workout_id)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if target is None:
        views.print_error(f"No saved workout with id {workout_id}")
        raise typer.Exit(1)

    if not force and not views.confirm_action(f"Delete saved workout '{target.name}'?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    try:
        store.delete_saved_workout(workout_id)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    views.print_success(f"Deleted saved workout {workout_id}")


@app.command()
def catalog(
    area: Annotated[
        Optional[str],
        typer.Option("--area", "-a", help="Only show exercises for this area (e.g. push, squat)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    List known exercises, including your custom ones.
    """
    get_store(data_dir)
    exercises = sorted(exercise_registry().values(), key=lambda info: (info.area, info.name))
    if area is not None:
        exercises = [info for info in exercises if info.area == area]
    views.print_catalog(exercises)


@app.command("add-exercise")
def add_exercise(
    name: Annotated[str, typer.Argument(help="Exercise name, e.g. 'Sled Push'")],
    area: Annotated[
        str,
        typer.Option("--area", "-a", help="Movement area, e.g. push, pull, squat, conditioning"),
    ] = "full-body",
    equipment: Annotated[
        str,
        typer.Option("--equipment", "-e", help="Equipment used"),
    ] = "bodyweight",
    reps: Annotated[
        Optional[int],
        typer.Option("--reps", "-r", help="Default target reps"),
    ] = None,
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", "-d", help="Default target duration in seconds"),
    ] = None,
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", help="Default target weight (kg)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Define a custom exercise.
    """
    store = get_store(data_dir)
    try:
        info = store.add_custom_exercise(
            name,
            area=area,
            equipment=equipment,
            default_reps=reps,
            default_duration=duration,
            default_weight=weight,
            reserved=exercise_registry(),
        )
        set_custom_exercises(store.load_custom_exercises())
    except (ValidationError, StorageFailure, ValueError) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    views.print_success(f"Added {info.name} as {info.exercise_id}")


@app.command("delete-exercise")
def delete_exercise(
    exercise_id: Annotated[str, typer.Argument(help="Custom exercise id (starts with 'custom-')")],
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove a custom exercise. Logged workouts keep it.
    """
    if not exercise_id.startswith(CUSTOM_EXERCISE_PREFIX):
        views.print_error(f"Only custom exercises ('{CUSTOM_EXERCISE_PREFIX}...') can be deleted.")
        raise typer.Exit(1)
    store = get_store(data_dir)
    try:
        removed = store.delete_custom_exercise(exercise_id)
    except (ValidationError, StorageFailure) as e:
        views.print_error(str(e))
        raise typer.Exit(1)
    if not removed:
        views.print_error(f"No custom exercise with id {exercise_id}")
        raise typer.Exit(1)
    views.print_success(f"Deleted custom exercise {exercise_id}")
