"""Active-session commands: start, status, log, next, prev, skip, swap, goto, add, remove, complete, cancel, templates."""

from typing import Annotated, NoReturn, Optional

import typer

from ...core.catalog import alternatives_for, display_name, get_exercise, get_template, template_registry
from ...core.config import CARDIO_TYPES
from ...core.models import CardioDescriptor, ExerciseRef
from ...core.session_engine import InvalidState, SessionEngine
from ...io.kv_store import StorageFailure
from ...io.serializers import ValidationError
from .. import views
from ..app import DataDirOption, app, finish, get_engine


def _fail(engine: SessionEngine, message: str) -> NoReturn:
    views.print_error(message)
    finish(engine)
    raise typer.Exit(1)


def _after_move(engine: SessionEngine, moved: bool) -> None:
    if moved:
        views.print_current_exercise(engine)
    else:
        views.print_info("That was the last exercise. Run 'liftlog complete' to finish.")


@app.command()
def start(
    template: Annotated[
        Optional[str],
        typer.Argument(help="Saved workout or template id to start from (see 'liftlog workouts' and 'liftlog templates')"),
    ] = None,
    cardio: Annotated[
        Optional[str],
        typer.Option("--cardio", "-c", help=f"Start a cardio session: {', '.join(CARDIO_TYPES)}"),
    ] = None,
    quick: Annotated[
        bool,
        typer.Option("--quick", "-q", help="Start a free-form quick workout"),
    ] = False,
    last: Annotated[
        bool,
        typer.Option("--last", "-l", help="Repeat the blocks of the most recent workout"),
    ] = False,
    name: Annotated[
        Optional[str],
        typer.Option("--name", "-n", help="Session name"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Replace an active session without asking"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Start a new workout session.

    Choose exactly one of: a workout id, --cardio TYPE, --quick, or --last.
    Saved workouts take precedence over built-in templates with the same id.
    """
    chosen = sum([template is not None, cardio is not None, quick, last])
    if chosen != 1:
        views.print_error("Choose one of: a template id, --cardio TYPE, --quick, or --last.")
        raise typer.Exit(1)

    engine = get_engine(data_dir)

    if engine.session is not None and not force:
        views.print_warning(f"Session '{engine.session.name}' is in progress.")
        if not views.confirm_action("Discard it and start a new one?"):
            views.print_info("Cancelled.")
            raise typer.Exit(0)

    if template is not None:
        try:
            saved = engine.store.get_saved_workout(template)
        except (ValidationError, StorageFailure) as e:
            _fail(engine, str(e))
        if saved is not None:
            started = engine.start(
                blocks=saved.blocks,
                name=name or saved.name,
                template_id=saved.workout_id,
            )
        else:
            try:
                started = engine.start_template(get_template(template))
            except ValueError as e:
                _fail(engine, str(e))
    elif cardio is not None:
        if cardio not in CARDIO_TYPES:
            _fail(engine, f"Unknown cardio type '{cardio}'. Valid: {', '.join(CARDIO_TYPES)}")
        started = engine.start(cardio=CardioDescriptor(cardio_type=cardio), name=name)
    elif quick:
        started = engine.start(name=name)
    else:
        try:
            history = engine.store.load_history()
        except ValidationError as e:
            _fail(engine, str(e))
        candidates = [s for s in history if s.blocks and not s.is_backlog]
        if not candidates:
            _fail(engine, "No previous structured workout to repeat.")
        previous = candidates[-1]
        started = engine.start(
            blocks=previous.blocks,
            name=name or previous.name,
            template_id=previous.template_id,
        )

    views.print_success(f"Started: {started.name}")
    views.print_current_exercise(engine)
    finish(engine)


@app.command()
def status(data_dir: DataDirOption = None) -> None:
    """
    Show the active session.
    """
    engine = get_engine(data_dir)
    views.print_session_status(engine)
    finish(engine)


@app.command()
def log(
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", help="Weight used (kg)"),
    ] = None,
    reps: Annotated[
        Optional[int],
        typer.Option("--reps", "-r", help="Reps performed"),
    ] = None,
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", "-d", help="Duration in seconds"),
    ] = None,
    effort: Annotated[
        Optional[int],
        typer.Option("--effort", "-e", help="Effort for this exercise (1-10)"),
    ] = None,
    notes: Annotated[
        Optional[str],
        typer.Option("--notes", "-n", help="Free-text notes"),
    ] = None,
    exercise: Annotated[
        Optional[str],
        typer.Option("--exercise", "-x", help="Exercise id (required for quick and cardio sessions)"),
    ] = None,
    stay: Annotated[
        bool,
        typer.Option("--stay", help="Do not move to the next exercise after logging"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Log the current exercise and move on to the next one.
    """
    engine = get_engine(data_dir)
    try:
        entry = engine.log_exercise(
            weight=weight,
            reps=reps,
            duration=duration,
            effort=effort,
            notes=notes,
            exercise_id=exercise,
        )
    except (InvalidState, ValueError) as e:
        _fail(engine, str(e))

    views.print_success(f"Logged {display_name(entry.exercise_id)}: {views.format_log(entry)}")
    if engine.session is not None and engine.session.is_block_based and not stay:
        _after_move(engine, engine.advance())
    finish(engine)


@app.command("next")
def next_exercise(data_dir: DataDirOption = None) -> None:
    """
    Move to the next exercise.
    """
    engine = get_engine(data_dir)
    try:
        moved = engine.advance()
    except InvalidState as e:
        _fail(engine, str(e))
    _after_move(engine, moved)
    finish(engine)


@app.command("prev")
def previous_exercise(data_dir: DataDirOption = None) -> None:
    """
    Move back to the previous exercise.
    """
    engine = get_engine(data_dir)
    try:
        moved = engine.retreat()
    except InvalidState as e:
        _fail(engine, str(e))
    if moved:
        views.print_current_exercise(engine)
    else:
        views.print_info("Already at the first exercise.")
    finish(engine)


@app.command()
def skip(data_dir: DataDirOption = None) -> None:
    """
    Skip the current exercise.
    """
    engine = get_engine(data_dir)
    skipped_id = engine.current_exercise_id()
    try:
        moved = engine.skip()
    except InvalidState as e:
        _fail(engine, str(e))
    if skipped_id is not None:
        views.print_info(f"Skipped {display_name(skipped_id)}")
    _after_move(engine, moved)
    finish(engine)


@app.command()
def swap(
    new_exercise: Annotated[
        Optional[str],
        typer.Argument(help="Exercise id to perform instead (omit to list alternatives)"),
    ] = None,
    block: Annotated[
        Optional[int],
        typer.Option("--block", "-b", help="Block number (default: current)"),
    ] = None,
    position: Annotated[
        Optional[int],
        typer.Option("--position", "-i", help="Exercise number within the block (default: current)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Swap an exercise in the active session for another one.
    """
    engine = get_engine(data_dir)
    if engine.session is None:
        _fail(engine, "No active session")
    cursor = engine.cursor
    b = block - 1 if block is not None else cursor.block_index
    e = position - 1 if position is not None else cursor.exercise_index

    try:
        current_id = engine.effective_exercise_id(b, e)
    except InvalidState as err:
        _fail(engine, str(err))

    if new_exercise is None:
        alternatives = alternatives_for(current_id)
        if not alternatives:
            views.print_info(f"No listed alternatives for {display_name(current_id)}.")
        else:
            views.console.print(f"Alternatives for [bold]{display_name(current_id)}[/bold]:")
            for alt in alternatives:
                views.console.print(f"  {alt:<24} {display_name(alt)}")
        finish(engine)
        return

    if get_exercise(new_exercise) is None:
        views.print_warning(f"'{new_exercise}' is not in the exercise catalog.")

    try:
        engine.swap_exercise(b, e, new_exercise)
    except (InvalidState, ValueError) as err:
        _fail(engine, str(err))

    views.print_success(f"Swapped {display_name(current_id)} → {display_name(new_exercise)}")
    finish(engine)


@app.command()
def goto(
    block: Annotated[int, typer.Argument(help="Block number (1-based)")],
    position: Annotated[int, typer.Argument(help="Exercise number within the block (1-based)")] = 1,
    data_dir: DataDirOption = None,
) -> None:
    """
    Jump to a specific exercise.
    """
    engine = get_engine(data_dir)
    try:
        engine.jump_to(block - 1, position - 1)
    except InvalidState as e:
        _fail(engine, str(e))
    views.print_current_exercise(engine)
    finish(engine)


@app.command("add")
def add_to_session(
    exercise_id: Annotated[str, typer.Argument(help="Exercise id to add")],
    block: Annotated[
        Optional[int],
        typer.Option("--block", "-b", help="Block number (default: current)"),
    ] = None,
    position: Annotated[
        Optional[int],
        typer.Option("--position", "-i", help="Insert as this exercise number (default: end of block)"),
    ] = None,
    reps: Annotated[
        Optional[int],
        typer.Option("--reps", "-r", help="Target reps"),
    ] = None,
    weight: Annotated[
        Optional[float],
        typer.Option("--weight", "-w", help="Target weight (kg)"),
    ] = None,
    duration: Annotated[
        Optional[int],
        typer.Option("--duration", "-d", help="Target duration in seconds"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Add an exercise to a block of the active session.
    """
    engine = get_engine(data_dir)
    if engine.session is None:
        _fail(engine, "No active session")
    b = block - 1 if block is not None else engine.cursor.block_index
    e = position - 1 if position is not None else None

    info = get_exercise(exercise_id)
    if info is None:
        views.print_warning(f"'{exercise_id}' is not in the exercise catalog.")
    try:
        ref = ExerciseRef(
            exercise_id=exercise_id,
            reps=reps if reps is not None else (info.default_reps if info else None),
            weight=weight if weight is not None else (info.default_weight if info else None),
            duration=duration if duration is not None else (info.default_duration if info else None),
        )
        slot = engine.add_exercise(b, ref, position=e)
    except (InvalidState, ValueError) as err:
        _fail(engine, str(err))

    views.print_success(
        f"Added {display_name(exercise_id)} at block {slot.block_index + 1}, "
        f"position {slot.exercise_index + 1}"
    )
    finish(engine)


@app.command("remove")
def remove_from_session(
    block: Annotated[
        Optional[int],
        typer.Option("--block", "-b", help="Block number (default: current)"),
    ] = None,
    position: Annotated[
        Optional[int],
        typer.Option("--position", "-i", help="Exercise number within the block (default: current)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Remove an exercise that has not been logged from the active session.
    """
    engine = get_engine(data_dir)
    if engine.session is None:
        _fail(engine, "No active session")
    cursor = engine.cursor
    b = block - 1 if block is not None else cursor.block_index
    e = position - 1 if position is not None else cursor.exercise_index

    try:
        removed = engine.remove_exercise(b, e)
    except InvalidState as err:
        _fail(engine, str(err))

    views.print_success(f"Removed {display_name(removed.exercise_id)}")
    views.print_current_exercise(engine)
    finish(engine)


@app.command()
def complete(
    effort: Annotated[
        Optional[int],
        typer.Option("--effort", "-e", help="Overall effort for the workout (1-10)"),
    ] = None,
    distance: Annotated[
        Optional[float],
        typer.Option("--distance", "-d", help="Distance in km (cardio sessions)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """
    Finish the active session and save it to history.
    """
    engine = get_engine(data_dir)
    try:
        engine.begin_completion()
        session = engine.complete(effort=effort, distance=distance)
    except (InvalidState, ValueError) as e:
        if engine.session is not None:
            engine.resume_editing()
        _fail(engine, str(e))

    views.print_completed_summary(session)
    finish(engine)


@app.command()
def cancel(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Skip confirmation prompt"),
    ] = False,
    data_dir: DataDirOption = None,
) -> None:
    """
    Discard the active session without saving it.
    """
    engine = get_engine(data_dir)
    if engine.session is None:
        views.print_info("No active session.")
        return

    if not force and not views.confirm_action(f"Discard '{engine.session.name}'?"):
        views.print_info("Cancelled.")
        raise typer.Exit(0)

    engine.cancel()
    views.print_success("Session discarded.")
    finish(engine)


@app.command()
def templates() -> None:
    """
    List the built-in workout templates.
    """
    views.print_templates(list(template_registry().values()))
