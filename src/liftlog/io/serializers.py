"""
JSON serialization for workout data models.

Handles conversion between dataclasses and JSON-compatible dicts. Readers
also accept the camelCase field names used by the browser
app's exports (``startedAt``, ``exerciseId``, ``overallEffort``, ...), so those
backups can be bulk-imported.
"""

import json
import re
from datetime import date, datetime
from typing import Any

from ..core.catalog import ExerciseInfo
from ..core.catalog.loader import exercise_from_dict
from ..core.models import (
    Block,
    CardioDescriptor,
    Cursor,
    ExerciseLog,
    ExerciseRef,
    SavedWorkout,
    SlotKey,
    WorkoutSession,
)


class ValidationError(Exception):
    """Raised when data validation fails."""

    pass


def validate_date(date_str: str) -> str:
    """
    Validate and normalize date string to ISO format.

    Args:
        date_str: Date string to validate

    Returns:
        Normalized YYYY-MM-DD string

    Raises:
        ValidationError: If date format is invalid
    """
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise ValidationError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")

    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError as e:
        raise ValidationError(f"Invalid date: {date_str}") from e

    return date_str


def parse_date(date_str: str) -> date:
    """Validate a YYYY-MM-DD string and return it as a date."""
    return date.fromisoformat(validate_date(date_str))


def validate_non_negative(value: int | float, name: str) -> int | float:
    """
    Validate that a value is non-negative.

    Raises:
        ValidationError: If value is negative
    """
    if value < 0:
        raise ValidationError(f"{name} must be non-negative, got {value}")
    return value


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key among snake_case and camelCase aliases."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _drop_none(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def _require_dict(raw: Any, what: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValidationError(f"{what} must be an object, got {type(raw).__name__}")
    return raw


def _require_list(raw: Any, what: str) -> list[Any]:
    if not isinstance(raw, list):
        raise ValidationError(f"{what} must be a list, got {type(raw).__name__}")
    return raw


def slot_to_list(slot: SlotKey) -> list[int]:
    return [slot.block_index, slot.exercise_index]


def list_to_slot(raw: Any) -> SlotKey:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValidationError(f"Invalid slot: {raw!r}. Expected [block_index, exercise_index]")
    b, e = int(raw[0]), int(raw[1])
    validate_non_negative(b, "block_index")
    validate_non_negative(e, "exercise_index")
    return SlotKey(b, e)


def exercise_ref_to_dict(ref: ExerciseRef) -> dict[str, Any]:
    return _drop_none({
        "exercise_id": ref.exercise_id,
        "weight": ref.weight,
        "reps": ref.reps,
        "duration": ref.duration,
        "sets": ref.sets,
        "notes": ref.notes,
    })


def dict_to_exercise_ref(data: dict[str, Any]) -> ExerciseRef:
    data = _require_dict(data, "Block exercise")
    return ExerciseRef(
        exercise_id=str(_pick(data, "exercise_id", "exerciseId", default="")),
        weight=data.get("weight"),
        reps=data.get("reps"),
        duration=data.get("duration"),
        sets=data.get("sets"),
        notes=data.get("notes"),
    )


def block_to_dict(block: Block) -> dict[str, Any]:
    return _drop_none({
        "block_id": block.block_id,
        "name": block.name,
        "kind": block.kind,
        "exercises": [exercise_ref_to_dict(e) for e in block.exercises],
    })


def dict_to_block(data: dict[str, Any]) -> Block:
    data = _require_dict(data, "Block")
    return Block(
        name=str(data.get("name", "")),
        kind=str(_pick(data, "kind", "type", default="strength")),
        exercises=[
            dict_to_exercise_ref(e)
            for e in _require_list(data.get("exercises", []), "Block exercises")
        ],
        block_id=_pick(data, "block_id", "id"),
    )


def exercise_log_to_dict(log: ExerciseLog) -> dict[str, Any]:
    """
    Convert ExerciseLog to JSON-compatible dict.

    Optional fields are omitted when unset to keep history lines compact.
    """
    d = _drop_none({
        "exercise_id": log.exercise_id,
        "completed_at": log.completed_at,
        "weight": log.weight,
        "reps": log.reps,
        "duration": log.duration,
        "effort": log.effort,
        "notes": log.notes,
    })
    if log.slot is not None:
        d["slot"] = slot_to_list(log.slot)
    return d


def dict_to_exercise_log(data: dict[str, Any]) -> ExerciseLog:
    """
    Convert dict to ExerciseLog.

    Raises:
        ValidationError: If data is invalid
    """
    data = _require_dict(data, "Exercise log")
    completed_at = _pick(data, "completed_at", "completedAt")
    if completed_at is None:
        raise ValidationError("Exercise log is missing completed_at")
    reps = data.get("reps")
    slot = data.get("slot")
    return ExerciseLog(
        exercise_id=str(_pick(data, "exercise_id", "exerciseId", default="")),
        completed_at=str(completed_at),
        weight=float(data["weight"]) if data.get("weight") is not None else None,
        reps=int(reps) if isinstance(reps, (int, float)) else None,
        duration=int(data["duration"]) if data.get("duration") is not None else None,
        effort=int(data["effort"]) if data.get("effort") is not None else None,
        notes=data.get("notes"),
        slot=list_to_slot(slot) if slot is not None else None,
    )


def session_to_dict(session: WorkoutSession) -> dict[str, Any]:
    """
    Convert WorkoutSession to JSON-compatible dict.

    The substitution map is written as a list of structured entries so that
    its (block, exercise) key survives JSON without string concatenation.

    Args:
        session: WorkoutSession to convert

    Returns:
        Dict representation
    """
    d: dict[str, Any] = {
        "session_id": session.session_id,
        "name": session.name,
        "started_at": session.started_at,
        "logs": [exercise_log_to_dict(log) for log in session.logs],
        "cursor": [session.cursor.block_index, session.cursor.exercise_index],
    }
    if session.blocks is not None:
        d["blocks"] = [block_to_dict(b) for b in session.blocks]
    if session.cardio is not None:
        d["cardio"] = _drop_none({
            "cardio_type": session.cardio.cardio_type,
            "distance": session.cardio.distance,
        })
    if session.substitutions:
        d["substitutions"] = [
            {"block": slot.block_index, "exercise": slot.exercise_index, "exercise_id": ex_id}
            for slot, ex_id in sorted(session.substitutions.items())
        ]
    if session.skipped is not None:
        d["skipped"] = [slot_to_list(s) for s in session.skipped]
    d.update(_drop_none({
        "completed_at": session.completed_at,
        "total_duration": session.total_duration,
        "effort": session.effort,
        "template_id": session.template_id,
    }))
    if session.is_backlog:
        d["is_backlog"] = True
    return d


def _substitutions_from(raw: Any) -> dict[SlotKey, str]:
    if not raw:
        return {}
    result: dict[SlotKey, str] = {}
    if isinstance(raw, dict):
        # Legacy "blockIdx-exerciseIdx" string keys
        for key, ex_id in raw.items():
            m = re.fullmatch(r"(\d+)-(\d+)", str(key))
            if not m:
                raise ValidationError(f"Invalid substitution key: {key!r}")
            result[SlotKey(int(m.group(1)), int(m.group(2)))] = str(ex_id)
        return result
    for entry in _require_list(raw, "substitutions"):
        entry = _require_dict(entry, "Substitution")
        slot = list_to_slot([entry["block"], entry["exercise"]])
        result[slot] = str(entry["exercise_id"])
    return result


def dict_to_session(data: dict[str, Any]) -> WorkoutSession:
    """
    Convert dict to WorkoutSession.

    Records without a ``skipped`` field get ``skipped=None`` so aggregation
    knows skip tracking was unavailable for them.

    Args:
        data: Dict representation

    Returns:
        WorkoutSession instance

    Raises:
        ValidationError: If data is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Session record must be an object, got {type(data).__name__}")

    session_id = _pick(data, "session_id", "id")
    started_at = _pick(data, "started_at", "startedAt")
    if not session_id:
        raise ValidationError("Session record is missing its id")
    if not started_at:
        raise ValidationError(f"Session {session_id} is missing started_at")

    raw_blocks = data.get("blocks")
    raw_cardio = data.get("cardio")
    raw_skipped = data.get("skipped")
    raw_cursor = data.get("cursor") or [0, 0]

    try:
        cardio = None
        if raw_cardio:
            raw_cardio = _require_dict(raw_cardio, "cardio")
            cardio = CardioDescriptor(
                cardio_type=str(_pick(raw_cardio, "cardio_type", "type")),
                distance=_pick(raw_cardio, "distance"),
            )
        cursor_slot = list_to_slot(raw_cursor)
        return WorkoutSession(
            session_id=str(session_id),
            name=str(data.get("name", "")),
            started_at=str(started_at),
            blocks=(
                [dict_to_block(b) for b in _require_list(raw_blocks, "blocks")]
                if raw_blocks is not None
                else None
            ),
            cardio=cardio,
            logs=[
                dict_to_exercise_log(log)
                for log in _require_list(_pick(data, "logs", "exercises", default=[]), "logs")
            ],
            completed_at=_pick(data, "completed_at", "completedAt"),
            total_duration=_pick(data, "total_duration", "totalDuration"),
            effort=_pick(data, "effort", "overallEffort"),
            substitutions=_substitutions_from(data.get("substitutions")),
            skipped=(
                [list_to_slot(s) for s in _require_list(raw_skipped, "skipped")]
                if raw_skipped is not None
                else None
            ),
            cursor=Cursor(*cursor_slot),
            template_id=_pick(data, "template_id", "templateId"),
            is_backlog=bool(_pick(data, "is_backlog", "isBacklog", default=False)),
        )
    except (ValidationError, ValueError, TypeError, KeyError) as e:
        raise ValidationError(f"Invalid session {session_id}: {e}") from e


def session_to_json_line(session: WorkoutSession) -> str:
    """
    Serialize a session to a single JSON line.

    Returns:
        JSON string (single line, no trailing newline)
    """
    return json.dumps(session_to_dict(session), separators=(",", ":"))


def json_line_to_session(line: str) -> WorkoutSession:
    """
    Deserialize a JSON line to a WorkoutSession.

    Raises:
        ValidationError: If JSON is invalid or data validation fails
    """
    try:
        data = json.loads(line.strip())
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}") from e

    return dict_to_session(data)


# =============================================================================
# Workout library and custom exercises
# =============================================================================


def saved_workout_to_dict(workout: SavedWorkout) -> dict[str, Any]:
    return _drop_none({
        "workout_id": workout.workout_id,
        "name": workout.name,
        "estimated_minutes": workout.estimated_minutes,
        "blocks": [block_to_dict(b) for b in workout.blocks],
        "created_at": workout.created_at,
        "updated_at": workout.updated_at,
    })


def dict_to_saved_workout(data: Any) -> SavedWorkout:
    """
    Convert dict to SavedWorkout.

    Raises:
        ValidationError: If data is invalid
    """
    data = _require_dict(data, "Saved workout")
    workout_id = _pick(data, "workout_id", "id")
    try:
        return SavedWorkout(
            workout_id=str(workout_id or ""),
            name=str(data.get("name", "")),
            blocks=[dict_to_block(b) for b in _require_list(data.get("blocks", []), "blocks")],
            estimated_minutes=_pick(data, "estimated_minutes", "estimatedMinutes"),
            created_at=_pick(data, "created_at", "createdAt"),
            updated_at=_pick(data, "updated_at", "updatedAt"),
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise ValidationError(f"Invalid saved workout {workout_id}: {e}") from e


def exercise_info_to_dict(info: ExerciseInfo) -> dict[str, Any]:
    d = _drop_none({
        "exercise_id": info.exercise_id,
        "name": info.name,
        "area": info.area,
        "equipment": info.equipment,
        "default_weight": info.default_weight,
        "default_reps": info.default_reps,
        "default_duration": info.default_duration,
        "description": info.description or None,
    })
    if info.alternatives:
        d["alternatives"] = list(info.alternatives)
    return d


def dict_to_exercise_info(data: Any) -> ExerciseInfo:
    """
    Convert a stored custom exercise to ExerciseInfo.

    Raises:
        ValidationError: If data is invalid
    """
    data = _require_dict(data, "Custom exercise")
    exercise_id = _pick(data, "exercise_id", "id")
    if not exercise_id:
        raise ValidationError("Custom exercise is missing its id")
    fields = {
        "name": data.get("name"),
        "area": data.get("area"),
        "equipment": data.get("equipment"),
        "default_weight": _pick(data, "default_weight", "defaultWeight"),
        "default_reps": _pick(data, "default_reps", "defaultReps"),
        "default_duration": _pick(data, "default_duration", "defaultDuration"),
        "description": data.get("description"),
        "alternatives": data.get("alternatives"),
    }
    try:
        return exercise_from_dict(str(exercise_id), {k: v for k, v in fields.items() if v is not None})
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid custom exercise {exercise_id}: {e}") from e
