"""
YAML → catalog loader.

Loads exercise metadata and workout templates from the bundled
``src/liftlog/catalog.yaml``. The file has two top-level mappings:

    exercises:
      goblet-squat: {name: Goblet Squat, area: squat, equipment: kettlebell, ...}
    templates:
      full-body-strength: {name: Full Body Strength, blocks: [...]}

User overrides: ``~/.liftlog/catalog.yaml`` is deep-merged over the bundled
file, so only changed keys need to be listed. Entries that exist only in the
user file are added.

Usage (internal, called by registry.py):
    from .loader import load_catalog_from_yaml
    exercises, templates = load_catalog_from_yaml()
"""

from __future__ import annotations

import warnings
from pathlib import Path

import yaml

from ..engine.config_loader import deep_merge, get_user_dir
from ..models import Block, ExerciseRef
from .base import ExerciseInfo, WorkoutTemplate

_REQUIRED_EXERCISE_FIELDS: frozenset[str] = frozenset({"name", "area", "equipment"})


def exercise_from_dict(exercise_id: str, d: dict) -> ExerciseInfo:
    """Convert a raw dict (from YAML) to an ExerciseInfo.

    Raises ValueError if any required field is absent.
    """
    missing = _REQUIRED_EXERCISE_FIELDS - set(d)
    if missing:
        raise ValueError(f"ExerciseInfo missing fields: {sorted(missing)}")

    return ExerciseInfo(
        exercise_id=exercise_id,
        name=str(d["name"]),
        area=str(d["area"]),
        equipment=str(d["equipment"]),
        default_weight=float(d["default_weight"]) if d.get("default_weight") is not None else None,
        default_reps=d.get("default_reps"),
        default_duration=int(d["default_duration"]) if d.get("default_duration") is not None else None,
        description=str(d.get("description", "")),
        alternatives=tuple(d.get("alternatives") or ()),
    )


def block_from_dict(d: dict) -> Block:
    """Convert a raw block dict to a Block. Exercise entries may be bare ids."""
    exercises = []
    for raw in d.get("exercises") or []:
        if isinstance(raw, str):
            exercises.append(ExerciseRef(exercise_id=raw))
            continue
        exercises.append(
            ExerciseRef(
                exercise_id=str(raw["id"]),
                weight=raw.get("weight"),
                reps=raw.get("reps"),
                duration=raw.get("duration"),
                sets=raw.get("sets"),
                notes=raw.get("notes"),
            )
        )
    return Block(
        name=str(d["name"]),
        kind=str(d.get("kind", "strength")),
        exercises=exercises,
        block_id=d.get("id"),
    )


def template_from_dict(template_id: str, d: dict) -> WorkoutTemplate:
    """Convert a raw dict (from YAML) to a WorkoutTemplate."""
    if "name" not in d:
        raise ValueError("WorkoutTemplate missing field: name")
    return WorkoutTemplate(
        template_id=template_id,
        name=str(d["name"]),
        blocks=[block_from_dict(b) for b in d.get("blocks") or []],
        estimated_minutes=d.get("estimated_minutes"),
    )


def _load_yaml_file(path: Path) -> dict:
    """Load a YAML file; return {} if it is missing or not a mapping."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def get_bundled_catalog_path() -> Path:
    """Return the path to the bundled catalog.yaml."""
    # loader.py lives at src/liftlog/core/catalog/loader.py
    return Path(__file__).parent.parent.parent / "catalog.yaml"


def load_catalog_from_yaml(
    bundled_path: Path | None = None,
    user_path: Path | None = None,
) -> tuple[dict[str, ExerciseInfo], dict[str, WorkoutTemplate]]:
    """Return ({exercise_id: ExerciseInfo}, {template_id: WorkoutTemplate}).

    Invalid entries are skipped with a warning; a user file that fails to
    parse is ignored with a warning.
    """
    raw = _load_yaml_file(bundled_path or get_bundled_catalog_path())

    if user_path is None:
        user_path = get_user_dir() / "catalog.yaml"
    try:
        user_raw = _load_yaml_file(user_path)
    except yaml.YAMLError as exc:
        warnings.warn(f"liftlog: ignoring user catalog {user_path} ({exc})", stacklevel=2)
        user_raw = {}
    if user_raw:
        raw = deep_merge(raw, user_raw)

    exercises: dict[str, ExerciseInfo] = {}
    for ex_id, d in (raw.get("exercises") or {}).items():
        try:
            exercises[ex_id] = exercise_from_dict(ex_id, d or {})
        except (ValueError, TypeError) as exc:
            warnings.warn(f"liftlog: skipping exercise '{ex_id}': {exc}", stacklevel=2)

    templates: dict[str, WorkoutTemplate] = {}
    for tpl_id, d in (raw.get("templates") or {}).items():
        try:
            templates[tpl_id] = template_from_dict(tpl_id, d or {})
        except (ValueError, KeyError, TypeError) as exc:
            warnings.warn(f"liftlog: skipping template '{tpl_id}': {exc}", stacklevel=2)

    return exercises, templates
