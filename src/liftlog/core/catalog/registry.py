"""
Exercise catalog registry.

The catalog is loaded from ``src/liftlog/catalog.yaml`` on first use. It is
a render-time lookup only: session logic never requires an id to be in the
catalog, so unknown ids get a generated display name instead of an error.

User overrides: ``~/.liftlog/catalog.yaml``.
"""

from .base import ExerciseInfo, WorkoutTemplate

_CATALOG: tuple[dict[str, ExerciseInfo], dict[str, WorkoutTemplate]] | None = None

# User-defined exercises from the data store, layered over the YAML catalog
_CUSTOM: dict[str, ExerciseInfo] = {}


def _catalog() -> tuple[dict[str, ExerciseInfo], dict[str, WorkoutTemplate]]:
    global _CATALOG
    if _CATALOG is None:
        from .loader import load_catalog_from_yaml

        _CATALOG = load_catalog_from_yaml()
    return _CATALOG


def reset_registry() -> None:
    """Forget the loaded catalog and custom exercises so the next lookup re-reads them."""
    global _CATALOG
    _CATALOG = None
    _CUSTOM.clear()


def set_custom_exercises(exercises: list[ExerciseInfo]) -> None:
    """Replace the user-defined exercises shown alongside the catalog."""
    _CUSTOM.clear()
    _CUSTOM.update((ex.exercise_id, ex) for ex in exercises)


def exercise_registry() -> dict[str, ExerciseInfo]:
    exercises, _ = _catalog()
    if not _CUSTOM:
        return exercises
    return {**exercises, **_CUSTOM}


def template_registry() -> dict[str, WorkoutTemplate]:
    _, templates = _catalog()
    return templates


def get_exercise(exercise_id: str) -> ExerciseInfo | None:
    """Return catalog metadata for ``exercise_id``, or None if unknown."""
    return exercise_registry().get(exercise_id)


def display_name(exercise_id: str) -> str:
    """
    Human-readable name for an exercise id.

    Falls back to a title-cased id ("kb-swing" → "Kb Swing") for ids that
    are not in the catalog.
    """
    info = get_exercise(exercise_id)
    if info is not None:
        return info.name
    return exercise_id.replace("-", " ").replace("_", " ").title()


def alternatives_for(exercise_id: str) -> tuple[str, ...]:
    """Swap candidates listed for ``exercise_id`` (empty if none)."""
    info = get_exercise(exercise_id)
    return info.alternatives if info is not None else ()


def get_template(template_id: str) -> WorkoutTemplate:
    """
    Return the WorkoutTemplate for the given template_id.

    Raises:
        ValueError: If template_id is not in the catalog
    """
    templates = template_registry()
    if template_id not in templates:
        valid = ", ".join(templates) or "(none)"
        raise ValueError(f"Unknown template '{template_id}'. Valid IDs: {valid}")
    return templates[template_id]
