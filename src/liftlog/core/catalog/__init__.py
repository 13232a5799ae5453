"""
Exercise catalog for liftlog.

Display metadata and built-in workout templates, loaded from YAML.
"""

from .base import ExerciseInfo, WorkoutTemplate
from .registry import (
    alternatives_for,
    display_name,
    exercise_registry,
    get_exercise,
    get_template,
    set_custom_exercises,
    template_registry,
)

__all__ = [
    "ExerciseInfo",
    "WorkoutTemplate",
    "alternatives_for",
    "display_name",
    "exercise_registry",
    "get_exercise",
    "get_template",
    "set_custom_exercises",
    "template_registry",
]
