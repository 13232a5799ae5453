"""
Base types for the exercise catalog.

ExerciseInfo carries the display metadata for one exercise id.
WorkoutTemplate is a named, reusable block layout that a session can be
started from. Neither is consulted for correctness: sessions store their own
blocks, and an unknown exercise id is still a valid id.
"""

from dataclasses import dataclass, field

from ..models import Block


@dataclass(frozen=True)
class ExerciseInfo:
    """Display metadata for one exercise."""

    exercise_id: str          # e.g. "goblet-squat"
    name: str                 # e.g. "Goblet Squat"
    area: str                 # movement pattern, e.g. "squat", "pull", "conditioning"
    equipment: str            # e.g. "kettlebell", "bodyweight"
    default_weight: float | None = None
    default_reps: int | str | None = None
    default_duration: int | None = None  # seconds
    description: str = ""

    # Ids of exercises offered as swap candidates
    alternatives: tuple[str, ...] = field(default_factory=tuple)


@dataclass
class WorkoutTemplate:
    """A saved block layout."""

    template_id: str
    name: str
    blocks: list[Block] = field(default_factory=list)
    estimated_minutes: int | None = None

    @property
    def exercise_count(self) -> int:
        return sum(len(b.exercises) for b in self.blocks)
