"""
Data models for liftlog.

All core dataclasses representing workout structure, sessions, logs and
calendar aggregates. Timestamps are ISO-8601 strings; validation happens in
``__post_init__`` so that a model instance is always well-formed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, NamedTuple

from .config import AMRAP, BLOCK_KINDS, CARDIO_TYPES, EFFORT_MAX, EFFORT_MIN

DayStatus = Literal["workout", "rest", "none", "protected"]
DayKind = Literal["strength", "cardio", "both", "rest", "none"]


class SlotKey(NamedTuple):
    """Position of one exercise inside a session's block list."""

    block_index: int
    exercise_index: int


class Cursor(NamedTuple):
    """Navigation position inside the active session."""

    block_index: int = 0
    exercise_index: int = 0

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.block_index, self.exercise_index)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp.

    Accepts the trailing ``Z`` UTC designator produced by other exporters.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def local_day(moment: datetime) -> date:
    """
    Calendar date of a timestamp as the user saw it.

    UTC stamps (the ``Z`` form written by browser exports) are converted to
    the local zone first. Stamps that carry a local offset keep the
    wall-clock date they were recorded with; naive stamps are local already.
    """
    offset = moment.utcoffset()
    if offset is not None and not offset:
        moment = moment.astimezone()
    return moment.date()


def _validate_effort(effort: int | None, name: str = "effort") -> None:
    if effort is not None and not EFFORT_MIN <= effort <= EFFORT_MAX:
        raise ValueError(f"{name} must be between {EFFORT_MIN} and {EFFORT_MAX}, got {effort}")


@dataclass
class ExerciseRef:
    """
    An exercise as configured within a block.

    ``reps`` is either a count or the ``"AMRAP"`` marker.
    """

    exercise_id: str
    weight: float | None = None
    reps: int | str | None = None
    duration: int | None = None  # seconds
    sets: int | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        if not self.exercise_id:
            raise ValueError("exercise_id must be non-empty")
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if isinstance(self.reps, str):
            if self.reps != AMRAP:
                raise ValueError(f"reps must be an integer or {AMRAP!r}, got {self.reps!r}")
        elif self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.duration is not None and self.duration < 0:
            raise ValueError("duration must be non-negative")


@dataclass
class Block:
    """A named, ordered group of exercises within a structured workout."""

    name: str
    kind: str = "strength"
    exercises: list[ExerciseRef] = field(default_factory=list)
    block_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in BLOCK_KINDS:
            raise ValueError(f"Invalid block kind: {self.kind}. Must be one of {BLOCK_KINDS}")

    def __len__(self) -> int:
        return len(self.exercises)


@dataclass
class CardioDescriptor:
    """Cardio session type and optional distance in km."""

    cardio_type: str
    distance: float | None = None

    def __post_init__(self) -> None:
        if self.cardio_type not in CARDIO_TYPES:
            raise ValueError(
                f"Invalid cardio_type: {self.cardio_type}. Must be one of {CARDIO_TYPES}"
            )
        if self.distance is not None and self.distance < 0:
            raise ValueError("distance must be non-negative")


@dataclass
class ExerciseLog:
    """
    One performed exercise.

    ``exercise_id`` is the id actually performed (after substitution).
    ``slot`` is the cursor position at log time; it is None for free-form
    sessions and for records imported without position data.
    """

    exercise_id: str
    completed_at: str
    weight: float | None = None
    reps: int | None = None
    duration: int | None = None
    effort: int | None = None
    notes: str | None = None
    slot: SlotKey | None = None

    def __post_init__(self) -> None:
        if not self.exercise_id:
            raise ValueError("exercise_id must be non-empty")
        parse_timestamp(self.completed_at)
        if self.weight is not None and self.weight < 0:
            raise ValueError("weight must be non-negative")
        if self.reps is not None and self.reps < 0:
            raise ValueError("reps must be non-negative")
        if self.duration is not None and self.duration < 0:
            raise ValueError("duration must be non-negative")
        _validate_effort(self.effort)

    @property
    def local_date(self) -> date:
        return local_day(parse_timestamp(self.completed_at))


@dataclass
class WorkoutSession:
    """
    One instance of performing a workout, active or completed.

    ``blocks`` is None for free-form sessions (quick workouts and cardio).
    ``skipped`` is None when skip tracking is unavailable (legacy imports);
    aggregation then infers skips from missing logs.
    """

    session_id: str
    name: str
    started_at: str
    blocks: list[Block] | None = None
    cardio: CardioDescriptor | None = None
    logs: list[ExerciseLog] = field(default_factory=list)
    completed_at: str | None = None
    total_duration: int | None = None  # seconds
    effort: int | None = None
    substitutions: dict[SlotKey, str] = field(default_factory=dict)
    skipped: list[SlotKey] | None = field(default_factory=list)
    cursor: Cursor = field(default_factory=Cursor)
    template_id: str | None = None
    is_backlog: bool = False

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("session_id must be non-empty")
        parse_timestamp(self.started_at)
        if self.completed_at is not None:
            parse_timestamp(self.completed_at)
        if self.total_duration is not None and self.total_duration < 0:
            raise ValueError("total_duration must be non-negative")
        _validate_effort(self.effort)

    @property
    def started(self) -> datetime:
        return parse_timestamp(self.started_at)

    @property
    def local_date(self) -> date:
        """Calendar date the session started on (see ``local_day``)."""
        return local_day(self.started)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_cardio(self) -> bool:
        return self.cardio is not None

    @property
    def is_block_based(self) -> bool:
        return self.blocks is not None

    @property
    def total_slots(self) -> int:
        """Total exercise slots across all blocks (0 for free-form sessions)."""
        if not self.blocks:
            return 0
        return sum(len(b.exercises) for b in self.blocks)

    def slot_exists(self, slot: SlotKey) -> bool:
        """Return True if ``slot`` addresses an exercise in the current blocks."""
        if not self.blocks:
            return False
        b, e = slot
        return 0 <= b < len(self.blocks) and 0 <= e < len(self.blocks[b].exercises)

    def template_exercise_id(self, slot: SlotKey) -> str:
        """Exercise id the block template holds at ``slot`` (before substitution)."""
        if self.blocks is None:
            raise ValueError(f"session {self.session_id} is free-form and has no template slots")
        return self.blocks[slot.block_index].exercises[slot.exercise_index].exercise_id

    def effective_exercise_id(self, slot: SlotKey) -> str:
        """Exercise id to perform at ``slot``, with substitutions applied."""
        return self.substitutions.get(slot) or self.template_exercise_id(slot)

    def iter_slots(self):
        """Yield every SlotKey in navigation order."""
        for b, block in enumerate(self.blocks or []):
            for e in range(len(block.exercises)):
                yield SlotKey(b, e)


@dataclass
class SavedWorkout:
    """
    A block layout kept in the user's workout library.

    Unlike catalog templates, saved workouts live in the data store and can
    be added, renamed and deleted from the CLI.
    """

    workout_id: str
    name: str
    blocks: list[Block] = field(default_factory=list)
    estimated_minutes: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        if not self.workout_id:
            raise ValueError("workout_id must be non-empty")
        if not self.name:
            raise ValueError("name must be non-empty")
        for stamp in (self.created_at, self.updated_at):
            if stamp is not None:
                parse_timestamp(stamp)
        if self.estimated_minutes is not None and self.estimated_minutes < 0:
            raise ValueError("estimated_minutes must be non-negative")

    @property
    def exercise_count(self) -> int:
        return sum(len(b.exercises) for b in self.blocks)


@dataclass
class CalendarDayAggregate:
    """
    Per-day activity counts, computed on demand from history and markers.
    """

    day: date
    strength: int = 0
    cardio: int = 0
    rest: int = 0

    @property
    def has_workout(self) -> bool:
        return self.strength > 0 or self.cardio > 0

    @property
    def kind(self) -> DayKind:
        """Classification used by the calendar and contribution grid."""
        if self.strength and self.cardio:
            return "both"
        if self.cardio:
            return "cardio"
        if self.strength:
            return "strength"
        if self.rest:
            return "rest"
        return "none"
