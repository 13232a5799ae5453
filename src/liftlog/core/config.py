"""
Configuration constants for liftlog.

All adjustable parameters are centralized here. Values marked as
overridable can be replaced from ``~/.liftlog/config.yaml`` through
``core.engine.config_loader``.
"""

from typing import Final

# =============================================================================
# SESSION STRUCTURE
# =============================================================================

BLOCK_KINDS: Final[tuple[str, ...]] = ("warmup", "strength", "conditioning", "cooldown")
CARDIO_TYPES: Final[tuple[str, ...]] = ("walk", "run", "trail-run", "hike")

CARDIO_TYPE_LABELS: Final[dict[str, str]] = {
    "walk": "Walk",
    "run": "Run",
    "trail-run": "Trail Run",
    "hike": "Hike",
}

AMRAP: Final[str] = "AMRAP"  # "as many reps as possible" target marker

DEFAULT_SESSION_NAME: Final[str] = "Workout"
FREEFORM_SESSION_NAME: Final[str] = "Quick workout"

# =============================================================================
# EFFORT (RPE 1-10)
# =============================================================================

EFFORT_MIN: Final[int] = 1
EFFORT_MAX: Final[int] = 10
DEFAULT_BACKFILL_EFFORT: Final[int] = 5  # overridable: effort.default_backfill

EFFORT_LABELS: Final[dict[int, str]] = {
    1: "Very Light",
    2: "Light",
    3: "Light-Moderate",
    4: "Moderate",
    5: "Moderate",
    6: "Moderate-Hard",
    7: "Hard",
    8: "Very Hard",
    9: "Extremely Hard",
    10: "Maximum",
}

# =============================================================================
# MANUAL CALENDAR MARKERS
# =============================================================================

BACKLOG_SESSION_NAME: Final[str] = "Backlog workout"
BACKLOG_HOUR: Final[int] = 12  # backlog entries are stamped at local noon

# =============================================================================
# TREND CURVE (Catmull-Rom → cubic Bézier)
# =============================================================================

TREND_TENSION: Final[float] = 0.3
TREND_WIDTH: Final[float] = 300.0
TREND_HEIGHT: Final[float] = 90.0
TREND_PADDING: Final[tuple[float, float, float, float]] = (6.0, 10.0, 18.0, 22.0)  # top, right, bottom, left
TREND_DEFAULT_POINTS: Final[int] = 20  # overridable: trend.points

# =============================================================================
# CALENDAR / RANKING
# =============================================================================

WEEKDAY_NAMES: Final[tuple[str, ...]] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
RANKING_LIMIT: Final[int] = 5  # overridable: ranking.limit
RECENT_AVERAGE_DAYS: Final[int] = 7

# =============================================================================
# STORAGE KEYS
# =============================================================================

ACTIVE_SESSION_KEY: Final[str] = "active_session"
SESSIONS_KEY: Final[str] = "workout_sessions"
REST_DAYS_KEY: Final[str] = "rest_days"
SAVED_WORKOUTS_KEY: Final[str] = "saved_workouts"
CUSTOM_EXERCISES_KEY: Final[str] = "custom_exercises"

CUSTOM_EXERCISE_PREFIX: Final[str] = "custom-"

DATA_DIR_NAME: Final[str] = ".liftlog"
