"""
Tests for read-side aggregation: streaks, period counts, calendars, the
year grid, exercise rankings and per-exercise history.

2026-01-01 is a Thursday; weekday arithmetic below relies on that.
"""

from datetime import date

import pytest

from liftlog.core.aggregation import (
    AggregationEngine,
    contribution_grid,
    current_streak,
    effort_history,
    exercise_history,
    favorite_weekday,
    longest_streak,
    month_calendar,
    most_skipped_exercises,
    most_used_exercises,
    period_counts,
    recent_averages,
    stats_snapshot,
    week_dates,
    workout_dates,
)
from liftlog.core.models import (
    Block,
    CardioDescriptor,
    ExerciseLog,
    ExerciseRef,
    SlotKey,
    WorkoutSession,
)
from liftlog.io.history_store import HistoryStore
from liftlog.io.kv_store import MemoryStore


# ===========================================================================
# Helpers
# ===========================================================================

_counter = 0


def _workout(
    day: str,
    cardio: bool = False,
    duration: int | None = 1800,
    effort: int | None = None,
    blocks: list[Block] | None = None,
    logs: list[ExerciseLog] | None = None,
    substitutions: dict[SlotKey, str] | None = None,
    skipped: list[SlotKey] | None = (),
    is_backlog: bool = False,
) -> WorkoutSession:
    """Create a completed session started at 09:00 on ``day``."""
    global _counter
    _counter += 1
    stamp = f"{day}T09:00:00"
    return WorkoutSession(
        session_id=f"w{_counter}",
        name="Workout",
        started_at=stamp,
        completed_at=stamp,
        blocks=blocks,
        cardio=CardioDescriptor("run") if cardio else None,
        logs=logs or [],
        total_duration=duration,
        effort=effort,
        substitutions=substitutions or {},
        skipped=list(skipped) if skipped is not None else None,
        is_backlog=is_backlog,
    )


def _log(exercise_id: str, day: str = "2026-01-01", weight: float | None = None, reps: int | None = 10) -> ExerciseLog:
    return ExerciseLog(exercise_id=exercise_id, completed_at=f"{day}T09:10:00", weight=weight, reps=reps)


def _push_row_blocks() -> list[Block]:
    return [Block("Main", exercises=[ExerciseRef("pushups", reps="AMRAP"), ExerciseRef("rows", reps=10)])]


# ===========================================================================
# Streaks
# ===========================================================================


class TestStreaks:
    def test_rest_day_extends_streak(self):
        history = [_workout("2026-01-01"), _workout("2026-01-02"), _workout("2026-01-03")]
        rest = {date(2026, 1, 4)}

        assert current_streak(history, rest, date(2026, 1, 4)) == 4
        assert current_streak(history, rest, date(2026, 1, 5)) == 0

    def test_streak_counts_today_only_when_marked(self):
        history = [_workout("2026-01-01"), _workout("2026-01-02")]
        assert current_streak(history, set(), date(2026, 1, 2)) == 2
        assert current_streak(history, set(), date(2026, 1, 3)) == 0

    def test_backlog_counts_as_workout(self):
        history = [_workout("2026-01-01"), _workout("2026-01-02", duration=None, is_backlog=True)]
        assert current_streak(history, set(), date(2026, 1, 2)) == 2

    def test_backlog_on_worked_day_changes_nothing(self):
        store = HistoryStore(MemoryStore())
        store.append_completed(_workout("2026-01-01"))
        before = current_streak(store.load_history(), set(), date(2026, 1, 1))
        store.mark_backlog(date(2026, 1, 1))
        assert current_streak(store.load_history(), set(), date(2026, 1, 1)) == before == 1

    def test_longest_streak(self):
        history = [
            _workout("2026-01-01"),
            _workout("2026-01-02"),
            _workout("2026-01-05"),
            _workout("2026-01-06"),
            _workout("2026-01-06"),
        ]
        rest = {date(2026, 1, 7), date(2026, 1, 8)}
        assert longest_streak(history, rest) == 4

    def test_empty_history(self):
        assert current_streak([], set(), date(2026, 1, 1)) == 0
        assert longest_streak([], set()) == 0
        assert workout_dates([]) == set()

    def test_uncompleted_sessions_ignored(self):
        active = WorkoutSession(session_id="x", name="W", started_at="2026-01-01T09:00:00")
        assert current_streak([active], set(), date(2026, 1, 1)) == 0


# ===========================================================================
# Stats
# ===========================================================================


class TestStats:
    def test_period_counts_use_monday_weeks_and_calendar_months(self):
        history = [
            _workout("2025-12-31"),
            _workout("2026-01-11"),  # Sunday of the previous week
            _workout("2026-01-12"),  # Monday
            _workout("2026-01-14"),
        ]
        counts = period_counts(history, date(2026, 1, 14))
        assert counts.this_week == 2
        assert counts.this_month == 3
        assert counts.total == 4

    def test_snapshot(self):
        history = [
            _workout("2025-12-31", duration=1800),
            _workout("2026-01-11", duration=2400),
            _workout("2026-01-12", duration=None, is_backlog=True),
            _workout("2026-01-14", duration=None),
        ]
        stats = stats_snapshot(history, {date(2026, 1, 13)}, date(2026, 1, 14))

        assert stats.total_workouts == 4
        assert stats.average_duration == 2100
        assert stats.total_minutes == 70
        assert stats.current_streak == 4
        assert stats.workouts_by_weekday == {0: 1, 1: 1, 2: 0, 3: 2, 4: 0, 5: 0, 6: 0}
        assert stats.favorite_weekday == 3
        assert stats.favorite_weekday_name == "Wed"

    def test_snapshot_for_empty_history(self):
        stats = stats_snapshot([], set(), date(2026, 1, 14))
        assert stats.total_workouts == 0
        assert stats.average_duration == 0
        assert stats.favorite_weekday is None

    def test_favorite_weekday_tie_goes_to_lowest_index(self):
        history = [_workout("2026-01-05"), _workout("2026-01-04")]  # Monday, Sunday
        assert favorite_weekday(history) == 0


# ===========================================================================
# Calendars
# ===========================================================================


class TestCalendars:
    def test_week_dates_start_monday(self):
        days = week_dates([_workout("2026-01-14")], set(), date(2026, 1, 14))
        assert [d.day for d in days][0] == date(2026, 1, 12)
        assert len(days) == 7
        assert days[2].kind == "strength"
        assert days[3].kind == "none"

    def test_month_calendar_padding(self):
        cal = month_calendar([], set(), 2026, 2, date(2026, 2, 10))
        assert len(cal.weeks) == 5
        assert cal.weeks[0][:6] == [None] * 6
        assert cal.weeks[0][6].day == date(2026, 2, 1)
        assert cal.weeks[-1][6] is None
        assert cal.current_week_index == 2
        assert cal.title == "February 2026"

    def test_month_calendar_today_elsewhere(self):
        cal = month_calendar([], set(), 2026, 2, date(2026, 3, 1))
        assert cal.current_week_index == -1

    def test_contribution_grid_layout(self):
        grid = contribution_grid([], set(), 2026, date(2026, 1, 1))

        assert len(grid.weeks) == 53
        assert all(len(week) == 7 for week in grid.weeks)
        assert grid.weeks[0][:3] == [None, None, None]
        assert grid.weeks[0][3].day == date(2026, 1, 1)
        assert grid.weeks[-1][3].day == date(2026, 12, 31)
        assert grid.weeks[-1][4:] == [None, None, None]
        assert grid.current_week_index == 0

    def test_contribution_grid_month_labels(self):
        grid = contribution_grid([], set(), 2026, date(2026, 6, 1))
        labels = dict((label, index) for index, label in grid.month_labels)
        assert labels["Jan"] == 1
        assert labels["Feb"] == 5
        assert len(grid.month_labels) == 12

    def test_contribution_grid_classification(self):
        history = [
            _workout("2026-01-01"),
            _workout("2026-01-02", cardio=True),
            _workout("2026-01-03"),
            _workout("2026-01-03", cardio=True),
        ]
        grid = contribution_grid(history, {date(2026, 1, 4)}, 2026, date(2026, 1, 5))
        kinds = [cell.kind for cell in grid.weeks[0][3:]]
        assert kinds == ["strength", "cardio", "both", "rest"]
        assert grid.weeks[1][0].kind == "none"
        assert grid.current_week_index == 1

    def test_contribution_grid_today_outside_year(self):
        grid = contribution_grid([], set(), 2026, date(2025, 12, 30))
        assert grid.current_week_index == -1


# ===========================================================================
# Rankings
# ===========================================================================


class TestRankings:
    @pytest.fixture
    def history(self) -> list[WorkoutSession]:
        sessions = [
            _workout(
                "2026-01-01",
                blocks=_push_row_blocks(),
                logs=[_log("pushups"), _log("rows")],
            )
            for _ in range(10)
        ]
        sessions += [
            _workout(
                "2026-01-02",
                blocks=_push_row_blocks(),
                substitutions={SlotKey(0, 0): "incline-pushups"},
                logs=[_log("incline-pushups"), _log("rows")],
            )
            for _ in range(2)
        ]
        sessions.append(
            _workout(
                "2026-01-03",
                blocks=_push_row_blocks(),
                skipped=[SlotKey(0, 0)],
                logs=[_log("rows")],
            )
        )
        return sessions

    def test_most_used(self, history):
        ranked = most_used_exercises(history, limit=5)
        assert [(r.exercise_id, r.count) for r in ranked] == [
            ("rows", 13),
            ("pushups", 10),
            ("incline-pushups", 2),
        ]

    def test_most_skipped_counts_skips_and_swaps(self, history):
        ranked = most_skipped_exercises(history, limit=5)
        assert len(ranked) == 1
        assert ranked[0].exercise_id == "pushups"
        assert (ranked[0].skips, ranked[0].swaps, ranked[0].total) == (1, 2, 3)

    def test_inferred_skips_for_untracked_sessions(self):
        legacy = _workout("2026-01-01", blocks=_push_row_blocks(), logs=[_log("rows")], skipped=None)
        ranked = most_skipped_exercises([legacy])
        assert [(r.exercise_id, r.skips) for r in ranked] == [("pushups", 1)]

    def test_recorded_skip_list_is_authoritative(self):
        # Finished early without passing "rows": not a skip
        tracked = _workout("2026-01-01", blocks=_push_row_blocks(), logs=[_log("pushups")], skipped=[])
        assert most_skipped_exercises([tracked]) == []

    def test_ties_broken_by_id(self):
        session = _workout(
            "2026-01-01",
            blocks=_push_row_blocks(),
            skipped=[SlotKey(0, 1), SlotKey(0, 0)],
        )
        ranked = most_skipped_exercises([session])
        assert [r.exercise_id for r in ranked] == ["pushups", "rows"]

    def test_limit(self, history):
        assert len(most_used_exercises(history, limit=1)) == 1


# ===========================================================================
# Effort and per-exercise history
# ===========================================================================


class TestExerciseHistory:
    def test_effort_history_skips_unrated(self):
        history = [
            _workout("2026-01-01", effort=5),
            _workout("2026-01-02"),
            _workout("2026-01-03", effort=8),
        ]
        points = effort_history(history, limit=20)
        assert [(p.day, p.effort) for p in points] == [(date(2026, 1, 1), 5), (date(2026, 1, 3), 8)]
        assert points[0].label == "Jan 1"

    def test_effort_history_keeps_most_recent(self):
        history = [_workout(f"2026-01-{d:02d}", effort=d % 10 + 1) for d in range(1, 11)]
        points = effort_history(history, limit=3)
        assert [p.day.day for p in points] == [8, 9, 10]

    def test_exercise_history_newest_first(self):
        history = [
            _workout("2026-01-01", logs=[_log("goblet-squat", "2026-01-01", weight=40)]),
            _workout("2026-01-05", logs=[_log("goblet-squat", "2026-01-05", weight=45)]),
            _workout("2026-01-09", logs=[_log("goblet-squat", "2026-01-09", weight=50)]),
        ]
        logs = exercise_history(history, "goblet-squat", limit=2)
        assert [log.weight for log in logs] == [50, 45]

    def test_recent_averages(self):
        history = [
            _workout("2026-01-01", logs=[_log("goblet-squat", weight=30, reps=5)]),
            _workout("2026-01-10", logs=[_log("goblet-squat", weight=50, reps=10)]),
            _workout("2026-01-12", logs=[_log("goblet-squat", weight=55, reps=11)]),
        ]
        averages = recent_averages(history, "goblet-squat", date(2026, 1, 14))
        assert (averages.avg_weight, averages.avg_reps, averages.log_count) == (53, 11, 2)

    def test_recent_averages_none_without_logs(self):
        assert recent_averages([], "goblet-squat", date(2026, 1, 14)) is None


# ===========================================================================
# Facade
# ===========================================================================


class TestAggregationEngine:
    def test_reads_latest_store_state(self):
        store = HistoryStore(MemoryStore())
        agg = AggregationEngine(store, today=date(2026, 1, 4))
        assert agg.stats().total_workouts == 0

        for day in ("2026-01-01", "2026-01-02", "2026-01-03"):
            store.append_completed(_workout(day, effort=6))
        store.set_rest_day(date(2026, 1, 4))

        assert agg.current_streak() == 4
        assert agg.stats().total_workouts == 3
        assert agg.year().current_week_index == 0
        assert agg.month().current_week_index == 0

    def test_effort_trend(self):
        store = HistoryStore(MemoryStore())
        store.append_completed(_workout("2026-01-01", effort=4))
        store.append_completed(_workout("2026-01-02", effort=8))
        curve = AggregationEngine(store, today=date(2026, 1, 3)).effort_trend()
        assert len(curve.segments) == 1
        assert curve.summary.delta == 4

    def test_today_callable(self):
        agg = AggregationEngine(HistoryStore(MemoryStore()), today=lambda: date(2026, 5, 1))
        assert agg.today == date(2026, 5, 1)
