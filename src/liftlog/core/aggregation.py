"""
Read-side aggregation over completed-session history.

Every function here is pure: it takes the history list (and rest-day set)
and recomputes from scratch, so results stay correct when history is
edited, backfilled or labelled out of chronological order. Dates are
bucketed by each session's local calendar date.

``AggregationEngine`` is a thin facade that loads history from a store and
delegates.
"""

import calendar
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterable, Sequence

from .config import RANKING_LIMIT, RECENT_AVERAGE_DAYS, TREND_DEFAULT_POINTS, WEEKDAY_NAMES
from .engine.config_loader import get_setting
from .models import CalendarDayAggregate, ExerciseLog, SlotKey, WorkoutSession
from .trend import TrendCurve, build_trend


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class PeriodCounts:
    this_week: int
    this_month: int
    total: int


@dataclass
class StatsSnapshot:
    """Headline numbers for the stats screen."""

    total_workouts: int
    this_week: int
    this_month: int
    average_duration: int  # seconds
    total_minutes: int
    current_streak: int
    longest_streak: int
    workouts_by_weekday: dict[int, int]  # 0 = Sunday
    favorite_weekday: int | None

    @property
    def favorite_weekday_name(self) -> str | None:
        if self.favorite_weekday is None:
            return None
        return WEEKDAY_NAMES[self.favorite_weekday]


@dataclass
class MonthCalendar:
    """
    One month laid out in Monday-start weeks.

    Cells before the 1st and after the last day are None.
    """

    year: int
    month: int
    weeks: list[list[CalendarDayAggregate | None]]
    current_week_index: int = -1

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"


@dataclass
class ContributionGrid:
    """
    A calendar year as Monday-aligned week columns of 7 day cells.

    The first column starts on the Monday of the week containing January 1st;
    cells outside the year are None.
    """

    year: int
    weeks: list[list[CalendarDayAggregate | None]]
    current_week_index: int = -1
    month_labels: list[tuple[int, str]] = field(default_factory=list)  # (week index, "Jan")


@dataclass
class ExerciseUsage:
    exercise_id: str
    count: int


@dataclass
class ExerciseSkips:
    exercise_id: str
    skips: int = 0
    swaps: int = 0

    @property
    def total(self) -> int:
        return self.skips + self.swaps


@dataclass
class EffortPoint:
    day: date
    effort: int

    @property
    def label(self) -> str:
        return f"{self.day:%b} {self.day.day}"


@dataclass
class RecentAverages:
    avg_weight: int
    avg_reps: int
    log_count: int


# =============================================================================
# HELPERS
# =============================================================================


def _completed(history: Iterable[WorkoutSession]) -> list[WorkoutSession]:
    return [s for s in history if s.is_completed]


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def sunday_weekday(day: date) -> int:
    """Weekday index with Sunday = 0."""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


# =============================================================================
# CALENDAR DAYS AND STREAKS
# =============================================================================


def workout_dates(history: Iterable[WorkoutSession]) -> set[date]:
    """Local dates with at least one completed session (backlog entries included)."""
    return {s.local_date for s in _completed(history)}


def calendar_days(
    history: Iterable[WorkoutSession],
    rest_days: Iterable[date] = (),
) -> dict[date, CalendarDayAggregate]:
    """
    Per-day strength/cardio/rest counts for every marked date.

    Returns:
        Dict of date → CalendarDayAggregate (unmarked dates absent)
    """
    days: dict[date, CalendarDayAggregate] = {}
    for session in _completed(history):
        day = days.setdefault(session.local_date, CalendarDayAggregate(session.local_date))
        if session.is_cardio:
            day.cardio += 1
        else:
            day.strength += 1
    for rest in rest_days:
        day = days.setdefault(rest, CalendarDayAggregate(rest))
        day.rest += 1
    return days


def _day(days: dict[date, CalendarDayAggregate], d: date) -> CalendarDayAggregate:
    return days.get(d) or CalendarDayAggregate(d)


def current_streak(
    history: Iterable[WorkoutSession],
    rest_days: Iterable[date],
    today: date,
) -> int:
    """
    Consecutive qualifying days ending at ``today``.

    A day qualifies if it has a workout or is marked rest. The scan walks
    backward from today and stops at the first day that is neither, so an
    unmarked today gives 0.
    """
    marked = workout_dates(history) | set(rest_days)
    streak = 0
    day = today
    while day in marked:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(history: Iterable[WorkoutSession], rest_days: Iterable[date]) -> int:
    """Longest run of consecutive qualifying days anywhere in the record."""
    marked = sorted(workout_dates(history) | set(rest_days))
    best = run = 0
    previous: date | None = None
    for day in marked:
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best


# =============================================================================
# STATS
# =============================================================================


def period_counts(history: Iterable[WorkoutSession], today: date) -> PeriodCounts:
    """Workouts this week (Monday start), this calendar month, and overall."""
    sessions = _completed(history)
    monday = week_start(today)
    sunday = monday + timedelta(days=6)
    return PeriodCounts(
        this_week=sum(1 for s in sessions if monday <= s.local_date <= sunday),
        this_month=sum(
            1 for s in sessions
            if (s.local_date.year, s.local_date.month) == (today.year, today.month)
        ),
        total=len(sessions),
    )


def workouts_by_weekday(history: Iterable[WorkoutSession]) -> dict[int, int]:
    counts = {i: 0 for i in range(7)}
    for session in _completed(history):
        counts[sunday_weekday(session.local_date)] += 1
    return counts


def favorite_weekday(history: Iterable[WorkoutSession]) -> int | None:
    """
    Most common workout weekday (Sunday = 0).

    Ties go to the lowest index. None for empty history.
    """
    counts = workouts_by_weekday(history)
    if not any(counts.values()):
        return None
    best = max(counts.values())
    return min(i for i, n in counts.items() if n == best)


def stats_snapshot(
    history: Sequence[WorkoutSession],
    rest_days: Iterable[date],
    today: date,
) -> StatsSnapshot:
    """
    Compute all headline statistics.

    Backlog entries count as workouts everywhere except the duration
    figures, since they have no recorded duration.
    """
    rest = set(rest_days)
    sessions = _completed(history)
    periods = period_counts(sessions, today)

    durations = [s.total_duration for s in sessions if not s.is_backlog and s.total_duration]
    average = _round_half_up(sum(durations) / len(durations)) if durations else 0

    return StatsSnapshot(
        total_workouts=periods.total,
        this_week=periods.this_week,
        this_month=periods.this_month,
        average_duration=average,
        total_minutes=_round_half_up(sum(durations) / 60),
        current_streak=current_streak(sessions, rest, today),
        longest_streak=longest_streak(sessions, rest),
        workouts_by_weekday=workouts_by_weekday(sessions),
        favorite_weekday=favorite_weekday(sessions),
    )


# =============================================================================
# CALENDAR VIEWS
# =============================================================================


def week_dates(
    history: Iterable[WorkoutSession],
    rest_days: Iterable[date],
    today: date,
) -> list[CalendarDayAggregate]:
    """The seven days (Monday to Sunday) of the week containing ``today``."""
    days = calendar_days(history, rest_days)
    monday = week_start(today)
    return [_day(days, monday + timedelta(days=i)) for i in range(7)]


def month_calendar(
    history: Iterable[WorkoutSession],
    rest_days: Iterable[date],
    year: int,
    month: int,
    today: date,
) -> MonthCalendar:
    """Lay out one month in Monday-start weeks with None padding."""
    days = calendar_days(history, rest_days)
    weeks: list[list[CalendarDayAggregate | None]] = []
    current = -1
    for index, week in enumerate(calendar.Calendar(firstweekday=0).monthdatescalendar(year, month)):
        weeks.append([_day(days, d) if d.month == month else None for d in week])
        if today in week and (today.year, today.month) == (year, month):
            current = index
    return MonthCalendar(year=year, month=month, weeks=weeks, current_week_index=current)


def contribution_grid(
    history: Iterable[WorkoutSession],
    rest_days: Iterable[date],
    year: int,
    today: date,
) -> ContributionGrid:
    """
    Map every date of ``year`` onto Monday-aligned week columns.

    A month label is placed on the first column whose Monday falls in a new
    month of the year. ``current_week_index`` is -1 when ``today`` is not in
    ``year``.
    """
    days = calendar_days(history, rest_days)
    first = date(year, 1, 1)
    last = date(year, 12, 31)

    weeks: list[list[CalendarDayAggregate | None]] = []
    labels: list[tuple[int, str]] = []
    current = -1
    last_month = 0

    monday = week_start(first)
    while monday <= last:
        column = [monday + timedelta(days=i) for i in range(7)]
        if monday.year == year and monday.month != last_month:
            labels.append((len(weeks), calendar.month_abbr[monday.month]))
            last_month = monday.month
        if today.year == year and today in column:
            current = len(weeks)
        weeks.append([_day(days, d) if d.year == year else None for d in column])
        monday += timedelta(days=7)

    return ContributionGrid(year=year, weeks=weeks, current_week_index=current, month_labels=labels)


# =============================================================================
# EXERCISE RANKINGS
# =============================================================================


def most_used_exercises(history: Iterable[WorkoutSession], limit: int = RANKING_LIMIT) -> list[ExerciseUsage]:
    """Exercise ids by number of logged occurrences, highest first, ties by id."""
    counts = Counter(log.exercise_id for s in _completed(history) for log in s.logs)
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [ExerciseUsage(ex_id, n) for ex_id, n in ranked[:limit]]


def _inferred_skips(session: WorkoutSession) -> Counter:
    """Template slots per exercise id beyond the number of logs for that id."""
    planned = Counter(session.effective_exercise_id(slot) for slot in session.iter_slots())
    logged = Counter(log.exercise_id for log in session.logs)
    return Counter({ex_id: n - logged[ex_id] for ex_id, n in planned.items() if n > logged[ex_id]})


def most_skipped_exercises(
    history: Iterable[WorkoutSession],
    limit: int = RANKING_LIMIT,
) -> list[ExerciseSkips]:
    """
    Exercises ranked by how often they were skipped or swapped away.

    Sessions with a recorded skip list use it; sessions without one (legacy
    or imported data) fall back to counting unlogged template slots. A swap
    counts against the template exercise that was replaced.
    """
    totals: dict[str, ExerciseSkips] = {}

    def entry(ex_id: str) -> ExerciseSkips:
        return totals.setdefault(ex_id, ExerciseSkips(ex_id))

    for session in _completed(history):
        if not session.blocks:
            continue

        for slot, new_id in session.substitutions.items():
            if not session.slot_exists(slot):
                continue
            replaced = session.template_exercise_id(slot)
            if replaced != new_id:
                entry(replaced).swaps += 1

        if session.skipped is None:
            for ex_id, n in _inferred_skips(session).items():
                entry(ex_id).skips += n
        else:
            for slot in session.skipped:
                if session.slot_exists(slot):
                    entry(session.effective_exercise_id(SlotKey(*slot))).skips += 1

    ranked = sorted((e for e in totals.values() if e.total), key=lambda e: (-e.total, e.exercise_id))
    return ranked[:limit]


# =============================================================================
# EFFORT AND PER-EXERCISE HISTORY
# =============================================================================


def effort_history(history: Iterable[WorkoutSession], limit: int = TREND_DEFAULT_POINTS) -> list[EffortPoint]:
    """Chronological overall-effort series, last ``limit`` rated sessions."""
    points = [EffortPoint(s.local_date, s.effort) for s in _completed(history) if s.effort is not None]
    return points[-limit:] if limit > 0 else []


def exercise_history(history: Sequence[WorkoutSession], exercise_id: str, limit: int = 10) -> list[ExerciseLog]:
    """Most recent logs for one exercise, newest first."""
    logs = [log for s in _completed(history) for log in s.logs if log.exercise_id == exercise_id]
    logs.reverse()
    return logs[:limit]


def recent_averages(
    history: Iterable[WorkoutSession],
    exercise_id: str,
    today: date,
    days: int = RECENT_AVERAGE_DAYS,
) -> RecentAverages | None:
    """
    Average weight and reps for one exercise over the last ``days`` days.

    Returns:
        RecentAverages, or None if the exercise was not logged in the window
    """
    since = today - timedelta(days=days)
    logs = [
        log
        for s in _completed(history)
        if s.local_date >= since
        for log in s.logs
        if log.exercise_id == exercise_id
    ]
    if not logs:
        return None
    weights = [log.weight for log in logs if log.weight]
    reps = [log.reps for log in logs if log.reps is not None]
    return RecentAverages(
        avg_weight=_round_half_up(sum(weights) / len(weights)) if weights else 0,
        avg_reps=_round_half_up(sum(reps) / len(reps)) if reps else 0,
        log_count=len(logs),
    )


# =============================================================================
# FACADE
# =============================================================================


class AggregationEngine:
    """
    Convenience wrapper that reads history and rest days from a store.

    Nothing is cached: each call reloads, so results always reflect the
    latest writes.
    """

    def __init__(self, store, today: Callable[[], date] | date | None = None):
        """
        Args:
            store: HistoryStore to read from
            today: Fixed date, or a callable returning it (default: date.today)
        """
        self.store = store
        self._today = today

    @property
    def today(self) -> date:
        if self._today is None:
            return date.today()
        if isinstance(self._today, date):
            return self._today
        return self._today()

    def _data(self) -> tuple[list[WorkoutSession], set[date]]:
        return self.store.load_history(), self.store.load_rest_days()

    def stats(self) -> StatsSnapshot:
        history, rest = self._data()
        return stats_snapshot(history, rest, self.today)

    def current_streak(self) -> int:
        history, rest = self._data()
        return current_streak(history, rest, self.today)

    def longest_streak(self) -> int:
        history, rest = self._data()
        return longest_streak(history, rest)

    def week(self) -> list[CalendarDayAggregate]:
        history, rest = self._data()
        return week_dates(history, rest, self.today)

    def month(self, year: int | None = None, month: int | None = None) -> MonthCalendar:
        history, rest = self._data()
        today = self.today
        return month_calendar(history, rest, year or today.year, month or today.month, today)

    def year(self, year: int | None = None) -> ContributionGrid:
        history, rest = self._data()
        today = self.today
        return contribution_grid(history, rest, year or today.year, today)

    def most_used(self, limit: int | None = None) -> list[ExerciseUsage]:
        if limit is None:
            limit = int(get_setting("ranking", "limit", RANKING_LIMIT))
        return most_used_exercises(self.store.load_history(), limit)

    def most_skipped(self, limit: int | None = None) -> list[ExerciseSkips]:
        if limit is None:
            limit = int(get_setting("ranking", "limit", RANKING_LIMIT))
        return most_skipped_exercises(self.store.load_history(), limit)

    def effort_points(self, limit: int | None = None) -> list[EffortPoint]:
        if limit is None:
            limit = int(get_setting("trend", "points", TREND_DEFAULT_POINTS))
        return effort_history(self.store.load_history(), limit)

    def effort_trend(self, limit: int | None = None) -> TrendCurve:
        """Trend curve over the recent overall-effort series."""
        return build_trend([p.effort for p in self.effort_points(limit)])

    def exercise_history(self, exercise_id: str, limit: int = 10) -> list[ExerciseLog]:
        return exercise_history(self.store.load_history(), exercise_id, limit)

    def recent_averages(self, exercise_id: str, days: int = RECENT_AVERAGE_DAYS) -> RecentAverages | None:
        return recent_averages(self.store.load_history(), exercise_id, self.today, days)
