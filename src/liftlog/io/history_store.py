"""
Session history and active-session storage.

Handles reading, writing, and repairing the completed-session history, the
active-session snapshot used for crash recovery, the rest-day markers,
and the user's workout library and custom exercises.
"""

import json
import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Iterable

from ..core.config import (
    ACTIVE_SESSION_KEY,
    BACKLOG_HOUR,
    BACKLOG_SESSION_NAME,
    CUSTOM_EXERCISE_PREFIX,
    CUSTOM_EXERCISES_KEY,
    DEFAULT_BACKFILL_EFFORT,
    EFFORT_MAX,
    EFFORT_MIN,
    REST_DAYS_KEY,
    SAVED_WORKOUTS_KEY,
    SESSIONS_KEY,
)
from ..core.catalog import ExerciseInfo
from ..core.engine.config_loader import get_setting, get_user_dir
from ..core.models import Block, DayStatus, SavedWorkout, WorkoutSession
from .kv_store import JsonFileStore, KeyValueStore, StorageFailure
from .serializers import (
    ValidationError,
    dict_to_exercise_info,
    dict_to_saved_workout,
    dict_to_session,
    exercise_info_to_dict,
    json_line_to_session,
    saved_workout_to_dict,
    session_to_dict,
    session_to_json_line,
    validate_date,
)

LOGGER = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = 1


def _sort_key(session: WorkoutSession) -> tuple[datetime, str]:
    # Wall-clock order, so that sessions recorded in different offsets sort
    # the same way they bucket into calendar dates.
    return session.started.replace(tzinfo=None), session.session_id


def _unique_slug(name: str, taken: set[str], prefix: str = "") -> str:
    """Lowercase-hyphen id for ``name``, suffixed with -2, -3, ... until unused."""
    base = prefix + (re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "workout")
    slug, n = base, 2
    while slug in taken:
        slug = f"{base}-{n}"
        n += 1
    return slug


class HistoryStore:
    """
    Manages workout history on top of a key-value store.

    Keys:
    - ``workout_sessions``: completed sessions, one JSON object per line
    - ``active_session``: snapshot of the in-progress session (absent if none)
    - ``rest_days``: JSON list of ISO dates marked as rest
    - ``saved_workouts``: JSON list of the user's workout library
    - ``custom_exercises``: JSON list of user-defined exercises

    History is append-only except for the explicit repair operations
    (effort backfill, backlog/rest markers, delete).
    """

    def __init__(self, kv: KeyValueStore):
        """
        Initialize the history store.

        Args:
            kv: Key-value backend (JsonFileStore on disk, MemoryStore in tests)
        """
        self.kv = kv

    # ------------------------------------------------------------------
    # Active session snapshot
    # ------------------------------------------------------------------

    def save_active(self, session: WorkoutSession | None) -> None:
        """
        Overwrite the active-session snapshot; None clears it.

        Raises:
            StorageFailure: If the backend write fails
        """
        if session is None:
            self.kv.delete(ACTIVE_SESSION_KEY)
        else:
            self.kv.set(ACTIVE_SESSION_KEY, session_to_json_line(session))

    def load_active(self) -> WorkoutSession | None:
        """
        Load the active-session snapshot.

        Read failures and corrupt snapshots are treated as "nothing to
        resume" so that a broken snapshot never blocks starting fresh.

        Returns:
            WorkoutSession or None
        """
        try:
            raw = self.kv.get(ACTIVE_SESSION_KEY)
        except StorageFailure as e:
            LOGGER.warning("cannot read active session, starting fresh: %s", e)
            return None
        if not raw:
            return None
        try:
            return json_line_to_session(raw)
        except ValidationError as e:
            LOGGER.warning("discarding corrupt active session snapshot: %s", e)
            return None

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def load_history(self) -> list[WorkoutSession]:
        """
        Load all completed sessions.

        Returns:
            List of WorkoutSession, oldest first

        Raises:
            ValidationError: If a history line cannot be parsed
        """
        raw = self.kv.get(SESSIONS_KEY) or ""
        sessions: list[WorkoutSession] = []

        for line_num, line in enumerate(raw.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                sessions.append(json_line_to_session(line))
            except ValidationError as e:
                raise ValidationError(f"Error parsing history line {line_num}: {e}") from e

        sessions.sort(key=_sort_key)
        return sessions

    def _write_sessions(self, sessions: list[WorkoutSession]) -> None:
        """Rewrite the full history."""
        ordered = sorted(sessions, key=_sort_key)
        self.kv.set(SESSIONS_KEY, "".join(session_to_json_line(s) + "\n" for s in ordered))

    def append_completed(self, session: WorkoutSession) -> bool:
        """
        Append a completed session to history.

        Args:
            session: Finalized session (must have completed_at)

        Returns:
            True if appended, False if a session with the same id exists

        Raises:
            ValueError: If the session is not completed
        """
        if not session.is_completed:
            raise ValueError(f"Session {session.session_id} is not completed")

        sessions = self.load_history()
        if any(s.session_id == session.session_id for s in sessions):
            LOGGER.info("session %s already in history, not appended", session.session_id)
            return False

        sessions.append(session)
        self._write_sessions(sessions)
        self._clear_rest_on([session.local_date])
        return True

    def latest_session(self) -> WorkoutSession | None:
        """
        Get the most recent completed session.

        Returns:
            Latest WorkoutSession or None if no history
        """
        sessions = self.load_history()
        return sessions[-1] if sessions else None

    def sessions_on(self, day: date) -> list[WorkoutSession]:
        """All completed sessions whose local calendar date is ``day``."""
        return [s for s in self.load_history() if s.local_date == day]

    def has_workout_on(self, day: date) -> bool:
        """True if any session (real or backlog) exists on ``day``."""
        return bool(self.sessions_on(day))

    def has_real_workout_on(self, day: date) -> bool:
        """True if a logged (non-backlog) session exists on ``day``."""
        return any(not s.is_backlog for s in self.sessions_on(day))

    def delete_session(self, session_id: str) -> bool:
        """
        Delete one session from history by id.

        Returns:
            True if a session was removed
        """
        sessions = self.load_history()
        kept = [s for s in sessions if s.session_id != session_id]
        if len(kept) == len(sessions):
            return False
        self._write_sessions(kept)
        return True

    # ------------------------------------------------------------------
    # Repairs
    # ------------------------------------------------------------------

    def backfill_effort(self, default_effort: int | None = None) -> int:
        """
        Assign an effort rating to completed sessions that lack one.

        The effort is the rounded mean of the per-exercise efforts logged in
        the session, or ``default_effort`` when none were logged. Sessions
        that already have an effort are never touched, so repeated runs are
        no-ops.

        Args:
            default_effort: Fallback rating (default: settings effort.default_backfill)

        Returns:
            Number of sessions repaired
        """
        if default_effort is None:
            default_effort = int(get_setting("effort", "default_backfill", DEFAULT_BACKFILL_EFFORT))
        default_effort = max(EFFORT_MIN, min(EFFORT_MAX, default_effort))

        sessions = self.load_history()
        repaired = 0
        for session in sessions:
            if session.effort is not None:
                continue
            logged = [log.effort for log in session.logs if log.effort is not None]
            if logged:
                # Round half up, as the rating scale is presented
                session.effort = int(sum(logged) / len(logged) + 0.5)
            else:
                session.effort = default_effort
            repaired += 1

        if repaired:
            self._write_sessions(sessions)
            LOGGER.info("backfilled effort on %d session(s)", repaired)
        return repaired

    # ------------------------------------------------------------------
    # Rest days and backlog markers
    # ------------------------------------------------------------------

    def load_rest_days(self) -> set[date]:
        """
        Load the set of dates marked as rest.

        Raises:
            ValidationError: If the stored list is malformed
        """
        raw = self.kv.get(REST_DAYS_KEY)
        if not raw:
            return set()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid rest day list: {e}") from e
        if not isinstance(data, list):
            raise ValidationError("Rest day list must be a JSON array")
        return {date.fromisoformat(validate_date(str(d))) for d in data}

    def _save_rest_days(self, days: Iterable[date]) -> None:
        self.kv.set(REST_DAYS_KEY, json.dumps(sorted(d.isoformat() for d in days)))

    def _clear_rest_on(self, days: Iterable[date]) -> None:
        """A day with a workout is never also a rest day."""
        rest_days = self.load_rest_days()
        remaining = rest_days - set(days)
        if remaining != rest_days:
            self._save_rest_days(remaining)

    def mark_backlog(self, day: date) -> WorkoutSession | None:
        """
        Record a minimal completed session for a day with no log.

        No-op when any session already exists on ``day``. Clears a rest
        marker on that day.

        Returns:
            The synthesized backlog session, or None if nothing was added
        """
        if self.has_workout_on(day):
            return None

        stamp = datetime.combine(day, time(hour=BACKLOG_HOUR)).isoformat()
        entry = WorkoutSession(
            session_id=f"backlog-{day.isoformat()}",
            name=BACKLOG_SESSION_NAME,
            started_at=stamp,
            completed_at=stamp,
            is_backlog=True,
            skipped=None,
        )
        sessions = self.load_history()
        sessions.append(entry)
        self._write_sessions(sessions)
        self._clear_rest_on([day])
        return entry

    def _drop_backlog(self, day: date) -> bool:
        sessions = self.load_history()
        kept = [s for s in sessions if not (s.is_backlog and s.local_date == day)]
        if len(kept) == len(sessions):
            return False
        self._write_sessions(kept)
        return True

    def set_rest_day(self, day: date) -> bool:
        """
        Mark ``day`` as a rest day, removing any backlog entry on it.

        Returns:
            False if a real session exists on that day (left unchanged)
        """
        if self.has_real_workout_on(day):
            return False
        self._drop_backlog(day)
        rest_days = self.load_rest_days()
        if day not in rest_days:
            rest_days.add(day)
            self._save_rest_days(rest_days)
        return True

    def clear_day(self, day: date) -> bool:
        """
        Remove the rest marker and any backlog entry on ``day``.

        Real sessions are never removed here.

        Returns:
            True if anything changed
        """
        changed = self._drop_backlog(day)
        rest_days = self.load_rest_days()
        if day in rest_days:
            rest_days.discard(day)
            self._save_rest_days(rest_days)
            changed = True
        return changed

    def day_status(self, day: date) -> DayStatus:
        """Current manual status of ``day`` ("protected" when a real session exists)."""
        if self.has_real_workout_on(day):
            return "protected"
        if self.has_workout_on(day):
            return "workout"
        if day in self.load_rest_days():
            return "rest"
        return "none"

    def toggle_day(self, day: date) -> DayStatus:
        """
        Cycle a calendar day through none → workout → rest → none.

        Days with a real session are protected and left unchanged.

        Returns:
            The new status, or "protected"
        """
        status = self.day_status(day)
        if status == "protected":
            return status
        if status == "none":
            self.mark_backlog(day)
            return "workout"
        if status == "workout":
            self.set_rest_day(day)
            return "rest"
        self.clear_day(day)
        return "none"

    # ------------------------------------------------------------------
    # Workout library
    # ------------------------------------------------------------------

    def _load_json_list(self, key: str, what: str) -> list:
        raw = self.kv.get(key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid {what} list: {e}") from e
        if not isinstance(data, list):
            raise ValidationError(f"{what.capitalize()} list must be a JSON array")
        return data

    def load_saved_workouts(self) -> list[SavedWorkout]:
        """
        Load the user's workout library, ordered by name.

        Raises:
            ValidationError: If the stored library is malformed
        """
        workouts = [dict_to_saved_workout(d) for d in self._load_json_list(SAVED_WORKOUTS_KEY, "saved workout")]
        return sorted(workouts, key=lambda w: (w.name.lower(), w.workout_id))

    def _save_workouts(self, workouts: Iterable[SavedWorkout]) -> None:
        self.kv.set(SAVED_WORKOUTS_KEY, json.dumps([saved_workout_to_dict(w) for w in workouts], indent=2))

    def get_saved_workout(self, workout_id: str) -> SavedWorkout | None:
        """Look up one saved workout by id."""
        for workout in self.load_saved_workouts():
            if workout.workout_id == workout_id:
                return workout
        return None

    def save_workout(
        self,
        name: str,
        blocks: list[Block],
        estimated_minutes: int | None = None,
        workout_id: str | None = None,
        reserved: Iterable[str] = (),
    ) -> SavedWorkout:
        """
        Add a workout to the library, or replace the one with ``workout_id``.

        New ids are slugs of ``name``, suffixed until they clash with neither
        the library nor ``reserved`` (the catalog template ids).

        Raises:
            ValueError: If the name is empty or the layout has no exercises
        """
        if not name.strip():
            raise ValueError("Workout name must be non-empty")
        if not any(b.exercises for b in blocks):
            raise ValueError("A saved workout needs at least one exercise")

        workouts = self.load_saved_workouts()
        now = datetime.now().astimezone().isoformat(timespec="seconds")
        existing = next((w for w in workouts if w.workout_id == workout_id), None)

        if existing is not None:
            existing.name = name.strip()
            existing.blocks = blocks
            existing.estimated_minutes = estimated_minutes
            existing.updated_at = now
            saved = existing
        else:
            taken = {w.workout_id for w in workouts} | set(reserved)
            saved = SavedWorkout(
                workout_id=workout_id or _unique_slug(name, taken),
                name=name.strip(),
                blocks=blocks,
                estimated_minutes=estimated_minutes,
                created_at=now,
                updated_at=now,
            )
            workouts.append(saved)

        self._save_workouts(workouts)
        return saved

    def delete_saved_workout(self, workout_id: str) -> bool:
        """
        Remove a workout from the library.

        Returns:
            True if a workout was removed
        """
        workouts = self.load_saved_workouts()
        kept = [w for w in workouts if w.workout_id != workout_id]
        if len(kept) == len(workouts):
            return False
        self._save_workouts(kept)
        return True

    # ------------------------------------------------------------------
    # Custom exercises
    # ------------------------------------------------------------------

    def load_custom_exercises(self) -> list[ExerciseInfo]:
        """
        Load user-defined exercises.

        Raises:
            ValidationError: If the stored list is malformed
        """
        return [dict_to_exercise_info(d) for d in self._load_json_list(CUSTOM_EXERCISES_KEY, "custom exercise")]

    def _save_custom_exercises(self, exercises: Iterable[ExerciseInfo]) -> None:
        ordered = sorted(exercises, key=lambda e: e.exercise_id)
        self.kv.set(CUSTOM_EXERCISES_KEY, json.dumps([exercise_info_to_dict(e) for e in ordered], indent=2))

    def add_custom_exercise(
        self,
        name: str,
        area: str,
        equipment: str,
        default_reps: int | None = None,
        default_duration: int | None = None,
        default_weight: float | None = None,
        reserved: Iterable[str] = (),
    ) -> ExerciseInfo:
        """
        Define a new exercise with a ``custom-`` id derived from its name.

        Raises:
            ValueError: If the name is empty
        """
        if not name.strip():
            raise ValueError("Exercise name must be non-empty")
        exercises = self.load_custom_exercises()
        taken = {e.exercise_id for e in exercises} | set(reserved)
        info = ExerciseInfo(
            exercise_id=_unique_slug(name, taken, prefix=CUSTOM_EXERCISE_PREFIX),
            name=name.strip(),
            area=area,
            equipment=equipment,
            default_weight=default_weight,
            default_reps=default_reps,
            default_duration=default_duration,
        )
        exercises.append(info)
        self._save_custom_exercises(exercises)
        return info

    def delete_custom_exercise(self, exercise_id: str) -> bool:
        """
        Remove a user-defined exercise. Logged history keeps its id.

        Returns:
            True if an exercise was removed
        """
        exercises = self.load_custom_exercises()
        kept = [e for e in exercises if e.exercise_id != exercise_id]
        if len(kept) == len(exercises):
            return False
        self._save_custom_exercises(kept)
        return True

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_history(self) -> list[WorkoutSession]:
        """Full ordered read of completed-session history."""
        return self.load_history()

    def export_json(self) -> str:
        """
        Serialize history, rest days, the workout library and custom
        exercises into a backup document.

        Returns:
            Indented JSON string
        """
        doc = {
            "version": EXPORT_FORMAT_VERSION,
            "exported_at": datetime.now().astimezone().isoformat(timespec="seconds"),
            "sessions": [session_to_dict(s) for s in self.load_history()],
            "rest_days": sorted(d.isoformat() for d in self.load_rest_days()),
            "saved_workouts": [saved_workout_to_dict(w) for w in self.load_saved_workouts()],
            "custom_exercises": [exercise_info_to_dict(e) for e in self.load_custom_exercises()],
        }
        return json.dumps(doc, indent=2)

    def import_sessions(self, sessions: Iterable[WorkoutSession]) -> int:
        """
        Append sessions from a backup or remote sync, skipping known ids.

        Sessions that are not completed are ignored; the active snapshot is
        never touched.

        Returns:
            Number of sessions added
        """
        history = self.load_history()
        known = {s.session_id for s in history}
        added: list[WorkoutSession] = []
        for session in sessions:
            if not session.is_completed:
                LOGGER.info("skipping uncompleted session %s on import", session.session_id)
                continue
            if session.session_id in known:
                continue
            known.add(session.session_id)
            history.append(session)
            added.append(session)

        if added:
            self._write_sessions(history)
            self._clear_rest_on(s.local_date for s in added)
        return len(added)

    def import_json(self, text: str) -> int:
        """
        Import a backup document produced by ``export_json``.

        A bare JSON array of session objects is accepted too. Every record is
        validated before anything is written. Imported rest days are merged,
        except on dates that hold a workout after the import. Saved workouts and
        custom exercises are added when their id is not already present.

        Returns:
            Number of sessions added

        Raises:
            ValidationError: If the document or any record is invalid
        """
        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON: {e}") from e

        if isinstance(doc, list):
            doc = {"sessions": doc}
        if isinstance(doc, dict):
            raw_sessions = doc.get("sessions", [])
            raw_rest = doc.get("rest_days", [])
            raw_workouts = doc.get("saved_workouts", [])
            raw_custom = doc.get("custom_exercises", [])
        else:
            raise ValidationError("Backup must be a JSON object or array")
        for key, raw in (
            ("sessions", raw_sessions),
            ("rest_days", raw_rest),
            ("saved_workouts", raw_workouts),
            ("custom_exercises", raw_custom),
        ):
            if not isinstance(raw, list):
                raise ValidationError(f"Backup '{key}' must be a list")

        sessions = [dict_to_session(d) for d in raw_sessions]
        rest = {date.fromisoformat(validate_date(str(d))) for d in raw_rest}
        workouts = [dict_to_saved_workout(d) for d in raw_workouts]
        custom = [dict_to_exercise_info(d) for d in raw_custom]

        added = self.import_sessions(sessions)

        if rest:
            worked = {s.local_date for s in self.load_history()}
            rest_days = self.load_rest_days()
            merged = rest_days | (rest - worked)
            if merged != rest_days:
                self._save_rest_days(merged)

        if workouts:
            library = self.load_saved_workouts()
            known = {w.workout_id for w in library}
            new = [w for w in workouts if w.workout_id not in known]
            if new:
                self._save_workouts(library + new)

        if custom:
            exercises = self.load_custom_exercises()
            known = {e.exercise_id for e in exercises}
            new_exercises = [e for e in custom if e.exercise_id not in known]
            if new_exercises:
                self._save_custom_exercises(exercises + new_exercises)
        return added


def get_default_data_dir() -> Path:
    """
    Get the default data directory (``~/.liftlog`` or ``$LIFTLOG_HOME``).

    Returns:
        Default data directory path
    """
    return get_user_dir()


def get_default_store() -> HistoryStore:
    """
    Get a HistoryStore backed by files in the default data directory.

    Returns:
        HistoryStore instance
    """
    return HistoryStore(JsonFileStore(get_default_data_dir()))
