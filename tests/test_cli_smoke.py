"""
Smoke tests for the liftlog CLI.

Tests basic flows end to end against a temporary data directory:
- App runs and shows help
- A template session can be started, logged, skipped and completed
- Quick and cardio sessions
- Day markers, export/import and error exits
- Mid-session edits, the workout library and custom exercises
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from liftlog.cli.main import app
from liftlog.io.kv_store import JsonFileStore, StorageFailure


runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path) -> Path:
    return tmp_path / "data"


def _run(data_dir: Path, *args: str, input: str | None = None):
    return runner.invoke(app, [*args, "--data-dir", str(data_dir)], input=input)


class TestCLISmoke:
    """Basic smoke tests for CLI commands."""

    def test_app_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "start" in result.output
        assert "calendar" in result.output

    def test_templates_listed(self):
        result = runner.invoke(app, ["templates"])
        assert result.exit_code == 0
        assert "quick-circuit" in result.output

    def test_status_without_session(self, data_dir):
        result = _run(data_dir, "status")
        assert result.exit_code == 0
        assert "No active session" in result.output

    def test_empty_history(self, data_dir):
        result = _run(data_dir, "history")
        assert result.exit_code == 0
        assert "No workouts recorded yet" in result.output


class TestSessionFlow:
    def test_template_session_round_trip(self, data_dir):
        result = _run(data_dir, "start", "quick-circuit")
        assert result.exit_code == 0
        assert "Started: Quick Circuit" in result.output
        assert "Jumping Jacks" in result.output
        assert (data_dir / "active_session.json").exists()

        result = _run(data_dir, "log", "--duration", "60")
        assert result.exit_code == 0
        assert "Logged Jumping Jacks" in result.output
        assert "Jumps" in result.output

        result = _run(data_dir, "skip")
        assert result.exit_code == 0
        assert "Skipped Jumps" in result.output
        assert "Kettlebell Swings" in result.output

        result = _run(data_dir, "complete", "--effort", "7")
        assert result.exit_code == 0
        assert "Workout complete: Quick Circuit" in result.output
        assert not (data_dir / "active_session.json").exists()

        result = _run(data_dir, "history", "--json")
        assert result.exit_code == 0
        sessions = json.loads(result.output)
        assert len(sessions) == 1
        assert sessions[0]["effort"] == 7
        assert sessions[0]["template_id"] == "quick-circuit"

        result = _run(data_dir, "stats", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output)["total_workouts"] == 1

        result = _run(data_dir, "exercises", "--json")
        used = json.loads(result.output)
        assert used == [{"exercise_id": "jumping-jacks", "count": 1}]

        result = _run(data_dir, "exercises", "--skipped", "--json")
        skipped = json.loads(result.output)
        assert [(s["exercise_id"], s["skips"]) for s in skipped] == [("jumps", 1)]

    def test_goto_and_swap(self, data_dir):
        _run(data_dir, "start", "quick-circuit")

        result = _run(data_dir, "goto", "2", "2")
        assert result.exit_code == 0
        assert "Pushups" in result.output

        result = _run(data_dir, "swap")
        assert result.exit_code == 0
        assert "incline-pushups" in result.output

        result = _run(data_dir, "swap", "incline-pushups")
        assert result.exit_code == 0
        assert "Swapped" in result.output

        result = _run(data_dir, "log", "--reps", "12", "--stay")
        assert result.exit_code == 0
        assert "Logged Incline Pushups" in result.output

    def test_goto_out_of_range(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        result = _run(data_dir, "goto", "9")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_quick_session_requires_exercise_id(self, data_dir):
        result = _run(data_dir, "start", "--quick")
        assert result.exit_code == 0

        result = _run(data_dir, "log", "--reps", "10")
        assert result.exit_code == 1

        result = _run(data_dir, "log", "-x", "pushups", "--reps", "12")
        assert result.exit_code == 0
        assert "Logged Pushups" in result.output

        result = _run(data_dir, "complete")
        assert result.exit_code == 0
        result = _run(data_dir, "exercises", "--exercise", "pushups", "--json")
        detail = json.loads(result.output)
        assert detail["recent_averages"]["avg_reps"] == 12
        assert len(detail["logs"]) == 1

    def test_cardio_session_with_distance(self, data_dir):
        result = _run(data_dir, "start", "--cardio", "run")
        assert result.exit_code == 0

        result = _run(data_dir, "complete", "--distance", "5")
        assert result.exit_code == 0
        assert "5 km" in result.output

    def test_unknown_cardio_type(self, data_dir):
        result = _run(data_dir, "start", "--cardio", "skydiving")
        assert result.exit_code == 1

    def test_start_needs_exactly_one_source(self, data_dir):
        assert _run(data_dir, "start").exit_code == 1
        assert _run(data_dir, "start", "quick-circuit", "--quick").exit_code == 1

    def test_start_unknown_template(self, data_dir):
        result = _run(data_dir, "start", "no-such-template")
        assert result.exit_code == 1

    def test_replace_active_session_declined(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        result = _run(data_dir, "start", "--quick", input="n\n")
        assert result.exit_code == 0
        assert "Cancelled" in result.output

        status = _run(data_dir, "status")
        assert "Quick Circuit" in status.output

    def test_repeat_last(self, data_dir):
        assert _run(data_dir, "start", "--last").exit_code == 1

        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "complete")
        result = _run(data_dir, "start", "--last")
        assert result.exit_code == 0
        assert "Started: Quick Circuit" in result.output

    def test_cancel(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        result = _run(data_dir, "cancel", "--force")
        assert result.exit_code == 0
        assert "discarded" in result.output

        assert "No active session" in _run(data_dir, "status").output
        assert "No workouts recorded yet" in _run(data_dir, "history").output

    def test_complete_without_session(self, data_dir):
        result = _run(data_dir, "complete")
        assert result.exit_code == 1


class TestDays:
    def test_rest_backlog_and_toggle(self, data_dir):
        result = _run(data_dir, "rest", "2020-01-06")
        assert result.exit_code == 0
        assert "rest day" in result.output

        result = _run(data_dir, "backlog", "2020-01-06")
        assert result.exit_code == 0
        assert "workout day" in result.output

        result = _run(data_dir, "toggle-day", "2020-01-06")
        assert result.exit_code == 0
        assert "rest" in result.output

        result = _run(data_dir, "clear-day", "2020-01-06")
        assert result.exit_code == 0
        assert "Cleared" in result.output

    def test_rest_rejected_on_worked_day(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "complete")
        result = _run(data_dir, "rest")
        assert result.exit_code == 1

    def test_future_backlog_rejected(self, data_dir):
        assert _run(data_dir, "backlog", "2999-01-01").exit_code == 1
        assert _run(data_dir, "toggle-day", "2999-01-01").exit_code == 1

    def test_invalid_date(self, data_dir):
        assert _run(data_dir, "rest", "yesterday-ish").exit_code == 1

    def test_calendar_views(self, data_dir):
        _run(data_dir, "backlog", "2020-01-06")
        result = _run(data_dir, "calendar", "--month", "2020-01")
        assert result.exit_code == 0
        assert "January 2020" in result.output

        result = _run(data_dir, "year", "--year", "2020")
        assert result.exit_code == 0
        assert "2020" in result.output

    def test_invalid_month(self, data_dir):
        assert _run(data_dir, "calendar", "--month", "2020-13").exit_code == 1


class TestData:
    def test_export_import(self, data_dir, tmp_path):
        _run(data_dir, "backlog", "2020-01-06")
        _run(data_dir, "rest", "2020-01-07")
        backup = tmp_path / "backup.json"

        result = _run(data_dir, "export", "--output", str(backup))
        assert result.exit_code == 0
        document = json.loads(backup.read_text())
        assert document["rest_days"] == ["2020-01-07"]

        other = tmp_path / "other"
        result = _run(other, "import", str(backup))
        assert result.exit_code == 0
        assert "Imported 1 new workout(s)" in result.output

        result = _run(other, "import", str(backup))
        assert "Imported 0 new workout(s)" in result.output

    def test_import_missing_file(self, data_dir, tmp_path):
        result = _run(data_dir, "import", str(tmp_path / "missing.json"))
        assert result.exit_code == 1

    def test_backfill_and_effort_trend(self, data_dir):
        _run(data_dir, "backlog", "2020-01-06")
        _run(data_dir, "backlog", "2020-01-08")

        result = _run(data_dir, "backfill-effort", "--default", "6")
        assert result.exit_code == 0
        assert "2 workout(s)" in result.output

        result = _run(data_dir, "effort", "--json")
        assert result.exit_code == 0
        trend = json.loads(result.output)
        assert [p["effort"] for p in trend["points"]] == [6, 6]
        assert trend["delta"] == 0

    def test_delete(self, data_dir):
        _run(data_dir, "backlog", "2020-01-06")
        sessions = json.loads(_run(data_dir, "history", "--json").output)
        session_id = sessions[0]["session_id"]

        result = _run(data_dir, "delete", session_id, "--force")
        assert result.exit_code == 0
        assert json.loads(_run(data_dir, "history", "--json").output) == []

    def test_delete_unknown(self, data_dir):
        assert _run(data_dir, "delete", "nope", "--force").exit_code == 1


class TestSessionEdits:
    def test_add_and_remove(self, data_dir):
        _run(data_dir, "start", "quick-circuit")

        result = _run(data_dir, "add", "burpees", "--block", "1", "--position", "1")
        assert result.exit_code == 0
        assert "Added Burpees at block 1, position 1" in result.output

        status = _run(data_dir, "status")
        assert "Jumping Jacks" in status.output

        result = _run(data_dir, "remove")
        assert result.exit_code == 0
        assert "Removed Jumping Jacks" in result.output
        assert "Jumps" in result.output

    def test_logged_exercise_cannot_be_removed(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "log", "--duration", "60", "--stay")
        result = _run(data_dir, "remove")
        assert result.exit_code == 1
        assert "already been logged" in result.output

    def test_add_out_of_range(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        assert _run(data_dir, "add", "pushups", "--block", "9").exit_code == 1

    def test_edits_need_a_session(self, data_dir):
        assert _run(data_dir, "add", "pushups").exit_code == 1
        assert _run(data_dir, "remove").exit_code == 1


class TestLibrary:
    def test_save_and_start_saved_workout(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "goto", "2", "2")
        _run(data_dir, "swap", "incline-pushups")

        result = _run(data_dir, "save-workout", "My Circuit", "--minutes", "25")
        assert result.exit_code == 0
        assert "my-circuit" in result.output

        result = _run(data_dir, "workouts")
        assert result.exit_code == 0
        assert "My Circuit" in result.output

        _run(data_dir, "cancel", "--force")
        result = _run(data_dir, "start", "my-circuit")
        assert result.exit_code == 0
        assert "Started: My Circuit" in result.output

        result = _run(data_dir, "goto", "2", "2")
        assert "Incline Pushups" in result.output

        _run(data_dir, "complete")
        sessions = json.loads(_run(data_dir, "history", "--json").output)
        assert sessions[0]["template_id"] == "my-circuit"

    def test_save_from_last_workout(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "complete")
        result = _run(data_dir, "save-workout", "Again")
        assert result.exit_code == 0
        assert "again" in _run(data_dir, "workouts").output

    def test_nothing_to_save(self, data_dir):
        assert _run(data_dir, "save-workout", "Empty").exit_code == 1
        _run(data_dir, "start", "--quick")
        assert _run(data_dir, "save-workout", "Empty").exit_code == 1

    def test_delete_workout(self, data_dir):
        _run(data_dir, "start", "quick-circuit")
        _run(data_dir, "save-workout", "My Circuit")

        result = _run(data_dir, "delete-workout", "my-circuit", "--force")
        assert result.exit_code == 0
        assert "No saved workouts yet" in _run(data_dir, "workouts").output
        assert _run(data_dir, "delete-workout", "my-circuit", "--force").exit_code == 1

    def test_custom_exercise(self, data_dir):
        result = _run(
            data_dir, "add-exercise", "Sled Push", "--area", "conditioning", "--equipment", "sled", "--duration", "30"
        )
        assert result.exit_code == 0
        assert "custom-sled-push" in result.output

        result = _run(data_dir, "catalog", "--area", "conditioning")
        assert result.exit_code == 0
        assert "Sled Push" in result.output

        _run(data_dir, "start", "--quick")
        result = _run(data_dir, "log", "-x", "custom-sled-push", "--duration", "30")
        assert "Logged Sled Push" in result.output

        assert _run(data_dir, "delete-exercise", "custom-sled-push").exit_code == 0
        assert _run(data_dir, "delete-exercise", "custom-sled-push").exit_code == 1
        assert _run(data_dir, "delete-exercise", "pushups").exit_code == 1


class TestStorageErrors:
    @pytest.mark.parametrize(
        "args",
        [
            ("rest", "2020-01-07"),
            ("backlog", "2020-01-08"),
            ("clear-day", "2020-01-06"),
            ("toggle-day", "2020-01-05"),
            ("backfill-effort",),
            ("delete", "backlog-2020-01-05", "--force"),
        ],
    )
    def test_write_failure_exits_cleanly(self, data_dir, monkeypatch, args):
        _run(data_dir, "backlog", "2020-01-05")
        _run(data_dir, "rest", "2020-01-06")

        def failing_set(self, key, value):
            raise StorageFailure("disk full")

        monkeypatch.setattr(JsonFileStore, "set", failing_set)
        result = _run(data_dir, *args)
        assert result.exit_code == 1
        assert "disk full" in result.output
