import time

import pytest

from liftlog.core.catalog.registry import reset_registry


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the user directory at an empty temp dir so no real config leaks in."""
    home = tmp_path / "liftlog-home"
    monkeypatch.setenv("LIFTLOG_HOME", str(home))
    reset_registry()
    yield home
    reset_registry()


@pytest.fixture
def new_york_tz(monkeypatch):
    """Run with the process local zone set to America/New_York (UTC-5 in January)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield "America/New_York"
    monkeypatch.undo()
    time.tzset()
