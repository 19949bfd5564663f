"""
Test configuration - every test runs against a throwaway home directory.

ROUTINE_TIMER_HOME points into tmp_path so nothing touches the user's real
database or config file.
"""

import pytest

from routine_timer.state_store import StateStore, close_all
from routine_timer.timer import RoutineDirectory, SessionMachine, SessionQueries

_ENV_VARS = (
    "ROUTINE_TIMER_DB",
    "ROUTINE_TIMER_TZ",
    "ROUTINE_TIMER_LOG_LEVEL",
    "ROUTINE_TIMER_LOG_JSON",
)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point the app home at a temp dir and clear config overrides."""
    home = tmp_path / "home"
    monkeypatch.setenv("ROUTINE_TIMER_HOME", str(home))
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield home
    close_all()


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "routine.sqlite3"


@pytest.fixture
def store(db_path):
    s = StateStore(db_path)
    yield s
    s.close()


@pytest.fixture
def routines(store):
    return RoutineDirectory(store, default_tz="UTC")


@pytest.fixture
def queries(store, routines):
    return SessionQueries(store, routines)


@pytest.fixture
def machine(store, routines, queries):
    return SessionMachine(store, routines, queries)


@pytest.fixture
def deep_work(routines):
    """A routine named Deep-Work in Asia/Tokyo."""
    return routines.add("Deep-Work", "Asia/Tokyo", "daily>=30m", "2026-01-31T08:00:00+09:00")
