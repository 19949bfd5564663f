from __future__ import annotations

import os
from pathlib import Path

APP_ENV_HOME = "ROUTINE_TIMER_HOME"
APP_ENV_DB = "ROUTINE_TIMER_DB"

DB_FILENAME = "routine.sqlite3"
CONFIG_FILENAME = "routine_timer.yaml"


def app_home() -> Path:
    """
    User-writable home for routine-timer.
    Override with ROUTINE_TIMER_HOME.
    """
    if os.environ.get(APP_ENV_HOME):
        return Path(os.environ[APP_ENV_HOME]).expanduser().resolve()
    return (Path.home() / ".routine_timer").resolve()


def config_dir() -> Path:
    return app_home() / "config"


def config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


def data_dir() -> Path:
    d = app_home() / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


def db_path() -> Path:
    """
    Canonical DB path.

    Resolution order:
    1. ROUTINE_TIMER_DB env var (explicit override)
    2. ~/.routine_timer/data/routine.sqlite3 (default)
    """
    if os.environ.get(APP_ENV_DB):
        return Path(os.environ[APP_ENV_DB]).expanduser().resolve()
    return data_dir() / DB_FILENAME
