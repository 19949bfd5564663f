"""
Centralized configuration for routine-timer.

Values come from (highest precedence first):
1. Environment variables (ROUTINE_TIMER_*)
2. The optional YAML file at ~/.routine_timer/config/routine_timer.yaml
3. Hardcoded defaults below
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from routine_timer import paths

logger = logging.getLogger(__name__)

# ============================================================
# Defaults
# ============================================================

DEFAULT_TZ = "UTC"
DEFAULT_LOG_LEVEL = "WARNING"

ENV_TZ = "ROUTINE_TIMER_TZ"
ENV_LOG_LEVEL = "ROUTINE_TIMER_LOG_LEVEL"
ENV_LOG_JSON = "ROUTINE_TIMER_LOG_JSON"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    default_tz: str = DEFAULT_TZ
    log_level: str = DEFAULT_LOG_LEVEL
    log_json: bool | None = None  # None = auto-detect from TTY


def _load_file(config_path: Path) -> dict:
    """Load YAML config, return empty dict on failure."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Failed to load config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", config_path)
        return {}
    return data


def _as_bool(value) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def load_settings(config_path: Path | None = None) -> Settings:
    """Resolve settings from env, YAML file and defaults."""
    file_values = _load_file(config_path or paths.config_path())

    default_tz = os.environ.get(ENV_TZ) or file_values.get("default_tz") or DEFAULT_TZ
    log_level = os.environ.get(ENV_LOG_LEVEL) or file_values.get("log_level") or DEFAULT_LOG_LEVEL

    if os.environ.get(ENV_LOG_JSON) is not None:
        log_json = _as_bool(os.environ[ENV_LOG_JSON])
    else:
        log_json = _as_bool(file_values.get("log_json"))

    return Settings(default_tz=str(default_tz), log_level=str(log_level).upper(), log_json=log_json)
