"""Prefixed opaque identifiers for routines, sessions and events."""

import uuid

ROUTINE_PREFIX = "rtn_"
SESSION_PREFIX = "ses_"
EVENT_PREFIX = "evt_"


def _new(prefix: str) -> str:
    return f"{prefix}{uuid.uuid4().hex}"


def new_routine_id() -> str:
    return _new(ROUTINE_PREFIX)


def new_session_id() -> str:
    return _new(SESSION_PREFIX)


def new_event_id() -> str:
    return _new(EVENT_PREFIX)


def is_routine_id(value: str) -> bool:
    return isinstance(value, str) and value.startswith(ROUTINE_PREFIX)
