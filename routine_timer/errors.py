"""
Typed failures for routine-timer.

Every failure carries a stable machine-readable ``code``, a human message,
a ``details`` dict with structured context and the process ``exit_code``
the command layer should use.

Categories:
- InputError:     rejected before any state is touched
- LookupFailure:  referenced entity does not exist among live records
- AmbiguousRoutine: more than one live match, caller must disambiguate
- StateConflict:  target exists but the transition is illegal
"""

from typing import Any

# Exit codes
EXIT_SUCCESS = 0
EXIT_GENERIC_FAILURE = 1
EXIT_USER_INPUT_ERROR = 2
EXIT_NOT_FOUND = 3
EXIT_AMBIGUITY = 4

# Error codes
ERR_INVALID_ARGS = "ERR_INVALID_ARGS"
ERR_TS_REQUIRED = "ERR_TS_REQUIRED"
ERR_INVALID_TIME_FORMAT = "ERR_INVALID_TIME_FORMAT"
ERR_ROUTINE_NOT_FOUND = "ERR_ROUTINE_NOT_FOUND"
ERR_AMBIGUOUS_ROUTINE = "ERR_AMBIGUOUS_ROUTINE"
ERR_SESSION_NOT_FOUND = "ERR_SESSION_NOT_FOUND"
ERR_SESSION_REQUIRED = "ERR_SESSION_REQUIRED"
ERR_SESSION_NOT_ACTIVE = "ERR_SESSION_NOT_ACTIVE"
ERR_INVALID_STATE = "ERR_INVALID_STATE"
ERR_END_BEFORE_START = "ERR_END_BEFORE_START"
ERR_INTERNAL = "ERR_INTERNAL"


class RoutineTimerError(Exception):
    """Base class for all expected, reportable failures."""

    code = ERR_INTERNAL
    exit_code = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details or None,
        }


# =============================================================================
# Input-shape errors
# =============================================================================


class InputError(RoutineTimerError):
    """Malformed or missing input. Raised before any lookup or write."""

    exit_code = EXIT_USER_INPUT_ERROR


class InvalidArgs(InputError):
    code = ERR_INVALID_ARGS


class TimestampRequired(InputError):
    code = ERR_TS_REQUIRED


class InvalidTimeFormat(InputError):
    code = ERR_INVALID_TIME_FORMAT


class SessionRequired(InputError):
    """A session reference was needed but not given.

    ``details["activeSessions"]`` lists the sessions the caller could mean.
    """

    code = ERR_SESSION_REQUIRED


# =============================================================================
# Lookup errors
# =============================================================================


class LookupFailure(RoutineTimerError):
    exit_code = EXIT_NOT_FOUND


class RoutineNotFound(LookupFailure):
    code = ERR_ROUTINE_NOT_FOUND


class SessionNotFound(LookupFailure):
    code = ERR_SESSION_NOT_FOUND


# =============================================================================
# Ambiguity
# =============================================================================


class AmbiguousRoutine(RoutineTimerError):
    """More than one live routine matches a name.

    ``details["candidates"]`` holds ``{id, name, tz}`` for every match.
    """

    code = ERR_AMBIGUOUS_ROUTINE
    exit_code = EXIT_AMBIGUITY

    @property
    def candidates(self) -> list[dict]:
        return self.details.get("candidates", [])


# =============================================================================
# State conflicts
# =============================================================================


class StateConflict(RoutineTimerError):
    exit_code = EXIT_USER_INPUT_ERROR


class SessionNotActive(StateConflict):
    code = ERR_SESSION_NOT_ACTIVE


class InvalidState(StateConflict):
    code = ERR_INVALID_STATE


class EndBeforeStart(StateConflict):
    code = ERR_END_BEFORE_START
