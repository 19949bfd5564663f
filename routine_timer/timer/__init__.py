"""
Timer Core

Deterministic session timing and time accounting. Everything the command
layer shows is derived here from stored facts.

Objects:
- Routine (named, timezone-bound activity template)
- Session (one timed occurrence of a routine)
- Session event (pause/resume marker, append-only)

Invariants:
- State changes take explicit instants; only reads may default to now
- Routine lookup never guesses between several live matches
- active_seconds + paused_seconds == duration_seconds for as_of >= start
- A stopped session is terminal
"""

from .accounting import SessionStatus, SessionView, compute_view
from .daily import day_summary
from .queries import SessionQueries
from .routines import Routine, RoutineDirectory
from .sessions import SessionMachine

__all__ = [
    "Routine",
    "RoutineDirectory",
    "SessionMachine",
    "SessionQueries",
    "SessionStatus",
    "SessionView",
    "compute_view",
    "day_summary",
]
