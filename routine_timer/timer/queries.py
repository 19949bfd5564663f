"""
Session Query Surface - read-only views over stored sessions.

Every view goes through accounting.compute_view(). Reads may default the
as-of instant to the current time because they persist nothing.
"""

import logging

from routine_timer.errors import SessionNotFound
from routine_timer.state_store import StateStore
from routine_timer.timer.accounting import SessionView, compute_view
from routine_timer.timer.routines import RoutineDirectory
from routine_timer.timer.temporal import now_instant, parse_instant

logger = logging.getLogger(__name__)

_ACTIVE_WHERE = "end_ts IS NULL AND deleted_at IS NULL"


def resolve_as_of(as_of: str | None) -> str:
    """Validate an explicit as-of instant, or take the current time."""
    if as_of:
        parse_instant(as_of, field="as_of")
        return as_of
    return now_instant()


def sort_by_start(rows: list[dict]) -> list[dict]:
    """Order rows by parsed start instant, then id."""
    return sorted(rows, key=lambda r: (parse_instant(r["start_ts"]), r["id"]))


class SessionQueries:
    def __init__(self, store: StateStore, routines: RoutineDirectory):
        self.store = store
        self.routines = routines

    # ==================== Row access ====================

    def live_row(self, session_id: str) -> dict:
        """The non-deleted session row, or SessionNotFound."""
        rows = self.store.query(
            "SELECT * FROM sessions WHERE id = ? AND deleted_at IS NULL", [session_id]
        )
        if not rows:
            raise SessionNotFound(f"session not found: {session_id}", {"sessionId": session_id})
        return rows[0]

    def events(self, session_id: str) -> list[dict]:
        return self.store.query(
            "SELECT id, type, ts, seq FROM session_events WHERE session_id = ? ORDER BY seq",
            [session_id],
        )

    def tags(self, session_id: str) -> list[str]:
        rows = self.store.query(
            "SELECT tag FROM session_tags WHERE session_id = ? ORDER BY tag", [session_id]
        )
        return [r["tag"] for r in rows]

    def build_view(self, row: dict, as_of: str) -> SessionView:
        return compute_view(
            row,
            self.events(row["id"]),
            as_of,
            routine_name=self.routines.get_name(row["routine_id"]),
            tags=self.tags(row["id"]),
        )

    # ==================== Queries ====================

    def view(self, session_id: str, as_of: str | None = None) -> SessionView:
        as_of = resolve_as_of(as_of)
        return self.build_view(self.live_row(session_id), as_of)

    def active(self, as_of: str | None = None) -> dict:
        """All open, non-deleted sessions ordered by start instant then id."""
        as_of = resolve_as_of(as_of)
        rows = sort_by_start(self.store.query(f"SELECT * FROM sessions WHERE {_ACTIVE_WHERE}"))
        return {"asOf": as_of, "sessions": [self.build_view(r, as_of) for r in rows]}

    def status_of(
        self,
        session_id: str | None = None,
        routine_identifier: str | None = None,
        as_of: str | None = None,
    ) -> dict:
        """
        One session's view, a routine's open sessions, or every open session.

        Returns {"session": SessionView} for a session id, otherwise
        {"asOf": ..., "sessions": [...]}.
        """
        if session_id:
            return {"session": self.view(session_id, as_of)}

        if routine_identifier:
            as_of = resolve_as_of(as_of)
            routine = self.routines.resolve(routine_identifier)
            rows = sort_by_start(
                self.store.query(
                    f"SELECT * FROM sessions WHERE routine_id = ? AND {_ACTIVE_WHERE}",
                    [routine.id],
                )
            )
            return {"asOf": as_of, "sessions": [self.build_view(r, as_of) for r in rows]}

        return self.active(as_of)

    def active_refs(self) -> list[dict]:
        """Compact references to open sessions, for error context."""
        rows = sort_by_start(
            self.store.query(
                "SELECT s.id, s.routine_id, s.start_ts, r.name AS routine_name "
                "FROM sessions s JOIN routines r ON r.id = s.routine_id "
                "WHERE s.end_ts IS NULL AND s.deleted_at IS NULL"
            )
        )
        return [
            {
                "id": r["id"],
                "routineId": r["routine_id"],
                "routineName": r["routine_name"],
                "start": r["start_ts"],
            }
            for r in rows
        ]
