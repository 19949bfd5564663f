"""
Session State Machine - start, pause, resume, stop.

States: running -> paused -> running ... -> stopped (terminal)

| Current | pause            | resume           | stop                        |
|---------|------------------|------------------|-----------------------------|
| running | -> paused        | InvalidState     | -> stopped                  |
| paused  | InvalidState     | -> running       | implicit resume, -> stopped |
| stopped | SessionNotActive | SessionNotActive | SessionNotActive            |

Invariants:
- Every transition takes an explicit instant; nothing reads the clock
- Events are append-only and alternate pause, resume, pause, ...
- A transition may not be recorded before the session start or before
  the latest recorded event
- end_ts, once set, is permanent and never precedes start_ts
- Each transition is one read-check-write transaction
"""

import logging
from datetime import datetime

from routine_timer import ids
from routine_timer.errors import (
    EndBeforeStart,
    InvalidState,
    SessionNotActive,
    SessionRequired,
    TimestampRequired,
)
from routine_timer.state_store import StateStore
from routine_timer.timer.accounting import (
    EVENT_PAUSE,
    EVENT_RESUME,
    SessionStatus,
    SessionView,
    is_paused,
    last_event,
)
from routine_timer.timer.queries import SessionQueries
from routine_timer.timer.routines import RoutineDirectory
from routine_timer.timer.temporal import parse_instant

logger = logging.getLogger(__name__)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Strip, drop empties, dedupe. Order is irrelevant."""
    return sorted({t.strip() for t in tags or [] if t and t.strip()})


class SessionMachine:
    """Owns every state change of a session."""

    def __init__(self, store: StateStore, routines: RoutineDirectory, queries: SessionQueries):
        self.store = store
        self.routines = routines
        self.queries = queries

    # ==================== Guards ====================

    @staticmethod
    def _require_ts(at: str | None) -> datetime:
        if not at:
            raise TimestampRequired("ts is required for state-changing commands")
        return parse_instant(at)

    def _require_session_ref(self, session_id: str | None) -> None:
        if not session_id:
            raise SessionRequired(
                "session is required", {"activeSessions": self.queries.active_refs()}
            )

    @staticmethod
    def _require_open(row: dict) -> None:
        if row["end_ts"]:
            raise SessionNotActive(
                "session is already stopped",
                {"sessionId": row["id"], "endTs": row["end_ts"]},
            )

    @staticmethod
    def _require_in_order(row: dict, events: list[dict], at: datetime, action: str) -> None:
        if at < parse_instant(row["start_ts"]):
            raise InvalidState(
                f"cannot {action} before the session start",
                {"sessionId": row["id"], "start": row["start_ts"]},
            )
        last = last_event(events)
        if last is not None and at < parse_instant(last["ts"]):
            raise InvalidState(
                f"cannot {action} before the latest recorded {last['type']}",
                {"sessionId": row["id"], "lastEvent": {"type": last["type"], "ts": last["ts"]}},
            )

    # ==================== Writes ====================

    def _append_event(self, session_id: str, event_type: str, at: str, events: list[dict]) -> None:
        seq = max((e["seq"] or 0 for e in events), default=0) + 1
        self.store.insert(
            "session_events",
            {
                "id": ids.new_event_id(),
                "session_id": session_id,
                "type": event_type,
                "ts": at,
                "seq": seq,
                "created_at": at,
            },
        )

    def _add_tags(self, session_id: str, tags: list[str]) -> None:
        self.store.insert_many(
            "session_tags",
            [{"session_id": session_id, "tag": tag} for tag in tags],
            or_ignore=True,
        )

    # ==================== Transitions ====================

    def start(
        self,
        routine_identifier: str,
        at: str,
        note: str | None = None,
        tags: list[str] | None = None,
    ) -> SessionView:
        """Open a new running session. Other open sessions are unaffected."""
        self._require_ts(at)

        with self.store.transaction():
            routine = self.routines.resolve(routine_identifier)
            session_id = ids.new_session_id()
            self.store.insert(
                "sessions",
                {
                    "id": session_id,
                    "routine_id": routine.id,
                    "start_ts": at,
                    "end_ts": None,
                    "note": note or None,
                    "created_at": at,
                    "updated_at": at,
                    "deleted_at": None,
                },
            )
            self._add_tags(session_id, normalize_tags(tags))

        logger.info(
            "session started",
            extra={"session_id": session_id, "routine_id": routine.id, "at": at},
        )
        return self.queries.view(session_id, as_of=at)

    def pause(self, session_id: str | None, at: str) -> SessionView:
        at_dt = self._require_ts(at)
        self._require_session_ref(session_id)

        with self.store.transaction():
            row = self.queries.live_row(session_id)
            self._require_open(row)
            events = self.queries.events(session_id)
            if is_paused(events):
                raise InvalidState(
                    "cannot pause a paused session",
                    {"sessionId": session_id, "status": str(SessionStatus.PAUSED)},
                )
            self._require_in_order(row, events, at_dt, "pause")

            self._append_event(session_id, EVENT_PAUSE, at, events)
            self.store.update("sessions", session_id, {"updated_at": at})

        logger.info("session paused", extra={"session_id": session_id, "at": at})
        return self.queries.view(session_id, as_of=at)

    def resume(self, session_id: str | None, at: str) -> SessionView:
        at_dt = self._require_ts(at)
        self._require_session_ref(session_id)

        with self.store.transaction():
            row = self.queries.live_row(session_id)
            self._require_open(row)
            events = self.queries.events(session_id)
            if not is_paused(events):
                raise InvalidState(
                    "cannot resume a running session",
                    {"sessionId": session_id, "status": str(SessionStatus.RUNNING)},
                )
            self._require_in_order(row, events, at_dt, "resume")

            self._append_event(session_id, EVENT_RESUME, at, events)
            self.store.update("sessions", session_id, {"updated_at": at})

        logger.info("session resumed", extra={"session_id": session_id, "at": at})
        return self.queries.view(session_id, as_of=at)

    def stop(
        self,
        session_id: str | None,
        at: str,
        note: str | None = None,
        tags: list[str] | None = None,
    ) -> SessionView:
        """
        End a session at `at`.

        A trailing open pause is closed by a resume at the stop instant, so
        a session never ends while still paused.
        """
        at_dt = self._require_ts(at)
        self._require_session_ref(session_id)

        with self.store.transaction():
            row = self.queries.live_row(session_id)
            self._require_open(row)
            if at_dt < parse_instant(row["start_ts"]):
                raise EndBeforeStart(
                    "stop time cannot be before start time",
                    {"start": row["start_ts"], "end": at},
                )
            events = self.queries.events(session_id)
            self._require_in_order(row, events, at_dt, "stop")

            if is_paused(events):
                self._append_event(session_id, EVENT_RESUME, at, events)

            changes = {"end_ts": at, "updated_at": at}
            if note:
                changes["note"] = note
            self.store.update("sessions", session_id, changes)
            self._add_tags(session_id, normalize_tags(tags))

        logger.info("session stopped", extra={"session_id": session_id, "at": at})
        return self.queries.view(session_id, as_of=at)

    def delete(self, session_id: str | None, at: str) -> SessionView:
        """Soft-delete a session. It disappears from every query."""
        self._require_ts(at)
        self._require_session_ref(session_id)

        with self.store.transaction():
            row = self.queries.live_row(session_id)
            self.store.update("sessions", session_id, {"deleted_at": at, "updated_at": at})
            row.update(deleted_at=at, updated_at=at)
            view = self.queries.build_view(row, as_of=at)

        logger.info("session deleted", extra={"session_id": session_id, "at": at})
        return view
