"""
Time accounting: fold a session's event log into status and durations.

compute_view() is a pure function of (session row, events, as_of). It never
reads a clock and never touches storage, so replaying the same stored facts
always yields the same numbers.

Invariants:
- paused_seconds counts only pause time inside [start, effective_end]
- active_seconds = max(0, duration_seconds - paused_seconds)
- for as_of >= start: active_seconds + paused_seconds == duration_seconds
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from routine_timer.timer.temporal import parse_instant, seconds_between

EVENT_PAUSE = "pause"
EVENT_RESUME = "resume"


class SessionStatus(StrEnum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PauseInterval:
    """A [start, end) pause span. end is None while the pause is still open."""

    start: str
    end: str | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}


@dataclass
class SessionView:
    """Computed, read-only view of one session as of a query instant."""

    id: str
    routine_id: str
    routine_name: str
    start: str
    end: str | None
    status: SessionStatus
    pauses: list[PauseInterval]
    as_of: str
    duration_seconds: int
    paused_seconds: int
    active_seconds: int
    note: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "routineId": self.routine_id,
            "routineName": self.routine_name,
            "start": self.start,
            "end": self.end,
            "status": str(self.status),
            "pauses": [p.to_dict() for p in self.pauses],
            "computed": {
                "asOf": self.as_of,
                "durationSeconds": self.duration_seconds,
                "pausedSeconds": self.paused_seconds,
                "activeSeconds": self.active_seconds,
            },
            "note": self.note,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "deletedAt": self.deleted_at,
        }


def order_events(events: list[dict]) -> list[dict]:
    """Sort events by instant, then by insertion order (seq)."""
    return sorted(events, key=lambda e: (parse_instant(e["ts"]), e.get("seq") or 0))


def last_event(events: list[dict]) -> dict | None:
    ordered = order_events(events)
    return ordered[-1] if ordered else None


def is_paused(events: list[dict]) -> bool:
    """True when the log ends on a pause with no following resume."""
    last = last_event(events)
    return last is not None and last["type"] == EVENT_PAUSE


def pause_intervals(events: list[dict]) -> list[PauseInterval]:
    """
    Pair pause/resume events into intervals.

    A resume with no open pause is ignored, as is a pause while one is
    already open. A trailing unmatched pause yields an open interval.
    """
    intervals: list[PauseInterval] = []
    open_start: str | None = None

    for event in order_events(events):
        if event["type"] == EVENT_PAUSE:
            if open_start is None:
                open_start = event["ts"]
        elif event["type"] == EVENT_RESUME and open_start is not None:
            intervals.append(PauseInterval(start=open_start, end=event["ts"]))
            open_start = None

    if open_start is not None:
        intervals.append(PauseInterval(start=open_start, end=None))

    return intervals


def _clipped_seconds(interval: PauseInterval, start: datetime, effective_end: datetime) -> int:
    p_start = max(parse_instant(interval.start), start)
    p_end = effective_end if interval.end is None else min(parse_instant(interval.end), effective_end)
    if p_end <= p_start:
        return 0
    return seconds_between(p_start, p_end)


def compute_view(
    session: dict,
    events: list[dict],
    as_of: str,
    routine_name: str = "",
    tags: list[str] | None = None,
) -> SessionView:
    """
    Derive status and durations for a session row.

    Args:
        session: sessions row (id, routine_id, start_ts, end_ts, ...)
        events: session_events rows (type, ts, seq) in any order
        as_of: query instant; used as the effective end while the session
            is still open
        routine_name: display name of the owning routine
        tags: the session's tags

    Returns:
        SessionView
    """
    intervals = pause_intervals(events)

    end_ts = session.get("end_ts")
    effective_end_ts = end_ts or as_of

    if end_ts:
        status = SessionStatus.STOPPED
    elif intervals and intervals[-1].is_open:
        status = SessionStatus.PAUSED
    else:
        status = SessionStatus.RUNNING

    start = parse_instant(session["start_ts"])
    effective_end = parse_instant(effective_end_ts)

    duration_seconds = seconds_between(start, effective_end)
    paused_seconds = sum(_clipped_seconds(p, start, effective_end) for p in intervals)
    active_seconds = max(0, duration_seconds - paused_seconds)

    return SessionView(
        id=session["id"],
        routine_id=session["routine_id"],
        routine_name=routine_name,
        start=session["start_ts"],
        end=end_ts,
        status=status,
        pauses=intervals,
        as_of=as_of,
        duration_seconds=duration_seconds,
        paused_seconds=paused_seconds,
        active_seconds=active_seconds,
        note=session.get("note"),
        tags=sorted(tags or []),
        created_at=session.get("created_at"),
        updated_at=session.get("updated_at"),
        deleted_at=session.get("deleted_at"),
    )
