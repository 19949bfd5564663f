"""
Daily summary - what was tracked on one local calendar day.

A session belongs to a day when [start, end or as_of] overlaps the local
[00:00, 24:00) window in the chosen timezone. Totals are whole-session
numbers: a session crossing midnight counts in full on both days.
"""

import logging

from routine_timer.timer.queries import SessionQueries, resolve_as_of, sort_by_start
from routine_timer.timer.temporal import (
    date_in_tz,
    day_bounds,
    parse_calendar_date,
    parse_instant,
    validate_timezone,
)

logger = logging.getLogger(__name__)


def day_summary(
    queries: SessionQueries,
    date: str | None = None,
    tz: str | None = None,
    routine_identifier: str | None = None,
    as_of: str | None = None,
    default_tz: str = "UTC",
) -> dict:
    """
    Summarize sessions overlapping a local day.

    Timezone precedence: explicit tz, then the routine's tz when a routine
    is given, then default_tz. The date defaults to as_of's date in that
    timezone.
    """
    as_of = resolve_as_of(as_of)

    routine = queries.routines.resolve(routine_identifier) if routine_identifier else None
    tz = tz or (routine.tz if routine else default_tz)
    validate_timezone(tz)

    day = parse_calendar_date(date) if date else date_in_tz(as_of, tz)
    day_start, day_end = day_bounds(day, tz)
    as_of_dt = parse_instant(as_of, field="as_of")

    if routine:
        candidates = queries.store.query(
            "SELECT * FROM sessions WHERE routine_id = ? AND deleted_at IS NULL", [routine.id]
        )
    else:
        candidates = queries.store.query("SELECT * FROM sessions WHERE deleted_at IS NULL")

    rows = []
    for row in candidates:
        start = parse_instant(row["start_ts"])
        end = parse_instant(row["end_ts"]) if row["end_ts"] else as_of_dt
        if start < day_end and end >= day_start:
            rows.append(row)

    views = [queries.build_view(row, as_of) for row in sort_by_start(rows)]
    totals = {
        "durationSeconds": sum(v.duration_seconds for v in views),
        "activeSeconds": sum(v.active_seconds for v in views),
        "pausedSeconds": sum(v.paused_seconds for v in views),
        "sessionsCount": len(views),
    }

    logger.debug("day summary %s %s: %d sessions", day.isoformat(), tz, len(views))
    return {
        "date": day.isoformat(),
        "tz": tz,
        "asOf": as_of,
        "routineId": routine.id if routine else None,
        "routineName": routine.name if routine else None,
        "sessions": views,
        "totals": totals,
    }
