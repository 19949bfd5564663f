"""
Temporal values: strict instant and calendar-date parsing, signed
differences, durations and timezone-local day boundaries.

Instants must carry an explicit UTC offset or the Z designator.
There is no local-time default: an instant without an offset is rejected.
"""

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from routine_timer.errors import InvalidTimeFormat

# 2026-01-31T09:00:00+09:00, 2026-01-31T00:00:00.250Z
INSTANT_REGEX = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)

DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# 30m, 1h, 1h30m, 90m, 1h30m45s
DURATION_REGEX = re.compile(r"^(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?$")

Instant = str | datetime


def parse_instant(text: str, field: str = "ts") -> datetime:
    """
    Parse a strict RFC 3339 instant into an aware datetime.

    Accepts:
    - 2026-01-31T09:00:00+09:00
    - 2026-01-31T00:00:00Z
    - 2026-01-31T00:00:00.123456Z  (fraction truncated to microseconds)

    Rejects (InvalidTimeFormat):
    - 2026-01-31T09:00:00          (no offset)
    - 2026-01-31 09:00:00+09:00    (space separator)
    - 2026-02-30T09:00:00Z         (impossible date)
    """
    if not text or not isinstance(text, str):
        raise InvalidTimeFormat(f"invalid {field}: timestamp is required", {field: text})

    match = INSTANT_REGEX.match(text)
    if not match:
        raise InvalidTimeFormat(
            f"invalid {field}: must be RFC3339 with a timezone offset", {field: text}
        )

    base, frac, offset = match.groups()
    if offset == "Z":
        offset = "+00:00"
    # Normalize the fraction to microseconds
    frac = "." + frac[1:7].ljust(6, "0") if frac else ""

    try:
        return datetime.fromisoformat(f"{base}{frac}{offset}")
    except ValueError as e:
        raise InvalidTimeFormat(f"invalid {field}: {e}", {field: text}) from e


def parse_calendar_date(text: str, field: str = "date") -> date:
    """Parse YYYY-MM-DD, rejecting impossible dates such as 2026-04-31."""
    if not text or not isinstance(text, str) or not DATE_REGEX.match(text):
        raise InvalidTimeFormat(f"invalid {field}: use YYYY-MM-DD", {field: text})
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise InvalidTimeFormat(f"invalid {field}: {e}", {field: text}) from e


def _as_datetime(value: Instant) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_instant(value)


def seconds_between(a: Instant, b: Instant) -> int:
    """Signed whole seconds from a to b, truncated toward zero."""
    delta = _as_datetime(b) - _as_datetime(a)
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    whole = abs(micros) // 1_000_000
    return whole if micros >= 0 else -whole


def is_before(a: Instant, b: Instant) -> bool:
    return _as_datetime(a) < _as_datetime(b)


def is_after(a: Instant, b: Instant) -> bool:
    return _as_datetime(a) > _as_datetime(b)


def now_instant() -> str:
    """
    Current UTC time as an instant string.

    Only read paths may use this (as-of defaults). State changes always take
    an explicit instant from the caller.
    """
    now = datetime.now(UTC)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ============================================================
# Durations
# ============================================================


def parse_duration(text: str) -> int:
    """Parse NhNmNs (e.g. 30m, 1h30m, 1h30m45s) into seconds."""
    match = DURATION_REGEX.match(text or "")
    if not text or not match or not any(match.groups()):
        raise ValueError("invalid duration format (use NhNmNs, e.g., 30m, 1h30m)")
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int) -> str:
    """Format seconds as 1h2m3s, omitting zero parts (0 -> 0s)."""
    h, rem = divmod(max(0, int(seconds)), 3600)
    m, s = divmod(rem, 60)
    parts = []
    if h:
        parts.append(f"{h}h")
    if m:
        parts.append(f"{m}m")
    if s or not parts:
        parts.append(f"{s}s")
    return "".join(parts)


# ============================================================
# Timezones and local days
# ============================================================


def validate_timezone(tz: str) -> ZoneInfo:
    """Return the ZoneInfo for an IANA name or raise InvalidTimeFormat."""
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
        raise InvalidTimeFormat(f"invalid timezone: {tz}", {"tz": tz}) from e


def date_in_tz(instant: Instant, tz: str) -> date:
    """Calendar date of an instant as seen in tz."""
    return _as_datetime(instant).astimezone(validate_timezone(tz)).date()


def day_bounds(day: date, tz: str) -> tuple[datetime, datetime]:
    """
    Local midnight-to-midnight bounds of *day* in tz, as aware datetimes.

    The end is the next day's local midnight, so DST transition days are
    23 or 25 hours long.
    """
    zone = validate_timezone(tz)
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start, end
