"""
Declarative Schema Definition.

Every table, column and index for routine-timer lives here. The
schema_engine reads this and converges any database to match.

Adding a column = add one line here. The engine handles the rest.

Column definitions use CREATE TABLE syntax. The schema_engine knows how
to derive ALTER TABLE ADD COLUMN DDL (strips PK, adjusts NOT NULL, etc.).
"""

from collections import OrderedDict

# =============================================================================
# Schema version - bump when you change this file
# =============================================================================
SCHEMA_VERSION = 1

# =============================================================================
# Table Definitions
#
# Format: TABLES[name] = {"columns": [(col_name, col_ddl), ...],
#                         "primary_key": [col, ...]}   (optional composite PK)
# =============================================================================

TABLES: dict[str, dict] = OrderedDict()

# ---------------------------------------------------------------------------
# routines: named, timezone-scoped activity definitions
# ---------------------------------------------------------------------------
TABLES["routines"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("name", "TEXT NOT NULL"),
        ("tz", "TEXT NOT NULL"),
        ("rule", "TEXT NOT NULL"),
        ("created_at", "TEXT NOT NULL"),
        ("archived_at", "TEXT"),
    ],
}

# ---------------------------------------------------------------------------
# sessions: one timed occurrence of work against a routine
# ---------------------------------------------------------------------------
TABLES["sessions"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("routine_id", "TEXT NOT NULL REFERENCES routines(id)"),
        ("start_ts", "TEXT NOT NULL"),
        ("end_ts", "TEXT"),
        ("note", "TEXT"),
        ("created_at", "TEXT NOT NULL"),
        ("updated_at", "TEXT NOT NULL"),
        ("deleted_at", "TEXT"),
    ],
}

# ---------------------------------------------------------------------------
# session_events: append-only pause/resume log
# seq is the per-session insertion order, used to break ties between
# events recorded at the same instant.
# ---------------------------------------------------------------------------
TABLES["session_events"] = {
    "columns": [
        ("id", "TEXT PRIMARY KEY"),
        ("session_id", "TEXT NOT NULL REFERENCES sessions(id)"),
        ("type", "TEXT NOT NULL CHECK (type IN ('pause', 'resume'))"),
        ("ts", "TEXT NOT NULL"),
        ("seq", "INTEGER NOT NULL DEFAULT 0"),
        ("created_at", "TEXT NOT NULL"),
    ],
}

# ---------------------------------------------------------------------------
# session_tags: unordered, deduplicated tag set per session
# ---------------------------------------------------------------------------
TABLES["session_tags"] = {
    "columns": [
        ("session_id", "TEXT NOT NULL REFERENCES sessions(id)"),
        ("tag", "TEXT NOT NULL"),
    ],
    "primary_key": ["session_id", "tag"],
}

# =============================================================================
# Indexes: (name, table, columns, where)
# =============================================================================

INDEXES: list[tuple[str, str, str, str | None]] = [
    ("idx_routines_name", "routines", "name", None),
    ("idx_sessions_routine_start", "sessions", "routine_id, start_ts", None),
    ("idx_sessions_open", "sessions", "start_ts", "end_ts IS NULL AND deleted_at IS NULL"),
    ("idx_session_events_session_ts", "session_events", "session_id, ts", None),
]
