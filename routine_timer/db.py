"""
Centralized Database Access for routine-timer.

Single source of truth for:
- DB path resolution
- Connection factory
- Schema convergence (delegated to schema_engine)

Schema is declared in routine_timer.schema. Convergence logic lives in
routine_timer.schema_engine. This module wires them together.
"""

import logging
import sqlite3
from pathlib import Path

from routine_timer import paths, schema, schema_engine

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30.0

# ============================================================
# DB PATH RESOLUTION
# ============================================================


def get_db_path(override: str | Path | None = None) -> Path:
    """
    Get the canonical DB path.

    Resolution order:
    1. explicit override (the --db flag)
    2. ROUTINE_TIMER_DB env var
    3. ~/.routine_timer/data/routine.sqlite3
    """
    if override:
        return Path(override).expanduser().resolve()
    return paths.db_path()


# ============================================================
# CONNECTION FACTORY
# ============================================================


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Open a connection with row factory, FK enforcement and busy timeout.

    isolation_level=None puts the connection in autocommit mode so callers
    control transactions explicitly with BEGIN IMMEDIATE / COMMIT.
    """
    conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


# ============================================================
# SCHEMA CONVERGENCE
# ============================================================


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from PRAGMA user_version."""
    return conn.execute("PRAGMA user_version").fetchone()[0]


def run_migrations(conn: sqlite3.Connection) -> dict:
    """
    Converge the database schema to match routine_timer.schema.

    Returns a results dict for logging.
    """
    previous_version = get_schema_version(conn)
    if previous_version >= schema.SCHEMA_VERSION:
        logger.debug("Schema at version %s, nothing to converge", previous_version)
        return {"status": "skipped", "schema_version": previous_version}

    conn.execute("BEGIN IMMEDIATE")
    try:
        results = schema_engine.converge(conn)
        conn.execute("COMMIT")
    except sqlite3.Error:
        conn.execute("ROLLBACK")
        raise

    results["previous_version"] = previous_version

    if results.get("tables_created"):
        logger.info("Tables created: %s", results["tables_created"])
    if results.get("indexes_created"):
        logger.info("Indexes created: %d", len(results["indexes_created"]))

    return results
