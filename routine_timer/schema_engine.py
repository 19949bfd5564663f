"""
Schema convergence: create whatever routine_timer.schema declares and the
database lacks.

converge(conn) creates missing tables and indexes, then stamps
PRAGMA user_version. Existing tables are never dropped or rewritten.
"""

import logging
import sqlite3

from routine_timer import safe_sql, schema

logger = logging.getLogger(__name__)


def _existing(conn: sqlite3.Connection, kind: str) -> set[str]:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = ? AND name NOT LIKE 'sqlite_%'", [kind]
    )
    return {row[0] for row in cursor.fetchall()}


def _build_create_sql(table_name: str, table_def: dict) -> str:
    """CREATE TABLE IF NOT EXISTS from a schema declaration."""
    parts = [f"    {col_name} {col_ddl}" for col_name, col_ddl in table_def["columns"]]
    if table_def.get("primary_key"):
        parts.append(f"    PRIMARY KEY({', '.join(table_def['primary_key'])})")
    body = ",\n".join(parts)
    return f"CREATE TABLE IF NOT EXISTS [{safe_sql.validate_identifier(table_name)}] (\n{body}\n)"


def _build_index_sql(idx_name: str, idx_table: str, idx_cols: str, idx_where: str | None) -> str:
    where_clause = f" WHERE {idx_where}" if idx_where else ""
    return (
        f"CREATE INDEX IF NOT EXISTS [{safe_sql.validate_identifier(idx_name)}] "
        f"ON [{safe_sql.validate_identifier(idx_table)}]({idx_cols}){where_clause}"
    )


def converge(conn: sqlite3.Connection) -> dict:
    """
    Bring a database up to schema.TABLES / schema.INDEXES.

    Returns {"tables_created", "indexes_created", "schema_version"} for logging.
    A failing statement propagates so the caller can roll back.
    """
    results = {"tables_created": [], "indexes_created": []}

    existing_tables = _existing(conn, "table")
    for table_name, table_def in schema.TABLES.items():
        if table_name in existing_tables:
            continue
        conn.execute(_build_create_sql(table_name, table_def))
        results["tables_created"].append(table_name)
        logger.info("schema_engine: created table %s", table_name)

    existing_indexes = _existing(conn, "index")
    for idx_name, idx_table, idx_cols, idx_where in schema.INDEXES:
        if idx_name in existing_indexes:
            continue
        conn.execute(_build_index_sql(idx_name, idx_table, idx_cols, idx_where))  # nosec B608
        results["indexes_created"].append(idx_name)

    conn.execute(safe_sql.pragma_user_version_set(schema.SCHEMA_VERSION))

    results["schema_version"] = schema.SCHEMA_VERSION
    return results
