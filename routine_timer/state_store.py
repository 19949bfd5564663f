"""
State Store - the persistence adapter for routine-timer.

Every component reads and writes through here. One StateStore per database
file. Plain CRUD over rows; the timer modules own all domain rules.
"""

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from routine_timer import db as db_module
from routine_timer import safe_sql

logger = logging.getLogger(__name__)


class StateStore:
    """
    SQLite-backed store with explicit transactions.

    Outside ``transaction()`` every call runs in its own short transaction.
    Inside ``transaction()`` every call shares one BEGIN IMMEDIATE
    transaction, so a read-check-write sequence is atomic against any other
    process writing the same database.
    """

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = str(db_module.get_db_path(db_path))
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        logger.debug("StateStore initializing with DB: %s", self.db_path)

        self._conn = db_module.connect(self.db_path)
        self._in_transaction = False

        db_module.run_migrations(self._conn)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "StateStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ==================== Transactions ====================

    @contextmanager
    def transaction(self) -> Generator["StateStore", None, None]:
        """
        Run a block as one write transaction.

        Usage:
            with store.transaction():
                row = store.get("sessions", session_id)
                ...
                store.update("sessions", session_id, {...})
        """
        if self._in_transaction:
            # Nested blocks join the outer transaction
            yield self
            return

        self._conn.execute("BEGIN IMMEDIATE")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")
        finally:
            self._in_transaction = False

    @contextmanager
    def _cursor_scope(self) -> Generator[sqlite3.Connection, None, None]:
        """Use the open transaction, or wrap a single statement in its own."""
        if self._in_transaction:
            yield self._conn
            return
        with self.transaction():
            yield self._conn

    # ==================== CRUD Operations ====================

    def insert(self, table: str, data: dict, or_ignore: bool = False) -> str:
        """Insert a row. Returns ID."""
        columns = list(data.keys())
        sql = safe_sql.insert(table, columns, or_ignore=or_ignore)
        try:
            with self._cursor_scope() as conn:
                conn.execute(sql, list(data.values()))
        except sqlite3.Error as e:
            logger.error("Insert into %s failed: %s", table, e)
            raise
        return data.get("id", "")

    def insert_many(self, table: str, items: list[dict], or_ignore: bool = False) -> int:
        """Insert multiple rows. Returns count."""
        if not items:
            return 0

        columns = list(items[0].keys())
        sql = safe_sql.insert(table, columns, or_ignore=or_ignore)
        with self._cursor_scope() as conn:
            for item in items:
                conn.execute(sql, [item[c] for c in columns])
        return len(items)

    def get(self, table: str, id: str) -> dict | None:
        """Get a single row by ID."""
        sql = safe_sql.select(table, where="id = ?")
        row = self._conn.execute(sql, [id]).fetchone()
        return dict(row) if row else None

    def update(self, table: str, id: str, data: dict) -> bool:
        """Update a row."""
        if not data:
            return False

        values = list(data.values())
        values.append(id)
        sql = safe_sql.update(table, list(data.keys()))
        with self._cursor_scope() as conn:
            result = conn.execute(sql, values)
            return result.rowcount > 0

    def query(self, sql: str, params: list | None = None) -> list[dict]:
        """Execute raw query. Returns list of dicts."""
        rows = self._conn.execute(sql, params or []).fetchall()
        return [dict(row) for row in rows]

    def count(self, table: str, where: str | None = None, params: list | None = None) -> int:
        """Count rows."""
        sql = safe_sql.select_count(table, where=where)
        row = self._conn.execute(sql, params or []).fetchone()
        return row["c"] if row else 0


# Per-path accessor
_stores: dict[str, StateStore] = {}


def get_store(db_path: str | Path | None = None) -> StateStore:
    """Get the shared store for a database path."""
    key = str(db_module.get_db_path(db_path))
    store = _stores.get(key)
    if store is None or store._conn is None:
        store = StateStore(key)
        _stores[key] = store
    return store


def close_all() -> None:
    """Close every store opened through get_store()."""
    for store in _stores.values():
        store.close()
    _stores.clear()
