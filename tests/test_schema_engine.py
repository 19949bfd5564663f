"""
Tests for schema convergence and the state store.
"""

import sqlite3

import pytest

from routine_timer import db, schema, schema_engine
from routine_timer.safe_sql import insert, select, update, validate_identifier
from routine_timer.state_store import StateStore


@pytest.fixture
def conn(tmp_path):
    c = db.connect(tmp_path / "engine.sqlite3")
    yield c
    c.close()


def _columns(conn, table):
    return {row[1] for row in conn.execute(f"PRAGMA table_info([{table}])")}


class TestConverge:
    def test_empty_database(self, conn):
        results = schema_engine.converge(conn)
        assert set(results["tables_created"]) == set(schema.TABLES)
        assert len(results["indexes_created"]) == len(schema.INDEXES)
        assert db.get_schema_version(conn) == schema.SCHEMA_VERSION

    def test_idempotent(self, conn):
        schema_engine.converge(conn)
        again = schema_engine.converge(conn)
        assert again["tables_created"] == []
        assert again["indexes_created"] == []

    def test_existing_table_left_alone(self, conn):
        conn.execute("CREATE TABLE session_tags (session_id TEXT, tag TEXT, legacy TEXT)")
        conn.execute("INSERT INTO session_tags VALUES ('ses_1', 'focus', 'kept')")
        results = schema_engine.converge(conn)
        assert "session_tags" not in results["tables_created"]
        assert "sessions" in results["tables_created"]
        assert _columns(conn, "session_tags") == {"session_id", "tag", "legacy"}
        assert conn.execute("SELECT legacy FROM session_tags").fetchone()[0] == "kept"

    def test_composite_primary_key(self, conn):
        schema_engine.converge(conn)
        conn.execute("INSERT INTO routines VALUES ('rtn_1', 'a', 'UTC', 'daily', 'x', NULL)")
        conn.execute(
            "INSERT INTO sessions VALUES ('ses_1', 'rtn_1', 'x', NULL, NULL, 'x', 'x', NULL)"
        )
        conn.execute("INSERT INTO session_tags VALUES ('ses_1', 'focus')")
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO session_tags VALUES ('ses_1', 'focus')")


class TestMigrations:
    def test_skips_when_current(self, conn):
        db.run_migrations(conn)
        assert db.run_migrations(conn)["status"] == "skipped"

    def test_db_path_override(self, tmp_path):
        assert db.get_db_path(tmp_path / "x.sqlite3") == (tmp_path / "x.sqlite3").resolve()

    def test_db_path_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ROUTINE_TIMER_DB", str(tmp_path / "env.sqlite3"))
        assert db.get_db_path() == (tmp_path / "env.sqlite3").resolve()

    def test_db_path_default_under_home(self, isolated_home):
        assert db.get_db_path() == isolated_home.resolve() / "data" / "routine.sqlite3"


class TestSafeSql:
    def test_rejects_injection(self):
        with pytest.raises(ValueError):
            validate_identifier("sessions; DROP TABLE routines")

    def test_builders(self):
        assert select("sessions", where="id = ?") == "SELECT * FROM sessions WHERE id = ?"
        assert insert("session_tags", ["session_id", "tag"], or_ignore=True) == (
            "INSERT OR IGNORE INTO session_tags (session_id,tag) VALUES (?,?)"
        )
        assert update("sessions", ["end_ts"]) == "UPDATE sessions SET end_ts = ? WHERE id = ?"


class TestStateStore:
    def test_transaction_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert(
                    "routines",
                    {"id": "rtn_1", "name": "a", "tz": "UTC", "rule": "daily", "created_at": "x"},
                )
                raise RuntimeError("boom")
        assert store.get("routines", "rtn_1") is None

    def test_nested_transaction_joins_outer(self, store):
        with store.transaction():
            with store.transaction():
                store.insert(
                    "routines",
                    {"id": "rtn_1", "name": "a", "tz": "UTC", "rule": "daily", "created_at": "x"},
                )
        assert store.count("routines") == 1

    def test_foreign_keys_enforced(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            store.insert(
                "sessions",
                {
                    "id": "ses_1",
                    "routine_id": "rtn_missing",
                    "start_ts": "x",
                    "created_at": "x",
                    "updated_at": "x",
                },
            )

    def test_update_missing_row(self, store):
        assert store.update("routines", "rtn_missing", {"archived_at": "x"}) is False

    def test_reopen_keeps_data(self, db_path, store):
        store.insert(
            "routines",
            {"id": "rtn_1", "name": "a", "tz": "UTC", "rule": "daily", "created_at": "x"},
        )
        with StateStore(db_path) as other:
            assert other.get("routines", "rtn_1")["name"] == "a"
