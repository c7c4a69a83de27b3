from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import (
    ClosedConnectionError,
    DbConnectionError,
    StatementSyntaxError,
    TransactionError,
)
from dbclient.infra.db.connection import acquire, open_connection
from dbclient.infra.db.target import parseTarget


def _count(handle, table: str) -> int:
    with handle.prepare(f"SELECT COUNT(*) AS n FROM {table}").execute_query(handle) as cursor:
        cursor.advance()
        return cursor.get_int("n")


def _make_table(handle) -> None:
    handle.prepare("CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL)").execute_update(handle)


def test_acquire_releases_handle_on_normal_exit():
    with acquire("sqlite::memory:") as handle:
        assert not handle.closed
    assert handle.closed


def test_acquire_releases_handle_when_scope_fails():
    with pytest.raises(RuntimeError):
        with acquire("sqlite::memory:") as handle:
            raise RuntimeError("boom")
    assert handle.closed


def test_close_is_idempotent():
    handle = open_connection(":memory:")
    handle.close()
    handle.release()
    assert handle.closed


def test_unreachable_target_raises_connection_error(tmp_path: Path):
    missing = tmp_path / "missing" / "employees.db"
    with pytest.raises(DbConnectionError) as exc_info:
        open_connection(f"sqlite:{missing}")
    assert exc_info.value.code == ErrorCode.TARGET_UNREACHABLE
    assert "driver_error" in exc_info.value.details


def test_unknown_driver_raises_connection_error():
    with pytest.raises(DbConnectionError) as exc_info:
        open_connection("mysql://localhost:3306/jdbc")
    assert exc_info.value.code == ErrorCode.DRIVER_UNAVAILABLE
    assert exc_info.value.details["scheme"] == "mysql"


def test_empty_target_is_invalid():
    with pytest.raises(DbConnectionError) as exc_info:
        open_connection("   ")
    assert exc_info.value.code == ErrorCode.INVALID_TARGET


def test_parse_target_variants():
    assert parseTarget("sqlite:///var/data/app.db").location == "/var/data/app.db"
    assert parseTarget("sqlite::memory:").location == ":memory:"
    bare = parseTarget("data/app.db")
    assert bare.scheme == "sqlite"
    assert bare.location == "data/app.db"


@pytest.mark.parametrize(
    "sql",
    [
        "",
        "SELEC * FROM items",
        "SELECT * FROM no_such_table",
        "SELECT 1; SELECT 2",
    ],
)
def test_prepare_rejects_bad_statements(sql):
    with acquire(":memory:") as handle:
        _make_table(handle)
        with pytest.raises(StatementSyntaxError):
            handle.prepare(sql)


def test_prepare_does_not_execute():
    with acquire(":memory:") as handle:
        _make_table(handle)
        handle.prepare("INSERT INTO items(name) VALUES (?)")
        assert _count(handle, "items") == 0


def test_set_auto_commit_returns_previous_value():
    with acquire(":memory:") as handle:
        assert handle.get_auto_commit() is True
        assert handle.set_auto_commit(False) is True
        assert handle.set_auto_commit(False) is False
        assert handle.get_auto_commit() is False


def test_commit_and_rollback_require_manual_mode():
    with acquire(":memory:") as handle:
        with pytest.raises(TransactionError) as exc_info:
            handle.commit()
        assert exc_info.value.code == ErrorCode.NO_ACTIVE_TRANSACTION
        with pytest.raises(TransactionError):
            handle.rollback()


def test_rollback_discards_statements_since_last_commit():
    with acquire(":memory:") as handle:
        _make_table(handle)
        insert = handle.prepare("INSERT INTO items(name) VALUES (?)")
        handle.set_auto_commit(False)

        insert.bind(1, "kept").execute_update(handle)
        handle.commit()
        insert.bind(1, "dropped").execute_update(handle)
        assert handle.in_transaction
        handle.rollback()

        assert not handle.in_transaction
        assert _count(handle, "items") == 1


def test_enabling_auto_commit_commits_open_transaction(tmp_path: Path):
    target = f"sqlite:{tmp_path / 'items.db'}"
    with acquire(target) as handle:
        _make_table(handle)
        handle.set_auto_commit(False)
        handle.prepare("INSERT INTO items(name) VALUES (?)").bind(1, "a").execute_update(handle)
        handle.set_auto_commit(True)
        assert not handle.in_transaction

    with acquire(target) as other:
        assert _count(other, "items") == 1


def test_closed_handle_rejects_operations():
    handle = open_connection(":memory:")
    handle.close()
    with pytest.raises(ClosedConnectionError):
        handle.set_auto_commit(False)
    with pytest.raises(ClosedConnectionError):
        handle.prepare("SELECT 1")


def test_borrow_allows_single_transaction_at_a_time():
    with acquire(":memory:") as handle:
        with handle.borrow():
            with pytest.raises(TransactionError) as exc_info:
                with handle.borrow():
                    pass
            assert exc_info.value.code == ErrorCode.CONNECTION_BUSY
        with handle.borrow():
            pass


def test_database_metadata_lists_tables():
    with acquire(":memory:") as handle:
        handle.prepare("CREATE TABLE beta (id INTEGER)").execute_update(handle)
        handle.prepare("CREATE TABLE alpha (id INTEGER)").execute_update(handle)
        assert handle.list_tables() == ["alpha", "beta"]
        assert handle.list_tables("al%") == ["alpha"]


def test_server_info_reports_driver():
    with acquire(":memory:") as handle:
        info = handle.server_info()
    assert info.driver == "sqlite3"
    assert info.version == sqlite3.sqlite_version


def test_closing_handle_closes_open_cursors():
    handle = open_connection(":memory:")
    cursor = handle.prepare("SELECT 1 AS one").execute_query(handle)
    handle.close()
    assert cursor.closed


def test_commit_and_rollback_without_open_transaction_are_no_ops_in_manual_mode():
    with acquire(":memory:") as handle:
        handle.set_auto_commit(False)
        assert not handle.in_transaction
        handle.commit()
        handle.rollback()
        assert not handle.in_transaction
