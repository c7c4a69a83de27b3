from __future__ import annotations

import pytest

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import ColumnAccessError, CursorStateError
from dbclient.domain.models import ColumnKind
from dbclient.infra.db.connection import acquire
from dbclient.infra.db.cursor import ResultCursor


class _FakeRawCursor:
    description = (("id", None, None, None, None, None, None),)

    def __init__(self, rows):
        self._rows = list(rows)
        self.fetch_calls = 0
        self.closed = False

    def fetchone(self):
        self.fetch_calls += 1
        if not self._rows:
            return None
        return self._rows.pop(0)

    def close(self):
        self.closed = True


def _make_people(handle) -> None:
    handle.prepare("CREATE TABLE people (id INTEGER PRIMARY KEY, name TEXT, score REAL)").execute_update(handle)
    insert = handle.prepare("INSERT INTO people(name, score) VALUES (?, ?)")
    insert.bind_all("ann", 1.5).execute_update(handle)
    insert.bind_all("bob", None).execute_update(handle)
    insert.bind_all("abc", 3.0).execute_update(handle)


def _query(handle, sql: str = "SELECT id, name, score FROM people ORDER BY id") -> ResultCursor:
    return handle.prepare(sql).execute_query(handle)


def test_cursor_reads_rows_lazily():
    raw = _FakeRawCursor([(1,), (2,), (3,)])
    cursor = ResultCursor(raw)
    assert raw.fetch_calls == 0

    assert cursor.advance()
    assert raw.fetch_calls == 1
    assert cursor.get_int(1) == 1


def test_exhausted_cursor_releases_driver_cursor():
    raw = _FakeRawCursor([(1,)])
    cursor = ResultCursor(raw)
    assert cursor.advance()
    assert not cursor.advance()
    assert cursor.exhausted
    assert raw.closed
    assert not cursor.advance()


def test_advance_loop_reads_by_name_and_index():
    with acquire(":memory:") as handle:
        _make_people(handle)
        names = []
        with _query(handle) as cursor:
            while cursor.advance():
                names.append((cursor.get_int("ID"), cursor.get_string(2)))
    assert names == [(1, "ann"), (2, "bob"), (3, "abc")]


def test_cursor_is_forward_only_and_not_restartable():
    with acquire(":memory:") as handle:
        _make_people(handle)
        cursor = _query(handle)
        assert len(list(cursor)) == 3
        assert list(cursor) == []
        assert not cursor.advance()
        cursor.close()


def test_row_is_invalid_after_cursor_moves():
    with acquire(":memory:") as handle:
        _make_people(handle)
        with _query(handle) as cursor:
            rows = iter(cursor)
            first = next(rows)
            assert first.get("name") == "ann"
            next(rows)
            with pytest.raises(CursorStateError) as exc_info:
                first.get("name")
    assert exc_info.value.code == ErrorCode.CURSOR_MOVED


def test_access_before_first_row_and_after_close():
    with acquire(":memory:") as handle:
        _make_people(handle)
        cursor = _query(handle)
        with pytest.raises(CursorStateError) as exc_info:
            cursor.get("name")
        assert exc_info.value.code == ErrorCode.CURSOR_NOT_POSITIONED

        cursor.advance()
        row = cursor.current
        cursor.close()
        cursor.close()
        with pytest.raises(CursorStateError) as exc_info:
            row.get("name")
        assert exc_info.value.code == ErrorCode.CURSOR_CLOSED
        with pytest.raises(CursorStateError):
            cursor.advance()
        with pytest.raises(CursorStateError):
            cursor.metadata()


def test_metadata_reports_every_column():
    with acquire(":memory:") as handle:
        _make_people(handle)
        with _query(handle) as cursor:
            meta = cursor.metadata()
    assert meta.column_count == 3
    assert [meta.column_name(i) for i in range(1, meta.column_count + 1)] == ["id", "name", "score"]
    with pytest.raises(IndexError):
        meta.column_name(4)


@pytest.mark.parametrize("column", ["missing", 0, 4])
def test_unknown_column_is_rejected(column):
    with acquire(":memory:") as handle:
        _make_people(handle)
        with _query(handle) as cursor:
            cursor.advance()
            with pytest.raises(ColumnAccessError) as exc_info:
                cursor.get(column)
    assert exc_info.value.code == ErrorCode.UNKNOWN_COLUMN


def test_typed_getters_and_kinds():
    with acquire(":memory:") as handle:
        _make_people(handle)
        with _query(handle) as cursor:
            rows = []
            for row in cursor:
                rows.append(row.as_dict())
                if row.get("name") == "bob":
                    assert row.kind("score") == ColumnKind.NULL
                    assert row.get_float("score") is None
                else:
                    assert row.kind("score") == ColumnKind.FLOAT
                assert row.kind("id") == ColumnKind.INTEGER
                assert row.kind("name") == ColumnKind.STRING
    assert rows[0] == {"id": 1, "name": "ann", "score": 1.5}


def test_type_mismatch_on_conversion():
    with acquire(":memory:") as handle:
        _make_people(handle)
        with _query(handle, "SELECT name FROM people WHERE name = 'abc'") as cursor:
            cursor.advance()
            with pytest.raises(ColumnAccessError) as exc_info:
                cursor.get_int("name")
    assert exc_info.value.code == ErrorCode.COLUMN_TYPE_MISMATCH


def test_fully_read_cursor_is_forgotten_by_handle_without_close():
    with acquire(":memory:") as handle:
        for _ in range(50):
            cursor = handle.prepare("SELECT 1 AS a").execute(handle)
            assert [row.get("a") for row in cursor] == [1]
        assert handle._open_cursors == []
        assert not cursor.closed
        assert cursor.metadata().column_count == 1


def test_partially_read_cursor_stays_tracked_until_closed():
    with acquire(":memory:") as handle:
        cursor = handle.prepare("SELECT 1 AS a UNION ALL SELECT 2").execute(handle)
        cursor.advance()
        assert handle._open_cursors == [cursor]
        cursor.close()
        assert handle._open_cursors == []


def test_get_int_refuses_to_truncate_fractional_values():
    with acquire(":memory:") as handle:
        with handle.prepare("SELECT 3.7 AS frac, 3.0 AS whole").execute_query(handle) as cursor:
            cursor.advance()
            assert cursor.get_int("whole") == 3
            assert cursor.get_float("frac") == 3.7
            with pytest.raises(ColumnAccessError) as exc_info:
                cursor.get_int("frac")
    assert exc_info.value.code == ErrorCode.COLUMN_TYPE_MISMATCH
