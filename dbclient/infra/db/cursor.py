from __future__ import annotations

from typing import Any, Callable, Iterator

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import ColumnAccessError, CursorStateError, ExecutionError
from dbclient.domain.models import ColumnKind, ResultMetadata
from dbclient.infra.db.drivers import driver_error_details

Column = int | str


class Row:
    """
    Назначение/ответственность:
        Строка результата, привязанная к позиции курсора.
    Инварианты/гарантии:
        - Читать значения можно, только пока курсор стоит на этой строке
          и не закрыт; иначе CursorStateError.
    """

    __slots__ = ("_cursor", "_position", "_values")

    def __init__(self, cursor: "ResultCursor", position: int, values: tuple[Any, ...]):
        self._cursor = cursor
        self._position = position
        self._values = values

    def get(self, column: Column) -> Any:
        self._cursor._check_row(self._position)
        return self._values[self._cursor._resolve(column)]

    def get_int(self, column: Column) -> int | None:
        """
        Контракт (вход/выход):
            - Целые и вещественные без дробной части (3.0) отдаются как int.
        Ошибки/исключения:
            ColumnAccessError(COLUMN_TYPE_MISMATCH) — дробное число или нечисловой текст;
            усечения 3.7 -> 3 не бывает.
        """
        return _convert(self.get(column), int, column)

    def get_float(self, column: Column) -> float | None:
        return _convert(self.get(column), float, column)

    def get_string(self, column: Column) -> str | None:
        value = self.get(column)
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return str(value)

    def kind(self, column: Column) -> ColumnKind:
        return ColumnKind.of(self.get(column))

    def as_dict(self) -> dict[str, Any]:
        self._cursor._check_row(self._position)
        return dict(zip(self._cursor.columns, self._values))

    def __repr__(self) -> str:
        return f"Row(position={self._position}, values={self._values!r})"


class ResultCursor:
    """
    Назначение/ответственность:
        Ленивый однонаправленный курсор поверх курсора DB-API.
    Инварианты/гарантии:
        - Строки читаются по одной (fetchone), повторный проход невозможен.
        - Колонки адресуются по имени (без учёта регистра) или по номеру с 1.
        - После исчерпания курсор драйвера закрывается автоматически,
          а соединение перестаёт его отслеживать (close() не обязателен).
    Взаимодействия:
        Создаётся ConnectionHandle.run_query()/run(); закрывается вызывающим
        (поддерживает with).
    """

    def __init__(
        self,
        raw: Any,
        statement: str = "",
        driver_errors: type[BaseException] = Exception,
        on_close: Callable[["ResultCursor"], None] | None = None,
    ):
        self._raw = raw
        self._statement = statement
        self._driver_errors = driver_errors
        self._on_close = on_close
        self._columns = tuple(desc[0] for desc in (raw.description or ()))
        self._lookup: dict[str, int] = {}
        for i, name in enumerate(self._columns):
            self._lookup.setdefault(name.lower(), i)
        self._position = 0
        self._current: tuple[Any, ...] | None = None
        self._exhausted = False
        self._closed = False

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def position(self) -> int:
        return self._position

    def metadata(self) -> ResultMetadata:
        self._check_open()
        return ResultMetadata(column_count=len(self._columns), column_names=self._columns)

    def advance(self) -> bool:
        """
        Контракт (вход/выход):
            - Переходит к следующей строке; False, если строк больше нет.
        Ошибки/исключения:
            CursorStateError на закрытом курсоре; ExecutionError при сбое драйвера.
        """
        self._check_open()
        if self._exhausted:
            return False
        try:
            row = self._raw.fetchone()
        except self._driver_errors as exc:
            raise ExecutionError(
                code=ErrorCode.EXECUTION_FAILED,
                message=f"Failed to fetch row: {exc}",
                details={"statement": self._statement, **driver_error_details(exc)},
            ) from exc

        self._position += 1
        if row is None:
            self._exhausted = True
            self._current = None
            self._release_raw()
            self._detach()
            return False
        self._current = tuple(row)
        return True

    @property
    def current(self) -> Row:
        self._check_open()
        if self._current is None:
            raise CursorStateError(
                code=ErrorCode.CURSOR_NOT_POSITIONED,
                message="Cursor is not positioned on a row",
            )
        return Row(self, self._position, self._current)

    def get(self, column: Column) -> Any:
        return self.current.get(column)

    def get_int(self, column: Column) -> int | None:
        return self.current.get_int(column)

    def get_float(self, column: Column) -> float | None:
        return self.current.get_float(column)

    def get_string(self, column: Column) -> str | None:
        return self.current.get_string(column)

    def __iter__(self) -> Iterator[Row]:
        while self.advance():
            yield Row(self, self._position, self._current)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._current = None
        self._release_raw()
        self._detach()

    def _detach(self) -> None:
        # владелец (ConnectionHandle) перестаёт отслеживать курсор ровно один раз
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            on_close(self)

    def __enter__(self) -> "ResultCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _release_raw(self) -> None:
        if self._raw is None:
            return
        raw, self._raw = self._raw, None
        raw.close()

    def _check_open(self) -> None:
        if self._closed:
            raise CursorStateError(code=ErrorCode.CURSOR_CLOSED, message="Cursor is closed")

    def _check_row(self, position: int) -> None:
        self._check_open()
        if position != self._position or self._current is None:
            raise CursorStateError(
                code=ErrorCode.CURSOR_MOVED,
                message=f"Cursor has moved past row {position}",
            )

    def _resolve(self, column: Column) -> int:
        if isinstance(column, bool):
            raise ColumnAccessError(code=ErrorCode.UNKNOWN_COLUMN, message=f"Invalid column: {column!r}")
        if isinstance(column, int):
            if column < 1 or column > len(self._columns):
                raise ColumnAccessError(
                    code=ErrorCode.UNKNOWN_COLUMN,
                    message=f"Column index {column} is out of range 1..{len(self._columns)}",
                )
            return column - 1
        index = self._lookup.get(str(column).lower())
        if index is None:
            raise ColumnAccessError(
                code=ErrorCode.UNKNOWN_COLUMN,
                message=f"Unknown column: {column}",
                details={"columns": list(self._columns)},
            )
        return index


def _convert(value: Any, kind: type, column: Column) -> Any:
    if value is None:
        return None
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise ColumnAccessError(
            code=ErrorCode.COLUMN_TYPE_MISMATCH,
            message=f"Column {column} value {value!r} has a fractional part, use get_float()",
        )
    try:
        return kind(value)
    except (TypeError, ValueError) as exc:
        raise ColumnAccessError(
            code=ErrorCode.COLUMN_TYPE_MISMATCH,
            message=f"Column {column} value {value!r} is not {kind.__name__}",
        ) from exc
