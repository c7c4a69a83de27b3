from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from dbclient.domain.command import PreparedCommand
from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import (
    ClosedConnectionError,
    DbConnectionError,
    ExecutionError,
    StatementSyntaxError,
    TransactionError,
)
from dbclient.domain.models import Credentials, ServerInfo
from dbclient.domain.ports.driver import DatabaseTarget, DriverProtocol
from dbclient.domain.sql_text import count_placeholders, is_blank
from dbclient.infra.db.cursor import ResultCursor
from dbclient.infra.db.drivers import DriverRegistry, driver_error_details, get_default_registry
from dbclient.infra.db.target import parseTarget

DEFAULT_TIMEOUT_SECONDS = 5.0


class ConnectionHandle:
    """
    Назначение/ответственность:
        Одна сессия с БД поверх DB-API соединения драйвера.
    Инварианты/гарантии:
        - close() идемпотентен: соединение драйвера закрывается ровно один раз.
        - При выключенном auto-commit первое выражение после commit/rollback
          открывает транзакцию (BEGIN через драйвер).
        - Исключения драйвера оборачиваются в ошибки dbclient.
        - Одновременно сессию может занимать не более одного координатора (borrow).
    Взаимодействия:
        Реализует SessionProtocol для PreparedCommand и TransactionCoordinator.
    """

    def __init__(self, raw: Any, driver: DriverProtocol, target: DatabaseTarget):
        self._raw = raw
        self._driver = driver
        self.target = target
        self._auto_commit = True
        self._in_transaction = False
        self._closed = False
        self._borrow_lock = threading.Lock()
        self._open_cursors: list[ResultCursor] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def prepare(self, text: str) -> PreparedCommand:
        """
        Контракт (вход/выход):
            - Вход: текст одного SQL-выражения с плейсхолдерами '?'.
            - Выход: PreparedCommand без привязанных значений.
        Ошибки/исключения:
            StatementSyntaxError — текст отвергнут; ClosedConnectionError.
        """
        self._check_open()
        if is_blank(text):
            raise StatementSyntaxError(code=ErrorCode.SYNTAX_ERROR, message="Statement text is empty")
        placeholder_count = count_placeholders(text)
        try:
            self._driver.check_statement(self._raw, text, placeholder_count)
        except self._driver.errors as exc:
            raise StatementSyntaxError(
                code=ErrorCode.SYNTAX_ERROR,
                message=f"Statement rejected by driver: {exc}",
                details={"statement": text, **driver_error_details(exc)},
            ) from exc
        return PreparedCommand(text=text, placeholder_count=placeholder_count)

    def run(self, text: str, params: Sequence[Any]) -> int | ResultCursor:
        cur = self._execute(text, params)
        if cur.description is None:
            return _consume_row_count(cur)
        return self._wrap_cursor(cur, text)

    def run_update(self, text: str, params: Sequence[Any]) -> int:
        cur = self._execute(text, params)
        if cur.description is not None:
            cur.close()
            raise ExecutionError(
                code=ErrorCode.UNEXPECTED_RESULT_KIND,
                message="Statement produced a result set, use execute_query()",
                details={"statement": text},
            )
        return _consume_row_count(cur)

    def run_query(self, text: str, params: Sequence[Any]) -> ResultCursor:
        cur = self._execute(text, params)
        if cur.description is None:
            cur.close()
            raise ExecutionError(
                code=ErrorCode.UNEXPECTED_RESULT_KIND,
                message="Statement did not produce a result set, use execute_update()",
                details={"statement": text},
            )
        return self._wrap_cursor(cur, text)

    def get_auto_commit(self) -> bool:
        self._check_open()
        return self._auto_commit

    def set_auto_commit(self, enabled: bool) -> bool:
        """
        Контракт (вход/выход):
            - Выход: предыдущее значение флага.
            - Включение auto-commit при открытой транзакции фиксирует её.
        Ошибки/исключения:
            ClosedConnectionError; TransactionError, если неявный commit не удался.
        """
        self._check_open()
        previous = self._auto_commit
        if enabled and not previous and self._in_transaction:
            self.commit()
        self._auto_commit = bool(enabled)
        return previous

    def commit(self) -> None:
        """
        Контракт (вход/выход):
            - Фиксирует выражения, выполненные после последнего commit/rollback.
            - При выключенном auto-commit, если с момента последнего commit/rollback
              ничего не выполнялось, это no-op (как в JDBC): ошибки нет.
        Ошибки/исключения:
            TransactionError(NO_ACTIVE_TRANSACTION) — auto-commit включён;
            TransactionError(COMMIT_FAILED) — сбой драйвера (например, сессия потеряна);
            ClosedConnectionError.
        """
        self._check_open()
        self._require_manual_mode("commit")
        if not self._in_transaction:
            return
        try:
            self._raw.commit()
        except self._driver.errors as exc:
            raise TransactionError(
                code=ErrorCode.COMMIT_FAILED,
                message=f"Commit failed: {exc}",
                details=driver_error_details(exc),
            ) from exc
        self._in_transaction = False

    def rollback(self) -> None:
        """
        Контракт (вход/выход):
            - Отменяет выражения, выполненные после последнего commit/rollback.
            - При выключенном auto-commit без открытой транзакции это no-op, а не ошибка:
              координатор откатывает безусловно, даже если упала первая команда.
            - Флаг открытой транзакции сбрасывается и при сбое отката.
        Ошибки/исключения:
            TransactionError(NO_ACTIVE_TRANSACTION) — auto-commit включён;
            TransactionError(ROLLBACK_FAILED) — сбой драйвера; ClosedConnectionError.
        """
        self._check_open()
        self._require_manual_mode("rollback")
        if not self._in_transaction:
            return
        try:
            self._raw.rollback()
        except self._driver.errors as exc:
            raise TransactionError(
                code=ErrorCode.ROLLBACK_FAILED,
                message=f"Rollback failed: {exc}",
                details=driver_error_details(exc),
            ) from exc
        finally:
            self._in_transaction = False

    @contextmanager
    def borrow(self) -> Iterator[None]:
        self._check_open()
        if not self._borrow_lock.acquire(blocking=False):
            raise TransactionError(
                code=ErrorCode.CONNECTION_BUSY,
                message="Connection is already used by another transaction",
            )
        try:
            yield
        finally:
            self._borrow_lock.release()

    def list_tables(self, pattern: str = "%") -> list[str]:
        self._check_open()
        try:
            return self._driver.list_tables(self._raw, pattern)
        except self._driver.errors as exc:
            raise ExecutionError(
                code=ErrorCode.EXECUTION_FAILED,
                message=f"Failed to read table metadata: {exc}",
                details=driver_error_details(exc),
            ) from exc

    def server_info(self) -> ServerInfo:
        self._check_open()
        return ServerInfo(driver=self._driver.name, version=self._driver.server_version(self._raw))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for cursor in list(self._open_cursors):
            cursor.close()
        self._open_cursors.clear()
        raw, self._raw = self._raw, None
        raw.close()

    release = close

    def __enter__(self) -> "ConnectionHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _execute(self, text: str, params: Sequence[Any]) -> Any:
        self._check_open()
        if not self._auto_commit and not self._in_transaction:
            try:
                self._driver.begin(self._raw)
            except self._driver.errors as exc:
                raise ExecutionError(
                    code=ErrorCode.EXECUTION_FAILED,
                    message=f"Failed to begin transaction: {exc}",
                    details=driver_error_details(exc),
                ) from exc
            self._in_transaction = True

        cur = self._raw.cursor()
        try:
            cur.execute(text, tuple(params))
        except self._driver.errors as exc:
            cur.close()
            raise ExecutionError(
                code=ErrorCode.EXECUTION_FAILED,
                message=f"Statement failed: {exc}",
                details={"statement": text, **driver_error_details(exc)},
            ) from exc
        return cur

    def _wrap_cursor(self, cur: Any, text: str) -> ResultCursor:
        cursor = ResultCursor(cur, statement=text, driver_errors=self._driver.errors, on_close=self._forget_cursor)
        self._open_cursors.append(cursor)
        return cursor

    def _forget_cursor(self, cursor: ResultCursor) -> None:
        if cursor in self._open_cursors:
            self._open_cursors.remove(cursor)

    def _require_manual_mode(self, operation: str) -> None:
        if self._auto_commit:
            raise TransactionError(
                code=ErrorCode.NO_ACTIVE_TRANSACTION,
                message=f"Cannot {operation}: auto-commit is enabled",
            )

    def _check_open(self) -> None:
        if self._closed:
            raise ClosedConnectionError(code=ErrorCode.CONNECTION_CLOSED, message="Connection is closed")


def open_connection(
    target: str | DatabaseTarget,
    credentials: Credentials | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    registry: DriverRegistry | None = None,
) -> ConnectionHandle:
    """
    Назначение:
        Открывает сессию; закрывать её обязан вызывающий.

    Ошибки:
        DbConnectionError — неверная цель, нет драйвера, цель недоступна
        или учётные данные отклонены.
    """
    parsed = target if isinstance(target, DatabaseTarget) else parseTarget(target)
    driver = (registry or get_default_registry()).get(parsed.scheme)
    try:
        raw = driver.connect(parsed, credentials, timeout)
    except driver.errors as exc:
        raise DbConnectionError(
            code=ErrorCode.TARGET_UNREACHABLE,
            message=f"Failed to connect to {parsed.raw}: {exc}",
            details={"target": parsed.raw, **driver_error_details(exc)},
        ) from exc
    return ConnectionHandle(raw, driver, parsed)


@contextmanager
def acquire(
    target: str | DatabaseTarget,
    credentials: Credentials | None = None,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    registry: DriverRegistry | None = None,
) -> Iterator[ConnectionHandle]:
    """
    Назначение:
        Scoped-получение сессии: закрытие гарантировано на любом пути выхода.
    """
    handle = open_connection(target, credentials, timeout=timeout, registry=registry)
    try:
        yield handle
    finally:
        handle.close()


def _consume_row_count(cur: Any) -> int:
    try:
        count = cur.rowcount
    finally:
        cur.close()
    return count if count is not None and count >= 0 else 0
