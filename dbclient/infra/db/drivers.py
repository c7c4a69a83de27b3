from __future__ import annotations

import sqlite3
from typing import Any

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import DbConnectionError
from dbclient.domain.models import Credentials
from dbclient.domain.ports.driver import DatabaseTarget, DriverProtocol


class SqliteDriver:
    """
    Назначение/ответственность:
        Драйвер на стандартном sqlite3.
    Инварианты/гарантии:
        - Соединение открывается с isolation_level=None: sqlite3 сам транзакций
          не открывает, BEGIN выдаёт ConnectionHandle.
        - Учётные данные SQLite не проверяет и не использует.
    """

    scheme = "sqlite"
    name = "sqlite3"
    errors = sqlite3.Error

    def connect(self, target: DatabaseTarget, credentials: Credentials | None, timeout: float) -> sqlite3.Connection:
        conn = sqlite3.connect(target.location, timeout=timeout, isolation_level=None)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute(f"PRAGMA busy_timeout = {int(timeout * 1000)}")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def begin(self, raw: sqlite3.Connection) -> None:
        raw.execute("BEGIN")

    def check_statement(self, raw: sqlite3.Connection, text: str, placeholder_count: int) -> None:
        # EXPLAIN компилирует выражение, но не исполняет его
        cur = raw.cursor()
        try:
            cur.execute(f"EXPLAIN {text}", (None,) * placeholder_count)
        finally:
            cur.close()

    def list_tables(self, raw: sqlite3.Connection, pattern: str) -> list[str]:
        rows = raw.execute(
            """
            SELECT name FROM sqlite_master
            WHERE type = 'table'
              AND name LIKE ?
              AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
            ORDER BY name
            """,
            (pattern,),
        ).fetchall()
        return [row[0] for row in rows]

    def server_version(self, raw: sqlite3.Connection) -> str:
        return sqlite3.sqlite_version


class DriverRegistry:
    """
    Назначение/ответственность:
        Реестр драйверов по схеме строки подключения.
    """

    def __init__(self) -> None:
        self._drivers: dict[str, DriverProtocol] = {}

    def register(self, driver: DriverProtocol) -> None:
        self._drivers[driver.scheme] = driver

    def get(self, scheme: str) -> DriverProtocol:
        if scheme not in self._drivers:
            raise DbConnectionError(
                code=ErrorCode.DRIVER_UNAVAILABLE,
                message=f"No database driver registered for scheme '{scheme}'",
                details={"scheme": scheme, "available": self.schemes()},
            )
        return self._drivers[scheme]

    def schemes(self) -> list[str]:
        return sorted(self._drivers.keys())


def createDefaultRegistry() -> DriverRegistry:
    registry = DriverRegistry()
    registry.register(SqliteDriver())
    return registry


_default_registry = createDefaultRegistry()


def get_default_registry() -> DriverRegistry:
    return _default_registry


def driver_error_details(exc: BaseException) -> dict[str, Any]:
    details: dict[str, Any] = {"driver_error": str(exc), "driver_error_type": type(exc).__name__}
    sqlite_name = getattr(exc, "sqlite_errorname", None)
    if sqlite_name:
        details["sqlite_errorname"] = sqlite_name
    return details
