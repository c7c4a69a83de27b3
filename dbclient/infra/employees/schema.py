from __future__ import annotations

from dbclient.domain.command import PreparedCommand
from dbclient.domain.transaction import TransactionCoordinator
from dbclient.infra.db.connection import ConnectionHandle

SCHEMA_VERSION = 1

EMPLOYEES_TABLE = "employees"


def ensure_employees_schema(session: ConnectionHandle, coordinator: TransactionCoordinator | None = None) -> int:
    """
    Назначение:
        Создаёт таблицы meta и employees (если их нет) и фиксирует версию схемы.

    Выходные данные:
        int
            Версия схемы после инициализации.

    Алгоритм:
        - Все выражения выполняются одной транзакцией через TransactionCoordinator.
        - salary допускает только числа: строка в salary отклоняется CHECK-ограничением.
    """
    coordinator = coordinator or TransactionCoordinator()
    commands = [
        session.prepare(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT
            )
            """
        ),
        session.prepare(
            f"""
            CREATE TABLE IF NOT EXISTS {EMPLOYEES_TABLE} (
                emp_id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                position TEXT,
                salary REAL CHECK (salary IS NULL OR typeof(salary) IN ('integer', 'real'))
            )
            """
        ),
    ]
    coordinator.execute(session, commands)

    # meta создаётся первой командой пакета, поэтому готовится отдельно
    set_version = session.prepare(
        """
        INSERT INTO meta(key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """
    ).bind_all("schema_version", str(SCHEMA_VERSION))
    coordinator.execute(session, [set_version])
    return SCHEMA_VERSION


def get_schema_version(session: ConnectionHandle) -> int | None:
    if "meta" not in session.list_tables("meta"):
        return None
    query = PreparedCommand.from_text("SELECT value FROM meta WHERE key = ?", "schema_version")
    with query.execute_query(session) as cursor:
        if not cursor.advance():
            return None
        try:
            return int(cursor.get_string("value") or "")
        except ValueError:
            return None
