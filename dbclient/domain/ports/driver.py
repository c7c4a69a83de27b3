from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from dbclient.domain.models import Credentials


@dataclass(frozen=True)
class DatabaseTarget:
    """
    Назначение/ответственность:
        Разобранная строка подключения: схема драйвера и адрес базы.
    Инварианты/гарантии:
        - scheme хранится в нижнем регистре.
        - raw хранит исходную строку для сообщений об ошибках.
    """

    scheme: str
    location: str
    raw: str


class DriverProtocol(Protocol):
    """
    Назначение/ответственность:
        Порт внешнего драйвера БД (DB-API 2.0 соединение + пара служебных операций).
    Взаимодействия:
        ConnectionHandle зависит только от протокола; реализации регистрируются
        в dbclient.infra.db.drivers.
    Ограничения:
        Синхронные блокирующие вызовы, одно соединение на вызов connect().
    """

    scheme: str
    name: str
    errors: type[BaseException]

    def connect(self, target: DatabaseTarget, credentials: Credentials | None, timeout: float) -> Any:
        """
        Контракт (вход/выход):
            - Вход: цель, учётные данные, таймаут ожидания блокировок.
            - Выход: DB-API соединение, в котором драйвер сам транзакции не открывает.
        Ошибки/исключения:
            Исключения драйвера (errors), ConnectionHandle их оборачивает.
        """
        ...

    def begin(self, raw: Any) -> None: ...

    def check_statement(self, raw: Any, text: str, placeholder_count: int) -> None:
        """
        Контракт (вход/выход):
            - Компилирует текст без выполнения; ничего не возвращает.
        Ошибки/исключения:
            Исключения драйвера, если текст отвергнут.
        """
        ...

    def list_tables(self, raw: Any, pattern: str) -> list[str]: ...

    def server_version(self, raw: Any) -> str: ...
