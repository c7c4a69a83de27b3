from __future__ import annotations

from typing import Any, ContextManager, Protocol, Sequence


class SessionProtocol(Protocol):
    """
    Назначение/ответственность:
        Порт открытой сессии БД, которым пользуются PreparedCommand
        и TransactionCoordinator.
    Взаимодействия:
        Реализуется dbclient.infra.db.connection.ConnectionHandle;
        в тестах подменяется фейками.
    Ограничения:
        Одна сессия обслуживает не более одной транзакции одновременно.
    """

    def run(self, text: str, params: Sequence[Any]) -> Any:
        """
        Контракт (вход/выход):
            - Выход: число затронутых строк (int) либо курсор результата.
        """
        ...

    def run_update(self, text: str, params: Sequence[Any]) -> int: ...

    def run_query(self, text: str, params: Sequence[Any]) -> Any: ...

    def get_auto_commit(self) -> bool: ...

    def set_auto_commit(self, enabled: bool) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def borrow(self) -> ContextManager[None]: ...
