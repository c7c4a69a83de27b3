from __future__ import annotations

from typing import Protocol

from dbclient.domain.transaction_state import TransactionState


class TransactionObserverProtocol(Protocol):
    """
    Назначение/ответственность:
        Побочный канал наблюдения за транзакцией (логирование, метрики).
    Взаимодействия:
        TransactionCoordinator сообщает о переходах состояний и о каждой
        выполненной команде; ядро не зависит от конкретного механизма логирования.
    """

    def on_state(self, state: TransactionState) -> None: ...

    def on_command_executed(self, index: int, row_count: int) -> None: ...

    def on_committed(self, row_counts: tuple[int, ...]) -> None: ...

    def on_rolled_back(self, cause: BaseException, rollback_error: BaseException | None) -> None: ...


class NullTransactionObserver:
    """Наблюдатель по умолчанию: ничего не делает."""

    def on_state(self, state: TransactionState) -> None:
        return None

    def on_command_executed(self, index: int, row_count: int) -> None:
        return None

    def on_committed(self, row_counts: tuple[int, ...]) -> None:
        return None

    def on_rolled_back(self, cause: BaseException, rollback_error: BaseException | None) -> None:
        return None
