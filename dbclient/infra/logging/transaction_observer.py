from __future__ import annotations

import logging

from dbclient.domain.transaction_state import TransactionState
from dbclient.infra.logging.setup import logEvent


class LoggingTransactionObserver:
    """
    Назначение/ответственность:
        Адаптер TransactionObserverProtocol к логгеру команды.
    Взаимодействия:
        Передаётся в TransactionCoordinator; пишет через logEvent с component="tx".
    """

    def __init__(self, logger: logging.Logger, runId: str, component: str = "tx"):
        self.logger = logger
        self.runId = runId
        self.component = component

    def on_state(self, state: TransactionState) -> None:
        logEvent(self.logger, logging.DEBUG, self.runId, self.component, f"Transaction state: {state.value}")

    def on_command_executed(self, index: int, row_count: int) -> None:
        logEvent(self.logger, logging.INFO, self.runId, self.component, f"Rows updated: {row_count} (command {index})")

    def on_committed(self, row_counts: tuple[int, ...]) -> None:
        logEvent(self.logger, logging.INFO, self.runId, self.component, f"Transaction committed: row_counts={list(row_counts)}")

    def on_rolled_back(self, cause: BaseException, rollback_error: BaseException | None) -> None:
        logEvent(self.logger, logging.ERROR, self.runId, self.component, f"Transaction failed: {cause}")
        if rollback_error is not None:
            logEvent(self.logger, logging.ERROR, self.runId, self.component, f"Rollback failed: {rollback_error}")
