from __future__ import annotations

from enum import Enum


class TransactionState(str, Enum):
    """
    Назначение:
        Состояния координатора транзакции.

    Переходы:
        IDLE -> AUTOCOMMIT_DISABLED -> EXECUTING -> COMMITTING
             -> (ROLLING_BACK) -> AUTOCOMMIT_RESTORED -> DONE
        Сбой на IDLE -> AUTOCOMMIT_DISABLED сразу ведёт в DONE.
    """

    IDLE = "idle"
    AUTOCOMMIT_DISABLED = "autocommit_disabled"
    EXECUTING = "executing"
    COMMITTING = "committing"
    ROLLING_BACK = "rolling_back"
    AUTOCOMMIT_RESTORED = "autocommit_restored"
    DONE = "done"
