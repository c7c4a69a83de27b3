from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from dbclient.domain.error_codes import ErrorCode


@dataclass
class DbClientError(Exception):
    """
    Назначение:
        Унифицированная ошибка клиента БД.
    Инварианты/гарантии:
        - str(error) совпадает с message.
        - Исключения драйвера наружу не выходят: они оборачиваются,
          исходный текст кладётся в details["driver_error"].
    """

    code: ErrorCode
    message: str
    category: str = "client"
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
        }


@dataclass
class DbConnectionError(DbClientError):
    """Цель недоступна, учётные данные отклонены или нет драйвера."""

    category: str = "connection"


@dataclass
class ClosedConnectionError(DbClientError):
    category: str = "connection"


@dataclass
class StatementSyntaxError(DbClientError):
    """Драйвер отверг текст запроса на этапе prepare."""

    category: str = "usage"


@dataclass
class BindError(DbClientError):
    category: str = "usage"


@dataclass
class ExecutionError(DbClientError):
    category: str = "database"


@dataclass
class CursorStateError(DbClientError):
    category: str = "usage"


@dataclass
class ColumnAccessError(DbClientError):
    category: str = "usage"


@dataclass
class TransactionError(DbClientError):
    """
    Назначение:
        Ошибка фиксации/отката или транзакции в целом.
    Инварианты/гарантии:
        - Первичная причина доступна через cause (она же __cause__).
        - Вторичные ошибки (неудачный rollback, неудачное восстановление
          auto-commit) лежат в suppressed и первичную причину не заменяют.
        - failed_index: 1-based номер упавшей команды либо None.
    """

    category: str = "transaction"
    failed_index: int | None = None
    suppressed: list[BaseException] = field(default_factory=list)
    rollback_attempted: bool = False

    @property
    def cause(self) -> BaseException | None:
        return self.__cause__

    def add_suppressed(self, error: BaseException) -> None:
        self.suppressed.append(error)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["failed_index"] = self.failed_index
        data["rollback_attempted"] = self.rollback_attempted
        data["cause"] = str(self.__cause__) if self.__cause__ is not None else None
        data["suppressed"] = [str(e) for e in self.suppressed]
        return data


__all__ = [
    "BindError",
    "ClosedConnectionError",
    "ColumnAccessError",
    "CursorStateError",
    "DbClientError",
    "DbConnectionError",
    "ExecutionError",
    "StatementSyntaxError",
    "TransactionError",
]
