from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

BindValue = Union[int, float, str, None]


class ColumnKind(str, Enum):
    """
    Назначение:
        Вид значения в ячейке результата.
    """

    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    NULL = "null"
    BLOB = "blob"

    @classmethod
    def of(cls, value: Any) -> "ColumnKind":
        if value is None:
            return cls.NULL
        if isinstance(value, bool):
            return cls.INTEGER
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.STRING
        return cls.BLOB


@dataclass(frozen=True)
class Credentials:
    """
    Назначение:
        Учётные данные подключения. Пароль не выводится в repr.
    """

    username: str | None = None
    password: str | None = None

    def __repr__(self) -> str:
        masked = "***" if self.password is not None else None
        return f"Credentials(username={self.username!r}, password={masked!r})"


@dataclass(frozen=True)
class ResultMetadata:
    """
    Назначение:
        Метаданные результата запроса: число колонок и их имена (1..n).
    """

    column_count: int
    column_names: tuple[str, ...]

    def column_name(self, index: int) -> str:
        if index < 1 or index > self.column_count:
            raise IndexError(f"Column index out of range: {index}")
        return self.column_names[index - 1]


@dataclass(frozen=True)
class ServerInfo:
    driver: str
    version: str


@dataclass
class Employee:
    """
    Назначение:
        Строка таблицы employees.
    """

    emp_id: int | None
    name: str
    position: str
    salary: float
