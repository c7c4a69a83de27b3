from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import BindError
from dbclient.domain.models import BindValue
from dbclient.domain.ports.session import SessionProtocol
from dbclient.domain.sql_text import count_placeholders


class _Unbound:
    def __repr__(self) -> str:
        return "<unbound>"


UNBOUND: Any = _Unbound()

_BINDABLE_TYPES = (int, float, str)


@dataclass(frozen=True)
class PreparedCommand:
    """
    Назначение/ответственность:
        Неизменяемое параметризованное SQL-выражение с позиционными значениями.
    Инварианты/гарантии:
        - len(params) == placeholder_count.
        - bind()/bind_all() возвращают новый объект; уже выполненные
          результаты повторная привязка не затрагивает.
        - Исполнение без привязки всех позиций — ошибка использования (BindError),
          до обращения к БД дело не доходит.
    Взаимодействия:
        Создаётся ConnectionHandle.prepare() либо from_text();
        исполняется через SessionProtocol.
    """

    text: str
    placeholder_count: int
    params: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        if not self.params and self.placeholder_count:
            object.__setattr__(self, "params", (UNBOUND,) * self.placeholder_count)
        if len(self.params) != self.placeholder_count:
            raise BindError(
                code=ErrorCode.PARAMETER_COUNT_MISMATCH,
                message=(
                    f"Statement declares {self.placeholder_count} placeholder(s), "
                    f"got {len(self.params)} value(s)"
                ),
                details={"statement": self.text},
            )

    @classmethod
    def from_text(cls, text: str, *values: BindValue) -> "PreparedCommand":
        command = cls(text=text, placeholder_count=count_placeholders(text))
        if values:
            return command.bind_all(*values)
        return command

    def bind(self, position: int, value: BindValue) -> "PreparedCommand":
        if isinstance(position, bool) or not isinstance(position, int):
            raise BindError(
                code=ErrorCode.BIND_POSITION_OUT_OF_RANGE,
                message=f"Parameter position must be an integer, got {position!r}",
            )
        if position < 1 or position > self.placeholder_count:
            raise BindError(
                code=ErrorCode.BIND_POSITION_OUT_OF_RANGE,
                message=(
                    f"Parameter position {position} is out of range "
                    f"1..{self.placeholder_count}"
                ),
                details={"statement": self.text},
            )
        _check_value(position, value)
        params = list(self.params)
        params[position - 1] = value
        return replace(self, params=tuple(params))

    def bind_all(self, *values: BindValue) -> "PreparedCommand":
        if len(values) != self.placeholder_count:
            raise BindError(
                code=ErrorCode.PARAMETER_COUNT_MISMATCH,
                message=(
                    f"Statement declares {self.placeholder_count} placeholder(s), "
                    f"got {len(values)} value(s)"
                ),
                details={"statement": self.text},
            )
        for position, value in enumerate(values, start=1):
            _check_value(position, value)
        return replace(self, params=tuple(values))

    def unbound_positions(self) -> list[int]:
        return [i for i, value in enumerate(self.params, start=1) if value is UNBOUND]

    @property
    def is_bound(self) -> bool:
        return not self.unbound_positions()

    def execute(self, session: SessionProtocol) -> Any:
        """
        Контракт (вход/выход):
            - Выход: число затронутых строк для изменяющих выражений,
              ResultCursor для запросов.
        Ошибки/исключения:
            BindError, ExecutionError, ClosedConnectionError.
        """
        self._require_bound()
        return session.run(self.text, self.params)

    def execute_update(self, session: SessionProtocol) -> int:
        self._require_bound()
        return session.run_update(self.text, self.params)

    def execute_query(self, session: SessionProtocol) -> Any:
        self._require_bound()
        return session.run_query(self.text, self.params)

    def _require_bound(self) -> None:
        missing = self.unbound_positions()
        if missing:
            raise BindError(
                code=ErrorCode.PARAMETER_UNBOUND,
                message=f"Parameter(s) not bound: {', '.join(str(p) for p in missing)}",
                details={"statement": self.text, "positions": missing},
            )


def _check_value(position: int, value: Any) -> None:
    if value is None or isinstance(value, _BINDABLE_TYPES):
        return
    raise BindError(
        code=ErrorCode.BIND_UNSUPPORTED_VALUE,
        message=(
            f"Unsupported value for parameter {position}: "
            f"{type(value).__name__} (expected int, float, str or None)"
        ),
    )
