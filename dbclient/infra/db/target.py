from __future__ import annotations

import re

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import DbConnectionError
from dbclient.domain.ports.driver import DatabaseTarget

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]+):(.*)$", re.DOTALL)

DEFAULT_SCHEME = "sqlite"


def parseTarget(raw: str | None) -> DatabaseTarget:
    """
    Назначение:
        Разбирает строку подключения вида scheme:location.

    Входные данные:
        raw: str | None
            Например "sqlite:///data/employees.db", "sqlite::memory:",
            или просто путь к файлу (схема по умолчанию sqlite).

    Выходные данные:
        DatabaseTarget

    Ошибки:
        DbConnectionError(INVALID_TARGET) — пустая строка или пустой адрес.
    """
    value = (raw or "").strip()
    if not value:
        raise DbConnectionError(code=ErrorCode.INVALID_TARGET, message="Database target is empty")

    match = _SCHEME_RE.match(value)
    if match is None:
        return DatabaseTarget(scheme=DEFAULT_SCHEME, location=value, raw=value)

    scheme = match.group(1).lower()
    location = match.group(2)
    if location.startswith("//"):
        location = location[2:]
    if not location:
        raise DbConnectionError(
            code=ErrorCode.INVALID_TARGET,
            message=f"Database target has no location: {value}",
        )
    return DatabaseTarget(scheme=scheme, location=location, raw=value)
