from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок клиента БД.
    """

    TARGET_UNREACHABLE = "TARGET_UNREACHABLE"
    DRIVER_UNAVAILABLE = "DRIVER_UNAVAILABLE"
    INVALID_TARGET = "INVALID_TARGET"
    CONNECTION_CLOSED = "CONNECTION_CLOSED"

    SYNTAX_ERROR = "SYNTAX_ERROR"
    BIND_POSITION_OUT_OF_RANGE = "BIND_POSITION_OUT_OF_RANGE"
    BIND_UNSUPPORTED_VALUE = "BIND_UNSUPPORTED_VALUE"
    PARAMETER_COUNT_MISMATCH = "PARAMETER_COUNT_MISMATCH"
    PARAMETER_UNBOUND = "PARAMETER_UNBOUND"

    EXECUTION_FAILED = "EXECUTION_FAILED"
    UNEXPECTED_RESULT_KIND = "UNEXPECTED_RESULT_KIND"

    NO_ACTIVE_TRANSACTION = "NO_ACTIVE_TRANSACTION"
    COMMIT_FAILED = "COMMIT_FAILED"
    ROLLBACK_FAILED = "ROLLBACK_FAILED"
    AUTOCOMMIT_TOGGLE_FAILED = "AUTOCOMMIT_TOGGLE_FAILED"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    CONNECTION_BUSY = "CONNECTION_BUSY"

    CURSOR_CLOSED = "CURSOR_CLOSED"
    CURSOR_MOVED = "CURSOR_MOVED"
    CURSOR_NOT_POSITIONED = "CURSOR_NOT_POSITIONED"
    UNKNOWN_COLUMN = "UNKNOWN_COLUMN"
    COLUMN_TYPE_MISMATCH = "COLUMN_TYPE_MISMATCH"
