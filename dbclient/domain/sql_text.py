from __future__ import annotations

from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import StatementSyntaxError

_QUOTES = {"'": "'", '"': '"', "`": "`", "[": "]"}
_NAMED_PREFIXES = (":", "@", "$")


def count_placeholders(text: str) -> int:
    """
    Назначение:
        Подсчитывает позиционные плейсхолдеры '?' в тексте SQL.

    Входные данные:
        text: str
            Текст одного SQL-выражения.

    Выходные данные:
        int
            Количество '?' вне строковых литералов, идентификаторов в кавычках
            и комментариев.

    Ошибки:
        StatementSyntaxError
            - незакрытый литерал или блочный комментарий;
            - нумерованные (?1) или именованные (:name, @name, $name) плейсхолдеры.

    Алгоритм:
        - Посимвольный проход с пропуском литералов ('' внутри литерала
          считается экранированной кавычкой) и комментариев -- / /* */.
    """
    count = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if ch in _QUOTES:
            i = _skip_quoted(text, i, _QUOTES[ch])
            continue

        if ch == "-" and text.startswith("--", i):
            end = text.find("\n", i)
            i = n if end < 0 else end + 1
            continue

        if ch == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end < 0:
                raise _syntax_error("Unterminated block comment", text)
            i = end + 2
            continue

        if ch == "?":
            if i + 1 < n and text[i + 1].isdigit():
                raise _syntax_error("Numbered placeholders are not supported, use '?'", text)
            count += 1
            i += 1
            continue

        if ch in _NAMED_PREFIXES and i + 1 < n and _is_identifier_start(text[i + 1]):
            raise _syntax_error("Named placeholders are not supported, use '?'", text)

        i += 1
    return count


def is_blank(text: str | None) -> bool:
    if text is None:
        return True
    stripped = text.strip().rstrip(";").strip()
    return stripped == ""


def _skip_quoted(text: str, start: int, closing: str) -> int:
    i = start + 1
    n = len(text)
    while i < n:
        if text[i] == closing:
            # удвоенная кавычка внутри литерала
            if closing != "]" and i + 1 < n and text[i + 1] == closing:
                i += 2
                continue
            return i + 1
        i += 1
    raise _syntax_error("Unterminated quoted literal", text)


def _is_identifier_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def _syntax_error(message: str, text: str) -> StatementSyntaxError:
    return StatementSyntaxError(
        code=ErrorCode.SYNTAX_ERROR,
        message=message,
        details={"statement": text},
    )
