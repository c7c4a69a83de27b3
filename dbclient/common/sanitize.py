import re

_WHITESPACE_RE = re.compile(r"\s+")


def maskSecret(value: str | None) -> str | None:
    """
    Назначение:
        Маскирует пароль БД для вывода в заголовок запуска и логи.
        Пустая строка тоже считается заданным секретом.
    """
    if value is None:
        return None
    return "***"


def truncateText(value: str | None, limit: int = 500) -> str | None:
    """
    Назначение:
        Готовит сообщение драйвера или текст SQL к выводу в одну строку.

    Поведение:
        - Переводы строк и отступы многострочного SQL схлопываются в пробел.
        - Длина ограничивается limit, обрезанный хвост заменяется на '...'.
    """
    if value is None:
        return None
    text = _WHITESPACE_RE.sub(" ", value).strip()
    if len(text) <= limit:
        return text
    suffix = "..." if limit > 3 else ""
    return text[: limit - len(suffix)] + suffix
