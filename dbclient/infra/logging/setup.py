from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)s runId=%(runId)s cmd=%(command)s comp=%(component)s msg=%(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

_LEVELS = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


class CommandContextFilter(logging.Filter):
    """
    Назначение:
        Дополняет LogRecord полями runId/command/component и вычищает
        известные секреты (пароль БД) из текста сообщения.

    Поведение:
        - Поля, переданные через extra, не перезаписываются.
        - Секрет заменяется на '***' уже после подстановки аргументов.
    """

    def __init__(self, runId: str, command: str, secrets: Iterable[str | None] = (), defaultComponent: str = "core"):
        super().__init__()
        self.runId = runId
        self.command = command
        self.defaultComponent = defaultComponent
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "runId"):
            record.runId = self.runId
        if not hasattr(record, "command"):
            record.command = self.command
        if not hasattr(record, "component"):
            record.component = self.defaultComponent
        if self.secrets:
            message = record.getMessage()
            for secret in self.secrets:
                message = message.replace(secret, "***")
            record.msg = message
            record.args = None
        return True


def mapLogLevel(levelName: str) -> int:
    """
    Назначение:
        Преобразует строковый уровень (ERROR|WARN|INFO|DEBUG) в logging level.

    Ошибки:
        ValueError — неизвестный уровень.
    """
    value = (levelName or "").strip().upper()
    if value not in _LEVELS:
        raise ValueError(f"Unsupported log level: {levelName}")
    return _LEVELS[value]


def createCommandLogger(
    commandName: str,
    logDir: str,
    runId: str,
    logLevel: str,
    secrets: Iterable[str | None] = (),
) -> tuple[logging.Logger, str]:
    """
    Назначение:
        Логгер одной команды CLI с собственным файлом {logDir}/{commandName}_{runId}.log.

    Выходные данные:
        (logger, logFilePath)
    """
    Path(logDir).mkdir(parents=True, exist_ok=True)
    logFilePath = str(Path(logDir) / f"{commandName}_{runId}.log")

    logger = logging.getLogger(f"dbclient.{commandName}.{runId}")
    closeLogger(logger)
    logger.propagate = False
    level = mapLogLevel(logLevel)
    logger.setLevel(level)

    fileHandler = logging.FileHandler(logFilePath, encoding="utf-8")
    fileHandler.setLevel(level)
    fileHandler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    fileHandler.addFilter(CommandContextFilter(runId=runId, command=commandName, secrets=secrets))
    logger.addHandler(fileHandler)

    return logger, logFilePath


def closeLogger(logger: logging.Logger) -> None:
    # файл лога должен быть закрыт до выхода из команды
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def logEvent(logger: logging.Logger, level: int, runId: str, component: str, message: str) -> None:
    logger.log(level, message, extra={"runId": runId, "component": component})
