from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
import os
import yaml


@dataclass(frozen=True)
class Settings:
    # Database
    database: str = "sqlite:./data/employees.db"
    db_username: str | None = None
    db_password: str | None = None
    connect_timeout: float = 5.0

    # Logging
    log_dir: str = "./logs"
    log_level: str = "INFO"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


# поле Settings -> (переменная окружения, секция config.yml, ключ в секции)
_SOURCES = {
    "database": ("DBCLIENT_DATABASE", "database", "target"),
    "db_username": ("DBCLIENT_DB_USERNAME", "database", "username"),
    "db_password": ("DBCLIENT_DB_PASSWORD", "database", "password"),
    "connect_timeout": ("DBCLIENT_CONNECT_TIMEOUT", "database", "connect_timeout"),
    "log_dir": ("DBCLIENT_LOG_DIR", "logging", "dir"),
    "log_level": ("DBCLIENT_LOG_LEVEL", "logging", "level"),
}


def _read_yaml_config(path: Path) -> dict:
    """
    Назначение:
        Читает config.yml вида

            database:
              target: sqlite:./data/employees.db
              username: app
              connect_timeout: 5
            logging:
              dir: ./logs
              level: INFO

    Поведение:
        - Отсутствующий файл или не-словарь в корне: пустой конфиг.
        - Секция не-словарь: ValueError.
    """
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        return {}

    flat: dict = {}
    for key, (_env, section, name) in _SOURCES.items():
        block = data.get(section)
        if block is None:
            continue
        if not isinstance(block, dict):
            raise ValueError(f"Config section '{section}' must be a mapping in {path}")
        if block.get(name) is not None:
            flat[key] = block[name]
    return flat


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _parse_timeout(origin: str, v) -> float:
    try:
        value = float(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value {origin}={v}") from exc
    if value <= 0:
        raise ValueError(f"Timeout must be positive: {origin}={v}")
    return value


def loadSettings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    merged = {f.name: getattr(Settings(), f.name) for f in fields(Settings)}
    origins = {key: "default" for key in merged}

    # 1) config file
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")
        merged.update(cfg)
        origins.update({key: f"config:{_SOURCES[key][1]}.{_SOURCES[key][2]}" for key in cfg})

    # 2) env
    env = {key: _env_get(spec[0]) for key, spec in _SOURCES.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")
    for key, value in env.items():
        if value is not None:
            merged[key] = value
            origins[key] = _SOURCES[key][0]

    # 3) CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")
    for key, value in cli_overrides.items():
        if value is not None:
            merged[key] = value
            origins[key] = "--" + key.replace("_", "-")

    settings = Settings(
        database=str(merged["database"]),
        db_username=merged["db_username"],
        db_password=merged["db_password"],
        connect_timeout=_parse_timeout(origins["connect_timeout"], merged["connect_timeout"]),
        log_dir=str(merged["log_dir"]),
        log_level=str(merged["log_level"]),
    )
    return LoadedSettings(settings=settings, sources_used=sources)
