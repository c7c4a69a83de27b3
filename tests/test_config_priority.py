from pathlib import Path

import pytest
from typer.testing import CliRunner

from dbclient.config.config import Settings, loadSettings
from dbclient.main import app

runner = CliRunner()

_ENV = [
    "DBCLIENT_DATABASE",
    "DBCLIENT_DB_USERNAME",
    "DBCLIENT_DB_PASSWORD",
    "DBCLIENT_CONNECT_TIMEOUT",
    "DBCLIENT_LOG_DIR",
    "DBCLIENT_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_nothing_is_given():
    loaded = loadSettings(config_path=None, cli_overrides={})
    assert loaded.settings == Settings()
    assert loaded.sources_used == []


def test_priority_cli_over_env_over_config(tmp_path: Path, monkeypatch):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            "database:",
            f'  target: "sqlite:{tmp_path}/cfg.db"',
            '  username: "cfg_user"',
            "  connect_timeout: 1.5",
            "logging:",
            f'  dir: "{tmp_path}/logs"',
        ]),
        encoding="utf-8",
    )

    # ENV overrides config
    monkeypatch.setenv("DBCLIENT_DATABASE", f"sqlite:{tmp_path}/env.db")
    monkeypatch.setenv("DBCLIENT_DB_USERNAME", "env_user")

    # CLI overrides env
    result = runner.invoke(
        app,
        [
            "--config", str(cfg),
            "--run-id", "run-1",
            "--database", f"sqlite:{tmp_path}/cli.db",
            "--db-password", "cli_pass",
            "meta", "server",
        ],
    )
    assert result.exit_code == 0
    assert f"database=sqlite:{tmp_path}/cli.db db_username=env_user" in result.stdout
    assert "db_password=***" in result.stdout
    assert "cli_pass" not in result.stdout
    assert "sources=['config', 'env', 'cli']" in result.stdout
    assert (tmp_path / "logs" / "meta-server_run-1.log").exists()


def test_env_timeout_is_parsed(monkeypatch):
    monkeypatch.setenv("DBCLIENT_CONNECT_TIMEOUT", "2.5")
    loaded = loadSettings(config_path=None, cli_overrides={"connect_timeout": None})
    assert loaded.settings.connect_timeout == 2.5
    assert loaded.sources_used == ["env"]


def test_invalid_env_timeout_is_rejected(monkeypatch):
    monkeypatch.setenv("DBCLIENT_CONNECT_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="DBCLIENT_CONNECT_TIMEOUT"):
        loadSettings(config_path=None, cli_overrides={})

    result = runner.invoke(app, ["meta", "server"])
    assert result.exit_code == 2


def test_missing_config_file_is_ignored(tmp_path: Path):
    loaded = loadSettings(config_path=str(tmp_path / "absent.yml"), cli_overrides={})
    assert loaded.sources_used == []


def test_config_sections_are_read(tmp_path: Path):
    cfg = tmp_path / "config.yml"
    cfg.write_text("database:\n  connect_timeout: 2\nlogging:\n  level: DEBUG\n", encoding="utf-8")
    loaded = loadSettings(config_path=str(cfg), cli_overrides={})
    assert loaded.settings.connect_timeout == 2.0
    assert loaded.settings.log_level == "DEBUG"
    assert loaded.sources_used == ["config"]


def test_malformed_section_is_rejected(tmp_path: Path):
    cfg = tmp_path / "config.yml"
    cfg.write_text("database: sqlite:./x.db\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must be a mapping"):
        loadSettings(config_path=str(cfg), cli_overrides={})


def test_non_positive_timeout_is_rejected():
    with pytest.raises(ValueError, match="--connect-timeout"):
        loadSettings(config_path=None, cli_overrides={"connect_timeout": 0})
