from pathlib import Path

from typer.testing import CliRunner

from dbclient.main import app

runner = CliRunner()


def _base_args(tmp_path: Path) -> list[str]:
    return [
        "--database", f"sqlite:{tmp_path}/data/employees.db",
        "--log-dir", str(tmp_path / "logs"),
        "--run-id", "smoke",
    ]


def _invoke(tmp_path: Path, *args: str):
    return runner.invoke(app, [*_base_args(tmp_path), *args])


def test_help_shows_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "init-db" in result.stdout
    assert "employees" in result.stdout
    assert "meta" in result.stdout


def test_promote_requires_options(tmp_path: Path):
    result = _invoke(tmp_path, "employees", "promote", "--id", "1")
    assert result.exit_code == 2


def test_employee_flow(tmp_path: Path):
    result = _invoke(tmp_path, "init-db")
    assert result.exit_code == 0
    assert "schema_version=1" in result.stdout
    assert (tmp_path / "data" / "employees.db").exists()

    result = _invoke(tmp_path, "employees", "add", "--name", "John", "--position", "developer", "--salary", "2000")
    assert result.exit_code == 0
    assert "emp_id=1" in result.stdout

    result = _invoke(tmp_path, "employees", "promote", "--id", "1", "--position", "lead developer", "--salary", "3000")
    assert result.exit_code == 0
    assert "committed row_counts=[1, 1]" in result.stdout

    result = _invoke(tmp_path, "employees", "list")
    assert result.exit_code == 0
    assert "emp_id=1 name=John position=lead developer salary=3000.0" in result.stdout
    assert "total=1" in result.stdout

    log_text = (tmp_path / "logs" / "employees-promote_smoke.log").read_text(encoding="utf-8")
    assert "Rows updated: 1 (command 2)" in log_text
    assert "Transaction committed" in log_text


def test_promote_unknown_employee_exits_2(tmp_path: Path):
    assert _invoke(tmp_path, "init-db").exit_code == 0
    result = _invoke(tmp_path, "employees", "promote", "--id", "5", "--position", "x", "--salary", "1")
    assert result.exit_code == 2
    assert "Employee not found: 5" in result.output


def test_meta_commands(tmp_path: Path):
    assert _invoke(tmp_path, "init-db").exit_code == 0

    result = _invoke(tmp_path, "meta", "tables")
    assert result.exit_code == 0
    assert "employees" in result.stdout
    assert "total=2" in result.stdout

    result = _invoke(tmp_path, "meta", "columns", "--table", "employees")
    assert result.exit_code == 0
    assert "column_count=4" in result.stdout
    assert "1: emp_id" in result.stdout
    assert "4: salary" in result.stdout

    result = _invoke(tmp_path, "meta", "columns", "--table", "nope")
    assert result.exit_code == 2


def test_unknown_driver_exits_2(tmp_path: Path):
    result = runner.invoke(
        app,
        ["--database", "mysql://localhost:3306/jdbc", "--log-dir", str(tmp_path / "logs"), "meta", "server"],
    )
    assert result.exit_code == 2
    assert "connection failed" in result.output


def test_invalid_log_level_exits_2(tmp_path: Path):
    result = _invoke(tmp_path, "--log-level", "LOUD", "meta", "server")
    assert result.exit_code == 2
