from __future__ import annotations

import logging
import uuid
from pathlib import Path

import typer

from dbclient.common.sanitize import maskSecret, truncateText
from dbclient.config.config import Settings, loadSettings
from dbclient.domain.errors import DbClientError, DbConnectionError, TransactionError
from dbclient.domain.models import Credentials
from dbclient.domain.transaction import TransactionCoordinator
from dbclient.infra.db.connection import ConnectionHandle, acquire
from dbclient.infra.db.target import parseTarget
from dbclient.infra.employees.repository import EmployeeRepository
from dbclient.infra.employees.schema import ensure_employees_schema
from dbclient.infra.logging.setup import closeLogger, createCommandLogger, logEvent, mapLogLevel
from dbclient.infra.logging.transaction_observer import LoggingTransactionObserver
from dbclient.usecases.metadata_usecase import MetadataUseCase
from dbclient.usecases.promote_usecase import PromoteEmployeeUseCase

app = typer.Typer(no_args_is_help=True, add_completion=False)
employeesApp = typer.Typer(no_args_is_help=True)
metaApp = typer.Typer(no_args_is_help=True)

def ensureDir(path: str) -> None:
    """
    Назначение:
        Создаёт каталог, если он отсутствует.
    """
    Path(path).mkdir(parents=True, exist_ok=True)

def ensureDatabaseDir(settings: Settings) -> None:
    """
    Назначение:
        Для файловой SQLite-базы создаёт родительский каталог файла.

    Поведение:
        - Неверная строка подключения здесь не проверяется: ошибку выдаст
          открытие соединения в команде.
    """
    try:
        target = parseTarget(settings.database)
    except DbConnectionError:
        return
    if target.scheme != "sqlite" or target.location.startswith(":memory:") or target.location.startswith("file:"):
        return
    ensureDir(str(Path(target.location).parent))

def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов).
    """
    typer.echo(
        f"run_id={runId} command={command} "
        f"database={settings.database} db_username={settings.db_username} "
        f"db_password={maskSecret(settings.db_password)} sources={sources} "
        f"log_level={settings.log_level}"
    )

def runWithConnection(ctx: typer.Context, commandName: str, runner) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - открывает соединение и гарантированно закрывает его
        - переводит ошибки в exit code

    Входные данные:
        ctx: typer.Context
        commandName: str
        runner: callable(handle, logger) -> int

    Поведение:
        - Ошибка подключения или неверные аргументы: exit code 2.
        - Ошибка БД/транзакции: exit code 1.
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    logger, _logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
        secrets=(settings.db_password,),
    )
    credentials = Credentials(username=settings.db_username, password=settings.db_password)

    exitCode: int | None = None

    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)

        try:
            with acquire(settings.database, credentials, timeout=settings.connect_timeout) as handle:
                logEvent(logger, logging.INFO, runId, "db", f"Connected: {handle.target.scheme}")
                exitCode = runner(handle, logger)
        except DbConnectionError as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Connection failed: {exc.to_dict()}")
            typer.echo(f"ERROR: connection failed: {exc}", err=True)
            exitCode = 2
        except ValueError as exc:
            logEvent(logger, logging.ERROR, runId, "core", str(exc))
            typer.echo(f"ERROR: {exc}", err=True)
            exitCode = 2
        except TransactionError as exc:
            logEvent(logger, logging.ERROR, runId, "tx", f"Transaction failed: {exc.to_dict()}")
            typer.echo(f"ERROR: transaction rolled back: {truncateText(str(exc.cause or exc))}", err=True)
            for secondary in exc.suppressed:
                typer.echo(f"ERROR: suppressed: {truncateText(str(secondary))}", err=True)
            exitCode = 1
        except DbClientError as exc:
            logEvent(logger, logging.ERROR, runId, "db", f"Command failed: {exc.to_dict()}")
            typer.echo(f"ERROR: {truncateText(str(exc))}", err=True)
            exitCode = 1

    finally:
        logEvent(logger, logging.INFO, runId, "core", f"Command finished exit_code={exitCode or 0}")
        closeLogger(logger)

        if exitCode:
            raise typer.Exit(code=exitCode)

def buildCoordinator(ctx: typer.Context, logger: logging.Logger) -> TransactionCoordinator:
    return TransactionCoordinator(LoggingTransactionObserver(logger, ctx.obj["runId"]))

@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    database: str | None = typer.Option(None, "--database", help="Database target, e.g. sqlite:./data/employees.db"),
    dbUsername: str | None = typer.Option(None, "--db-username", help="Database username"),
    dbPassword: str | None = typer.Option(None, "--db-password", help="Database password (avoid; use env/file)"),
    dbPasswordFile: str | None = typer.Option(None, "--db-password-file", help="Read database password from file"),
    connectTimeout: float | None = typer.Option(None, "--connect-timeout", help="Connect/busy timeout in seconds"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталог логов и каталог файла БД
        - сохраняет всё в ctx.obj для подкоманд
    """
    if dbPasswordFile and not dbPassword:
        p = Path(dbPasswordFile)
        if not p.exists() or not p.is_file():
            typer.echo(f"ERROR: db-password-file not found: {dbPasswordFile}", err=True)
            raise typer.Exit(code=2)
        dbPassword = p.read_text(encoding="utf-8").strip()

    if not runId:
        runId = str(uuid.uuid4())

    cliOverrides = {
        "database": database,
        "db_username": dbUsername,
        "db_password": dbPassword,
        "connect_timeout": connectTimeout,
        "log_dir": logDir,
        "log_level": logLevel,
    }
    try:
        loaded = loadSettings(config_path=config, cli_overrides=cliOverrides)
        mapLogLevel(loaded.settings.log_level)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDatabaseDir(loaded.settings)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }

@app.command("init-db")
def initDb(ctx: typer.Context):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        version = ensure_employees_schema(handle, buildCoordinator(ctx, logger))
        typer.echo(f"schema_version={version}")
        return 0

    runWithConnection(ctx, "init-db", execute)

@employeesApp.command("add")
def employeesAdd(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", help="Employee name"),
    position: str = typer.Option(..., "--position", help="Employee position"),
    salary: float = typer.Option(..., "--salary", help="Employee salary"),
):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        empId = EmployeeRepository(handle).add(name, position, salary)
        logEvent(logger, logging.INFO, ctx.obj["runId"], "employees", f"Employee inserted: emp_id={empId}")
        typer.echo(f"emp_id={empId}")
        return 0

    runWithConnection(ctx, "employees-add", execute)

@employeesApp.command("list")
def employeesList(ctx: typer.Context):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        employees = EmployeeRepository(handle).list_all()
        for emp in employees:
            typer.echo(f"emp_id={emp.emp_id} name={emp.name} position={emp.position} salary={emp.salary}")
        typer.echo(f"total={len(employees)}")
        return 0

    runWithConnection(ctx, "employees-list", execute)

@employeesApp.command("promote")
def employeesPromote(
    ctx: typer.Context,
    empId: int = typer.Option(..., "--id", help="Employee id"),
    position: str = typer.Option(..., "--position", help="New position"),
    salary: float = typer.Option(..., "--salary", help="New salary"),
):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        usecase = PromoteEmployeeUseCase(EmployeeRepository(handle), buildCoordinator(ctx, logger))
        outcome = usecase.promote(empId, position, salary)
        typer.echo(f"committed row_counts={list(outcome.row_counts)}")
        return 0

    runWithConnection(ctx, "employees-promote", execute)

@metaApp.command("tables")
def metaTables(
    ctx: typer.Context,
    pattern: str = typer.Option("%", "--pattern", help="LIKE pattern for table names"),
):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        tables = MetadataUseCase(handle).tables(pattern)
        for table in tables:
            typer.echo(table)
        typer.echo(f"total={len(tables)}")
        return 0

    runWithConnection(ctx, "meta-tables", execute)

@metaApp.command("columns")
def metaColumns(
    ctx: typer.Context,
    table: str = typer.Option(..., "--table", help="Table name"),
):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        meta = MetadataUseCase(handle).columns(table)
        typer.echo(f"column_count={meta.column_count}")
        for index in range(1, meta.column_count + 1):
            typer.echo(f"{index}: {meta.column_name(index)}")
        return 0

    runWithConnection(ctx, "meta-columns", execute)

@metaApp.command("server")
def metaServer(ctx: typer.Context):
    def execute(handle: ConnectionHandle, logger: logging.Logger) -> int:
        info = handle.server_info()
        typer.echo(f"driver={info.driver} version={info.version}")
        return 0

    runWithConnection(ctx, "meta-server", execute)

app.add_typer(employeesApp, name="employees")
app.add_typer(metaApp, name="meta")
