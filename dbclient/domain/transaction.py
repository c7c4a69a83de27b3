from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from dbclient.domain.command import PreparedCommand
from dbclient.domain.error_codes import ErrorCode
from dbclient.domain.errors import DbClientError, TransactionError
from dbclient.domain.ports.observer import NullTransactionObserver, TransactionObserverProtocol
from dbclient.domain.ports.session import SessionProtocol
from dbclient.domain.transaction_state import TransactionState


@dataclass(frozen=True)
class Committed:
    """
    Назначение:
        Успешная транзакция: число затронутых строк по каждой команде в порядке пакета.
    """

    row_counts: tuple[int, ...] = ()


@dataclass(frozen=True)
class RolledBack:
    """
    Назначение:
        Неуспешная транзакция.
    Инварианты/гарантии:
        - cause: первичная ошибка (команда, commit или переключение auto-commit).
        - rollback_error: ошибка самого отката, если он тоже не удался.
        - failed_index: 1-based номер упавшей команды; None, если упал commit
          или транзакция не началась.
    """

    cause: BaseException
    rollback_error: BaseException | None = None
    failed_index: int | None = None
    rollback_attempted: bool = True


TransactionOutcome = Union[Committed, RolledBack]


class TransactionCoordinator:
    """
    Назначение/ответственность:
        Выполняет последовательность PreparedCommand на одной сессии как единое целое.
    Инварианты/гарантии:
        - Команды исполняются строго в переданном порядке, до первой ошибки.
        - Успех -> commit; любая ошибка (включая ошибку commit) -> rollback.
        - Ошибка rollback не подменяет первичную причину, а прикладывается
          к ней как suppressed.
        - Флаг auto-commit после вызова равен флагу до вызова при любом исходе.
        - Пустой пакет -> Committed(()) без commit/rollback.
    Взаимодействия:
        Сессию берёт во временное пользование (borrow), не владеет ею и не закрывает.
        О переходах состояний сообщает наблюдателю.
    """

    def __init__(self, observer: TransactionObserverProtocol | None = None):
        self.observer = observer or NullTransactionObserver()
        self.state = TransactionState.IDLE

    def execute(self, session: SessionProtocol, commands: Iterable[PreparedCommand]) -> Committed:
        """
        Контракт (вход/выход):
            - Вход: сессия и команды в порядке исполнения.
            - Выход: Committed с числом строк по каждой команде.
        Ошибки/исключения:
            TransactionError — после отката и восстановления auto-commit;
            первичная причина в __cause__.
            Прочие исключения (не ошибки БД) — после отката пробрасываются как есть.
        """
        batch = list(commands)
        self._enter(TransactionState.IDLE)
        try:
            with session.borrow():
                try:
                    previous = session.set_auto_commit(False)
                except DbClientError as exc:
                    raise TransactionError(
                        code=ErrorCode.AUTOCOMMIT_TOGGLE_FAILED,
                        message=f"Failed to disable auto-commit: {exc}",
                    ) from exc
                self._enter(TransactionState.AUTOCOMMIT_DISABLED)

                with self._auto_commit_restored(session, previous):
                    return self._run_batch(session, batch)
        finally:
            self._enter(TransactionState.DONE)

    def attempt(self, session: SessionProtocol, commands: Iterable[PreparedCommand]) -> TransactionOutcome:
        """
        Контракт (вход/выход):
            - То же, что execute(), но ошибка транзакции возвращается значением RolledBack.
        Ошибки/исключения:
            Пробрасывает только ошибки, не являющиеся TransactionError, и сбой
            восстановления auto-commit после уже зафиксированной транзакции.
        """
        try:
            return self.execute(session, commands)
        except TransactionError as exc:
            if exc.details.get("committed"):
                raise
            return RolledBack(
                cause=exc.cause if exc.cause is not None else exc,
                rollback_error=exc.suppressed[0] if exc.suppressed else None,
                failed_index=exc.failed_index,
                rollback_attempted=exc.rollback_attempted,
            )

    def _run_batch(self, session: SessionProtocol, batch: list[PreparedCommand]) -> Committed:
        self._enter(TransactionState.EXECUTING)
        row_counts: list[int] = []
        index = 0
        committing = False
        try:
            for index, command in enumerate(batch, start=1):
                row_count = command.execute_update(session)
                row_counts.append(row_count)
                self.observer.on_command_executed(index, row_count)
            if batch:
                committing = True
                self._enter(TransactionState.COMMITTING)
                session.commit()
        except DbClientError as exc:
            rollback_error = self._rollback(session)
            self.observer.on_rolled_back(exc, rollback_error)
            failed_index = None if committing else index
            error = TransactionError(
                code=ErrorCode.TRANSACTION_FAILED,
                message=_failure_message(exc, failed_index),
                failed_index=failed_index,
                rollback_attempted=True,
            )
            if rollback_error is not None:
                error.add_suppressed(rollback_error)
            raise error from exc
        except BaseException as exc:
            rollback_error = self._rollback(session)
            self.observer.on_rolled_back(exc, rollback_error)
            if rollback_error is not None:
                exc.add_note(f"rollback failed: {rollback_error}")
            raise

        result = tuple(row_counts)
        self.observer.on_committed(result)
        return Committed(row_counts=result)

    def _rollback(self, session: SessionProtocol) -> DbClientError | None:
        self._enter(TransactionState.ROLLING_BACK)
        try:
            session.rollback()
        except DbClientError as exc:
            return exc
        return None

    @contextmanager
    def _auto_commit_restored(self, session: SessionProtocol, previous: bool) -> Iterator[None]:
        try:
            yield
        except BaseException as exc:
            try:
                session.set_auto_commit(previous)
            except DbClientError as restore_error:
                if isinstance(exc, TransactionError):
                    exc.add_suppressed(restore_error)
                else:
                    exc.add_note(f"auto-commit restore failed: {restore_error}")
            else:
                self._enter(TransactionState.AUTOCOMMIT_RESTORED)
            raise

        try:
            session.set_auto_commit(previous)
        except DbClientError as exc:
            raise TransactionError(
                code=ErrorCode.AUTOCOMMIT_TOGGLE_FAILED,
                message=f"Transaction committed but auto-commit was not restored: {exc}",
                details={"committed": True},
            ) from exc
        self._enter(TransactionState.AUTOCOMMIT_RESTORED)

    def _enter(self, state: TransactionState) -> None:
        self.state = state
        self.observer.on_state(state)


def _failure_message(exc: BaseException, failed_index: int | None) -> str:
    if failed_index is None:
        return f"Transaction rolled back after commit failure: {exc}"
    return f"Transaction rolled back, command {failed_index} failed: {exc}"
