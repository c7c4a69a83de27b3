from __future__ import annotations

from dbclient.domain.command import PreparedCommand
from dbclient.domain.models import Employee
from dbclient.infra.db.connection import ConnectionHandle
from dbclient.infra.db.cursor import Row


class EmployeeRepository:
    """
    Назначение/ответственность:
        Доступ к таблице employees через подготовленные выражения.
    Взаимодействия:
        Команды обновления (update_*_command) не исполняются здесь,
        а отдаются вызывающему для пакетного выполнения в транзакции.
    """

    def __init__(self, session: ConnectionHandle):
        self.session = session

    def add(self, name: str, position: str, salary: float) -> int:
        insert = self.session.prepare(
            "INSERT INTO employees(name, position, salary) VALUES (?, ?, ?)"
        ).bind_all(name, position, salary)
        insert.execute_update(self.session)
        last_id = self.session.prepare("SELECT last_insert_rowid() AS emp_id")
        with last_id.execute_query(self.session) as cursor:
            cursor.advance()
            return cursor.get_int("emp_id")

    def list_all(self) -> list[Employee]:
        query = self.session.prepare("SELECT emp_id, name, position, salary FROM employees ORDER BY emp_id")
        with query.execute_query(self.session) as cursor:
            return [_to_employee(row) for row in cursor]

    def get(self, emp_id: int) -> Employee | None:
        query = self.session.prepare(
            "SELECT emp_id, name, position, salary FROM employees WHERE emp_id = ?"
        ).bind(1, emp_id)
        with query.execute_query(self.session) as cursor:
            for row in cursor:
                return _to_employee(row)
        return None

    def update_position_command(self, emp_id: int, position: str) -> PreparedCommand:
        return self.session.prepare("UPDATE employees SET position=? WHERE emp_id=?").bind_all(position, emp_id)

    def update_salary_command(self, emp_id: int, salary: float) -> PreparedCommand:
        return self.session.prepare("UPDATE employees SET salary=? WHERE emp_id=?").bind_all(salary, emp_id)


def _to_employee(row: Row) -> Employee:
    return Employee(
        emp_id=row.get_int("emp_id"),
        name=row.get_string("name") or "",
        position=row.get_string("position") or "",
        salary=row.get_float("salary") or 0.0,
    )
