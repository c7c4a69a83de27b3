from __future__ import annotations

from dbclient.domain.transaction import Committed, TransactionCoordinator
from dbclient.infra.employees.repository import EmployeeRepository


class PromoteEmployeeUseCase:
    """
    Назначение/ответственность:
        Атомарно меняет должность и оклад сотрудника (два UPDATE в одной транзакции).
    """

    def __init__(self, repository: EmployeeRepository, coordinator: TransactionCoordinator):
        self.repository = repository
        self.coordinator = coordinator

    def promote(self, emp_id: int, position: str, salary: float) -> Committed:
        if self.repository.get(emp_id) is None:
            raise ValueError(f"Employee not found: {emp_id}")
        commands = [
            self.repository.update_position_command(emp_id, position),
            self.repository.update_salary_command(emp_id, salary),
        ]
        return self.coordinator.execute(self.repository.session, commands)
