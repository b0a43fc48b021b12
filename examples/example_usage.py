"""Example: drive the resignation workflow through the service layer (no Flask, no MySQL).

Walks one resignation from apply to completion on the in-memory backend.
"""

import logging
from datetime import date, datetime

from src.offboarding_system.offboarding_system.common.logging_utils import configure_logging
from src.offboarding_system.offboarding_system.container import build_memory_container
from src.offboarding_system.offboarding_system.core.enums import ApprovalLevel, Role
from src.offboarding_system.offboarding_system.database.memory import InMemoryStore
from src.offboarding_system.offboarding_system.employees.department_model import Department
from src.offboarding_system.offboarding_system.employees.model import Employee
from src.offboarding_system.offboarding_system.resignations.model import Actor

logger = logging.getLogger("example_usage")


def main():
    configure_logging("INFO")

    store = InMemoryStore()
    store.add_department(Department(dept_id=1, dept_name="Engineering", organization_id=1, manager_user_id=101))
    store.add_employee(Employee(employee_id=1, user_id=201, organization_id=1, dept_id=1, full_name="Lena Developer"))

    container = build_memory_container(store, clock=lambda: datetime(2026, 3, 1, 9, 0))
    service = container.resignation_service

    employee = Actor(actor_id=201, role=Role.EMPLOYEE, organization_id=1)
    res = service.apply(actor=employee, resignation_date=date(2026, 3, 1), reason="Relocating")

    for level, actor in (
        (ApprovalLevel.MANAGER, Actor(actor_id=101, role=Role.MANAGER, organization_id=1)),
        (ApprovalLevel.HR, Actor(actor_id=103, role=Role.HR, organization_id=1)),
        (ApprovalLevel.ADMIN, Actor(actor_id=104, role=Role.ADMIN, organization_id=1)),
    ):
        res = service.approve(actor=actor, resignation_id=res.resignation_id, level=level)

    report = container.reconciliation.run(res.actual_last_working_date)
    logger.info("Sweep completed %s, employee now %s", report.processed, store.employees[1])


if __name__ == "__main__":
    main()
