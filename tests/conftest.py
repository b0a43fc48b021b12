from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.offboarding_system.offboarding_system.container import build_memory_container
from src.offboarding_system.offboarding_system.core.enums import ApprovalLevel, Role
from src.offboarding_system.offboarding_system.database.memory import InMemoryStore
from src.offboarding_system.offboarding_system.employees.department_model import Department
from src.offboarding_system.offboarding_system.employees.model import Employee
from src.offboarding_system.offboarding_system.resignations.model import Actor

ORG = 1
OTHER_ORG = 2

# user ids
MANAGER_ENG = 101
MANAGER_FIN = 102
HR_USER = 103
ADMIN_USER = 104
LENA = 201  # Engineering, 30 day notice
TOMAS = 202  # Engineering, no notice period on record
PRIYA = 203  # Finance, 45 day notice
OUTSIDER = 901  # other organization


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int) -> None:
        self.now = self.now + timedelta(days=days)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def store():
    s = InMemoryStore()
    s.add_department(Department(dept_id=1, dept_name="Engineering", organization_id=ORG, manager_user_id=MANAGER_ENG))
    s.add_department(Department(dept_id=2, dept_name="Finance", organization_id=ORG, manager_user_id=MANAGER_FIN))
    s.add_department(Department(dept_id=3, dept_name="People", organization_id=ORG))
    s.add_department(Department(dept_id=9, dept_name="Elsewhere", organization_id=OTHER_ORG, manager_user_id=OUTSIDER))

    s.add_employee(Employee(employee_id=1, user_id=MANAGER_ENG, organization_id=ORG, dept_id=1, full_name="Maya Lead", notice_period_days=60))
    s.add_employee(Employee(employee_id=2, user_id=MANAGER_FIN, organization_id=ORG, dept_id=2, full_name="Omar Lead", notice_period_days=60))
    s.add_employee(Employee(employee_id=3, user_id=HR_USER, organization_id=ORG, dept_id=3, full_name="Hana Partner"))
    s.add_employee(Employee(employee_id=4, user_id=ADMIN_USER, organization_id=ORG, dept_id=3, full_name="Ari Admin"))
    s.add_employee(Employee(employee_id=5, user_id=LENA, organization_id=ORG, dept_id=1, full_name="Lena Developer", notice_period_days=30))
    s.add_employee(Employee(employee_id=6, user_id=TOMAS, organization_id=ORG, dept_id=1, full_name="Tomas Developer"))
    s.add_employee(Employee(employee_id=7, user_id=PRIYA, organization_id=ORG, dept_id=2, full_name="Priya Accountant", notice_period_days=45))
    s.add_employee(Employee(employee_id=9, user_id=OUTSIDER, organization_id=OTHER_ORG, dept_id=9, full_name="Otto Outsider"))
    return s


@pytest.fixture
def container(store, clock):
    return build_memory_container(store, clock=clock)


@pytest.fixture
def service(container):
    return container.resignation_service


@pytest.fixture
def queries(container):
    return container.resignation_queries


def actor(user_id: int, role: Role, organization_id: int = ORG) -> Actor:
    return Actor(actor_id=user_id, role=role, organization_id=organization_id)


@pytest.fixture
def actors():
    return {
        "lena": actor(LENA, Role.EMPLOYEE),
        "tomas": actor(TOMAS, Role.EMPLOYEE),
        "priya": actor(PRIYA, Role.EMPLOYEE),
        "manager": actor(MANAGER_ENG, Role.MANAGER),
        "finance_manager": actor(MANAGER_FIN, Role.MANAGER),
        "hr": actor(HR_USER, Role.HR),
        "admin": actor(ADMIN_USER, Role.ADMIN),
        "outsider_admin": actor(OUTSIDER, Role.ADMIN, OTHER_ORG),
    }


@pytest.fixture
def approve_through(service, actors):
    """Approve a resignation at every level up to and including `last`."""

    approvers = {
        ApprovalLevel.MANAGER: "manager",
        ApprovalLevel.HR: "hr",
        ApprovalLevel.ADMIN: "admin",
    }

    def _approve(resignation_id: int, last: ApprovalLevel = ApprovalLevel.ADMIN, *, manager: str = "manager", **admin_kwargs):
        res = None
        for level in (ApprovalLevel.MANAGER, ApprovalLevel.HR, ApprovalLevel.ADMIN):
            who = manager if level == ApprovalLevel.MANAGER else approvers[level]
            kwargs = admin_kwargs if level == ApprovalLevel.ADMIN else {}
            res = service.approve(actor=actors[who], resignation_id=resignation_id, level=level, **kwargs)
            if level == last:
                break
        return res

    return _approve
