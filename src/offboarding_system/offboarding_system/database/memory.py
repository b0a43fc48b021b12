"""In-memory backend with the same transactional semantics as MySQL.

Units of work are serialized by one re-entrant lock (the equivalent of
locking every row read FOR UPDATE) and a rollback restores the snapshot
taken on entry. Stored values are frozen dataclasses, so a shallow copy of
each table is a complete snapshot.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..core.enums import ResignationStatus
from ..employees.department_model import Department
from ..employees.model import Employee
from ..resignations.model import Page, Resignation
from ..resignations.repository import ResignationCriteria
from ..resignations.workflow import get_stage


class InMemoryStore:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.resignations: dict[int, Resignation] = {}
        self.employees: dict[int, Employee] = {}
        self.departments: dict[int, Department] = {}
        self._next_resignation_id = 1

    def add_department(self, department: Department) -> Department:
        self.departments[department.dept_id] = department
        return department

    def add_employee(self, employee: Employee) -> Employee:
        self.employees[employee.employee_id] = employee
        return employee

    def next_resignation_id(self) -> int:
        rid = self._next_resignation_id
        self._next_resignation_id += 1
        return rid

    def snapshot(self) -> tuple:
        return (
            dict(self.resignations),
            dict(self.employees),
            dict(self.departments),
            self._next_resignation_id,
        )

    def restore(self, snap: tuple) -> None:
        self.resignations, self.employees, self.departments, self._next_resignation_id = (
            dict(snap[0]),
            dict(snap[1]),
            dict(snap[2]),
            snap[3],
        )


class InMemoryResignationRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def add(self, resignation: Resignation) -> int:
        rid = self._store.next_resignation_id()
        self._store.resignations[rid] = replace(resignation, resignation_id=rid)
        return rid

    def get(self, resignation_id: int, *, for_update: bool = False) -> Optional[Resignation]:
        return self._store.resignations.get(int(resignation_id))

    def get_many(self, resignation_ids: Sequence[int], *, for_update: bool = False) -> Sequence[Resignation]:
        ids = sorted({int(i) for i in resignation_ids})
        return [self._store.resignations[i] for i in ids if i in self._store.resignations]

    def update_if_unchanged(self, previous: Resignation, updated: Resignation) -> bool:
        current = self._store.resignations.get(int(previous.resignation_id))
        if current is None:
            return False
        if current.status != previous.status or current.current_level != previous.current_level:
            return False
        self._store.resignations[current.resignation_id] = updated
        return True

    def _matches(self, r: Resignation, criteria: ResignationCriteria) -> bool:
        if r.is_deleted and not criteria.include_deleted:
            return False
        if criteria.organization_id is not None and r.organization_id != criteria.organization_id:
            return False
        if criteria.employee_id is not None and r.employee_id != criteria.employee_id:
            return False
        if criteria.status is not None and r.status != criteria.status:
            return False
        if criteria.current_level is not None and r.current_level != criteria.current_level:
            return False
        for level, stage_status in criteria.stage_statuses:
            if get_stage(r.approval_flow, level).status != stage_status:
                return False

        emp = self._store.employees.get(r.employee_id)
        if criteria.department_ids is not None:
            if emp is None or emp.dept_id not in criteria.department_ids:
                return False
        if criteria.employee_name:
            if emp is None or criteria.employee_name.strip().lower() not in emp.full_name.lower():
                return False
        return True

    def search(self, criteria: ResignationCriteria, *, page: int, limit: int) -> Page:
        rows = [r for r in self._store.resignations.values() if self._matches(r, criteria)]
        rows.sort(key=lambda r: (r.created_at or datetime.min, r.resignation_id), reverse=True)
        start = (int(page) - 1) * int(limit)
        return Page(items=rows[start : start + int(limit)], total=len(rows), page=int(page), limit=int(limit))

    def list_due_for_completion(self, today: date) -> Sequence[int]:
        return sorted(
            r.resignation_id
            for r in self._store.resignations.values()
            if r.status == ResignationStatus.APPROVED
            and r.actual_last_working_date is not None
            and r.actual_last_working_date <= today
        )


class InMemoryEmployeeRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get(self, employee_id: int, *, for_update: bool = False) -> Optional[Employee]:
        return self._store.employees.get(int(employee_id))

    def get_by_user(self, user_id: int, *, for_update: bool = False) -> Optional[Employee]:
        for emp in self._store.employees.values():
            if emp.user_id == int(user_id):
                return emp
        return None

    def get_many(self, employee_ids: Sequence[int]) -> Sequence[Employee]:
        ids = sorted({int(i) for i in employee_ids})
        return [self._store.employees[i] for i in ids if i in self._store.employees]

    def display_names(self, user_ids: Sequence[int]) -> dict[int, str]:
        wanted = {int(i) for i in user_ids if i is not None}
        return {e.user_id: e.full_name for e in self._store.employees.values() if e.user_id in wanted}

    def save_projection(self, employee: Employee) -> bool:
        current = self._store.employees.get(int(employee.employee_id))
        if current is None:
            return False
        self._store.employees[current.employee_id] = replace(
            current,
            employment_status=employee.employment_status,
            is_active=employee.is_active,
            resignation_applied=employee.resignation_applied,
            resignation_applied_date=employee.resignation_applied_date,
            resignation_last_working_date=employee.resignation_last_working_date,
            resignation_approved_date=employee.resignation_approved_date,
            last_working_date=employee.last_working_date,
        )
        return True


class InMemoryDepartmentRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    def ids_managed_by(self, manager_user_id: int) -> Sequence[int]:
        return sorted(d.dept_id for d in self._store.departments.values() if d.manager_user_id == int(manager_user_id))

    def get_many(self, dept_ids: Iterable[int]) -> Sequence[Department]:
        ids = sorted({int(i) for i in dept_ids if i is not None})
        return [self._store.departments[i] for i in ids if i in self._store.departments]


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._snapshot = None
        self.resignations = InMemoryResignationRepository(store)
        self.employees = InMemoryEmployeeRepository(store)
        self.departments = InMemoryDepartmentRepository(store)

    def __enter__(self) -> "InMemoryUnitOfWork":
        self._store.lock.acquire()
        self._snapshot = self._store.snapshot()
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        try:
            if exc_type is not None:
                self._store.restore(self._snapshot)
        finally:
            self._snapshot = None
            self._store.lock.release()
        return None


def in_memory_unit_of_work_factory(store: InMemoryStore):
    return lambda: InMemoryUnitOfWork(store)
