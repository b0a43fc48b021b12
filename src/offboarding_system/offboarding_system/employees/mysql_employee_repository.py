from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import EmploymentStatus
from ..database.mysql_base import fetchall, fetchone, placeholders
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = """
    employee_id, user_id, organization_id, dept_id, full_name, notice_period_days,
    employment_status, is_active, resignation_applied, resignation_applied_date,
    resignation_last_working_date, resignation_approved_date, last_working_date
"""


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        user_id=int(r["user_id"]),
        organization_id=int(r["organization_id"]),
        dept_id=r.get("dept_id"),
        full_name=r["full_name"],
        notice_period_days=r.get("notice_period_days"),
        employment_status=EmploymentStatus(r["employment_status"]),
        is_active=bool(r.get("is_active", True)),
        resignation_applied=bool(r.get("resignation_applied", False)),
        resignation_applied_date=r.get("resignation_applied_date"),
        resignation_last_working_date=r.get("resignation_last_working_date"),
        resignation_approved_date=r.get("resignation_approved_date"),
        last_working_date=r.get("last_working_date"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, cur):
        self._cur = cur

    def get(self, employee_id: int, *, for_update: bool = False) -> Optional[Employee]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s{lock}", (int(employee_id),))
        row = fetchone(self._cur)
        return _to_employee(row) if row else None

    def get_by_user(self, user_id: int, *, for_update: bool = False) -> Optional[Employee]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE user_id=%s{lock}", (int(user_id),))
        row = fetchone(self._cur)
        return _to_employee(row) if row else None

    def get_many(self, employee_ids: Sequence[int]) -> Sequence[Employee]:
        ids = sorted({int(i) for i in employee_ids})
        if not ids:
            return []
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM employees WHERE employee_id IN ({placeholders(ids)})",
            tuple(ids),
        )
        return [_to_employee(r) for r in fetchall(self._cur)]

    def display_names(self, user_ids: Sequence[int]) -> dict[int, str]:
        ids = sorted({int(i) for i in user_ids if i is not None})
        if not ids:
            return {}
        self._cur.execute(
            f"SELECT user_id, full_name FROM employees WHERE user_id IN ({placeholders(ids)})",
            tuple(ids),
        )
        return {int(r["user_id"]): r["full_name"] for r in fetchall(self._cur)}

    def save_projection(self, employee: Employee) -> bool:
        self._cur.execute(
            """
            UPDATE employees
            SET employment_status=%s, is_active=%s,
                resignation_applied=%s, resignation_applied_date=%s,
                resignation_last_working_date=%s, resignation_approved_date=%s,
                last_working_date=%s
            WHERE employee_id=%s
            """,
            (
                employee.employment_status.value,
                1 if employee.is_active else 0,
                1 if employee.resignation_applied else 0,
                employee.resignation_applied_date,
                employee.resignation_last_working_date,
                employee.resignation_approved_date,
                employee.last_working_date,
                int(employee.employee_id),
            ),
        )
        # rowcount is the matched-row count (FOUND_ROWS client flag).
        return self._cur.rowcount > 0
