from __future__ import annotations

from typing import Sequence

from ..database.mysql_base import fetchall, placeholders
from .department_model import Department
from .department_repository import DepartmentRepository


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, cur):
        self._cur = cur

    def ids_managed_by(self, manager_user_id: int) -> Sequence[int]:
        self._cur.execute(
            "SELECT dept_id FROM departments WHERE manager_user_id=%s ORDER BY dept_id",
            (int(manager_user_id),),
        )
        return [int(r["dept_id"]) for r in fetchall(self._cur)]

    def get_many(self, dept_ids: Sequence[int]) -> Sequence[Department]:
        ids = sorted({int(i) for i in dept_ids if i is not None})
        if not ids:
            return []
        self._cur.execute(
            f"""
            SELECT dept_id, dept_name, organization_id, manager_user_id
            FROM departments
            WHERE dept_id IN ({placeholders(ids)})
            """,
            tuple(ids),
        )
        return [
            Department(
                dept_id=int(r["dept_id"]),
                dept_name=r["dept_name"],
                organization_id=int(r["organization_id"]),
                manager_user_id=r.get("manager_user_id"),
            )
            for r in fetchall(self._cur)
        ]
