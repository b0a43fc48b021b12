from __future__ import annotations

from typing import Protocol, Sequence

from .department_model import Department


class DepartmentRepository(Protocol):
    def ids_managed_by(self, manager_user_id: int) -> Sequence[int]:
        raise NotImplementedError

    def get_many(self, dept_ids: Sequence[int]) -> Sequence[Department]:
        raise NotImplementedError
