from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeRepository(Protocol):
    """Repository interface for the employee directory.

    Note: Implementations are bound to one unit of work; `for_update` reads
    lock the row until that unit of work ends.
    """

    def get(self, employee_id: int, *, for_update: bool = False) -> Optional[Employee]:
        raise NotImplementedError

    def get_by_user(self, user_id: int, *, for_update: bool = False) -> Optional[Employee]:
        raise NotImplementedError

    def get_many(self, employee_ids: Sequence[int]) -> Sequence[Employee]:
        raise NotImplementedError

    def display_names(self, user_ids: Sequence[int]) -> dict[int, str]:
        """Map user ids (stage actors, approvers) to display names."""

        raise NotImplementedError

    def save_projection(self, employee: Employee) -> bool:
        """Write only the resignation projection fields of `employee`."""

        raise NotImplementedError
