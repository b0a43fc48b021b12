from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalLevel, ResignationStatus, StageStatus
from .model import Page, Resignation


@dataclass(frozen=True)
class ResignationCriteria:
    """Filter used by the query layer; every field left as None is ignored."""

    organization_id: Optional[int] = None
    employee_id: Optional[int] = None
    department_ids: Optional[tuple[int, ...]] = None
    status: Optional[ResignationStatus] = None
    current_level: Optional[ApprovalLevel] = None
    stage_statuses: tuple[tuple[ApprovalLevel, StageStatus], ...] = ()
    employee_name: Optional[str] = None
    include_deleted: bool = False


class ResignationRepository(Protocol):
    def add(self, resignation: Resignation) -> int:
        raise NotImplementedError

    def get(self, resignation_id: int, *, for_update: bool = False) -> Optional[Resignation]:
        raise NotImplementedError

    def get_many(self, resignation_ids: Sequence[int], *, for_update: bool = False) -> Sequence[Resignation]:
        """Rows come back ordered by id; locking follows the same order."""

        raise NotImplementedError

    def update_if_unchanged(self, previous: Resignation, updated: Resignation) -> bool:
        """Write `updated` only if the stored row still has `previous`'s status and level."""

        raise NotImplementedError

    def search(self, criteria: ResignationCriteria, *, page: int, limit: int) -> Page:
        raise NotImplementedError

    def list_due_for_completion(self, today: date) -> Sequence[int]:
        raise NotImplementedError
