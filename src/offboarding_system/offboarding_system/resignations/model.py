from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import ApprovalLevel, ResignationStatus, Role, StageStatus


@dataclass(frozen=True)
class Actor:
    """Identity supplied per call by the authentication layer (trusted as is)."""

    actor_id: int
    role: Role
    organization_id: int


@dataclass(frozen=True)
class Stage:
    """One approval decision point (manager, hr or admin)."""

    status: StageStatus = StageStatus.PENDING
    actor_id: Optional[int] = None
    acted_at: Optional[datetime] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class ApprovalFlow:
    manager: Stage = field(default_factory=Stage)
    hr: Stage = field(default_factory=Stage)
    admin: Stage = field(default_factory=Stage)


@dataclass(frozen=True)
class Resignation:
    """Domain entity (aggregate root): Resignation.

    Note: Immutable value; every lifecycle transition returns a new instance
    (see workflow.py). Records are never deleted, `is_deleted` only hides a
    cancelled record from the pending views.
    """

    resignation_id: Optional[int]
    employee_id: int
    initiated_by: int
    organization_id: int
    resignation_date: date
    proposed_last_working_date: date
    reason: str
    feedback: Optional[str] = None
    actual_last_working_date: Optional[date] = None

    status: ResignationStatus = ResignationStatus.PENDING
    current_level: ApprovalLevel = ApprovalLevel.MANAGER
    approval_flow: ApprovalFlow = field(default_factory=ApprovalFlow)

    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    approved_by: Optional[int] = None
    approval_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    is_deleted: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ResignationView:
    """Read-model: a resignation populated with directory names for display."""

    resignation: Resignation
    employee_name: Optional[str] = None
    department_name: Optional[str] = None
    actor_names: dict[int, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True)
class BatchResult:
    count: int
    resignations: list[Resignation]
