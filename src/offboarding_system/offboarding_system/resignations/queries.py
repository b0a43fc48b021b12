from __future__ import annotations

from typing import Optional

from ..common.validators import normalize_paging
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import ApprovalLevel, ResignationStatus, Role, StageStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from . import workflow
from .model import Actor, Page, Resignation, ResignationView
from .repository import ResignationCriteria

_STAGE_FILTERS = {
    "approved": StageStatus.APPROVED,
    "rejected": StageStatus.REJECTED,
    "pending": StageStatus.PENDING,
}


def _stage_filter(status: Optional[str]) -> Optional[StageStatus]:
    key = (status or "all").strip().lower()
    if key == "all":
        return None
    if key not in _STAGE_FILTERS:
        raise ValidationError(f"Invalid status filter {status!r}")
    return _STAGE_FILTERS[key]


def _resignation_status(status: Optional[str]) -> Optional[ResignationStatus]:
    v = (status or "").strip().lower()
    if not v or v == "all":
        return None
    try:
        return ResignationStatus(v)
    except ValueError:
        raise ValidationError(f"Invalid status filter {status!r}")


class ResignationQueryService:
    """Read side: role-scoped, paginated resignation lists populated for display."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow_factory = uow_factory

    @staticmethod
    def _populate(uow: UnitOfWork, items: list[Resignation]) -> list[ResignationView]:
        employees = {e.employee_id: e for e in uow.employees.get_many([r.employee_id for r in items])}
        departments = {d.dept_id: d for d in uow.departments.get_many([e.dept_id for e in employees.values()])}

        user_ids: set[int] = set()
        for r in items:
            user_ids.update(s.actor_id for _, s in workflow.stages(r.approval_flow) if s.actor_id is not None)
            user_ids.update(u for u in (r.approved_by, r.rejected_by) if u is not None)
        names = uow.employees.display_names(sorted(user_ids))

        views: list[ResignationView] = []
        for r in items:
            emp = employees.get(r.employee_id)
            dept = departments.get(emp.dept_id) if emp else None
            views.append(
                ResignationView(
                    resignation=r,
                    employee_name=emp.full_name if emp else None,
                    department_name=dept.dept_name if dept else None,
                    actor_names=names,
                )
            )
        return views

    def _search(self, uow: UnitOfWork, criteria: ResignationCriteria, page: int, limit: int) -> Page:
        page, limit = normalize_paging(page, limit)
        found = uow.resignations.search(criteria, page=page, limit=limit)
        return Page(items=self._populate(uow, list(found.items)), total=found.total, page=page, limit=limit)

    # -------- role views --------
    def pending_for(self, actor: Actor, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> Page:
        if actor.role == Role.MANAGER:
            return self.for_manager(actor, status="pending", page=page, limit=limit)
        if actor.role == Role.HR:
            return self.for_hr(actor, status="pending", page=page, limit=limit)
        if actor.role == Role.ADMIN:
            return self.for_admin(actor, status="pending", page=page, limit=limit)
        raise AuthorizationError("You do not approve resignations")

    def for_manager(
        self,
        actor: Actor,
        *,
        status: Optional[str] = "pending",
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        if actor.role != Role.MANAGER:
            raise AuthorizationError("Only managers can view this list")
        stage_status = _stage_filter(status)

        with self._uow_factory() as uow:
            dept_ids = tuple(uow.departments.ids_managed_by(actor.actor_id))
            criteria = ResignationCriteria(organization_id=actor.organization_id, department_ids=dept_ids)
            if stage_status == StageStatus.PENDING:
                criteria = ResignationCriteria(
                    organization_id=actor.organization_id,
                    department_ids=dept_ids,
                    status=ResignationStatus.PENDING,
                    current_level=ApprovalLevel.MANAGER,
                    stage_statuses=((ApprovalLevel.MANAGER, StageStatus.PENDING),),
                )
            elif stage_status is not None:
                criteria = ResignationCriteria(
                    organization_id=actor.organization_id,
                    department_ids=dept_ids,
                    stage_statuses=((ApprovalLevel.MANAGER, stage_status),),
                )
            return self._search(uow, criteria, page, limit)

    def for_hr(
        self,
        actor: Actor,
        *,
        status: Optional[str] = "pending",
        search: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        if actor.role != Role.HR:
            raise AuthorizationError("Only HR can view this list")
        stage_status = _stage_filter(status)

        stages = [(ApprovalLevel.MANAGER, StageStatus.APPROVED)]
        if stage_status is not None:
            stages.append((ApprovalLevel.HR, stage_status))
        criteria = ResignationCriteria(
            organization_id=actor.organization_id,
            status=ResignationStatus.PENDING if stage_status == StageStatus.PENDING else None,
            stage_statuses=tuple(stages),
            employee_name=(search or "").strip() or None,
        )
        with self._uow_factory() as uow:
            return self._search(uow, criteria, page, limit)

    def for_admin(
        self,
        actor: Actor,
        *,
        status: Optional[str] = "pending",
        department_id: Optional[int] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        if actor.role != Role.ADMIN:
            raise AuthorizationError("Only admins can view this list")
        stage_status = _stage_filter(status)

        stages = [
            (ApprovalLevel.MANAGER, StageStatus.APPROVED),
            (ApprovalLevel.HR, StageStatus.APPROVED),
        ]
        if stage_status is not None:
            stages.append((ApprovalLevel.ADMIN, stage_status))
        criteria = ResignationCriteria(
            organization_id=actor.organization_id,
            department_ids=(int(department_id),) if department_id is not None else None,
            status=ResignationStatus.PENDING if stage_status == StageStatus.PENDING else None,
            stage_statuses=tuple(stages),
        )
        with self._uow_factory() as uow:
            return self._search(uow, criteria, page, limit)

    # -------- general reads --------
    def _can_see_employee(self, uow: UnitOfWork, actor: Actor, employee) -> bool:
        if employee.organization_id != actor.organization_id:
            return False
        if actor.role in (Role.HR, Role.ADMIN):
            return True
        if employee.user_id == actor.actor_id:
            return True
        if actor.role == Role.MANAGER:
            return employee.dept_id in set(uow.departments.ids_managed_by(actor.actor_id))
        return False

    def for_employee(
        self,
        actor: Actor,
        employee_id: int,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        """Full resignation history of one employee, withdrawn and rejected included."""
        resignation_status = _resignation_status(status)
        with self._uow_factory() as uow:
            emp = uow.employees.get(int(employee_id))
            if not emp:
                raise NotFoundError(f"Employee {employee_id} not found")
            if not self._can_see_employee(uow, actor, emp):
                raise AuthorizationError("You can only view your own resignations")
            criteria = ResignationCriteria(employee_id=emp.employee_id, status=resignation_status)
            return self._search(uow, criteria, page, limit)

    def list_resignations(
        self,
        actor: Actor,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        if actor.role not in (Role.HR, Role.ADMIN):
            raise AuthorizationError("Only HR or admin can list all resignations")
        criteria = ResignationCriteria(organization_id=actor.organization_id, status=_resignation_status(status))
        with self._uow_factory() as uow:
            return self._search(uow, criteria, page, limit)

    def get(self, actor: Actor, resignation_id: int) -> ResignationView:
        with self._uow_factory() as uow:
            res = uow.resignations.get(int(resignation_id))
            emp = uow.employees.get(res.employee_id) if res else None
            if not res or not emp or res.organization_id != actor.organization_id:
                raise NotFoundError(f"Resignation {resignation_id} not found")
            if not self._can_see_employee(uow, actor, emp):
                raise AuthorizationError("You cannot view this resignation")
            return self._populate(uow, [res])[0]
