from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence, Union

from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty, require_unique_ids
from ..core.constants import DEFAULT_NOTICE_PERIOD_DAYS
from ..core.enums import ApprovalLevel, Decision, ResignationStatus
from ..core.exceptions import (
    AlreadyActedError,
    AlreadyAppliedError,
    AuthorizationError,
    BatchIneligibleError,
    NotFoundError,
    ValidationError,
)
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees import projection
from ..employees.model import Employee
from . import workflow
from .model import Actor, BatchResult, Resignation

logger = logging.getLogger(__name__)


class ResignationService:
    """Commands of the resignation lifecycle.

    Every command runs in exactly one unit of work: the resignation write and
    the matching employee projection write commit together or not at all.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        clock: Callable[[], datetime] = now_local,
        default_notice_period_days: int = DEFAULT_NOTICE_PERIOD_DAYS,
    ):
        self._uow_factory = uow_factory
        self._clock = clock
        self._default_notice_period_days = int(default_notice_period_days)

    # -------- helpers --------
    def _notice_days(self, employee: Employee) -> int:
        return int(employee.notice_period_days or self._default_notice_period_days)

    @staticmethod
    def _ensure_role(actor: Actor, level: ApprovalLevel) -> None:
        if actor.role != workflow.LEVEL_ROLES[level]:
            raise AuthorizationError(f"Only {workflow.LEVEL_ROLES[level].value} can act on the {level.value} stage")

    @staticmethod
    def _managed_departments(uow: UnitOfWork, actor: Actor, level: ApprovalLevel) -> Optional[set[int]]:
        """Departments a manager may act on; None when the scope is the whole organization."""
        if level != ApprovalLevel.MANAGER:
            return None
        return set(uow.departments.ids_managed_by(actor.actor_id))

    @staticmethod
    def _in_scope(
        actor: Actor,
        resignation: Resignation,
        employee: Optional[Employee],
        managed: Optional[set[int]],
    ) -> bool:
        if resignation.organization_id != actor.organization_id:
            return False
        if managed is None:
            return True
        return employee is not None and employee.dept_id in managed

    @staticmethod
    def _load_employee(uow: UnitOfWork, resignation: Resignation) -> Employee:
        emp = uow.employees.get(resignation.employee_id, for_update=True)
        if not emp:
            raise NotFoundError(f"Employee {resignation.employee_id} not found")
        return emp

    @staticmethod
    def _save(uow: UnitOfWork, previous: Resignation, updated: Resignation) -> None:
        if not uow.resignations.update_if_unchanged(previous, updated):
            raise AlreadyActedError(f"Resignation {previous.resignation_id} was changed by another request")

    @staticmethod
    def _save_projection(uow: UnitOfWork, employee: Employee) -> None:
        if not uow.employees.save_projection(employee):
            raise NotFoundError(f"Employee {employee.employee_id} not found")

    def _apply_projection(self, uow: UnitOfWork, employee: Employee, updated: Resignation) -> None:
        """Mirror a stage decision on the employee record (no-op for intermediate approvals)."""
        if updated.status == ResignationStatus.REJECTED:
            self._save_projection(uow, projection.restore_active(employee))
        elif updated.status == ResignationStatus.APPROVED:
            self._save_projection(
                uow,
                projection.mark_resigned(
                    employee,
                    approved_on=updated.approval_date.date(),
                    last_working_date=updated.actual_last_working_date,
                ),
            )

    # -------- commands --------
    def apply(
        self,
        *,
        actor: Actor,
        resignation_date: Optional[date],
        reason: str,
        feedback: Optional[str] = None,
    ) -> Resignation:
        if resignation_date is None:
            raise ValidationError("Resignation date is required")
        reason = require_non_empty(reason, "Reason")

        with self._uow_factory() as uow:
            emp = uow.employees.get_by_user(actor.actor_id, for_update=True)
            if not emp:
                raise NotFoundError("Employee not found")
            if emp.organization_id != actor.organization_id:
                raise AuthorizationError("Employee belongs to another organization")
            if emp.resignation_applied:
                raise AlreadyAppliedError("You have already applied for resignation")

            now = self._clock()
            proposed = resignation_date + timedelta(days=self._notice_days(emp))
            resignation = Resignation(
                resignation_id=None,
                employee_id=emp.employee_id,
                initiated_by=int(actor.actor_id),
                organization_id=emp.organization_id,
                resignation_date=resignation_date,
                proposed_last_working_date=proposed,
                reason=reason,
                feedback=optional_text(feedback),
                created_at=now,
            )
            rid = uow.resignations.add(resignation)
            self._save_projection(
                uow,
                projection.start_notice_period(emp, applied_on=now.date(), last_working_date=proposed),
            )

        logger.info(
            "Resignation %s applied by user %s (employee %s), proposed last working date %s",
            rid,
            actor.actor_id,
            emp.employee_id,
            proposed,
        )
        return replace(resignation, resignation_id=rid)

    def act_on_stage(
        self,
        *,
        actor: Actor,
        resignation_id: int,
        level: Union[ApprovalLevel, str],
        decision: Union[Decision, str],
        comment: Optional[str] = None,
        actual_last_working_date: Optional[date] = None,
    ) -> Resignation:
        level = workflow.parse_level(level.value if isinstance(level, ApprovalLevel) else level)
        decision = workflow.parse_decision(decision.value if isinstance(decision, Decision) else decision)
        comment = optional_text(comment)
        if decision == Decision.REJECT:
            comment = require_non_empty(comment, "Rejection reason")

        with self._uow_factory() as uow:
            res = uow.resignations.get(int(resignation_id), for_update=True)
            if not res:
                raise NotFoundError(f"Resignation {resignation_id} not found")

            self._ensure_role(actor, level)
            emp = self._load_employee(uow, res)
            if not self._in_scope(actor, res, emp, self._managed_departments(uow, actor, level)):
                raise AuthorizationError("Resignation is outside your scope")

            updated = workflow.decide(
                res,
                level,
                decision,
                actor_id=actor.actor_id,
                at=self._clock(),
                comment=comment,
                reason=comment,
                actual_last_working_date=actual_last_working_date,
            )
            self._save(uow, res, updated)
            self._apply_projection(uow, emp, updated)

        logger.info(
            "Resignation %s: %s %s by user %s (status=%s, level=%s)",
            updated.resignation_id,
            level.value,
            decision.value,
            actor.actor_id,
            updated.status.value,
            updated.current_level.value,
        )
        return updated

    def approve(
        self,
        *,
        actor: Actor,
        resignation_id: int,
        level: Union[ApprovalLevel, str],
        comment: Optional[str] = None,
        actual_last_working_date: Optional[date] = None,
    ) -> Resignation:
        return self.act_on_stage(
            actor=actor,
            resignation_id=resignation_id,
            level=level,
            decision=Decision.APPROVE,
            comment=comment,
            actual_last_working_date=actual_last_working_date,
        )

    def reject(
        self,
        *,
        actor: Actor,
        resignation_id: int,
        level: Union[ApprovalLevel, str],
        reason: str,
    ) -> Resignation:
        return self.act_on_stage(
            actor=actor,
            resignation_id=resignation_id,
            level=level,
            decision=Decision.REJECT,
            comment=reason,
        )

    def withdraw(self, *, actor: Actor, resignation_id: int) -> Resignation:
        with self._uow_factory() as uow:
            res = uow.resignations.get(int(resignation_id), for_update=True)
            if not res:
                raise NotFoundError(f"Resignation {resignation_id} not found")
            if res.initiated_by != int(actor.actor_id):
                raise AuthorizationError("Only the applicant can withdraw a resignation")

            updated = workflow.withdraw(res)
            emp = self._load_employee(uow, res)
            self._save(uow, res, updated)
            self._save_projection(uow, projection.restore_active(emp))

        logger.info("Resignation %s withdrawn by user %s", updated.resignation_id, actor.actor_id)
        return updated

    def bulk_update(
        self,
        *,
        actor: Actor,
        resignation_ids: Sequence[int],
        level: Union[ApprovalLevel, str],
        decision: Union[Decision, str],
        comment: Optional[str] = None,
        reason: Optional[str] = None,
        actual_last_working_date: Optional[date] = None,
    ) -> BatchResult:
        """Apply one decision to many resignations, all or nothing.

        Any id that is missing, outside the actor's scope or not awaiting
        `level` makes the whole batch fail with BatchIneligibleError.
        """
        ids = require_unique_ids(resignation_ids, "Resignation ids")
        level = workflow.parse_level(level.value if isinstance(level, ApprovalLevel) else level)
        decision = workflow.parse_decision(decision.value if isinstance(decision, Decision) else decision)
        comment = optional_text(comment)
        if decision == Decision.REJECT:
            reason = require_non_empty(reason or comment, "Rejection reason")
        self._ensure_role(actor, level)

        with self._uow_factory() as uow:
            found = {r.resignation_id: r for r in uow.resignations.get_many(ids, for_update=True)}
            employees = {e.employee_id: e for e in uow.employees.get_many([r.employee_id for r in found.values()])}
            managed = self._managed_departments(uow, actor, level)

            ineligible = 0
            for rid in ids:
                res = found.get(rid)
                if (
                    res is None
                    or not self._in_scope(actor, res, employees.get(res.employee_id), managed)
                    or not workflow.is_eligible(res, level)
                ):
                    ineligible += 1
            if ineligible:
                raise BatchIneligibleError(
                    ineligible,
                    f"{ineligible} resignation(s) are not eligible for {level.value} {decision.value}",
                )

            now = self._clock()
            results: list[Resignation] = []
            for rid in ids:
                res = found[rid]
                updated = workflow.decide(
                    res,
                    level,
                    decision,
                    actor_id=actor.actor_id,
                    at=now,
                    comment=comment if decision == Decision.APPROVE else reason,
                    reason=reason,
                    actual_last_working_date=actual_last_working_date,
                )
                self._save(uow, res, updated)
                emp = employees.get(res.employee_id)
                if emp is None:
                    raise NotFoundError(f"Employee {res.employee_id} not found")
                self._apply_projection(uow, emp, updated)
                results.append(updated)

        logger.info(
            "Bulk %s at %s level by user %s: %s resignation(s)",
            decision.value,
            level.value,
            actor.actor_id,
            len(results),
        )
        return BatchResult(count=len(results), resignations=results)

    def finalize(self, *, resignation_id: int, today: Optional[date] = None) -> Optional[Resignation]:
        """Complete an approved resignation whose last working day has passed.

        Returns None when the resignation is already completed.
        """
        now = self._clock()
        today = today or now.date()

        with self._uow_factory() as uow:
            res = uow.resignations.get(int(resignation_id), for_update=True)
            if not res:
                raise NotFoundError(f"Resignation {resignation_id} not found")

            updated = workflow.finalize(res, today=today, at=now)
            if updated is None:
                return None

            emp = self._load_employee(uow, res)
            self._save(uow, res, updated)
            self._save_projection(uow, projection.deactivate(emp))

        logger.info("Resignation %s completed, employee %s deactivated", updated.resignation_id, updated.employee_id)
        return updated
