"""Three-level approval state machine for resignations.

Pure functions over the immutable Resignation value: they validate a
transition and return the new value, they never touch storage. Storage,
locking and the paired employee write live in service.py.

Stage order is data (APPROVAL_ORDER); "next level" and "predecessors
approved" are derived from it.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..core.enums import ApprovalLevel, Decision, ResignationStatus, Role, StageStatus
from ..core.exceptions import (
    AlreadyActedError,
    ApprovalInProgressError,
    NotAwaitingThisLevelError,
    NotDueForCompletionError,
    ResignationClosedError,
    ValidationError,
)
from .model import ApprovalFlow, Resignation, Stage

APPROVAL_ORDER: tuple[ApprovalLevel, ...] = (
    ApprovalLevel.MANAGER,
    ApprovalLevel.HR,
    ApprovalLevel.ADMIN,
)

LEVEL_ROLES: dict[ApprovalLevel, Role] = {
    ApprovalLevel.MANAGER: Role.MANAGER,
    ApprovalLevel.HR: Role.HR,
    ApprovalLevel.ADMIN: Role.ADMIN,
}

FINAL_LEVEL = APPROVAL_ORDER[-1]


def parse_level(value) -> ApprovalLevel:
    try:
        level = ApprovalLevel(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid approval level {value!r}")
    if level not in APPROVAL_ORDER:
        raise ValidationError(f"Invalid approval level {value!r}")
    return level


def parse_decision(value) -> Decision:
    try:
        return Decision(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid action {value!r}, use 'approve' or 'reject'")


def get_stage(flow: ApprovalFlow, level: ApprovalLevel) -> Stage:
    if level == ApprovalLevel.MANAGER:
        return flow.manager
    if level == ApprovalLevel.HR:
        return flow.hr
    if level == ApprovalLevel.ADMIN:
        return flow.admin
    raise ValidationError(f"{level.value} is not an approval stage")


def with_stage(flow: ApprovalFlow, level: ApprovalLevel, stage: Stage) -> ApprovalFlow:
    if level == ApprovalLevel.MANAGER:
        return replace(flow, manager=stage)
    if level == ApprovalLevel.HR:
        return replace(flow, hr=stage)
    if level == ApprovalLevel.ADMIN:
        return replace(flow, admin=stage)
    raise ValidationError(f"{level.value} is not an approval stage")


def stages(flow: ApprovalFlow) -> list[tuple[ApprovalLevel, Stage]]:
    return [(level, get_stage(flow, level)) for level in APPROVAL_ORDER]


def next_level(level: ApprovalLevel) -> ApprovalLevel:
    idx = APPROVAL_ORDER.index(level)
    if idx + 1 < len(APPROVAL_ORDER):
        return APPROVAL_ORDER[idx + 1]
    return ApprovalLevel.COMPLETED


def predecessors(level: ApprovalLevel) -> tuple[ApprovalLevel, ...]:
    return APPROVAL_ORDER[: APPROVAL_ORDER.index(level)]


def predecessors_approved(resignation: Resignation, level: ApprovalLevel) -> bool:
    return all(
        get_stage(resignation.approval_flow, p).status == StageStatus.APPROVED for p in predecessors(level)
    )


def all_stages_pending(resignation: Resignation) -> bool:
    return all(stage.status == StageStatus.PENDING for _, stage in stages(resignation.approval_flow))


def ensure_can_act(resignation: Resignation, level: ApprovalLevel) -> None:
    """Raise unless `level` is the active stage and still undecided.

    The decided-stage check runs first so that the loser of two concurrent
    decisions on the same stage always sees AlreadyActedError.
    """
    if get_stage(resignation.approval_flow, level).status != StageStatus.PENDING:
        raise AlreadyActedError(f"{level.value} has already acted on this resignation")
    if resignation.current_level != level or resignation.status != ResignationStatus.PENDING:
        raise NotAwaitingThisLevelError(f"Resignation is not awaiting {level.value} approval")
    if not predecessors_approved(resignation, level):
        raise NotAwaitingThisLevelError(f"Resignation is not awaiting {level.value} approval")


def is_eligible(resignation: Resignation, level: ApprovalLevel) -> bool:
    try:
        ensure_can_act(resignation, level)
    except (AlreadyActedError, NotAwaitingThisLevelError):
        return False
    return True


def approve(
    resignation: Resignation,
    level: ApprovalLevel,
    *,
    actor_id: int,
    at: datetime,
    comment: Optional[str] = None,
    actual_last_working_date: Optional[date] = None,
) -> Resignation:
    ensure_can_act(resignation, level)

    stage = Stage(status=StageStatus.APPROVED, actor_id=int(actor_id), acted_at=at, comment=comment or "")
    flow = with_stage(resignation.approval_flow, level, stage)

    if level != FINAL_LEVEL:
        return replace(resignation, approval_flow=flow, current_level=next_level(level))

    return replace(
        resignation,
        approval_flow=flow,
        status=ResignationStatus.APPROVED,
        current_level=ApprovalLevel.COMPLETED,
        approved_by=int(actor_id),
        approval_date=at,
        actual_last_working_date=actual_last_working_date or resignation.proposed_last_working_date,
    )


def reject(
    resignation: Resignation,
    level: ApprovalLevel,
    *,
    actor_id: int,
    at: datetime,
    reason: str,
) -> Resignation:
    ensure_can_act(resignation, level)

    stage = Stage(status=StageStatus.REJECTED, actor_id=int(actor_id), acted_at=at, comment=reason)
    return replace(
        resignation,
        approval_flow=with_stage(resignation.approval_flow, level, stage),
        status=ResignationStatus.REJECTED,
        current_level=ApprovalLevel.COMPLETED,
        rejected_by=int(actor_id),
        rejection_reason=reason,
    )


def decide(
    resignation: Resignation,
    level: ApprovalLevel,
    decision: Decision,
    *,
    actor_id: int,
    at: datetime,
    comment: Optional[str] = None,
    reason: Optional[str] = None,
    actual_last_working_date: Optional[date] = None,
) -> Resignation:
    if decision == Decision.APPROVE:
        return approve(
            resignation,
            level,
            actor_id=actor_id,
            at=at,
            comment=comment,
            actual_last_working_date=actual_last_working_date,
        )
    if decision == Decision.REJECT:
        if not reason:
            raise ValidationError("Rejection reason is required")
        return reject(resignation, level, actor_id=actor_id, at=at, reason=reason)
    raise ValidationError(f"Invalid action {decision!r}")


def withdraw(resignation: Resignation) -> Resignation:
    if not all_stages_pending(resignation):
        raise ApprovalInProgressError("Cannot withdraw resignation after approval process has started")
    if resignation.status != ResignationStatus.PENDING:
        raise ResignationClosedError(f"Resignation is already {resignation.status.value}")
    return replace(resignation, status=ResignationStatus.WITHDRAWN, current_level=ApprovalLevel.COMPLETED)


def is_due(resignation: Resignation, today: date) -> bool:
    return (
        resignation.status == ResignationStatus.APPROVED
        and resignation.actual_last_working_date is not None
        and resignation.actual_last_working_date <= today
    )


def finalize(resignation: Resignation, *, today: date, at: datetime) -> Optional[Resignation]:
    """Return the completed resignation, or None when it is already completed."""
    if resignation.status == ResignationStatus.COMPLETED:
        return None
    if not is_due(resignation, today):
        raise NotDueForCompletionError(
            f"Resignation {resignation.resignation_id} is {resignation.status.value}, "
            f"last working date {resignation.actual_last_working_date}"
        )
    return replace(resignation, status=ResignationStatus.COMPLETED, completed_at=at)
