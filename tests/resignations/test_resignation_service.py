from __future__ import annotations

import threading
from datetime import date, timedelta

import pytest

from src.offboarding_system.offboarding_system.core.enums import (
    ApprovalLevel,
    EmploymentStatus,
    ResignationStatus,
    Role,
    StageStatus,
)
from src.offboarding_system.offboarding_system.core.exceptions import (
    AlreadyActedError,
    AlreadyAppliedError,
    ApprovalInProgressError,
    AuthorizationError,
    NotAwaitingThisLevelError,
    NotFoundError,
    ResignationClosedError,
    ValidationError,
)
from src.offboarding_system.offboarding_system.database.memory import (
    InMemoryEmployeeRepository,
    InMemoryResignationRepository,
)
from src.offboarding_system.offboarding_system.resignations.model import Actor

DAY0 = date(2026, 3, 2)


def _emp(store, employee_id):
    return store.employees[employee_id]


def test_apply_creates_pending_resignation_and_starts_notice_period(service, store, actors, clock):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="  Relocating  ", feedback="")

    assert res.resignation_id == 1
    assert res.status == ResignationStatus.PENDING
    assert res.current_level == ApprovalLevel.MANAGER
    assert res.reason == "Relocating"
    assert res.feedback is None
    assert res.proposed_last_working_date == DAY0 + timedelta(days=30)
    assert store.resignations[1] == res

    emp = _emp(store, 5)
    assert emp.employment_status == EmploymentStatus.NOTICE_PERIOD
    assert emp.resignation_applied is True
    assert emp.resignation_applied_date == clock().date()
    assert emp.resignation_last_working_date == DAY0 + timedelta(days=30)


def test_apply_uses_default_notice_period_when_employee_has_none(service, actors):
    res = service.apply(actor=actors["tomas"], resignation_date=DAY0, reason="Studies")
    assert res.proposed_last_working_date == DAY0 + timedelta(days=30)


def test_apply_twice_is_rejected(service, actors):
    service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(AlreadyAppliedError):
        service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Again")


@pytest.mark.parametrize("resignation_date,reason", [(None, "Relocating"), (DAY0, "   ")])
def test_apply_validates_input_before_writing(service, store, actors, resignation_date, reason):
    with pytest.raises(ValidationError):
        service.apply(actor=actors["lena"], resignation_date=resignation_date, reason=reason)
    assert store.resignations == {}
    assert _emp(store, 5).employment_status == EmploymentStatus.ACTIVE


def test_apply_without_employee_record(service):
    stranger = Actor(actor_id=999, role=Role.EMPLOYEE, organization_id=1)
    with pytest.raises(NotFoundError):
        service.apply(actor=stranger, resignation_date=DAY0, reason="Relocating")


def test_full_approval_scenario_with_earlier_last_working_date(service, store, actors, container, clock):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    assert res.proposed_last_working_date == DAY0 + timedelta(days=30)

    res = service.approve(actor=actors["manager"], resignation_id=res.resignation_id, level="manager")
    assert (res.status, res.current_level) == (ResignationStatus.PENDING, ApprovalLevel.HR)

    res = service.approve(actor=actors["hr"], resignation_id=res.resignation_id, level=ApprovalLevel.HR)
    assert (res.status, res.current_level) == (ResignationStatus.PENDING, ApprovalLevel.ADMIN)

    day25 = DAY0 + timedelta(days=25)
    res = service.approve(
        actor=actors["admin"],
        resignation_id=res.resignation_id,
        level=ApprovalLevel.ADMIN,
        actual_last_working_date=day25,
    )
    assert (res.status, res.current_level) == (ResignationStatus.APPROVED, ApprovalLevel.COMPLETED)
    assert res.actual_last_working_date == day25

    emp = _emp(store, 5)
    assert emp.employment_status == EmploymentStatus.RESIGNED
    assert emp.is_active is True
    assert emp.last_working_date == day25
    assert emp.resignation_last_working_date == day25

    report = container.reconciliation.run(day25)
    assert report.processed == [res.resignation_id]
    assert store.resignations[res.resignation_id].status == ResignationStatus.COMPLETED
    assert _emp(store, 5).is_active is False
    assert _emp(store, 5).employment_status == EmploymentStatus.RESIGNED

    again = container.reconciliation.run(day25 + timedelta(days=1))
    assert again.processed == [] and again.failed == {}
    assert store.resignations[res.resignation_id].status == ResignationStatus.COMPLETED


def test_double_action_on_same_stage_leaves_state_unchanged(service, store, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    service.approve(actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)
    before = store.resignations[res.resignation_id]

    with pytest.raises(AlreadyActedError):
        service.approve(actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)
    with pytest.raises(AlreadyActedError):
        service.reject(actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER, reason="no")

    assert store.resignations[res.resignation_id] == before


def test_hr_before_manager_is_not_awaiting(service, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(NotAwaitingThisLevelError):
        service.approve(actor=actors["hr"], resignation_id=res.resignation_id, level=ApprovalLevel.HR)


def test_reject_restores_employee_and_keeps_successors_pending(service, store, actors, approve_through):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    approve_through(res.resignation_id, ApprovalLevel.MANAGER)

    res = service.reject(
        actor=actors["hr"], resignation_id=res.resignation_id, level=ApprovalLevel.HR, reason="Retention bonus"
    )
    assert res.status == ResignationStatus.REJECTED
    assert res.current_level == ApprovalLevel.COMPLETED
    assert res.approval_flow.admin.status == StageStatus.PENDING

    emp = _emp(store, 5)
    assert emp.employment_status == EmploymentStatus.ACTIVE
    assert emp.resignation_applied is False
    assert emp.resignation_applied_date is None

    # the employee may apply again once the previous one was rejected
    again = service.apply(actor=actors["lena"], resignation_date=DAY0 + timedelta(days=7), reason="Relocating")
    assert again.resignation_id != res.resignation_id


def test_reject_requires_reason(service, store, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(ValidationError):
        service.reject(actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER, reason=" ")
    assert store.resignations[res.resignation_id].approval_flow.manager.status == StageStatus.PENDING


def test_only_the_owning_role_can_act_on_a_level(service, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(AuthorizationError):
        service.approve(actor=actors["admin"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)
    with pytest.raises(AuthorizationError):
        service.approve(actor=actors["lena"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)


def test_manager_scope_is_limited_to_managed_departments(service, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(AuthorizationError):
        service.approve(actor=actors["finance_manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)


def test_other_organization_cannot_act(service, actors, approve_through):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    approve_through(res.resignation_id, ApprovalLevel.HR)
    with pytest.raises(AuthorizationError):
        service.approve(actor=actors["outsider_admin"], resignation_id=res.resignation_id, level=ApprovalLevel.ADMIN)


def test_unknown_resignation_and_level(service, actors):
    with pytest.raises(NotFoundError):
        service.approve(actor=actors["manager"], resignation_id=404, level=ApprovalLevel.MANAGER)
    with pytest.raises(ValidationError):
        service.approve(actor=actors["manager"], resignation_id=404, level="board")


def test_withdraw_by_applicant_restores_employee(service, store, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")

    res = service.withdraw(actor=actors["lena"], resignation_id=res.resignation_id)
    assert res.status == ResignationStatus.WITHDRAWN
    assert res.current_level == ApprovalLevel.COMPLETED
    assert _emp(store, 5).employment_status == EmploymentStatus.ACTIVE
    assert _emp(store, 5).resignation_applied is False

    with pytest.raises(ResignationClosedError):
        service.withdraw(actor=actors["lena"], resignation_id=res.resignation_id)


def test_withdraw_rules(service, actors, approve_through):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    with pytest.raises(AuthorizationError):
        service.withdraw(actor=actors["tomas"], resignation_id=res.resignation_id)

    approve_through(res.resignation_id, ApprovalLevel.MANAGER)
    with pytest.raises(ApprovalInProgressError):
        service.withdraw(actor=actors["lena"], resignation_id=res.resignation_id)


def test_failed_projection_write_rolls_back_resignation(service, store, actors, monkeypatch):
    def boom(self, employee):
        raise RuntimeError("directory unavailable")

    monkeypatch.setattr(InMemoryEmployeeRepository, "save_projection", boom)

    with pytest.raises(RuntimeError):
        service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")

    assert store.resignations == {}
    assert _emp(store, 5).employment_status == EmploymentStatus.ACTIVE


def test_failed_projection_on_final_approval_keeps_previous_stage_state(service, store, actors, approve_through, monkeypatch):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    approve_through(res.resignation_id, ApprovalLevel.HR)
    before = store.resignations[res.resignation_id]

    monkeypatch.setattr(InMemoryEmployeeRepository, "save_projection", lambda self, employee: False)
    with pytest.raises(NotFoundError):
        service.approve(actor=actors["admin"], resignation_id=res.resignation_id, level=ApprovalLevel.ADMIN)

    assert store.resignations[res.resignation_id] == before
    assert _emp(store, 5).employment_status == EmploymentStatus.NOTICE_PERIOD


def test_lost_race_surfaces_as_already_acted(service, store, actors, monkeypatch):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    monkeypatch.setattr(InMemoryResignationRepository, "update_if_unchanged", lambda self, previous, updated: False)

    with pytest.raises(AlreadyActedError):
        service.approve(actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER)
    assert store.resignations[res.resignation_id].approval_flow.manager.status == StageStatus.PENDING


def test_concurrent_approvals_of_one_stage_have_a_single_winner(service, store, actors):
    res = service.apply(actor=actors["lena"], resignation_date=DAY0, reason="Relocating")
    barrier = threading.Barrier(2)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def act(comment):
        barrier.wait()
        try:
            service.approve(
                actor=actors["manager"], resignation_id=res.resignation_id, level=ApprovalLevel.MANAGER, comment=comment
            )
            outcome = "ok"
        except AlreadyActedError:
            outcome = "already"
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=act, args=(c,)) for c in ("first", "second")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert sorted(outcomes) == ["already", "ok"]
    stored = store.resignations[res.resignation_id]
    assert stored.current_level == ApprovalLevel.HR
    assert stored.approval_flow.manager.status == StageStatus.APPROVED
    assert stored.approval_flow.manager.comment in ("first", "second")
