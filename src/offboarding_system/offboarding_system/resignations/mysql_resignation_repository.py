from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import ApprovalLevel, ResignationStatus, StageStatus
from ..database.mysql_base import fetchall, fetchone, placeholders
from .model import ApprovalFlow, Page, Resignation, Stage
from .repository import ResignationCriteria, ResignationRepository

# Column prefix of each approval stage in the `resignations` table.
_STAGE_PREFIX = {
    ApprovalLevel.MANAGER: "manager",
    ApprovalLevel.HR: "hr",
    ApprovalLevel.ADMIN: "admin",
}

_COLUMNS = """
    r.resignation_id, r.employee_id, r.initiated_by, r.organization_id,
    r.resignation_date, r.proposed_last_working_date, r.actual_last_working_date,
    r.reason, r.feedback, r.status, r.current_level,
    r.manager_status, r.manager_actor_id, r.manager_acted_at, r.manager_comment,
    r.hr_status, r.hr_actor_id, r.hr_acted_at, r.hr_comment,
    r.admin_status, r.admin_actor_id, r.admin_acted_at, r.admin_comment,
    r.rejected_by, r.rejection_reason, r.approved_by, r.approval_date,
    r.completed_at, r.is_deleted, r.created_at
"""


def _stage_from_row(r: dict, prefix: str) -> Stage:
    return Stage(
        status=StageStatus(r[f"{prefix}_status"]),
        actor_id=r.get(f"{prefix}_actor_id"),
        acted_at=r.get(f"{prefix}_acted_at"),
        comment=r.get(f"{prefix}_comment"),
    )


def _to_resignation(r: dict) -> Resignation:
    return Resignation(
        resignation_id=int(r["resignation_id"]),
        employee_id=int(r["employee_id"]),
        initiated_by=int(r["initiated_by"]),
        organization_id=int(r["organization_id"]),
        resignation_date=r["resignation_date"],
        proposed_last_working_date=r["proposed_last_working_date"],
        actual_last_working_date=r.get("actual_last_working_date"),
        reason=r["reason"],
        feedback=r.get("feedback"),
        status=ResignationStatus(r["status"]),
        current_level=ApprovalLevel(r["current_level"]),
        approval_flow=ApprovalFlow(
            manager=_stage_from_row(r, "manager"),
            hr=_stage_from_row(r, "hr"),
            admin=_stage_from_row(r, "admin"),
        ),
        rejected_by=r.get("rejected_by"),
        rejection_reason=r.get("rejection_reason"),
        approved_by=r.get("approved_by"),
        approval_date=r.get("approval_date"),
        completed_at=r.get("completed_at"),
        is_deleted=bool(r.get("is_deleted", False)),
        created_at=r.get("created_at"),
    )


def _stage_values(flow: ApprovalFlow) -> list[object]:
    values: list[object] = []
    for stage in (flow.manager, flow.hr, flow.admin):
        values.extend([stage.status.value, stage.actor_id, stage.acted_at, stage.comment])
    return values


class MySQLResignationRepository(ResignationRepository):
    """Resignation store bound to the cursor of one unit of work."""

    def __init__(self, cur):
        self._cur = cur

    def add(self, resignation: Resignation) -> int:
        self._cur.execute(
            """
            INSERT INTO resignations(
                employee_id, initiated_by, organization_id,
                resignation_date, proposed_last_working_date, actual_last_working_date,
                reason, feedback, status, current_level,
                manager_status, manager_actor_id, manager_acted_at, manager_comment,
                hr_status, hr_actor_id, hr_acted_at, hr_comment,
                admin_status, admin_actor_id, admin_acted_at, admin_comment,
                is_deleted, created_at
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            tuple(
                [
                    int(resignation.employee_id),
                    int(resignation.initiated_by),
                    int(resignation.organization_id),
                    resignation.resignation_date,
                    resignation.proposed_last_working_date,
                    resignation.actual_last_working_date,
                    resignation.reason,
                    resignation.feedback,
                    resignation.status.value,
                    resignation.current_level.value,
                ]
                + _stage_values(resignation.approval_flow)
                + [1 if resignation.is_deleted else 0, resignation.created_at]
            ),
        )
        return int(self._cur.lastrowid)

    def get(self, resignation_id: int, *, for_update: bool = False) -> Optional[Resignation]:
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM resignations r WHERE r.resignation_id=%s{lock}",
            (int(resignation_id),),
        )
        row = fetchone(self._cur)
        return _to_resignation(row) if row else None

    def get_many(self, resignation_ids: Sequence[int], *, for_update: bool = False) -> Sequence[Resignation]:
        ids = sorted({int(i) for i in resignation_ids})
        if not ids:
            return []
        lock = " FOR UPDATE" if for_update else ""
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM resignations r
            WHERE r.resignation_id IN ({placeholders(ids)})
            ORDER BY r.resignation_id{lock}
            """,
            tuple(ids),
        )
        return [_to_resignation(r) for r in fetchall(self._cur)]

    def update_if_unchanged(self, previous: Resignation, updated: Resignation) -> bool:
        self._cur.execute(
            """
            UPDATE resignations
            SET status=%s, current_level=%s, actual_last_working_date=%s,
                manager_status=%s, manager_actor_id=%s, manager_acted_at=%s, manager_comment=%s,
                hr_status=%s, hr_actor_id=%s, hr_acted_at=%s, hr_comment=%s,
                admin_status=%s, admin_actor_id=%s, admin_acted_at=%s, admin_comment=%s,
                rejected_by=%s, rejection_reason=%s, approved_by=%s, approval_date=%s,
                completed_at=%s, is_deleted=%s
            WHERE resignation_id=%s AND status=%s AND current_level=%s
            """,
            tuple(
                [
                    updated.status.value,
                    updated.current_level.value,
                    updated.actual_last_working_date,
                ]
                + _stage_values(updated.approval_flow)
                + [
                    updated.rejected_by,
                    updated.rejection_reason,
                    updated.approved_by,
                    updated.approval_date,
                    updated.completed_at,
                    1 if updated.is_deleted else 0,
                    int(previous.resignation_id),
                    previous.status.value,
                    previous.current_level.value,
                ]
            ),
        )
        return self._cur.rowcount > 0

    def search(self, criteria: ResignationCriteria, *, page: int, limit: int) -> Page:
        clauses = ["1=1"]
        params: list[object] = []

        if not criteria.include_deleted:
            clauses.append("r.is_deleted=0")
        if criteria.organization_id is not None:
            clauses.append("r.organization_id=%s")
            params.append(int(criteria.organization_id))
        if criteria.employee_id is not None:
            clauses.append("r.employee_id=%s")
            params.append(int(criteria.employee_id))
        if criteria.department_ids is not None:
            if not criteria.department_ids:
                return Page(items=[], total=0, page=page, limit=limit)
            clauses.append(f"e.dept_id IN ({placeholders(criteria.department_ids)})")
            params.extend(int(d) for d in criteria.department_ids)
        if criteria.status is not None:
            clauses.append("r.status=%s")
            params.append(criteria.status.value)
        if criteria.current_level is not None:
            clauses.append("r.current_level=%s")
            params.append(criteria.current_level.value)
        for level, stage_status in criteria.stage_statuses:
            clauses.append(f"r.{_STAGE_PREFIX[level]}_status=%s")
            params.append(stage_status.value)
        if criteria.employee_name:
            clauses.append("LOWER(e.full_name) LIKE %s")
            params.append(f"%{criteria.employee_name.strip().lower()}%")

        where = " AND ".join(clauses)

        self._cur.execute(
            f"""
            SELECT COUNT(*) AS total
            FROM resignations r
            JOIN employees e ON e.employee_id = r.employee_id
            WHERE {where}
            """,
            tuple(params),
        )
        total = int((fetchone(self._cur) or {}).get("total", 0))

        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM resignations r
            JOIN employees e ON e.employee_id = r.employee_id
            WHERE {where}
            ORDER BY r.created_at DESC, r.resignation_id DESC
            LIMIT %s OFFSET %s
            """,
            tuple(params + [int(limit), (int(page) - 1) * int(limit)]),
        )
        items = [_to_resignation(r) for r in fetchall(self._cur)]
        return Page(items=items, total=total, page=int(page), limit=int(limit))

    def list_due_for_completion(self, today: date) -> Sequence[int]:
        self._cur.execute(
            """
            SELECT resignation_id
            FROM resignations
            WHERE status=%s AND actual_last_working_date IS NOT NULL AND actual_last_working_date <= %s
            ORDER BY resignation_id
            """,
            (ResignationStatus.APPROVED.value, today),
        )
        return [int(r["resignation_id"]) for r in fetchall(self._cur)]
