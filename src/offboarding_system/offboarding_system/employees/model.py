from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import EmploymentStatus


@dataclass(frozen=True)
class Employee:
    """Domain entity: Employee as seen by the offboarding core.

    Note: The employee directory owns this record. The core only writes the
    projection fields (employment_status, is_active and the resignation_*
    / last_working_date fields).
    """

    employee_id: int
    user_id: int
    organization_id: int
    dept_id: Optional[int]
    full_name: str
    notice_period_days: Optional[int] = None

    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE
    is_active: bool = True
    resignation_applied: bool = False
    resignation_applied_date: Optional[date] = None
    resignation_last_working_date: Optional[date] = None
    resignation_approved_date: Optional[date] = None
    last_working_date: Optional[date] = None
