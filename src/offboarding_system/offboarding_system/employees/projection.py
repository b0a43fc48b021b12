"""Employment-status projection of the resignation lifecycle.

Each function returns the employee as it must look after the matching
resignation transition; the caller writes it in the same unit of work as the
resignation itself.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date

from ..core.enums import EmploymentStatus
from .model import Employee


def start_notice_period(employee: Employee, *, applied_on: date, last_working_date: date) -> Employee:
    return replace(
        employee,
        employment_status=EmploymentStatus.NOTICE_PERIOD,
        resignation_applied=True,
        resignation_applied_date=applied_on,
        resignation_last_working_date=last_working_date,
    )


def mark_resigned(employee: Employee, *, approved_on: date, last_working_date: date) -> Employee:
    return replace(
        employee,
        employment_status=EmploymentStatus.RESIGNED,
        resignation_approved_date=approved_on,
        resignation_last_working_date=last_working_date,
        last_working_date=last_working_date,
    )


def restore_active(employee: Employee) -> Employee:
    """Rejected or withdrawn: the employee keeps working, flags are cleared."""
    return replace(
        employee,
        employment_status=EmploymentStatus.ACTIVE,
        resignation_applied=False,
        resignation_applied_date=None,
        resignation_last_working_date=None,
    )


def deactivate(employee: Employee) -> Employee:
    return replace(employee, employment_status=EmploymentStatus.RESIGNED, is_active=False)
