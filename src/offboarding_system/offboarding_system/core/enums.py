from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role supplied by the identity layer; decides which stage an actor owns."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"


class ResignationStatus(str, Enum):
    """Externally visible outcome of a resignation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COMPLETED = "completed"


class ApprovalLevel(str, Enum):
    """Which stage is authoritative right now (COMPLETED once nothing is left)."""

    MANAGER = "manager"
    HR = "hr"
    ADMIN = "admin"
    COMPLETED = "completed"


class StageStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class EmploymentStatus(str, Enum):
    """Employment status field of the employee directory."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"
    RESIGNED = "resigned"
    NOTICE_PERIOD = "notice-period"
