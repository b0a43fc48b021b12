from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Department:
    dept_id: int
    dept_name: str
    organization_id: int
    manager_user_id: Optional[int] = None
