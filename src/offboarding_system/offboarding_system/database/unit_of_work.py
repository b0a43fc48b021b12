from __future__ import annotations

from typing import Callable, Optional, Protocol

from ..employees.department_repository import DepartmentRepository
from ..employees.mysql_department_repository import MySQLDepartmentRepository
from ..employees.mysql_employee_repository import MySQLEmployeeRepository
from ..employees.repository import EmployeeRepository
from ..resignations.mysql_resignation_repository import MySQLResignationRepository
from ..resignations.repository import ResignationRepository
from .connection import DatabaseConnection
from .mysql_base import transaction


class UnitOfWork(Protocol):
    """One atomic transaction over resignations and the employee directory.

    Used as a context manager: leaving the block normally commits, leaving it
    with an exception rolls back every write made through the repositories.
    """

    resignations: ResignationRepository
    employees: EmployeeRepository
    departments: DepartmentRepository

    def __enter__(self) -> "UnitOfWork":
        raise NotImplementedError

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        raise NotImplementedError


UnitOfWorkFactory = Callable[[], UnitOfWork]


class MySQLUnitOfWork:
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._tx = None

    def __enter__(self) -> "MySQLUnitOfWork":
        self._tx = transaction(self._conn_factory)
        _, cur = self._tx.__enter__()
        self.resignations = MySQLResignationRepository(cur)
        self.employees = MySQLEmployeeRepository(cur)
        self.departments = MySQLDepartmentRepository(cur)
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        tx, self._tx = self._tx, None
        return tx.__exit__(exc_type, exc, tb)


def mysql_unit_of_work_factory(conn_factory: DatabaseConnection) -> UnitOfWorkFactory:
    return lambda: MySQLUnitOfWork(conn_factory)
