from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .common.datetime_utils import now_local
from .core.constants import DEFAULT_NOTICE_PERIOD_DAYS
from .database.connection import DBConfig, DatabaseConnection
from .database.memory import InMemoryStore, in_memory_unit_of_work_factory
from .database.unit_of_work import UnitOfWorkFactory, mysql_unit_of_work_factory
from .resignations.queries import ResignationQueryService
from .resignations.reconciliation import ReconciliationSweep
from .resignations.service import ResignationService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    uow_factory: UnitOfWorkFactory

    resignation_service: ResignationService
    resignation_queries: ResignationQueryService
    reconciliation: ReconciliationSweep


def _wire(
    conn: Optional[DatabaseConnection],
    uow_factory: UnitOfWorkFactory,
    *,
    clock: Callable[[], datetime],
    default_notice_period_days: int,
) -> Container:
    resignation_service = ResignationService(
        uow_factory,
        clock=clock,
        default_notice_period_days=default_notice_period_days,
    )
    resignation_queries = ResignationQueryService(uow_factory)
    reconciliation = ReconciliationSweep(uow_factory, resignation_service, clock=clock)

    return Container(
        conn=conn,
        uow_factory=uow_factory,
        resignation_service=resignation_service,
        resignation_queries=resignation_queries,
        reconciliation=reconciliation,
    )


def build_container(
    *,
    db_config: dict,
    default_notice_period_days: int = DEFAULT_NOTICE_PERIOD_DAYS,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return _wire(
        conn,
        mysql_unit_of_work_factory(conn),
        clock=clock,
        default_notice_period_days=default_notice_period_days,
    )


def build_memory_container(
    store: InMemoryStore,
    *,
    default_notice_period_days: int = DEFAULT_NOTICE_PERIOD_DAYS,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Same services backed by the in-memory store (tests and demos)."""
    return _wire(
        None,
        in_memory_unit_of_work_factory(store),
        clock=clock,
        default_notice_period_days=default_notice_period_days,
    )
