"""Periodic completion of approved resignations whose last working day has passed.

The sweep owns no schedule; scripts/run_reconciliation.py is the entry point
for cron (or any other scheduler). Every record is finalized in its own unit
of work, so one failure never blocks the rest and a rerun is harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..database.unit_of_work import UnitOfWorkFactory
from .service import ResignationService

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    processed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


class ReconciliationSweep:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        service: ResignationService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow_factory = uow_factory
        self._service = service
        self._clock = clock

    def due_ids(self, today: date) -> list[int]:
        with self._uow_factory() as uow:
            return list(uow.resignations.list_due_for_completion(today))

    def run(self, today: Optional[date] = None) -> SweepReport:
        today = today or self._clock().date()
        report = SweepReport()

        for rid in self.due_ids(today):
            try:
                done = self._service.finalize(resignation_id=rid, today=today)
            except Exception as exc:
                logger.exception("Failed to complete resignation %s", rid)
                report.failed[rid] = str(exc)
                continue
            if done is None:
                report.skipped.append(rid)
            else:
                report.processed.append(rid)

        logger.info(
            "Resignation sweep for %s: %s completed, %s skipped, %s failed",
            today,
            len(report.processed),
            len(report.skipped),
            len(report.failed),
        )
        return report
