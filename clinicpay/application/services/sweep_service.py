"""Overdue sweep: marks past-due installments and recomputes plan status."""

from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import SweepResult
from clinicpay.core.metrics import record_installment_event
from clinicpay.domain.entities import InstallmentStatus
from clinicpay.domain.exceptions import DomainException
from clinicpay.domain.interfaces import (
    InstallmentRepository,
    PlanRepository,
    UnitOfWork,
)
from clinicpay.utils.dates import Clock, utc_today

from .status_updater import PlanStatusUpdater

logger = structlog.get_logger(__name__)

_SWEEPABLE = frozenset({InstallmentStatus.PENDING, InstallmentStatus.SENT})


class OverdueSweepService:
    """
    Batch job run by an external scheduler.

    Paused, cancelled and completed plans are skipped. Each plan is handled
    in its own savepoint; a failing plan is reported and the run continues.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        installment_repository: InstallmentRepository,
        status_updater: PlanStatusUpdater,
        unit_of_work: UnitOfWork,
        clock: Clock = utc_today,
    ):
        self._plan_repo = plan_repository
        self._installment_repo = installment_repository
        self._status_updater = status_updater
        self._uow = unit_of_work
        self._clock = clock

    async def run(self, plan_id: Optional[UUID] = None) -> SweepResult:
        """
        Sweep one plan, or every eligible plan when plan_id is None.

        Returns:
            SweepResult with counts and the IDs of plans that failed
        """
        today = self._clock()
        plan_ids = await self._plan_repo.get_ids_for_sweep(plan_id)

        marked_total = 0
        changes = 0
        failed: List[str] = []

        for pid in plan_ids:
            try:
                async with self._uow.savepoint():
                    marked = await self._installment_repo.update_statuses(
                        pid,
                        _SWEEPABLE,
                        InstallmentStatus.OVERDUE,
                        due_before=today,
                    )
                    _, changed = await self._status_updater.recompute_plan_status(pid)
            except (DomainException, SQLAlchemyError) as e:
                failed.append(str(pid))
                logger.error("overdue_sweep_plan_failed", plan_id=str(pid), error=str(e))
                continue

            marked_total += marked
            changes += int(changed)

        record_installment_event("overdue", marked_total)
        logger.info(
            "overdue_sweep_completed",
            plans_checked=len(plan_ids),
            installments_marked_overdue=marked_total,
            status_changes=changes,
            failed=len(failed),
        )

        return SweepResult(
            plans_checked=len(plan_ids),
            installments_marked_overdue=marked_total,
            status_changes=changes,
            failed_plan_ids=failed,
        )
