"""Overdue detection for a single plan."""

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult
from clinicpay.domain.exceptions import StatusSweepException
from clinicpay.domain.interfaces import InstallmentRepository, StatusSweepClient
from clinicpay.service.lifecycle import OVERDUE_CANDIDATE_STATUSES
from clinicpay.utils.dates import Clock, utc_today

logger = structlog.get_logger(__name__)


class PlanOverdueChecker:
    """
    Answers whether a plan currently has an overdue installment.

    This is the only place the overdue condition is evaluated: status in
    {pending, sent, overdue} and due strictly before today.
    """

    def __init__(
        self,
        installment_repository: InstallmentRepository,
        sweep_client: StatusSweepClient,
        clock: Clock = utc_today,
    ):
        self._installment_repo = installment_repository
        self._sweep_client = sweep_client
        self._clock = clock

    async def check_plan_for_overdue_payments(self, plan_id: UUID) -> bool:
        """
        Check whether any installment of the plan is past due.

        Read errors are logged and reported as not overdue.
        """
        try:
            return await self._installment_repo.exists_due_before(
                plan_id,
                OVERDUE_CANDIDATE_STATUSES,
                self._clock(),
            )
        except SQLAlchemyError as e:
            logger.error("overdue_check_failed", plan_id=str(plan_id), error=str(e))
            return False

    async def trigger_status_update(self, plan_id: Optional[UUID] = None) -> OperationResult:
        """Ask the external sweep job to re-evaluate one plan or all plans."""
        try:
            response = await self._sweep_client.trigger(plan_id)
        except StatusSweepException as e:
            logger.error(
                "status_sweep_trigger_failed",
                plan_id=str(plan_id) if plan_id else None,
                error=e.message,
            )
            return OperationResult.from_exception(e)

        return OperationResult.ok(response)
