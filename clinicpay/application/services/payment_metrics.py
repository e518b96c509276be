"""Paid count, progress and the plan activity log."""

from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult, PlanMetricsDTO
from clinicpay.domain.entities import (
    ActivityType,
    ClinicContext,
    PaymentActivity,
    Plan,
)
from clinicpay.domain.exceptions import DomainException, PlanNotFoundException
from clinicpay.domain.interfaces import (
    ActivityRepository,
    InstallmentRepository,
    PlanRepository,
    UnitOfWork,
)
from clinicpay.service.lifecycle import (
    PAID_INSTALLMENT_STATUSES,
    calculate_progress,
    next_due_date,
)

logger = structlog.get_logger(__name__)


class PlanPaymentMetrics:
    """
    Source of truth for how many installments are paid and how far along a plan is.

    The paid count is always a COUNT over the schedule, never an
    incremented counter, so replayed payment events cannot inflate it.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        installment_repository: InstallmentRepository,
        activity_repository: ActivityRepository,
        unit_of_work: UnitOfWork,
    ):
        self._plan_repo = plan_repository
        self._installment_repo = installment_repository
        self._activity_repo = activity_repository
        self._uow = unit_of_work

    async def get_accurate_paid_installment_count(self, plan_id: UUID) -> int:
        """Count installments that are paid, refunded or partially refunded."""
        return await self._installment_repo.count_by_statuses(
            plan_id,
            PAID_INSTALLMENT_STATUSES,
        )

    @staticmethod
    def calculate_progress(paid: int, total: int) -> int:
        return calculate_progress(paid, total)

    async def refresh_metrics(self, plan_id: UUID) -> PlanMetricsDTO:
        """
        Recompute paid_installments, progress and next_due_date and store them.

        Nothing is written when the stored values already match.

        Raises:
            PlanNotFoundException: If the plan does not exist
            SQLAlchemyError: On data access failure
        """
        plan = await self._plan_repo.get_by_id(plan_id, include_installments=False)
        if plan is None:
            raise PlanNotFoundException(str(plan_id))

        paid = await self.get_accurate_paid_installment_count(plan_id)
        progress = self.calculate_progress(paid, plan.total_installments)
        installments = await self._installment_repo.get_by_plan_id(plan_id)
        upcoming = next_due_date(installments)

        values = {
            "paid_installments": paid,
            "progress": progress,
            "next_due_date": upcoming,
        }
        current = {
            "paid_installments": plan.paid_installments,
            "progress": plan.progress,
            "next_due_date": plan.next_due_date,
        }

        if values != current:
            await self._plan_repo.update(plan_id, values)
            logger.info(
                "plan_metrics_updated",
                plan_id=str(plan_id),
                paid_installments=paid,
                progress=progress,
            )

        return PlanMetricsDTO(
            plan_id=str(plan_id),
            paid_installments=paid,
            total_installments=plan.total_installments,
            progress=progress,
            next_due_date=upcoming.isoformat() if upcoming else None,
        )

    async def update_plan_payment_metrics(self, plan_id: UUID) -> OperationResult:
        """
        Recompute and store a plan's payment metrics.

        Must run after any installment change that can affect the paid count.

        Returns:
            OperationResult with a PlanMetricsDTO as status
        """
        try:
            metrics = await self.refresh_metrics(plan_id)
        except (DomainException, SQLAlchemyError) as e:
            logger.error("plan_metrics_update_failed", plan_id=str(plan_id), error=str(e))
            return OperationResult.from_exception(e)

        return OperationResult.ok(metrics)

    async def log_payment_activity(
        self,
        payment_link_id: str,
        patient_id: str,
        clinic_id: str,
        plan_id: UUID,
        action_type: ActivityType,
        details: Dict[str, Any],
        performed_by: Optional[str] = None,
    ) -> bool:
        """
        Append one row to the plan's activity log.

        Best effort: the insert runs in a savepoint and a failure is only
        logged, so it can never undo the operation being recorded.

        Returns:
            True if the row was written
        """
        activity = PaymentActivity(
            plan_id=plan_id,
            clinic_id=clinic_id,
            patient_id=patient_id,
            payment_link_id=payment_link_id,
            action_type=action_type,
            details=details,
            performed_by=performed_by,
        )

        try:
            async with self._uow.savepoint():
                await self._activity_repo.add(activity)
        except SQLAlchemyError as e:
            logger.warning(
                "payment_activity_log_failed",
                plan_id=str(plan_id),
                action_type=action_type.value,
                error=str(e),
            )
            return False

        return True

    async def log_plan_activity(
        self,
        plan: Plan,
        action_type: ActivityType,
        details: Dict[str, Any],
        context: Optional[ClinicContext] = None,
    ) -> bool:
        return await self.log_payment_activity(
            payment_link_id=plan.payment_link_id,
            patient_id=plan.patient_id,
            clinic_id=plan.clinic_id,
            plan_id=plan.id,
            action_type=action_type,
            details=details,
            performed_by=context.user_id if context else None,
        )
