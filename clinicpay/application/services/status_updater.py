"""Derived plan status: calculation, persistence and the post-payment hook."""

from typing import Any, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult
from clinicpay.core.metrics import (
    record_concurrent_update_conflict,
    record_status_transition,
    track_status_recompute_latency,
)
from clinicpay.domain.entities import ActivityType, ClinicContext, Plan, PlanStatus
from clinicpay.domain.exceptions import (
    ConcurrentPlanUpdateException,
    DomainException,
    PlanNotFoundException,
)
from clinicpay.domain.interfaces import PlanRepository, UnitOfWork
from clinicpay.service.lifecycle import derive_plan_status

from .overdue_checker import PlanOverdueChecker
from .payment_metrics import PlanPaymentMetrics

logger = structlog.get_logger(__name__)


class PlanStatusUpdater:
    """
    Keeps a plan's stored status in line with its payment schedule.

    Evaluation priority is manual override (paused, cancelled) > completed
    > overdue > active > pending. Recomputing is idempotent and only
    writes when the derived status differs from the stored one.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        overdue_checker: PlanOverdueChecker,
        payment_metrics: PlanPaymentMetrics,
        unit_of_work: UnitOfWork,
    ):
        self._plan_repo = plan_repository
        self._overdue_checker = overdue_checker
        self._metrics = payment_metrics
        self._uow = unit_of_work

    async def calculate_plan_status(self, plan_id: UUID) -> PlanStatus:
        """
        Compute the status the plan should have, without writing anything.

        Raises:
            PlanNotFoundException: If the plan does not exist
        """
        plan = await self._plan_repo.get_by_id(plan_id, include_installments=False)
        if plan is None:
            raise PlanNotFoundException(str(plan_id))

        return await self._derive(plan)

    async def recompute_plan_status(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> Tuple[PlanStatus, bool]:
        """
        Refresh metrics, derive the status and store it if it changed.

        Returns:
            The resulting status and whether a status write happened

        Raises:
            PlanNotFoundException: If the plan does not exist
            ConcurrentPlanUpdateException: If the plan changed underneath the write
            SQLAlchemyError: On data access failure
        """
        with track_status_recompute_latency():
            await self._metrics.refresh_metrics(plan_id)

            plan = await self._plan_repo.get_by_id(plan_id, include_installments=False)
            if plan is None:
                raise PlanNotFoundException(str(plan_id))

            new_status = await self._derive(plan)
            if new_status == plan.status:
                return new_status, False

            await self._plan_repo.update(
                plan_id,
                {
                    "status": new_status,
                    "has_overdue_payments": new_status == PlanStatus.OVERDUE,
                },
                expected_version=plan.version,
            )

        record_status_transition(plan.status.value, new_status.value)
        logger.info(
            "plan_status_changed",
            plan_id=str(plan_id),
            previous_status=plan.status.value,
            new_status=new_status.value,
        )

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.STATUS_CHANGE,
            {
                "previous_status": plan.status.value,
                "new_status": new_status.value,
                "automatic": True,
            },
            context,
        )

        return new_status, True

    async def update_plan_status(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Recompute and persist a plan's status.

        Safe to retry: a second call with no data change performs no write.

        Returns:
            OperationResult with the resulting PlanStatus as status
        """
        try:
            status, _ = await self.recompute_plan_status(plan_id, context)
        except ConcurrentPlanUpdateException as e:
            record_concurrent_update_conflict()
            logger.warning("plan_status_update_conflict", plan_id=str(plan_id))
            return OperationResult.from_exception(e)
        except (DomainException, SQLAlchemyError) as e:
            logger.error("plan_status_update_failed", plan_id=str(plan_id), error=str(e))
            return OperationResult.from_exception(e)

        return OperationResult.ok(status)

    async def handle_payment_status_change(
        self,
        payment_id: Any,
        plan_id: UUID,
        new_status: Any,
        context: Optional[ClinicContext] = None,
    ) -> None:
        """
        Entry point after any installment status mutation.

        The recompute runs in a savepoint. A failure rolls back only the
        recompute and is logged; the installment change is kept.
        """
        try:
            async with self._uow.savepoint():
                await self.recompute_plan_status(plan_id, context)
        except ConcurrentPlanUpdateException:
            record_concurrent_update_conflict()
            logger.warning(
                "payment_status_recompute_conflict",
                payment_id=str(payment_id),
                plan_id=str(plan_id),
            )
        except (DomainException, SQLAlchemyError) as e:
            logger.error(
                "payment_status_recompute_failed",
                payment_id=str(payment_id),
                plan_id=str(plan_id),
                new_status=getattr(new_status, "value", new_status),
                error=str(e),
            )

    async def _derive(self, plan: Plan) -> PlanStatus:
        paid = await self._metrics.get_accurate_paid_installment_count(plan.id)
        has_overdue = await self._overdue_checker.check_plan_for_overdue_payments(plan.id)

        return derive_plan_status(
            stored_status=plan.status,
            paid_count=paid,
            total_installments=plan.total_installments,
            has_overdue=has_overdue,
        )
