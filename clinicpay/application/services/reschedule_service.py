"""Moving a plan's remaining schedule, or a single installment, to new dates."""

from datetime import date
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult, RescheduleResult
from clinicpay.core.metrics import (
    record_concurrent_update_conflict,
    record_installment_event,
    record_plan_operation,
    record_status_transition,
)
from clinicpay.domain.entities import (
    ActivityType,
    ClinicContext,
    InstallmentStatus,
    NotificationType,
    PlanStatus,
)
from clinicpay.domain.exceptions import (
    ConcurrentPlanUpdateException,
    DomainException,
    InstallmentNotFoundException,
    PlanOperationNotAllowedException,
)
from clinicpay.domain.interfaces import (
    InstallmentRepository,
    PaymentRequestRepository,
    PlanRepository,
    UnitOfWork,
)
from clinicpay.service.lifecycle import (
    MODIFIABLE_INSTALLMENT_STATUSES,
    due_date_for,
    is_installment_modifiable,
    is_plan_finished,
)

from .access import get_owned_plan
from .notifier import PlanNotifier
from .payment_metrics import PlanPaymentMetrics
from .status_updater import PlanStatusUpdater

logger = structlog.get_logger(__name__)


class PlanRescheduleService:
    """
    Reschedules plans and individual installments.

    New due dates are always offset from the new start date (i x interval)
    and never chained from the previous installment.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        installment_repository: InstallmentRepository,
        payment_request_repository: PaymentRequestRepository,
        payment_metrics: PlanPaymentMetrics,
        status_updater: PlanStatusUpdater,
        notifier: PlanNotifier,
        unit_of_work: UnitOfWork,
    ):
        self._plan_repo = plan_repository
        self._installment_repo = installment_repository
        self._request_repo = payment_request_repository
        self._metrics = payment_metrics
        self._status_updater = status_updater
        self._notifier = notifier
        self._uow = unit_of_work

    async def reschedule_plan(
        self,
        plan_id: UUID,
        new_start_date: date,
        context: Optional[ClinicContext] = None,
    ) -> RescheduleResult:
        """
        Move every modifiable installment so the schedule starts on new_start_date.

        Outstanding payment requests of the moved installments are cancelled
        and the installments reset to pending. A failure writing one
        installment is logged and collected without aborting the rest.

        Args:
            plan_id: The plan to reschedule
            new_start_date: Due date of the first modifiable installment
            context: Calling clinic

        Returns:
            RescheduleResult; success reflects the plan start date and
            status write only
        """
        log = logger.bind(plan_id=str(plan_id), new_start_date=new_start_date.isoformat())

        try:
            plan = await get_owned_plan(self._plan_repo, plan_id, context)
            if is_plan_finished(plan):
                raise PlanOperationNotAllowedException(
                    str(plan_id), "reschedule", f"plan is {plan.status.value}"
                )

            paid = await self._metrics.get_accurate_paid_installment_count(plan_id)
            modifiable = await self._installment_repo.get_by_statuses(
                plan_id,
                MODIFIABLE_INSTALLMENT_STATUSES,
            )
            modifiable.sort(key=lambda inst: inst.payment_number)

            request_ids = [
                inst.payment_request_id for inst in modifiable if inst.payment_request_id
            ]
            requests_cancelled = await self._request_repo.cancel(request_ids)

            new_status = PlanStatus.ACTIVE if paid > 0 else PlanStatus.PENDING
            await self._plan_repo.update(
                plan_id,
                {
                    "start_date": new_start_date,
                    "status": new_status,
                    "has_overdue_payments": False,
                },
                expected_version=plan.version,
            )
        except ConcurrentPlanUpdateException as e:
            record_concurrent_update_conflict()
            record_plan_operation("reschedule", success=False)
            log.warning("plan_reschedule_conflict")
            return RescheduleResult.from_exception(e)
        except (DomainException, SQLAlchemyError) as e:
            record_plan_operation("reschedule", success=False)
            log.error("plan_reschedule_failed", error=str(e))
            return RescheduleResult.from_exception(e)

        if new_status != plan.status:
            record_status_transition(plan.status.value, new_status.value)

        shifted = 0
        failed: List[str] = []
        for index, installment in enumerate(modifiable):
            new_due_date = due_date_for(new_start_date, index, plan.payment_frequency)
            try:
                async with self._uow.savepoint():
                    await self._installment_repo.update(
                        installment.id,
                        {
                            "due_date": new_due_date,
                            "status": InstallmentStatus.PENDING,
                            "payment_request_id": None,
                        },
                    )
                shifted += 1
            except (DomainException, SQLAlchemyError) as e:
                failed.append(str(installment.id))
                log.error(
                    "installment_reschedule_failed",
                    installment_id=str(installment.id),
                    payment_number=installment.payment_number,
                    error=str(e),
                )

        try:
            await self._plan_repo.update(plan_id, {"next_due_date": new_start_date})
        except SQLAlchemyError as e:
            log.error("plan_next_due_date_update_failed", error=str(e))

        record_installment_event("rescheduled", shifted)
        record_plan_operation("reschedule", success=True)

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PLAN_RESCHEDULED,
            {
                "previous_start_date": plan.start_date.isoformat(),
                "new_start_date": new_start_date.isoformat(),
                "payments_shifted": shifted,
                "requests_cancelled": requests_cancelled,
                "failed_installments": len(failed),
            },
            context,
        )
        await self._notifier.notify_patient(
            plan,
            NotificationType.PLAN_RESCHEDULED,
            {"new_start_date": new_start_date.isoformat()},
        )

        log.info(
            "plan_rescheduled",
            payments_shifted=shifted,
            requests_cancelled=requests_cancelled,
            failed_installments=len(failed),
        )

        return RescheduleResult(
            success=True,
            status=new_status,
            payments_shifted=shifted,
            requests_cancelled=requests_cancelled,
            failed_installment_ids=failed,
        )

    async def reschedule_payment(
        self,
        installment_id: UUID,
        new_due_date: date,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Move a single installment to a new due date.

        Its outstanding payment request is cancelled and the installment
        goes back to pending (or stays paused on a paused plan), then the
        plan's status is recomputed.

        Returns:
            OperationResult with the plan's resulting PlanStatus as status
        """
        log = logger.bind(installment_id=str(installment_id))

        try:
            installment = await self._installment_repo.get_by_id(installment_id)
            if installment is None:
                raise InstallmentNotFoundException(str(installment_id))

            plan = await get_owned_plan(self._plan_repo, installment.plan_id, context)
            if is_plan_finished(plan):
                raise PlanOperationNotAllowedException(
                    str(plan.id), "reschedule payment on", f"plan is {plan.status.value}"
                )
            if not is_installment_modifiable(installment.status):
                raise PlanOperationNotAllowedException(
                    str(plan.id),
                    "reschedule payment on",
                    f"installment {installment.payment_number} is {installment.status.value}",
                )

            request_cancelled = False
            if installment.payment_request_id:
                request_cancelled = (
                    await self._request_repo.cancel([installment.payment_request_id]) > 0
                )

            new_status = (
                InstallmentStatus.PAUSED
                if installment.status == InstallmentStatus.PAUSED
                else InstallmentStatus.PENDING
            )
            await self._installment_repo.update(
                installment_id,
                {
                    "due_date": new_due_date,
                    "status": new_status,
                    "payment_request_id": None,
                },
            )

            plan_status, _ = await self._status_updater.recompute_plan_status(plan.id, context)
        except ConcurrentPlanUpdateException as e:
            record_concurrent_update_conflict()
            log.warning("payment_reschedule_conflict")
            return OperationResult.from_exception(e)
        except (DomainException, SQLAlchemyError) as e:
            log.error("payment_reschedule_failed", error=str(e))
            return OperationResult.from_exception(e)

        record_installment_event("rescheduled")

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PAYMENT_RESCHEDULED,
            {
                "installment_id": str(installment_id),
                "payment_number": installment.payment_number,
                "previous_due_date": installment.due_date.isoformat(),
                "new_due_date": new_due_date.isoformat(),
                "request_cancelled": request_cancelled,
            },
            context,
        )

        log.info(
            "payment_rescheduled",
            plan_id=str(plan.id),
            new_due_date=new_due_date.isoformat(),
        )

        return OperationResult.ok(plan_status)
