"""Manual plan operations: pause, resume and cancel."""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult, ResumeAssessment
from clinicpay.core.metrics import (
    record_concurrent_update_conflict,
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
    PlanOperationNotAllowedException,
)
from clinicpay.domain.interfaces import (
    InstallmentRepository,
    PaymentRequestRepository,
    PlanRepository,
)
from clinicpay.service.lifecycle import is_plan_finished, is_plan_paused, shift_days
from clinicpay.utils.dates import Clock, utc_today

from .access import get_owned_plan
from .notifier import PlanNotifier
from .payment_metrics import PlanPaymentMetrics
from .status_updater import PlanStatusUpdater

logger = structlog.get_logger(__name__)

_CANCELLABLE = frozenset({InstallmentStatus.PENDING, InstallmentStatus.PAUSED})


class PlanOperationsService:
    """
    Pause, resume and cancel.

    Paused and cancelled are manual overrides: automatic recomputation never
    moves a plan out of them. Resume lifts the pause and lets the status
    updater decide where the plan lands.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        installment_repository: InstallmentRepository,
        payment_request_repository: PaymentRequestRepository,
        payment_metrics: PlanPaymentMetrics,
        status_updater: PlanStatusUpdater,
        notifier: PlanNotifier,
        clock: Clock = utc_today,
    ):
        self._plan_repo = plan_repository
        self._installment_repo = installment_repository
        self._request_repo = payment_request_repository
        self._metrics = payment_metrics
        self._status_updater = status_updater
        self._notifier = notifier
        self._clock = clock

    async def pause_plan(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Pause a plan and its pending installments.

        Installments that were already sent or are overdue keep their status.

        Returns:
            OperationResult with PlanStatus.PAUSED as status
        """
        log = logger.bind(plan_id=str(plan_id), operation="pause")

        try:
            plan = await get_owned_plan(self._plan_repo, plan_id, context)
            if is_plan_finished(plan) or is_plan_paused(plan):
                raise PlanOperationNotAllowedException(
                    str(plan_id), "pause", f"plan is {plan.status.value}"
                )

            pending = await self._installment_repo.get_by_statuses(
                plan_id,
                {InstallmentStatus.PENDING},
            )
            requests_cancelled = await self._request_repo.cancel(
                [inst.payment_request_id for inst in pending if inst.payment_request_id]
            )
            paused = await self._installment_repo.update_statuses(
                plan_id,
                {InstallmentStatus.PENDING},
                InstallmentStatus.PAUSED,
            )

            await self._plan_repo.update(
                plan_id,
                {"status": PlanStatus.PAUSED, "has_overdue_payments": False},
                expected_version=plan.version,
            )
        except (DomainException, SQLAlchemyError) as e:
            return self._failed("pause", e, log)

        record_status_transition(plan.status.value, PlanStatus.PAUSED.value)
        record_plan_operation("pause", success=True)

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PLAN_PAUSED,
            {
                "previous_status": plan.status.value,
                "payments_paused": paused,
                "payment_requests_cancelled": requests_cancelled,
            },
            context,
        )
        await self._notifier.notify_patient(plan, NotificationType.PLAN_PAUSED, {})

        log.info("plan_paused", payments_paused=paused)
        return OperationResult.ok(PlanStatus.PAUSED)

    async def cancel_plan(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Cancel a plan. Pending and paused installments are cancelled too.

        Cancelled is terminal for automatic status changes.

        Returns:
            OperationResult with PlanStatus.CANCELLED as status
        """
        log = logger.bind(plan_id=str(plan_id), operation="cancel")

        try:
            plan = await get_owned_plan(self._plan_repo, plan_id, context)
            if is_plan_finished(plan):
                raise PlanOperationNotAllowedException(
                    str(plan_id), "cancel", f"plan is already {plan.status.value}"
                )

            open_installments = await self._installment_repo.get_by_statuses(
                plan_id,
                _CANCELLABLE,
            )
            requests_cancelled = await self._request_repo.cancel(
                [
                    inst.payment_request_id
                    for inst in open_installments
                    if inst.payment_request_id
                ]
            )
            cancelled = await self._installment_repo.update_statuses(
                plan_id,
                _CANCELLABLE,
                InstallmentStatus.CANCELLED,
            )

            await self._plan_repo.update(
                plan_id,
                {"status": PlanStatus.CANCELLED, "has_overdue_payments": False},
                expected_version=plan.version,
            )
            await self._metrics.refresh_metrics(plan_id)
        except (DomainException, SQLAlchemyError) as e:
            return self._failed("cancel", e, log)

        record_status_transition(plan.status.value, PlanStatus.CANCELLED.value)
        record_plan_operation("cancel", success=True)

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PLAN_CANCELLED,
            {
                "previous_status": plan.status.value,
                "payments_cancelled": cancelled,
                "payment_requests_cancelled": requests_cancelled,
            },
            context,
        )
        await self._notifier.notify_patient(plan, NotificationType.PLAN_CANCELLED, {})

        log.info("plan_cancelled", payments_cancelled=cancelled)
        return OperationResult.ok(PlanStatus.CANCELLED)

    async def resume_plan(
        self,
        plan_id: UUID,
        resume_date: Optional[date] = None,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Resume a paused plan.

        Paused installments go back to pending. With a resume_date they are
        also shifted forward by however many days resume_date is past the
        earliest paused due date. The plan's status is then recomputed, so
        it lands on pending, active or overdue, never stays paused.

        Returns:
            OperationResult with the recomputed PlanStatus as status
        """
        log = logger.bind(plan_id=str(plan_id), operation="resume")

        try:
            plan = await get_owned_plan(self._plan_repo, plan_id, context)
            if is_plan_finished(plan):
                raise PlanOperationNotAllowedException(
                    str(plan_id), "resume", f"plan is {plan.status.value}"
                )

            paused = await self._installment_repo.get_by_statuses(
                plan_id,
                {InstallmentStatus.PAUSED},
            )
            if not paused:
                raise PlanOperationNotAllowedException(
                    str(plan_id), "resume", "no paused installments"
                )

            earliest = min(inst.due_date for inst in paused)
            for installment in paused:
                await self._installment_repo.update(
                    installment.id,
                    {
                        "status": InstallmentStatus.PENDING,
                        "due_date": shift_days(installment.due_date, resume_date, earliest),
                    },
                )

            if is_plan_paused(plan):
                await self._plan_repo.update(
                    plan_id,
                    {"status": PlanStatus.PENDING},
                    expected_version=plan.version,
                )

            status, _ = await self._status_updater.recompute_plan_status(plan_id, context)
        except (DomainException, SQLAlchemyError) as e:
            return self._failed("resume", e, log)

        if status != plan.status:
            record_status_transition(plan.status.value, status.value)
        record_plan_operation("resume", success=True)

        details = {
            "payments_resumed": len(paused),
            "new_status": status.value,
        }
        if resume_date is not None:
            details["resume_date"] = resume_date.isoformat()

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PLAN_RESUMED,
            details,
            context,
        )
        await self._notifier.notify_patient(plan, NotificationType.PLAN_RESUMED, details)

        log.info("plan_resumed", payments_resumed=len(paused), status=status.value)
        return OperationResult.ok(status)

    async def assess_resume(
        self,
        plan_id: UUID,
        resume_date: Optional[date] = None,
        context: Optional[ClinicContext] = None,
    ) -> ResumeAssessment:
        """
        Work out which warnings to show before resuming.

        Nothing is written.

        Raises:
            PlanNotFoundException: If the plan does not exist
        """
        await get_owned_plan(self._plan_repo, plan_id, context)

        paused = await self._installment_repo.get_by_statuses(
            plan_id,
            {InstallmentStatus.PAUSED},
        )
        paid = await self._metrics.get_accurate_paid_installment_count(plan_id)

        today = self._clock()
        past_due = False
        if paused:
            earliest = min(inst.due_date for inst in paused)
            past_due = any(
                shift_days(inst.due_date, resume_date, earliest) < today
                for inst in paused
            )

        return ResumeAssessment(
            has_sent_payments=any(inst.payment_request_id for inst in paused),
            has_past_due_after_resume=past_due,
            has_paid_payments=paid > 0,
            paused_installments=len(paused),
        )

    def _failed(self, operation: str, exc: Exception, log) -> OperationResult:
        record_plan_operation(operation, success=False)
        if isinstance(exc, ConcurrentPlanUpdateException):
            record_concurrent_update_conflict()
            log.warning("plan_operation_conflict")
        else:
            log.error("plan_operation_failed", error=str(exc))
        return OperationResult.from_exception(exc)
