"""Installment payment events: payment requests, payments and refunds."""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult
from clinicpay.core.metrics import record_installment_event
from clinicpay.domain.entities import (
    ActivityType,
    ClinicContext,
    Installment,
    InstallmentStatus,
    NotificationType,
    PaymentRequest,
    PlanStatus,
    Plan,
)
from clinicpay.domain.exceptions import (
    DomainException,
    InstallmentNotFoundException,
    InvalidStatusTransitionException,
)
from clinicpay.domain.interfaces import (
    InstallmentRepository,
    PaymentRequestRepository,
    PlanRepository,
)
from clinicpay.service.lifecycle import (
    PAID_INSTALLMENT_STATUSES,
    is_installment_transition_valid,
)
from clinicpay.utils.dates import Clock, utc_today

from .access import get_owned_plan
from .notifier import PlanNotifier
from .payment_metrics import PlanPaymentMetrics
from .status_updater import PlanStatusUpdater

logger = structlog.get_logger(__name__)


class InstallmentPaymentService:
    """
    Applies payment events to installments.

    Every mutation is checked against the installment transition table and
    followed by handle_payment_status_change. Audit rows and notifications
    are best effort: once an installment is recorded as paid it stays paid.
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

    async def send_payment_request(
        self,
        installment_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Record a payment request sent to the patient for one installment.

        Returns:
            OperationResult with the new payment request ID as status
        """
        try:
            installment, plan = await self._load(installment_id, context)
            self._check_transition(installment, InstallmentStatus.SENT)

            request = PaymentRequest(plan_id=plan.id, installment_id=installment.id)
            await self._request_repo.save(request)
            await self._installment_repo.update(
                installment.id,
                {
                    "status": InstallmentStatus.SENT,
                    "payment_request_id": request.id,
                },
            )
        except (DomainException, SQLAlchemyError) as e:
            logger.error(
                "payment_request_failed",
                installment_id=str(installment_id),
                error=str(e),
            )
            return OperationResult.from_exception(e)

        await self._status_updater.handle_payment_status_change(
            request.id,
            plan.id,
            InstallmentStatus.SENT,
            context,
        )

        logger.info(
            "payment_request_sent",
            plan_id=str(plan.id),
            installment_id=str(installment_id),
            payment_request_id=str(request.id),
        )
        return OperationResult.ok(str(request.id))

    async def mark_as_paid(
        self,
        installment_id: UUID,
        context: Optional[ClinicContext] = None,
        paid_date: Optional[date] = None,
    ) -> OperationResult:
        """
        Manually mark an installment as paid, e.g. for a payment taken in clinic.

        Returns:
            OperationResult with the plan's resulting PlanStatus as status
        """
        return await self._record_payment(
            installment_id,
            payment_id=None,
            paid_date=paid_date,
            activity_type=ActivityType.PAYMENT_MARKED_PAID,
            event="marked_paid",
            context=context,
        )

    async def record_payment_success(
        self,
        installment_id: UUID,
        payment_id: str,
        amount: Optional[int] = None,
    ) -> OperationResult:
        """
        Apply a successful payment reported by the payment processor.

        Deliveries are at-least-once: a repeat for an installment that is
        already paid changes nothing and only re-runs the idempotent recompute.

        Returns:
            OperationResult with the plan's resulting PlanStatus as status
        """
        return await self._record_payment(
            installment_id,
            payment_id=payment_id,
            paid_date=None,
            activity_type=ActivityType.PAYMENT_MADE,
            event="paid",
            amount=amount,
        )

    async def record_refund(
        self,
        installment_id: UUID,
        amount: Optional[int] = None,
        full: bool = True,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        """
        Apply a refund to a paid installment.

        A refunded installment still counts as paid for progress.

        Returns:
            OperationResult with the plan's resulting PlanStatus as status
        """
        new_status = (
            InstallmentStatus.REFUNDED if full else InstallmentStatus.PARTIALLY_REFUNDED
        )

        try:
            installment, plan = await self._load(installment_id, context)
            self._check_transition(installment, new_status)
            await self._installment_repo.update(installment.id, {"status": new_status})
        except (DomainException, SQLAlchemyError) as e:
            logger.error("refund_failed", installment_id=str(installment_id), error=str(e))
            return OperationResult.from_exception(e)

        refund_amount = amount if amount is not None else installment.amount
        record_installment_event("refunded")

        await self._status_updater.handle_payment_status_change(
            installment.id,
            plan.id,
            new_status,
            context,
        )
        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PAYMENT_REFUNDED,
            {
                "installment_id": str(installment.id),
                "payment_number": installment.payment_number,
                "amount": refund_amount,
                "full_refund": full,
            },
            context,
        )
        await self._notifier.notify_patient(
            plan,
            NotificationType.REFUND_PROCESSED,
            {"amount": refund_amount, "payment_number": installment.payment_number},
        )

        logger.info(
            "installment_refunded",
            plan_id=str(plan.id),
            installment_id=str(installment.id),
            status=new_status.value,
        )
        return OperationResult.ok(await self._current_status(plan))

    async def _record_payment(
        self,
        installment_id: UUID,
        payment_id: Optional[str],
        paid_date: Optional[date],
        activity_type: ActivityType,
        event: str,
        amount: Optional[int] = None,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        log = logger.bind(installment_id=str(installment_id), payment_id=payment_id)

        try:
            installment, plan = await self._load(installment_id, context)

            if installment.status in PAID_INSTALLMENT_STATUSES:
                log.info("duplicate_payment_event", status=installment.status.value)
                await self._status_updater.handle_payment_status_change(
                    payment_id or installment.id,
                    plan.id,
                    installment.status,
                    context,
                )
                return OperationResult.ok(await self._current_status(plan))

            self._check_transition(installment, InstallmentStatus.PAID)

            paid_on = paid_date or self._clock()
            await self._installment_repo.update(
                installment.id,
                {"status": InstallmentStatus.PAID, "paid_date": paid_on},
            )
            if installment.payment_request_id:
                await self._request_repo.mark_paid(installment.payment_request_id, payment_id)
        except (DomainException, SQLAlchemyError) as e:
            log.error("payment_record_failed", error=str(e))
            return OperationResult.from_exception(e)

        record_installment_event(event)

        await self._status_updater.handle_payment_status_change(
            payment_id or installment.id,
            plan.id,
            InstallmentStatus.PAID,
            context,
        )

        paid_amount = amount if amount is not None else installment.amount
        details = {
            "installment_id": str(installment.id),
            "payment_number": installment.payment_number,
            "amount": paid_amount,
            "paid_date": paid_on.isoformat(),
        }
        if payment_id:
            details["payment_id"] = payment_id

        await self._metrics.log_plan_activity(plan, activity_type, details, context)
        await self._notifier.notify_patient(
            plan,
            NotificationType.PAYMENT_RECEIPT,
            {"amount": paid_amount, "payment_number": installment.payment_number},
        )

        log.info("installment_paid", plan_id=str(plan.id), paid_date=paid_on.isoformat())
        return OperationResult.ok(await self._current_status(plan))

    async def _load(
        self,
        installment_id: UUID,
        context: Optional[ClinicContext],
    ) -> tuple[Installment, Plan]:
        installment = await self._installment_repo.get_by_id(installment_id)
        if installment is None:
            raise InstallmentNotFoundException(str(installment_id))

        plan = await get_owned_plan(self._plan_repo, installment.plan_id, context)
        return installment, plan

    def _check_transition(
        self,
        installment: Installment,
        new_status: InstallmentStatus,
    ) -> None:
        if not is_installment_transition_valid(installment.status, new_status):
            raise InvalidStatusTransitionException(installment.status.value, new_status.value)

    async def _current_status(self, plan: Plan) -> PlanStatus:
        try:
            stored = await self._plan_repo.get_by_id(plan.id, include_installments=False)
        except SQLAlchemyError as e:
            logger.warning("plan_status_read_failed", plan_id=str(plan.id), error=str(e))
            return plan.status
        return stored.status if stored else plan.status
