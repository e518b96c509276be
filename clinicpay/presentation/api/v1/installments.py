"""Installment event endpoints: payment requests, payments, refunds and rescheduling."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path

from clinicpay.application.services import (
    InstallmentPaymentService,
    PlanRescheduleService,
)
from clinicpay.core.dependencies import (
    get_clinic_context,
    get_payment_service,
    get_reschedule_service,
)
from clinicpay.domain.entities import ClinicContext
from clinicpay.presentation.middleware import ensure_success
from clinicpay.presentation.schemas import (
    MarkPaidSchema,
    OperationResultSchema,
    PaymentRequestResultSchema,
    PaymentRescheduleSchema,
    PaymentSucceededSchema,
    RefundSchema,
    error_responses,
)

installments_router = APIRouter(
    prefix="/installments",
    responses=error_responses(400, 404, 409, e400="Invalid installment status transition"),
)

Context = Annotated[ClinicContext, Depends(get_clinic_context)]
InstallmentId = Annotated[UUID, Path(description="UUID of the installment")]
Payments = Annotated[InstallmentPaymentService, Depends(get_payment_service)]


def _result(result) -> OperationResultSchema:
    ensure_success(result)
    return OperationResultSchema(status=getattr(result.status, "value", result.status))


@installments_router.post(
    "/{installment_id}/payment-request",
    response_model=PaymentRequestResultSchema,
    summary="Send Payment Request",
)
async def send_payment_request(
    installment_id: InstallmentId,
    context: Context,
    payments: Payments,
) -> PaymentRequestResultSchema:
    result = await payments.send_payment_request(installment_id, context)
    ensure_success(result)

    return PaymentRequestResultSchema(payment_request_id=result.status)


@installments_router.post(
    "/{installment_id}/mark-paid",
    response_model=OperationResultSchema,
    summary="Mark Installment Paid",
    description="Record a payment taken outside the payment processor.",
)
async def mark_as_paid(
    installment_id: InstallmentId,
    context: Context,
    payments: Payments,
    request: Annotated[Optional[MarkPaidSchema], Body()] = None,
) -> OperationResultSchema:
    paid_date = request.paid_date if request else None
    return _result(await payments.mark_as_paid(installment_id, context, paid_date))


@installments_router.post(
    "/{installment_id}/payment-succeeded",
    response_model=OperationResultSchema,
    summary="Payment Succeeded",
    description="""
    Payment processor callback for a captured payment.

    Safe to deliver more than once.
    """,
)
async def payment_succeeded(
    installment_id: InstallmentId,
    request: PaymentSucceededSchema,
    payments: Payments,
) -> OperationResultSchema:
    return _result(
        await payments.record_payment_success(
            installment_id,
            request.payment_id,
            request.amount,
        )
    )


@installments_router.post(
    "/{installment_id}/refund",
    response_model=OperationResultSchema,
    summary="Refund Installment",
)
async def refund(
    installment_id: InstallmentId,
    context: Context,
    payments: Payments,
    request: Annotated[Optional[RefundSchema], Body()] = None,
) -> OperationResultSchema:
    request = request or RefundSchema()
    return _result(
        await payments.record_refund(installment_id, request.amount, request.full, context)
    )


@installments_router.post(
    "/{installment_id}/reschedule",
    response_model=OperationResultSchema,
    summary="Reschedule Installment",
)
async def reschedule_payment(
    installment_id: InstallmentId,
    request: PaymentRescheduleSchema,
    context: Context,
    reschedule_service: Annotated[PlanRescheduleService, Depends(get_reschedule_service)],
) -> OperationResultSchema:
    return _result(
        await reschedule_service.reschedule_payment(
            installment_id,
            request.new_due_date,
            context,
        )
    )
