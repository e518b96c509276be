"""Payment plan API endpoints."""

from datetime import date
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query

from clinicpay.application.dto import CreatePlanRequest
from clinicpay.application.services import (
    OverdueSweepService,
    PlanOperationsService,
    PlanRescheduleService,
    PlanService,
    PlanStatusService,
)
from clinicpay.core.dependencies import (
    get_clinic_context,
    get_operations_service,
    get_plan_service,
    get_plan_status_service,
    get_reschedule_service,
    get_sweep_service,
)
from clinicpay.domain.entities import ClinicContext, PlanStatus
from clinicpay.presentation.middleware import ensure_success
from clinicpay.presentation.schemas import (
    ActivitySchema,
    CreatePlanSchema,
    OperationResultSchema,
    OverdueCheckSchema,
    PlanMetricsSchema,
    PlanResponseSchema,
    PlanStatusSchema,
    RescheduleRequestSchema,
    RescheduleResultSchema,
    ResumeAssessmentSchema,
    ResumeRequestSchema,
    SweepRequestSchema,
    SweepResultSchema,
    SweepTriggerResultSchema,
    error_responses,
)

plans_router = APIRouter(
    prefix="/plans",
    responses=error_responses(400, 404, 409),
)

Context = Annotated[ClinicContext, Depends(get_clinic_context)]
PlanId = Annotated[UUID, Path(description="UUID of the plan")]
Plans = Annotated[PlanService, Depends(get_plan_service)]
Statuses = Annotated[PlanStatusService, Depends(get_plan_status_service)]
Operations = Annotated[PlanOperationsService, Depends(get_operations_service)]


def _value(status) -> Optional[str]:
    return getattr(status, "value", status)


# Sweep endpoints are registered before /{plan_id} routes.
@plans_router.post(
    "/status-sweep",
    response_model=SweepResultSchema,
    summary="Run Overdue Sweep",
    description="""
    Mark past-due installments as overdue and recompute plan statuses.

    Called by the external scheduler. Paused, cancelled and completed
    plans are skipped.
    """,
)
async def run_status_sweep(
    sweep_service: Annotated[OverdueSweepService, Depends(get_sweep_service)],
    request: Annotated[Optional[SweepRequestSchema], Body()] = None,
) -> SweepResultSchema:
    result = await sweep_service.run(request.plan_id if request else None)

    return SweepResultSchema(
        plans_checked=result.plans_checked,
        installments_marked_overdue=result.installments_marked_overdue,
        status_changes=result.status_changes,
        failed_plan_ids=result.failed_plan_ids,
    )


@plans_router.post(
    "/status-sweep/trigger",
    response_model=SweepTriggerResultSchema,
    summary="Trigger Overdue Sweep",
    description="Ask the out-of-process sweep job to run, for one plan or all plans.",
    responses=error_responses(503),
)
async def trigger_status_sweep(
    context: Context,
    status_service: Statuses,
    plan_service: Plans,
    plan_id: Annotated[Optional[UUID], Query(description="Restrict to one plan")] = None,
) -> SweepTriggerResultSchema:
    if plan_id is not None:
        await plan_service.require_plan(plan_id, context)

    result = await status_service.trigger_status_update(plan_id)
    ensure_success(result)

    return SweepTriggerResultSchema(result=result.status or {})


@plans_router.post(
    "",
    response_model=PlanResponseSchema,
    status_code=201,
    summary="Create Payment Plan",
    description="Create a plan and generate its full installment schedule.",
)
async def create_plan(
    request: CreatePlanSchema,
    context: Context,
    plan_service: Plans,
) -> PlanResponseSchema:
    dto = CreatePlanRequest(
        patient_id=request.patient_id,
        payment_link_id=request.payment_link_id,
        title=request.title,
        total_amount=request.total_amount,
        total_installments=request.total_installments,
        payment_frequency=request.payment_frequency,
        start_date=request.start_date,
    )
    response = await plan_service.create_plan(dto, context)

    return PlanResponseSchema.model_validate(response, from_attributes=True)


@plans_router.get(
    "",
    response_model=list[PlanResponseSchema],
    summary="List Payment Plans",
    description="List the calling clinic's plans, newest first, without installments.",
)
async def list_plans(
    context: Context,
    plan_service: Plans,
    status: Annotated[Optional[PlanStatus], Query(description="Filter by status")] = None,
) -> list[PlanResponseSchema]:
    plans = await plan_service.list_plans(context, status=status)

    return [PlanResponseSchema.model_validate(p, from_attributes=True) for p in plans]


@plans_router.get(
    "/{plan_id}",
    response_model=PlanResponseSchema,
    summary="Get Payment Plan",
    description="""
    Retrieve a payment plan by its ID.

    Returns the plan details including all installments with their due
    dates, amounts, and current status.
    """,
)
async def get_plan(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
) -> PlanResponseSchema:
    response = await plan_service.get_plan(plan_id, context)

    return PlanResponseSchema.model_validate(response, from_attributes=True)


@plans_router.get(
    "/{plan_id}/status",
    response_model=PlanStatusSchema,
    summary="Calculate Plan Status",
    description="Compute the status the plan should have. Nothing is written.",
)
async def calculate_plan_status(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    status_service: Statuses,
) -> PlanStatusSchema:
    await plan_service.require_plan(plan_id, context)
    status = await status_service.calculate_plan_status(plan_id)

    return PlanStatusSchema(plan_id=str(plan_id), status=status.value)


@plans_router.post(
    "/{plan_id}/status/refresh",
    response_model=PlanStatusSchema,
    summary="Update Plan Status",
    description="Recompute the plan's status and store it if it changed.",
)
async def update_plan_status(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    status_service: Statuses,
) -> PlanStatusSchema:
    await plan_service.require_plan(plan_id, context)
    result = await status_service.update_plan_status(plan_id, context)
    ensure_success(result)

    return PlanStatusSchema(plan_id=str(plan_id), status=_value(result.status))


@plans_router.get(
    "/{plan_id}/overdue",
    response_model=OverdueCheckSchema,
    summary="Check Overdue Payments",
)
async def check_overdue(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    status_service: Statuses,
) -> OverdueCheckSchema:
    await plan_service.require_plan(plan_id, context)
    has_overdue = await status_service.check_plan_for_overdue_payments(plan_id)

    return OverdueCheckSchema(plan_id=str(plan_id), has_overdue_payments=has_overdue)


@plans_router.get(
    "/{plan_id}/metrics",
    response_model=PlanMetricsSchema,
    summary="Get Payment Metrics",
    description="Paid installment count and progress, counted from the schedule.",
)
async def get_plan_metrics(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    status_service: Statuses,
) -> PlanMetricsSchema:
    plan = await plan_service.require_plan(plan_id, context)
    paid = await status_service.get_accurate_paid_installment_count(plan_id)

    return PlanMetricsSchema(
        plan_id=str(plan_id),
        paid_installments=paid,
        total_installments=plan.total_installments,
        progress=status_service.calculate_progress(paid, plan.total_installments),
        next_due_date=plan.next_due_date.isoformat() if plan.next_due_date else None,
    )


@plans_router.post(
    "/{plan_id}/metrics/refresh",
    response_model=PlanMetricsSchema,
    summary="Update Payment Metrics",
)
async def update_plan_metrics(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    status_service: Statuses,
) -> PlanMetricsSchema:
    await plan_service.require_plan(plan_id, context)
    result = await status_service.update_plan_payment_metrics(plan_id)
    ensure_success(result)

    return PlanMetricsSchema.model_validate(result.status, from_attributes=True)


@plans_router.post(
    "/{plan_id}/pause",
    response_model=OperationResultSchema,
    summary="Pause Plan",
)
async def pause_plan(
    plan_id: PlanId,
    context: Context,
    operations: Operations,
) -> OperationResultSchema:
    result = await operations.pause_plan(plan_id, context)
    ensure_success(result)

    return OperationResultSchema(status=_value(result.status))


@plans_router.post(
    "/{plan_id}/cancel",
    response_model=OperationResultSchema,
    summary="Cancel Plan",
)
async def cancel_plan(
    plan_id: PlanId,
    context: Context,
    operations: Operations,
) -> OperationResultSchema:
    result = await operations.cancel_plan(plan_id, context)
    ensure_success(result)

    return OperationResultSchema(status=_value(result.status))


@plans_router.post(
    "/{plan_id}/resume",
    response_model=OperationResultSchema,
    summary="Resume Plan",
)
async def resume_plan(
    plan_id: PlanId,
    context: Context,
    operations: Operations,
    request: Annotated[Optional[ResumeRequestSchema], Body()] = None,
) -> OperationResultSchema:
    resume_date = request.resume_date if request else None
    result = await operations.resume_plan(plan_id, resume_date, context)
    ensure_success(result)

    return OperationResultSchema(status=_value(result.status))


@plans_router.get(
    "/{plan_id}/resume-assessment",
    response_model=ResumeAssessmentSchema,
    summary="Assess Resume",
    description="Warnings to show before resuming a paused plan.",
)
async def assess_resume(
    plan_id: PlanId,
    context: Context,
    operations: Operations,
    resume_date: Annotated[Optional[date], Query()] = None,
) -> ResumeAssessmentSchema:
    assessment = await operations.assess_resume(plan_id, resume_date, context)

    return ResumeAssessmentSchema.model_validate(assessment, from_attributes=True)


@plans_router.post(
    "/{plan_id}/reschedule",
    response_model=RescheduleResultSchema,
    summary="Reschedule Plan",
    description="""
    Move every unpaid installment so the schedule starts on the new date.

    Installments whose due date could not be updated are listed in
    failed_installment_ids; the plan itself is still rescheduled.
    """,
)
async def reschedule_plan(
    plan_id: PlanId,
    request: RescheduleRequestSchema,
    context: Context,
    reschedule_service: Annotated[PlanRescheduleService, Depends(get_reschedule_service)],
) -> RescheduleResultSchema:
    result = await reschedule_service.reschedule_plan(plan_id, request.new_start_date, context)
    ensure_success(result)

    return RescheduleResultSchema(
        success=result.success,
        status=_value(result.status),
        payments_shifted=result.payments_shifted,
        requests_cancelled=result.requests_cancelled,
        failed_installment_ids=result.failed_installment_ids,
    )


@plans_router.get(
    "/{plan_id}/activity",
    response_model=list[ActivitySchema],
    summary="Get Plan Activity",
    description="The plan's audit log, newest first.",
)
async def get_activity(
    plan_id: PlanId,
    context: Context,
    plan_service: Plans,
    limit: Annotated[Optional[int], Query(ge=1, le=200)] = None,
) -> list[ActivitySchema]:
    activities = await plan_service.get_activity(plan_id, context, limit)

    return [ActivitySchema.model_validate(a, from_attributes=True) for a in activities]
