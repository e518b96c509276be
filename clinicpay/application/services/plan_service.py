"""Plan service - handles plan creation and retrieval use cases."""

from typing import List, Optional
from uuid import UUID

import structlog

from clinicpay.application.dto import (
    ActivityDTO,
    CreatePlanRequest,
    PlanResponse,
)
from clinicpay.core.config import settings
from clinicpay.domain.entities import (
    ActivityType,
    ClinicContext,
    Installment,
    Plan,
    PlanStatus,
)
from clinicpay.domain.exceptions import InvalidPlanRequestException
from clinicpay.domain.interfaces import ActivityRepository, PlanRepository
from clinicpay.service.lifecycle import generate_due_dates, split_amount

from .access import get_owned_plan
from .payment_metrics import PlanPaymentMetrics

logger = structlog.get_logger(__name__)


class PlanService:
    """
    Application service for payment plan use cases.

    Handles plan creation, retrieval and the activity feed.
    """

    def __init__(
        self,
        plan_repository: PlanRepository,
        activity_repository: ActivityRepository,
        payment_metrics: PlanPaymentMetrics,
    ):
        self._plan_repo = plan_repository
        self._activity_repo = activity_repository
        self._metrics = payment_metrics

    async def create_plan(
        self,
        request: CreatePlanRequest,
        context: ClinicContext,
    ) -> PlanResponse:
        """
        Create a plan with its full installment schedule.

        Args:
            request: Plan terms
            context: The clinic creating the plan

        Returns:
            PlanResponse with the generated installments

        Raises:
            InvalidPlanRequestException: If request validation fails
        """
        errors = request.validate()
        if errors:
            raise InvalidPlanRequestException("; ".join(errors))

        amounts = split_amount(request.total_amount, request.total_installments)
        due_dates = generate_due_dates(
            request.start_date,
            request.total_installments,
            request.payment_frequency,
        )

        plan = Plan(
            clinic_id=context.clinic_id,
            patient_id=request.patient_id,
            payment_link_id=request.payment_link_id,
            title=request.title,
            total_amount=request.total_amount,
            installment_amount=request.total_amount // request.total_installments,
            total_installments=request.total_installments,
            payment_frequency=request.payment_frequency,
            start_date=request.start_date,
            next_due_date=due_dates[0],
            status=PlanStatus.PENDING,
        )

        for number, (due_date, amount) in enumerate(zip(due_dates, amounts), start=1):
            plan.installments.append(
                Installment(
                    plan_id=plan.id,
                    payment_number=number,
                    total_payments=request.total_installments,
                    due_date=due_date,
                    amount=amount,
                )
            )

        await self._plan_repo.save(plan)

        await self._metrics.log_plan_activity(
            plan,
            ActivityType.PLAN_CREATED,
            {
                "title": plan.title,
                "total_amount": plan.total_amount,
                "total_installments": plan.total_installments,
                "payment_frequency": plan.payment_frequency.value,
                "start_date": plan.start_date.isoformat(),
            },
            context,
        )

        logger.info(
            "plan_created",
            plan_id=str(plan.id),
            clinic_id=plan.clinic_id,
            num_installments=len(plan.installments),
        )

        return PlanResponse.from_entity(plan)

    async def get_plan(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> PlanResponse:
        """
        Retrieve a payment plan by ID.

        Raises:
            PlanNotFoundException: If plan not found
        """
        plan = await get_owned_plan(
            self._plan_repo,
            plan_id,
            context,
            include_installments=True,
        )

        logger.info(
            "plan_retrieved",
            plan_id=str(plan_id),
            num_installments=len(plan.installments),
        )

        return PlanResponse.from_entity(plan)

    async def require_plan(self, plan_id: UUID, context: Optional[ClinicContext]) -> Plan:
        """Load a plan visible to the caller, without its installments."""
        return await get_owned_plan(self._plan_repo, plan_id, context)

    async def list_plans(
        self,
        context: ClinicContext,
        status: Optional[PlanStatus] = None,
    ) -> List[PlanResponse]:
        """
        Retrieve the clinic's plans, newest first, without installments.

        Args:
            context: The calling clinic
            status: Optional status filter
        """
        plans = await self._plan_repo.get_by_clinic_id(context.clinic_id, status=status)

        logger.info(
            "clinic_plans_retrieved",
            clinic_id=context.clinic_id,
            count=len(plans),
        )

        return [PlanResponse.from_entity(plan) for plan in plans]

    async def get_activity(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
        limit: Optional[int] = None,
    ) -> List[ActivityDTO]:
        """
        Retrieve a plan's activity feed, newest first.

        Raises:
            PlanNotFoundException: If plan not found
        """
        await get_owned_plan(self._plan_repo, plan_id, context)

        activities = await self._activity_repo.get_by_plan_id(
            plan_id,
            limit=limit or settings.activity_page_size,
        )
        return [ActivityDTO.from_entity(activity) for activity in activities]
