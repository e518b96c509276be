"""Facade over the plan status services."""

from typing import Any, Optional
from uuid import UUID

from clinicpay.application.dto import OperationResult
from clinicpay.domain.entities import ClinicContext, Plan, PlanStatus

from .overdue_checker import PlanOverdueChecker
from .payment_metrics import PlanPaymentMetrics
from .status_core import PlanStatusCore
from .status_updater import PlanStatusUpdater


class PlanStatusService:
    """Single entry point for status predicates, metrics and recomputation."""

    def __init__(
        self,
        status_core: PlanStatusCore,
        overdue_checker: PlanOverdueChecker,
        payment_metrics: PlanPaymentMetrics,
        status_updater: PlanStatusUpdater,
    ):
        self._core = status_core
        self._overdue_checker = overdue_checker
        self._metrics = payment_metrics
        self._updater = status_updater

    def is_plan_paused(self, plan: Optional[Plan]) -> bool:
        return self._core.is_plan_paused(plan)

    def is_plan_active(self, plan: Optional[Plan]) -> bool:
        return self._core.is_plan_active(plan)

    def is_plan_finished(self, plan: Optional[Plan]) -> bool:
        return self._core.is_plan_finished(plan)

    def validate_plan_status(self, raw: Any) -> PlanStatus:
        return self._core.validate_plan_status(raw)

    async def refresh_plan_status(self, plan_id: UUID) -> OperationResult:
        return await self._core.refresh_plan_status(plan_id)

    async def check_plan_for_overdue_payments(self, plan_id: UUID) -> bool:
        return await self._overdue_checker.check_plan_for_overdue_payments(plan_id)

    async def trigger_status_update(self, plan_id: Optional[UUID] = None) -> OperationResult:
        return await self._overdue_checker.trigger_status_update(plan_id)

    async def get_accurate_paid_installment_count(self, plan_id: UUID) -> int:
        return await self._metrics.get_accurate_paid_installment_count(plan_id)

    def calculate_progress(self, paid: int, total: int) -> int:
        return self._metrics.calculate_progress(paid, total)

    async def update_plan_payment_metrics(self, plan_id: UUID) -> OperationResult:
        return await self._metrics.update_plan_payment_metrics(plan_id)

    async def calculate_plan_status(self, plan_id: UUID) -> PlanStatus:
        return await self._updater.calculate_plan_status(plan_id)

    async def update_plan_status(
        self,
        plan_id: UUID,
        context: Optional[ClinicContext] = None,
    ) -> OperationResult:
        return await self._updater.update_plan_status(plan_id, context)

    async def handle_payment_status_change(
        self,
        payment_id: Any,
        plan_id: UUID,
        new_status: Any,
        context: Optional[ClinicContext] = None,
    ) -> None:
        await self._updater.handle_payment_status_change(
            payment_id,
            plan_id,
            new_status,
            context,
        )
