"""Plan status predicates and stored-status lookup."""

from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.application.dto import OperationResult
from clinicpay.domain.entities import Plan, PlanStatus
from clinicpay.domain.exceptions import PlanNotFoundException
from clinicpay.domain.interfaces import PlanRepository
from clinicpay.service.lifecycle import (
    is_plan_active,
    is_plan_finished,
    is_plan_paused,
    validate_plan_status,
)

logger = structlog.get_logger(__name__)


class PlanStatusCore:
    """
    Basic status checks shared by the other status services.

    The predicates are pure; refresh_plan_status only reads.
    """

    def __init__(self, plan_repository: PlanRepository):
        self._plan_repo = plan_repository

    def is_plan_paused(self, plan: Optional[Plan]) -> bool:
        return is_plan_paused(plan)

    def is_plan_active(self, plan: Optional[Plan]) -> bool:
        return is_plan_active(plan)

    def is_plan_finished(self, plan: Optional[Plan]) -> bool:
        return is_plan_finished(plan)

    def validate_plan_status(self, raw: Any) -> PlanStatus:
        return validate_plan_status(raw)

    async def refresh_plan_status(self, plan_id: UUID) -> OperationResult:
        """
        Read the plan's stored status and decode it.

        Returns:
            OperationResult with the decoded PlanStatus as status
        """
        try:
            raw = await self._plan_repo.get_raw_status(plan_id)
            if raw is None:
                raise PlanNotFoundException(str(plan_id))
        except (PlanNotFoundException, SQLAlchemyError) as e:
            logger.warning("plan_status_refresh_failed", plan_id=str(plan_id), error=str(e))
            return OperationResult.from_exception(e)

        return OperationResult.ok(self.validate_plan_status(raw))
