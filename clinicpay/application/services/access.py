"""Plan lookup scoped to the calling clinic."""

from typing import Optional
from uuid import UUID

from clinicpay.domain.entities import ClinicContext, Plan
from clinicpay.domain.exceptions import PlanNotFoundException
from clinicpay.domain.interfaces import PlanRepository


async def get_owned_plan(
    plan_repository: PlanRepository,
    plan_id: UUID,
    context: Optional[ClinicContext] = None,
    include_installments: bool = False,
) -> Plan:
    """
    Load a plan, hiding plans that belong to another clinic.

    A None context is used by system callers (webhooks, the sweep) and
    skips the ownership check.

    Raises:
        PlanNotFoundException: If the plan does not exist or is not visible
    """
    plan = await plan_repository.get_by_id(plan_id, include_installments=include_installments)

    if plan is None or (context is not None and not context.owns(plan.clinic_id)):
        raise PlanNotFoundException(str(plan_id))

    return plan
