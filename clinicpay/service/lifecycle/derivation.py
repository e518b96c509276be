"""
Derived plan status.

Evaluation priority: manual override (paused/cancelled) > completed >
overdue > active > pending. Completed is terminal.
"""

from clinicpay.domain.entities import PlanStatus

from .statuses import MANUAL_OVERRIDE_STATUSES


def derive_plan_status(
    stored_status: PlanStatus,
    paid_count: int,
    total_installments: int,
    has_overdue: bool,
) -> PlanStatus:
    """
    Compute the status a plan should have from its source data.

    Args:
        stored_status: Status currently persisted on the plan row
        paid_count: Installments in a paid state (refunds included)
        total_installments: Installments on the plan
        has_overdue: Whether any installment is currently past due

    Returns:
        The derived PlanStatus
    """
    if stored_status in MANUAL_OVERRIDE_STATUSES:
        return stored_status

    if stored_status == PlanStatus.COMPLETED:
        return PlanStatus.COMPLETED

    if total_installments > 0 and paid_count >= total_installments:
        return PlanStatus.COMPLETED

    if has_overdue and paid_count > 0:
        return PlanStatus.OVERDUE

    if paid_count > 0:
        return PlanStatus.ACTIVE

    return PlanStatus.PENDING
