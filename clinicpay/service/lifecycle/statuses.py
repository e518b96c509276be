"""
Plan and installment status rules.

Pure predicates over plan status, the status decoder used at the storage
boundary, and the installment status transition table.
"""

from typing import Optional, Protocol

import structlog

from clinicpay.domain.entities import InstallmentStatus, PlanStatus

logger = structlog.get_logger(__name__)


class HasPlanStatus(Protocol):
    status: PlanStatus


ACTIVE_PLAN_STATUSES = frozenset(
    {PlanStatus.ACTIVE, PlanStatus.PENDING, PlanStatus.OVERDUE}
)
FINISHED_PLAN_STATUSES = frozenset({PlanStatus.CANCELLED, PlanStatus.COMPLETED})
MANUAL_OVERRIDE_STATUSES = frozenset({PlanStatus.PAUSED, PlanStatus.CANCELLED})

# Refunded payments still count: the patient did pay, even if later reversed.
PAID_INSTALLMENT_STATUSES = frozenset(
    {
        InstallmentStatus.PAID,
        InstallmentStatus.REFUNDED,
        InstallmentStatus.PARTIALLY_REFUNDED,
    }
)
OVERDUE_CANDIDATE_STATUSES = frozenset(
    {InstallmentStatus.PENDING, InstallmentStatus.SENT, InstallmentStatus.OVERDUE}
)
MODIFIABLE_INSTALLMENT_STATUSES = frozenset(
    {
        InstallmentStatus.PENDING,
        InstallmentStatus.OVERDUE,
        InstallmentStatus.PAUSED,
        InstallmentStatus.SENT,
    }
)
SETTLED_INSTALLMENT_STATUSES = PAID_INSTALLMENT_STATUSES | {InstallmentStatus.CANCELLED}

ALLOWED_INSTALLMENT_TRANSITIONS: dict[InstallmentStatus, frozenset[InstallmentStatus]] = {
    InstallmentStatus.PENDING: frozenset(
        {
            InstallmentStatus.PAID,
            InstallmentStatus.CANCELLED,
            InstallmentStatus.OVERDUE,
            InstallmentStatus.PAUSED,
            InstallmentStatus.SENT,
        }
    ),
    InstallmentStatus.SENT: frozenset(
        {
            InstallmentStatus.PAID,
            InstallmentStatus.CANCELLED,
            InstallmentStatus.PAUSED,
            InstallmentStatus.OVERDUE,
        }
    ),
    InstallmentStatus.PAID: frozenset(
        {InstallmentStatus.REFUNDED, InstallmentStatus.PARTIALLY_REFUNDED}
    ),
    InstallmentStatus.OVERDUE: frozenset(
        {InstallmentStatus.PAID, InstallmentStatus.CANCELLED, InstallmentStatus.PAUSED}
    ),
    InstallmentStatus.PAUSED: frozenset(
        {InstallmentStatus.PENDING, InstallmentStatus.CANCELLED, InstallmentStatus.SENT}
    ),
    InstallmentStatus.CANCELLED: frozenset(),
    InstallmentStatus.REFUNDED: frozenset(),
    InstallmentStatus.PARTIALLY_REFUNDED: frozenset({InstallmentStatus.REFUNDED}),
}


def is_plan_paused(plan: Optional[HasPlanStatus]) -> bool:
    if plan is None:
        return False
    return plan.status == PlanStatus.PAUSED


def is_plan_active(plan: Optional[HasPlanStatus]) -> bool:
    """Active covers active, pending and overdue plans."""
    if plan is None:
        return False
    return plan.status in ACTIVE_PLAN_STATUSES


def is_plan_finished(plan: Optional[HasPlanStatus]) -> bool:
    if plan is None:
        return False
    return plan.status in FINISHED_PLAN_STATUSES


def validate_plan_status(raw: object) -> PlanStatus:
    """
    Decode a stored status value into a PlanStatus.

    Unknown or legacy values map to PENDING with a warning instead of
    raising, so corrupt rows cannot take down a read path.

    Args:
        raw: Status value as read from storage

    Returns:
        The matching PlanStatus, or PENDING
    """
    if isinstance(raw, PlanStatus):
        return raw

    try:
        return PlanStatus(raw)
    except ValueError:
        logger.warning("invalid_plan_status", raw_status=raw, fallback="pending")
        return PlanStatus.PENDING


def decode_installment_status(raw: object) -> InstallmentStatus:
    """Decode a stored installment status, falling back to PENDING."""
    if isinstance(raw, InstallmentStatus):
        return raw

    try:
        return InstallmentStatus(raw)
    except ValueError:
        logger.warning("invalid_installment_status", raw_status=raw, fallback="pending")
        return InstallmentStatus.PENDING


def is_installment_paid(status: Optional[InstallmentStatus]) -> bool:
    return status in PAID_INSTALLMENT_STATUSES


def is_installment_modifiable(status: Optional[InstallmentStatus]) -> bool:
    if status is None:
        return True
    return status in MODIFIABLE_INSTALLMENT_STATUSES


def is_installment_transition_valid(
    current: Optional[InstallmentStatus],
    new: InstallmentStatus,
) -> bool:
    """
    Check an installment status change against the transition table.

    A missing current status accepts anything; an unchanged status is
    always valid (replayed events are no-ops).
    """
    if current is None or current == new:
        return True
    return new in ALLOWED_INSTALLMENT_TRANSITIONS.get(current, frozenset())
