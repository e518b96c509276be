"""
Plan lifecycle rules.

Side-effect-free building blocks for plan status derivation, progress
and installment scheduling.
"""

from .derivation import derive_plan_status
from .progress import calculate_progress
from .schedule import (
    due_date_for,
    generate_due_dates,
    next_due_date,
    parse_frequency,
    shift_days,
    split_amount,
)
from .settings import LifecycleSettings, lifecycle_settings
from .statuses import (
    ACTIVE_PLAN_STATUSES,
    FINISHED_PLAN_STATUSES,
    MANUAL_OVERRIDE_STATUSES,
    MODIFIABLE_INSTALLMENT_STATUSES,
    OVERDUE_CANDIDATE_STATUSES,
    PAID_INSTALLMENT_STATUSES,
    SETTLED_INSTALLMENT_STATUSES,
    decode_installment_status,
    is_installment_modifiable,
    is_installment_paid,
    is_installment_transition_valid,
    is_plan_active,
    is_plan_finished,
    is_plan_paused,
    validate_plan_status,
)

__all__ = [
    # Settings
    "LifecycleSettings",
    "lifecycle_settings",
    # Status rules
    "ACTIVE_PLAN_STATUSES",
    "FINISHED_PLAN_STATUSES",
    "MANUAL_OVERRIDE_STATUSES",
    "MODIFIABLE_INSTALLMENT_STATUSES",
    "OVERDUE_CANDIDATE_STATUSES",
    "PAID_INSTALLMENT_STATUSES",
    "SETTLED_INSTALLMENT_STATUSES",
    "decode_installment_status",
    "is_installment_modifiable",
    "is_installment_paid",
    "is_installment_transition_valid",
    "is_plan_active",
    "is_plan_finished",
    "is_plan_paused",
    "validate_plan_status",
    # Derivation
    "derive_plan_status",
    # Progress
    "calculate_progress",
    # Schedule
    "due_date_for",
    "generate_due_dates",
    "next_due_date",
    "parse_frequency",
    "shift_days",
    "split_amount",
]
