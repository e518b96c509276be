"""Append-only audit log entries for plan activity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4


class ActivityType(str, Enum):
    """Kinds of state-changing actions recorded against a plan."""

    PLAN_CREATED = "plan_created"
    PAYMENT_MADE = "payment_made"
    PAYMENT_MARKED_PAID = "payment_marked_paid"
    PAYMENT_REFUNDED = "payment_refunded"
    PAYMENT_RESCHEDULED = "payment_rescheduled"
    PLAN_RESCHEDULED = "reschedule_plan"
    PLAN_PAUSED = "plan_paused"
    PLAN_RESUMED = "plan_resumed"
    PLAN_CANCELLED = "plan_cancelled"
    STATUS_CHANGE = "status_change"


@dataclass(frozen=True)
class PaymentActivity:
    """
    One audit row. Never mutated or deleted once written.

    Attributes:
        plan_id: Plan the action was performed on
        clinic_id: Owning clinic
        patient_id: Patient on the plan
        payment_link_id: Payment link the plan belongs to
        action_type: What happened
        details: Free-form JSON payload describing the change
        performed_by: User id from the clinic context, None for automatic actions
    """

    plan_id: UUID
    clinic_id: str
    patient_id: str
    payment_link_id: str
    action_type: ActivityType
    details: dict[str, Any] = field(default_factory=dict)
    performed_by: Optional[str] = None
    id: UUID = field(default_factory=uuid4)
    performed_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "plan_id": str(self.plan_id),
            "action_type": self.action_type.value,
            "details": self.details,
            "performed_by": self.performed_by,
            "performed_at": self.performed_at.isoformat() + "Z",
        }
