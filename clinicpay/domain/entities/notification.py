"""Notification records queued for external delivery."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class NotificationStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class RecipientType(str, Enum):
    PATIENT = "patient"
    CLINIC = "clinic"


class NotificationType(str, Enum):
    PAYMENT_RECEIPT = "payment_receipt"
    REFUND_PROCESSED = "refund_processed"
    PLAN_RESCHEDULED = "plan_rescheduled"
    PLAN_PAUSED = "plan_paused"
    PLAN_RESUMED = "plan_resumed"
    PLAN_CANCELLED = "plan_cancelled"


@dataclass
class Notification:
    """
    A notification waiting in the outbound queue.

    Delivery happens out of process; this service only enqueues.
    """

    plan_id: UUID
    recipient_type: RecipientType
    notification_type: NotificationType
    payload: dict[str, Any]
    id: UUID = field(default_factory=uuid4)
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: datetime = field(default_factory=datetime.utcnow)
