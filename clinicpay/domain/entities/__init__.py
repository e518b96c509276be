"""Domain Entities - Core business objects."""

from .activity import ActivityType, PaymentActivity
from .context import ClinicContext
from .notification import (
    Notification,
    NotificationStatus,
    NotificationType,
    RecipientType,
)
from .payment_request import PaymentRequest, PaymentRequestStatus
from .plan import (
    Installment,
    InstallmentStatus,
    PaymentFrequency,
    Plan,
    PlanStatus,
)

__all__ = [
    "ActivityType",
    "PaymentActivity",
    "ClinicContext",
    "Notification",
    "NotificationStatus",
    "NotificationType",
    "RecipientType",
    "PaymentRequest",
    "PaymentRequestStatus",
    "Installment",
    "InstallmentStatus",
    "PaymentFrequency",
    "Plan",
    "PlanStatus",
]
