"""Repository implementations."""

from .activity_repository import PostgresActivityRepository
from .installment_repository import PostgresInstallmentRepository
from .notification_repository import PostgresNotificationRepository
from .payment_request_repository import PostgresPaymentRequestRepository
from .plan_repository import PostgresPlanRepository

__all__ = [
    "PostgresActivityRepository",
    "PostgresInstallmentRepository",
    "PostgresNotificationRepository",
    "PostgresPaymentRequestRepository",
    "PostgresPlanRepository",
]
