"""
Domain Interfaces (Ports)
"""

from .clients import StatusSweepClient
from .repositories import (
    ActivityRepository,
    InstallmentRepository,
    NotificationRepository,
    PaymentRequestRepository,
    PlanRepository,
)
from .transactions import UnitOfWork

__all__ = [
    "ActivityRepository",
    "InstallmentRepository",
    "NotificationRepository",
    "PaymentRequestRepository",
    "PlanRepository",
    "StatusSweepClient",
    "UnitOfWork",
]
