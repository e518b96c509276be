"""Domain Exceptions - Business rule violations and domain errors."""

from .base import DomainException
from .installment import (
    InstallmentNotFoundException,
    InvalidStatusTransitionException,
)
from .plan import (
    ConcurrentPlanUpdateException,
    InvalidPlanRequestException,
    PlanNotFoundException,
    PlanOperationNotAllowedException,
)
from .sweep import StatusSweepException, StatusSweepTimeoutException

__all__ = [
    "DomainException",
    "InstallmentNotFoundException",
    "InvalidStatusTransitionException",
    "ConcurrentPlanUpdateException",
    "InvalidPlanRequestException",
    "PlanNotFoundException",
    "PlanOperationNotAllowedException",
    "StatusSweepException",
    "StatusSweepTimeoutException",
]
