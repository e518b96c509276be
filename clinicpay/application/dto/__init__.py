"""Data Transfer Objects for application layer."""

from .plan import (
    ActivityDTO,
    CreatePlanRequest,
    InstallmentDTO,
    PlanMetricsDTO,
    PlanResponse,
)
from .results import (
    GENERIC_ERROR_MESSAGE,
    OperationResult,
    RescheduleResult,
    ResumeAssessment,
    SweepResult,
)

__all__ = [
    "ActivityDTO",
    "CreatePlanRequest",
    "InstallmentDTO",
    "PlanMetricsDTO",
    "PlanResponse",
    "GENERIC_ERROR_MESSAGE",
    "OperationResult",
    "RescheduleResult",
    "ResumeAssessment",
    "SweepResult",
]
