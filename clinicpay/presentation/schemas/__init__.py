"""Pydantic schemas for API request/response validation."""

from .error import ErrorResponseSchema, error_responses
from .operations import (
    MarkPaidSchema,
    OperationResultSchema,
    PaymentRequestResultSchema,
    PaymentRescheduleSchema,
    PaymentSucceededSchema,
    RefundSchema,
    RescheduleRequestSchema,
    RescheduleResultSchema,
    ResumeAssessmentSchema,
    ResumeRequestSchema,
    SweepRequestSchema,
    SweepResultSchema,
    SweepTriggerResultSchema,
)
from .plan import (
    ActivitySchema,
    CreatePlanSchema,
    InstallmentSchema,
    OverdueCheckSchema,
    PlanMetricsSchema,
    PlanResponseSchema,
    PlanStatusSchema,
)

__all__ = [
    "ErrorResponseSchema",
    "error_responses",
    "MarkPaidSchema",
    "OperationResultSchema",
    "PaymentRequestResultSchema",
    "PaymentRescheduleSchema",
    "PaymentSucceededSchema",
    "RefundSchema",
    "RescheduleRequestSchema",
    "RescheduleResultSchema",
    "ResumeAssessmentSchema",
    "ResumeRequestSchema",
    "SweepRequestSchema",
    "SweepResultSchema",
    "SweepTriggerResultSchema",
    "ActivitySchema",
    "CreatePlanSchema",
    "InstallmentSchema",
    "OverdueCheckSchema",
    "PlanMetricsSchema",
    "PlanResponseSchema",
    "PlanStatusSchema",
]
