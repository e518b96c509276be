"""Schemas for plan operations and installment events."""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OperationResultSchema(BaseModel):
    """Result of a successful plan operation."""

    success: bool = True
    status: Optional[str] = Field(
        None,
        description="Resulting plan status",
        examples=["paused"],
    )


class RescheduleRequestSchema(BaseModel):
    """Schema for POST /v1/plans/{plan_id}/reschedule."""

    new_start_date: date = Field(
        ...,
        description="Due date of the first unpaid installment (YYYY-MM-DD)",
    )


class RescheduleResultSchema(BaseModel):
    """Result of rescheduling a plan."""

    success: bool
    status: Optional[str] = None
    payments_shifted: int = Field(..., ge=0)
    requests_cancelled: int = Field(..., ge=0)
    failed_installment_ids: list[str] = Field(
        default_factory=list,
        description="Installments whose due date could not be updated",
    )


class ResumeRequestSchema(BaseModel):
    """Schema for POST /v1/plans/{plan_id}/resume."""

    resume_date: Optional[date] = Field(
        None,
        description="Shift paused installments so the earliest is due no sooner than this",
    )


class ResumeAssessmentSchema(BaseModel):
    """Warnings to show before resuming a plan."""

    has_sent_payments: bool
    has_past_due_after_resume: bool
    has_paid_payments: bool
    paused_installments: int = Field(..., ge=0)


class PaymentRescheduleSchema(BaseModel):
    """Schema for POST /v1/installments/{installment_id}/reschedule."""

    new_due_date: date


class MarkPaidSchema(BaseModel):
    """Schema for POST /v1/installments/{installment_id}/mark-paid."""

    paid_date: Optional[date] = Field(None, description="Defaults to today")


class PaymentSucceededSchema(BaseModel):
    """Schema for the payment processor's success callback."""

    payment_id: str = Field(..., min_length=1, max_length=255)
    amount: Optional[int] = Field(None, gt=0)


class RefundSchema(BaseModel):
    """Schema for POST /v1/installments/{installment_id}/refund."""

    amount: Optional[int] = Field(None, gt=0)
    full: bool = Field(True, description="False for a partial refund")


class PaymentRequestResultSchema(BaseModel):
    """Result of sending a payment request."""

    success: bool = True
    payment_request_id: str


class SweepRequestSchema(BaseModel):
    """Schema for POST /v1/plans/status-sweep."""

    plan_id: Optional[UUID] = Field(None, description="Restrict the sweep to one plan")


class SweepResultSchema(BaseModel):
    """Summary of an overdue sweep run."""

    plans_checked: int
    installments_marked_overdue: int
    status_changes: int
    failed_plan_ids: list[str] = Field(default_factory=list)


class SweepTriggerResultSchema(BaseModel):
    """Response of a remotely triggered sweep."""

    success: bool = True
    result: dict[str, Any] = Field(default_factory=dict)
