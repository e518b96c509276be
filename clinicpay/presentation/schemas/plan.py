"""Plan-related Pydantic schemas."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clinicpay.core.config import settings
from clinicpay.domain.entities import PaymentFrequency
from clinicpay.service.lifecycle import parse_frequency


class CreatePlanSchema(BaseModel):
    """Schema for POST /v1/plans request body."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "patient_id": "patient_123",
                    "payment_link_id": "link_456",
                    "title": "Orthodontic treatment",
                    "total_amount": 120000,
                    "total_installments": 4,
                    "payment_frequency": "monthly",
                    "start_date": "2025-10-01",
                }
            ]
        }
    )

    patient_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Patient the plan belongs to",
    )
    payment_link_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Payment link the plan was created from",
    )
    title: str = Field(
        "Payment Plan",
        min_length=1,
        max_length=255,
        description="Display name of the plan",
    )
    total_amount: int = Field(
        ...,
        gt=0,
        description="Total amount in minor units",
        examples=[120000],
    )
    total_installments: int = Field(
        ...,
        gt=0,
        le=120,
        description="Number of installments",
        examples=[4],
    )
    payment_frequency: PaymentFrequency = Field(
        default_factory=lambda: parse_frequency(settings.default_payment_frequency),
        description="weekly, bi-weekly or monthly; defaults to DEFAULT_PAYMENT_FREQUENCY",
    )
    start_date: date = Field(
        ...,
        description="Due date of the first installment (YYYY-MM-DD)",
    )

    @field_validator("patient_id", "payment_link_id")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Ensure identifiers are not just whitespace."""
        if not v.strip():
            raise ValueError("identifier cannot be empty or whitespace")
        return v.strip()


class InstallmentSchema(BaseModel):
    """Schema for an installment in the plan response."""

    installment_id: str = Field(..., description="UUID of the installment")
    payment_number: int = Field(..., ge=1, description="1-based position in the schedule")
    due_date: str = Field(
        ...,
        description="Due date in ISO 8601 format (YYYY-MM-DD)",
        examples=["2025-10-01"],
    )
    amount: int = Field(..., ge=0, description="Installment amount in minor units")
    status: str = Field(
        ...,
        description="Current status of the installment",
        examples=["pending"],
    )
    payment_request_id: Optional[str] = Field(
        None,
        description="Outstanding payment request, if one was sent",
    )
    paid_date: Optional[str] = Field(None, description="Date the installment was paid")


class PlanResponseSchema(BaseModel):
    """Schema for a payment plan with its schedule."""

    plan_id: str = Field(..., description="UUID of the plan")
    clinic_id: str
    patient_id: str
    payment_link_id: str
    title: str
    status: str = Field(..., examples=["active"])
    total_amount: int
    installment_amount: int
    total_installments: int
    paid_installments: int
    progress: int = Field(..., ge=0, le=100, description="Percent of installments paid")
    has_overdue_payments: bool
    payment_frequency: str
    start_date: str
    next_due_date: Optional[str] = None
    installments: list[InstallmentSchema] = Field(
        default_factory=list,
        description="Installments; empty in list responses",
    )


class PlanStatusSchema(BaseModel):
    """Schema for plan status responses."""

    plan_id: str
    status: str = Field(..., examples=["overdue"])


class OverdueCheckSchema(BaseModel):
    """Schema for GET /v1/plans/{plan_id}/overdue."""

    plan_id: str
    has_overdue_payments: bool


class PlanMetricsSchema(BaseModel):
    """Schema for plan payment metrics."""

    plan_id: str
    paid_installments: int = Field(..., ge=0)
    total_installments: int = Field(..., ge=0)
    progress: int = Field(..., ge=0, le=100)
    next_due_date: Optional[str] = None


class ActivitySchema(BaseModel):
    """Schema for one entry of the activity feed."""

    activity_id: str
    action_type: str = Field(..., examples=["status_change"])
    details: dict
    performed_by: Optional[str] = None
    performed_at: str
