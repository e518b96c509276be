"""Data transfer objects for payment plan operations."""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from clinicpay.domain.entities import PaymentFrequency


@dataclass(frozen=True)
class CreatePlanRequest:
    """Input data for creating a payment plan."""

    patient_id: str
    payment_link_id: str
    total_amount: int
    total_installments: int
    start_date: date
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    title: str = "Payment Plan"

    def validate(self) -> List[str]:
        errors = []

        if not self.patient_id or not self.patient_id.strip():
            errors.append("patient_id is required")

        if not self.payment_link_id or not self.payment_link_id.strip():
            errors.append("payment_link_id is required")

        if self.total_installments <= 0:
            errors.append("total_installments must be positive")

        if self.total_amount <= 0:
            errors.append("total_amount must be positive")
        elif self.total_installments > 0 and self.total_amount < self.total_installments:
            errors.append("total_amount must cover at least one unit per installment")

        return errors


@dataclass(frozen=True)
class InstallmentDTO:
    """Single installment within a plan response."""
    installment_id: str
    payment_number: int
    due_date: str
    amount: int
    status: str
    payment_request_id: Optional[str]
    paid_date: Optional[str]


@dataclass(frozen=True)
class PlanResponse:
    """Response data for a payment plan with installments."""

    plan_id: str
    clinic_id: str
    patient_id: str
    payment_link_id: str
    title: str
    status: str
    total_amount: int
    installment_amount: int
    total_installments: int
    paid_installments: int
    progress: int
    has_overdue_payments: bool
    payment_frequency: str
    start_date: str
    next_due_date: Optional[str]
    installments: List[InstallmentDTO]

    @classmethod
    def from_entity(cls, plan) -> "PlanResponse":
        installments = [
            InstallmentDTO(
                installment_id=str(inst.id),
                payment_number=inst.payment_number,
                due_date=inst.due_date.isoformat(),
                amount=inst.amount,
                status=inst.status.value,
                payment_request_id=(
                    str(inst.payment_request_id) if inst.payment_request_id else None
                ),
                paid_date=inst.paid_date.isoformat() if inst.paid_date else None,
            )
            for inst in plan.installments
        ]

        return cls(
            plan_id=str(plan.id),
            clinic_id=plan.clinic_id,
            patient_id=plan.patient_id,
            payment_link_id=plan.payment_link_id,
            title=plan.title,
            status=plan.status.value,
            total_amount=plan.total_amount,
            installment_amount=plan.installment_amount,
            total_installments=plan.total_installments,
            paid_installments=plan.paid_installments,
            progress=plan.progress,
            has_overdue_payments=plan.has_overdue_payments,
            payment_frequency=plan.payment_frequency.value,
            start_date=plan.start_date.isoformat(),
            next_due_date=(
                plan.next_due_date.isoformat() if plan.next_due_date else None
            ),
            installments=installments,
        )


@dataclass(frozen=True)
class PlanMetricsDTO:
    """Paid count and progress of a plan, recomputed from its schedule."""

    plan_id: str
    paid_installments: int
    total_installments: int
    progress: int
    next_due_date: Optional[str] = None


@dataclass(frozen=True)
class ActivityDTO:
    """One entry of a plan's activity feed."""

    activity_id: str
    action_type: str
    details: dict
    performed_by: Optional[str]
    performed_at: str

    @classmethod
    def from_entity(cls, activity) -> "ActivityDTO":
        return cls(
            activity_id=str(activity.id),
            action_type=activity.action_type.value,
            details=activity.details,
            performed_by=activity.performed_by,
            performed_at=activity.performed_at.isoformat(),
        )
