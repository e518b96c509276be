"""Payment plan domain entities."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4


class PlanStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    OVERDUE = "overdue"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    PAUSED = "paused"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentFrequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"


@dataclass
class Installment:
    """A single scheduled payment within a plan."""

    plan_id: UUID
    payment_number: int
    total_payments: int
    due_date: date
    amount: int
    id: UUID = field(default_factory=uuid4)
    status: InstallmentStatus = InstallmentStatus.PENDING
    payment_request_id: Optional[UUID] = None
    paid_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "installment_id": str(self.id),
            "payment_number": self.payment_number,
            "total_payments": self.total_payments,
            "due_date": self.due_date.isoformat(),
            "amount": self.amount,
            "status": self.status.value,
            "payment_request_id": (
                str(self.payment_request_id) if self.payment_request_id else None
            ),
            "paid_date": self.paid_date.isoformat() if self.paid_date else None,
        }


@dataclass
class Plan:
    """
    A patient's installment plan tied to one payment link.

    paid_installments, progress, has_overdue_payments and next_due_date
    are denormalized from the payment schedule and are only ever written
    by recomputation.
    """

    clinic_id: str
    patient_id: str
    payment_link_id: str
    total_amount: int
    installment_amount: int
    total_installments: int
    start_date: date
    title: str = "Payment Plan"
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    status: PlanStatus = PlanStatus.PENDING
    paid_installments: int = 0
    progress: int = 0
    has_overdue_payments: bool = False
    next_due_date: Optional[date] = None
    version: int = 1
    installments: List[Installment] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "plan_id": str(self.id),
            "clinic_id": self.clinic_id,
            "patient_id": self.patient_id,
            "payment_link_id": self.payment_link_id,
            "title": self.title,
            "status": self.status.value,
            "total_amount": self.total_amount,
            "installment_amount": self.installment_amount,
            "total_installments": self.total_installments,
            "paid_installments": self.paid_installments,
            "progress": self.progress,
            "has_overdue_payments": self.has_overdue_payments,
            "payment_frequency": self.payment_frequency.value,
            "start_date": self.start_date.isoformat(),
            "next_due_date": (
                self.next_due_date.isoformat() if self.next_due_date else None
            ),
            "installments": [inst.to_dict() for inst in self.installments],
            "created_at": self.created_at.isoformat() + "Z",
        }
