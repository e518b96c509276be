"""Outbound payment request entity."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class PaymentRequestStatus(str, Enum):
    SENT = "sent"
    PAID = "paid"
    CANCELLED = "cancelled"


@dataclass
class PaymentRequest:
    """A request-for-payment sent to a patient for one installment."""

    plan_id: UUID
    installment_id: UUID
    id: UUID = field(default_factory=uuid4)
    status: PaymentRequestStatus = PaymentRequestStatus.SENT
    payment_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
