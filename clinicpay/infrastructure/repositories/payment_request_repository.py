"""PostgreSQL repository implementation for payment requests."""

from datetime import datetime
from typing import Collection, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.domain.entities import PaymentRequest, PaymentRequestStatus
from clinicpay.domain.interfaces import PaymentRequestRepository
from clinicpay.infrastructure.database.models import PaymentRequestModel


class PostgresPaymentRequestRepository(PaymentRequestRepository):
    """PostgreSQL-backed payment request repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, request: PaymentRequest) -> PaymentRequest:
        model = PaymentRequestModel(
            id=str(request.id),
            plan_id=str(request.plan_id),
            installment_id=str(request.installment_id),
            status=request.status.value,
            payment_id=request.payment_id,
            paid_at=request.paid_at,
            created_at=request.created_at,
        )
        self._session.add(model)
        await self._session.flush()

        return request

    async def get_by_id(self, request_id: UUID) -> Optional[PaymentRequest]:
        model = await self._session.get(
            PaymentRequestModel,
            str(request_id),
            populate_existing=True,
        )
        if model is None:
            return None

        return PaymentRequest(
            id=UUID(model.id),
            plan_id=UUID(model.plan_id),
            installment_id=UUID(model.installment_id),
            status=PaymentRequestStatus(model.status),
            payment_id=model.payment_id,
            paid_at=model.paid_at,
            created_at=model.created_at,
        )

    async def cancel(self, request_ids: Collection[UUID]) -> int:
        if not request_ids:
            return 0

        stmt = (
            update(PaymentRequestModel)
            .where(
                PaymentRequestModel.id.in_([str(rid) for rid in request_ids]),
                PaymentRequestModel.status == PaymentRequestStatus.SENT.value,
            )
            .values(status=PaymentRequestStatus.CANCELLED.value)
        )
        result = await self._session.execute(
            stmt,
            execution_options={"synchronize_session": False},
        )
        return result.rowcount

    async def mark_paid(self, request_id: UUID, payment_id: Optional[str]) -> None:
        stmt = (
            update(PaymentRequestModel)
            .where(PaymentRequestModel.id == str(request_id))
            .values(
                status=PaymentRequestStatus.PAID.value,
                payment_id=payment_id,
                paid_at=datetime.utcnow(),
            )
        )
        await self._session.execute(
            stmt,
            execution_options={"synchronize_session": False},
        )
