"""PostgreSQL repository implementation for the plan activity log."""

from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.domain.entities import ActivityType, PaymentActivity
from clinicpay.domain.interfaces import ActivityRepository
from clinicpay.infrastructure.database.models import PaymentActivityModel


class PostgresActivityRepository(ActivityRepository):
    """PostgreSQL-backed append-only activity repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, activity: PaymentActivity) -> PaymentActivity:
        model = PaymentActivityModel(
            id=str(activity.id),
            plan_id=str(activity.plan_id),
            clinic_id=activity.clinic_id,
            patient_id=activity.patient_id,
            payment_link_id=activity.payment_link_id,
            action_type=activity.action_type.value,
            details=activity.details,
            performed_by=activity.performed_by,
            performed_at=activity.performed_at,
        )
        self._session.add(model)
        await self._session.flush()

        return activity

    async def get_by_plan_id(
        self,
        plan_id: UUID,
        limit: int = 50,
    ) -> List[PaymentActivity]:
        stmt = (
            select(PaymentActivityModel)
            .where(PaymentActivityModel.plan_id == str(plan_id))
            .order_by(PaymentActivityModel.performed_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)

        return [
            PaymentActivity(
                id=UUID(model.id),
                plan_id=UUID(model.plan_id),
                clinic_id=model.clinic_id,
                patient_id=model.patient_id,
                payment_link_id=model.payment_link_id,
                action_type=ActivityType(model.action_type),
                details=model.details,
                performed_by=model.performed_by,
                performed_at=model.performed_at,
            )
            for model in result.scalars().all()
        ]
