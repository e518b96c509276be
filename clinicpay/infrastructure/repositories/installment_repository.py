"""PostgreSQL repository implementation for the payment schedule."""

from datetime import date, datetime
from typing import Any, Collection, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.domain.entities import Installment, InstallmentStatus
from clinicpay.domain.exceptions import InstallmentNotFoundException
from clinicpay.domain.interfaces import InstallmentRepository
from clinicpay.infrastructure.database.models import InstallmentModel
from clinicpay.service.lifecycle import decode_installment_status

from ._values import optional_uuid, to_column_values


def _status_values(statuses: Collection[InstallmentStatus]) -> List[str]:
    return [status.value for status in statuses]


class PostgresInstallmentRepository(InstallmentRepository):
    """PostgreSQL-backed installment repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, installment_id: UUID) -> Optional[Installment]:
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.id == str(installment_id))
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model)

    async def get_by_plan_id(self, plan_id: UUID) -> List[Installment]:
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.plan_id == str(plan_id))
            .order_by(InstallmentModel.payment_number.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def get_by_statuses(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
    ) -> List[Installment]:
        stmt = (
            select(InstallmentModel)
            .where(
                InstallmentModel.plan_id == str(plan_id),
                InstallmentModel.status.in_(_status_values(statuses)),
            )
            .order_by(
                InstallmentModel.due_date.asc(),
                InstallmentModel.payment_number.asc(),
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_by_statuses(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
    ) -> int:
        stmt = select(func.count(InstallmentModel.id)).where(
            InstallmentModel.plan_id == str(plan_id),
            InstallmentModel.status.in_(_status_values(statuses)),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def exists_due_before(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
        before: date,
    ) -> bool:
        stmt = select(
            exists().where(
                InstallmentModel.plan_id == str(plan_id),
                InstallmentModel.status.in_(_status_values(statuses)),
                InstallmentModel.due_date < before,
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    async def update(self, installment_id: UUID, values: Mapping[str, Any]) -> None:
        column_values = to_column_values(values)
        column_values["updated_at"] = datetime.utcnow()

        stmt = (
            update(InstallmentModel)
            .where(InstallmentModel.id == str(installment_id))
            .values(**column_values)
        )
        result = await self._session.execute(
            stmt,
            execution_options={"synchronize_session": False},
        )

        if result.rowcount == 0:
            raise InstallmentNotFoundException(str(installment_id))

    async def update_statuses(
        self,
        plan_id: UUID,
        from_statuses: Collection[InstallmentStatus],
        new_status: InstallmentStatus,
        due_before: Optional[date] = None,
    ) -> int:
        stmt = update(InstallmentModel).where(
            InstallmentModel.plan_id == str(plan_id),
            InstallmentModel.status.in_(_status_values(from_statuses)),
        )
        if due_before is not None:
            stmt = stmt.where(InstallmentModel.due_date < due_before)
        stmt = stmt.values(status=new_status.value, updated_at=datetime.utcnow())

        result = await self._session.execute(
            stmt,
            execution_options={"synchronize_session": False},
        )
        return result.rowcount

    def _to_entity(self, model: InstallmentModel) -> Installment:
        return Installment(
            id=UUID(model.id),
            plan_id=UUID(model.plan_id),
            payment_number=model.payment_number,
            total_payments=model.total_payments,
            due_date=model.due_date,
            amount=model.amount,
            status=decode_installment_status(model.status),
            payment_request_id=optional_uuid(model.payment_request_id),
            paid_date=model.paid_date,
        )
