"""PostgreSQL repository implementation for payment plans."""

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clinicpay.domain.entities import Installment, Plan, PlanStatus
from clinicpay.domain.exceptions import (
    ConcurrentPlanUpdateException,
    PlanNotFoundException,
)
from clinicpay.domain.interfaces import PlanRepository
from clinicpay.infrastructure.database.models import InstallmentModel, PlanModel
from clinicpay.service.lifecycle import (
    MANUAL_OVERRIDE_STATUSES,
    decode_installment_status,
    parse_frequency,
    validate_plan_status,
)

from ._values import optional_uuid, to_column_values

_SWEEP_EXCLUDED = [s.value for s in MANUAL_OVERRIDE_STATUSES] + [PlanStatus.COMPLETED.value]


class PostgresPlanRepository(PlanRepository):
    """PostgreSQL-backed plan repository."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, plan: Plan) -> Plan:
        model = PlanModel(
            id=str(plan.id),
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
            start_date=plan.start_date,
            next_due_date=plan.next_due_date,
            version=plan.version,
            created_at=plan.created_at,
        )

        for installment in plan.installments:
            model.installments.append(
                InstallmentModel(
                    id=str(installment.id),
                    plan_id=str(plan.id),
                    payment_number=installment.payment_number,
                    total_payments=installment.total_payments,
                    due_date=installment.due_date,
                    amount=installment.amount,
                    status=installment.status.value,
                )
            )

        self._session.add(model)
        await self._session.flush()

        return plan

    async def get_by_id(
        self,
        plan_id: UUID,
        include_installments: bool = True,
    ) -> Optional[Plan]:
        stmt = (
            select(PlanModel)
            .where(PlanModel.id == str(plan_id))
            .execution_options(populate_existing=True)
        )
        if include_installments:
            stmt = stmt.options(selectinload(PlanModel.installments))

        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._to_entity(model, include_installments)

    async def get_by_clinic_id(
        self,
        clinic_id: str,
        status: Optional[PlanStatus] = None,
    ) -> List[Plan]:
        stmt = (
            select(PlanModel)
            .where(PlanModel.clinic_id == clinic_id)
            .order_by(PlanModel.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(PlanModel.status == status.value)

        result = await self._session.execute(stmt)
        models = result.scalars().all()

        return [self._to_entity(model, include_installments=False) for model in models]

    async def get_raw_status(self, plan_id: UUID) -> Optional[str]:
        stmt = select(PlanModel.status).where(PlanModel.id == str(plan_id))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update(
        self,
        plan_id: UUID,
        values: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        column_values = to_column_values(values)
        column_values["updated_at"] = datetime.utcnow()
        column_values["version"] = PlanModel.version + 1

        stmt = update(PlanModel).where(PlanModel.id == str(plan_id))
        if expected_version is not None:
            stmt = stmt.where(PlanModel.version == expected_version)
        stmt = stmt.values(**column_values).returning(PlanModel.version)

        result = await self._session.execute(
            stmt,
            execution_options={"synchronize_session": False},
        )
        new_version = result.scalar_one_or_none()

        if new_version is None:
            exists = await self.get_raw_status(plan_id)
            if exists is None:
                raise PlanNotFoundException(str(plan_id))
            raise ConcurrentPlanUpdateException(str(plan_id), expected_version)

        return new_version

    async def get_ids_for_sweep(self, plan_id: Optional[UUID] = None) -> List[UUID]:
        stmt = (
            select(PlanModel.id)
            .where(PlanModel.status.not_in(_SWEEP_EXCLUDED))
            .order_by(PlanModel.created_at.asc())
        )
        if plan_id is not None:
            stmt = stmt.where(PlanModel.id == str(plan_id))

        result = await self._session.execute(stmt)
        return [UUID(value) for value in result.scalars().all()]

    def _to_entity(self, model: PlanModel, include_installments: bool) -> Plan:
        installments = []
        if include_installments:
            installments = [
                Installment(
                    id=UUID(inst.id),
                    plan_id=UUID(inst.plan_id),
                    payment_number=inst.payment_number,
                    total_payments=inst.total_payments,
                    due_date=inst.due_date,
                    amount=inst.amount,
                    status=decode_installment_status(inst.status),
                    payment_request_id=optional_uuid(inst.payment_request_id),
                    paid_date=inst.paid_date,
                )
                for inst in model.installments
            ]

        return Plan(
            id=UUID(model.id),
            clinic_id=model.clinic_id,
            patient_id=model.patient_id,
            payment_link_id=model.payment_link_id,
            title=model.title,
            status=validate_plan_status(model.status),
            total_amount=model.total_amount,
            installment_amount=model.installment_amount,
            total_installments=model.total_installments,
            paid_installments=model.paid_installments,
            progress=model.progress,
            has_overdue_payments=model.has_overdue_payments,
            payment_frequency=parse_frequency(model.payment_frequency),
            start_date=model.start_date,
            next_due_date=model.next_due_date,
            version=model.version,
            installments=installments,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
