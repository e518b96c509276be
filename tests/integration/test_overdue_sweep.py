"""
Integration tests for the overdue sweep and its external trigger.

These tests verify:
1. Past-due pending/sent installments are marked overdue
2. Paused, cancelled and completed plans are skipped
3. A failing plan is reported without aborting the run
4. The sweep client trigger reports failures as results
"""

from datetime import date
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from clinicpay.application.services import OverdueSweepService
from clinicpay.domain.entities import InstallmentStatus, PlanStatus
from clinicpay.infrastructure.database import SqlAlchemyUnitOfWork
from clinicpay.infrastructure.repositories import PostgresInstallmentRepository


def installment_ids(plan) -> list:
    return [UUID(inst.installment_id) for inst in plan.installments]


class FailingInstallmentRepository(PostgresInstallmentRepository):
    """Fails bulk status updates for one plan."""

    def __init__(self, session, failing_plan_id: UUID):
        super().__init__(session)
        self._failing_plan_id = failing_plan_id

    async def update_statuses(self, plan_id, from_statuses, new_status, due_before=None):
        if plan_id == self._failing_plan_id:
            raise OperationalError("UPDATE payment_schedule", {}, Exception("disk I/O error"))
        return await super().update_statuses(plan_id, from_statuses, new_status, due_before)


async def seed_partly_paid(services, make_plan):
    """Plan due 05-01 .. 08-01 with the first installment paid and no recompute yet."""
    plan = await make_plan(start_date=date(2024, 5, 1))
    await services.installment_repo.update(
        installment_ids(plan)[0],
        {"status": InstallmentStatus.PAID},
    )
    return plan


class TestOverdueSweep:
    """Tests for OverdueSweepService.run."""

    @pytest.mark.asyncio
    async def test_sweep_marks_past_due_and_recomputes(self, make_plan, services):
        plan = await seed_partly_paid(services, make_plan)
        plan_id = UUID(plan.plan_id)

        result = await services.sweep.run()
        stored = await services.plan_repo.get_by_id(plan_id)
        statuses = [inst.status for inst in stored.installments]

        assert result.plans_checked == 1
        assert result.installments_marked_overdue == 1
        assert result.status_changes == 1
        assert result.failed_plan_ids == []
        assert statuses == [
            InstallmentStatus.PAID,
            InstallmentStatus.OVERDUE,
            InstallmentStatus.PENDING,
            InstallmentStatus.PENDING,
        ]
        assert stored.status == PlanStatus.OVERDUE
        assert stored.has_overdue_payments is True
        assert stored.paid_installments == 1

    @pytest.mark.asyncio
    async def test_sweep_marks_sent_installments(self, make_plan, services, context):
        plan = await make_plan(start_date=date(2024, 6, 1))
        first = installment_ids(plan)[0]
        await services.payments.send_payment_request(first, context)

        result = await services.sweep.run(UUID(plan.plan_id))

        assert result.installments_marked_overdue == 1
        assert (await services.installment_repo.get_by_id(first)).status == InstallmentStatus.OVERDUE

    @pytest.mark.asyncio
    async def test_sweep_leaves_due_today_alone(self, make_plan, services):
        plan = await make_plan(start_date=date(2024, 6, 15))

        result = await services.sweep.run(UUID(plan.plan_id))

        assert result.plans_checked == 1
        assert result.installments_marked_overdue == 0

    @pytest.mark.asyncio
    async def test_second_sweep_changes_nothing(self, make_plan, services):
        await seed_partly_paid(services, make_plan)

        await services.sweep.run()
        second = await services.sweep.run()

        assert second.installments_marked_overdue == 0
        assert second.status_changes == 0

    @pytest.mark.asyncio
    async def test_sweep_skips_paused_and_cancelled_plans(
        self,
        make_plan,
        services,
        context,
    ):
        paused = await make_plan(start_date=date(2024, 5, 1))
        cancelled = await make_plan(start_date=date(2024, 5, 1))
        await services.operations.pause_plan(UUID(paused.plan_id), context)
        await services.operations.cancel_plan(UUID(cancelled.plan_id), context)

        result = await services.sweep.run()
        paused_plan = await services.plan_repo.get_by_id(UUID(paused.plan_id))

        assert result.plans_checked == 0
        assert paused_plan.status == PlanStatus.PAUSED
        assert {i.status for i in paused_plan.installments} == {InstallmentStatus.PAUSED}

    @pytest.mark.asyncio
    async def test_sweep_single_plan(self, make_plan, services):
        target = await seed_partly_paid(services, make_plan)
        other = await seed_partly_paid(services, make_plan)

        result = await services.sweep.run(UUID(target.plan_id))
        untouched = await services.plan_repo.get_by_id(UUID(other.plan_id))

        assert result.plans_checked == 1
        assert untouched.status == PlanStatus.PENDING

    @pytest.mark.asyncio
    async def test_failing_plan_is_collected(
        self,
        make_plan,
        services,
        test_session,
        clock,
    ):
        broken = await seed_partly_paid(services, make_plan)
        healthy = await seed_partly_paid(services, make_plan)
        sweep = OverdueSweepService(
            services.plan_repo,
            FailingInstallmentRepository(test_session, UUID(broken.plan_id)),
            services.updater,
            SqlAlchemyUnitOfWork(test_session),
            clock,
        )

        result = await sweep.run()

        assert result.plans_checked == 2
        assert result.failed_plan_ids == [broken.plan_id]
        assert result.status_changes == 1
        assert (await services.plan_repo.get_by_id(UUID(healthy.plan_id))).status == (
            PlanStatus.OVERDUE
        )


class TestSweepTrigger:
    """Tests for trigger_status_update."""

    @pytest.mark.asyncio
    async def test_trigger_passes_plan_id(self, services, sweep_client):
        plan_id = uuid4()

        result = await services.status.trigger_status_update(plan_id)

        assert result.success is True
        assert result.status == {"plans_checked": 1}
        assert sweep_client.calls == [plan_id]

    @pytest.mark.asyncio
    async def test_trigger_failure_is_a_failed_result(self, services, sweep_client):
        sweep_client.fail_mode = True

        result = await services.status.trigger_status_update()

        assert result.success is False
        assert result.code == "STATUS_SWEEP_ERROR"
