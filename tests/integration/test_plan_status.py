"""
Integration tests for plan status derivation and payment metrics.

These tests verify:
1. Status recompute is idempotent and writes only on change
2. The paid count is stable under replayed payment events
3. Manual overrides beat derived status
4. The overdue boundary is strictly before today
5. A plan walks pending -> active -> overdue -> active -> completed
6. Stale writes are rejected by the version check
"""

from datetime import date
from uuid import UUID, uuid4

import pytest

from clinicpay.domain.entities import ActivityType, InstallmentStatus, PlanStatus
from clinicpay.domain.exceptions import (
    ConcurrentPlanUpdateException,
    PlanNotFoundException,
)


def installment_ids(plan) -> list:
    return [UUID(inst.installment_id) for inst in plan.installments]


async def status_changes(services, plan_id: UUID) -> list:
    activities = await services.activity_repo.get_by_plan_id(plan_id)
    return [a for a in activities if a.action_type == ActivityType.STATUS_CHANGE]


# =============================================================================
# Idempotent Recompute
# =============================================================================

class TestStatusRecompute:
    """Tests for update_plan_status."""

    @pytest.mark.asyncio
    async def test_second_recompute_does_not_write(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        first = installment_ids(plan)[0]

        await services.payments.mark_as_paid(first, context)

        result = await services.status.update_plan_status(plan_id, context)
        version_after_first = (await services.plan_repo.get_by_id(plan_id)).version
        changes_after_first = len(await status_changes(services, plan_id))

        second = await services.status.update_plan_status(plan_id, context)
        stored = await services.plan_repo.get_by_id(plan_id)

        assert result.success and second.success
        assert second.status == PlanStatus.ACTIVE
        assert stored.version == version_after_first
        assert len(await status_changes(services, plan_id)) == changes_after_first

    @pytest.mark.asyncio
    async def test_status_change_is_audited(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)

        await services.payments.mark_as_paid(installment_ids(plan)[0], context)

        changes = await status_changes(services, plan_id)
        assert len(changes) == 1
        assert changes[0].details == {
            "previous_status": "pending",
            "new_status": "active",
            "automatic": True,
        }
        assert changes[0].performed_by == "user_1"

    @pytest.mark.asyncio
    async def test_calculate_does_not_write(self, make_plan, services):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        await services.installment_repo.update(
            installment_ids(plan)[0],
            {"status": InstallmentStatus.PAID},
        )

        calculated = await services.status.calculate_plan_status(plan_id)
        stored = await services.plan_repo.get_by_id(plan_id)

        assert calculated == PlanStatus.ACTIVE
        assert stored.status == PlanStatus.PENDING

    @pytest.mark.asyncio
    async def test_update_missing_plan_fails(self, services):
        result = await services.status.update_plan_status(uuid4())

        assert result.success is False
        assert result.code == "PLAN_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_corrupt_stored_status_reads_as_pending(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        await services.plan_repo.update(plan_id, {"status": "archived"})

        refreshed = await services.status.refresh_plan_status(plan_id)
        stored = await services.plan_repo.get_by_id(plan_id)

        assert refreshed.success is True
        assert refreshed.status == PlanStatus.PENDING
        assert stored.status == PlanStatus.PENDING

    @pytest.mark.asyncio
    async def test_refresh_missing_plan_fails(self, services):
        result = await services.status.refresh_plan_status(uuid4())

        assert result.success is False
        assert result.code == "PLAN_NOT_FOUND"


# =============================================================================
# Paid Count
# =============================================================================

class TestPaidCount:
    """Tests for get_accurate_paid_installment_count under replays."""

    @pytest.mark.asyncio
    async def test_replayed_payment_counts_once(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        first = installment_ids(plan)[0]

        for _ in range(3):
            result = await services.payments.record_payment_success(first, "pay_1")
            assert result.success is True

        stored = await services.plan_repo.get_by_id(plan_id)

        assert await services.status.get_accurate_paid_installment_count(plan_id) == 1
        assert stored.paid_installments == 1
        assert stored.progress == 25

    @pytest.mark.asyncio
    async def test_refunds_still_count_as_paid(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        first, second = installment_ids(plan)[:2]

        await services.payments.mark_as_paid(first, context)
        await services.payments.mark_as_paid(second, context)
        await services.payments.record_refund(first, context=context)
        await services.payments.record_refund(second, amount=500, full=False, context=context)

        stored = await services.plan_repo.get_by_id(plan_id)
        statuses = {i.payment_number: i.status for i in stored.installments}

        assert statuses[1] == InstallmentStatus.REFUNDED
        assert statuses[2] == InstallmentStatus.PARTIALLY_REFUNDED
        assert stored.paid_installments == 2
        assert stored.progress == 50

    @pytest.mark.asyncio
    async def test_update_metrics_returns_counts(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        await services.installment_repo.update(
            installment_ids(plan)[0],
            {"status": InstallmentStatus.PAID},
        )

        result = await services.status.update_plan_payment_metrics(plan_id)

        assert result.success is True
        assert result.status.paid_installments == 1
        assert result.status.progress == 25
        assert result.status.next_due_date == "2024-08-01"


# =============================================================================
# Manual Overrides
# =============================================================================

class TestManualOverride:
    """Paused and cancelled plans keep their status."""

    @pytest.mark.asyncio
    async def test_paused_plan_stays_paused(self, make_plan, services, context, clock):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        first, second = installment_ids(plan)[:2]

        await services.payments.mark_as_paid(first, context)
        await services.payments.send_payment_request(second, context)
        await services.operations.pause_plan(plan_id, context)

        clock.today = date(2024, 9, 1)
        assert await services.status.check_plan_for_overdue_payments(plan_id) is True

        assert await services.status.calculate_plan_status(plan_id) == PlanStatus.PAUSED
        result = await services.status.update_plan_status(plan_id)
        assert result.status == PlanStatus.PAUSED

    @pytest.mark.asyncio
    async def test_cancelled_plan_stays_cancelled(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)

        await services.payments.mark_as_paid(installment_ids(plan)[0], context)
        await services.operations.cancel_plan(plan_id, context)

        assert await services.status.calculate_plan_status(plan_id) == PlanStatus.CANCELLED


# =============================================================================
# Overdue Boundary
# =============================================================================

class TestOverdueBoundary:
    """Tests for check_plan_for_overdue_payments."""

    @pytest.mark.asyncio
    async def test_due_today_is_not_overdue(self, make_plan, services, context, clock):
        plan = await make_plan()
        clock.today = date(2024, 7, 1)

        assert await services.checker.check_plan_for_overdue_payments(UUID(plan.plan_id)) is False

    @pytest.mark.asyncio
    async def test_due_yesterday_pending_is_overdue(self, make_plan, services, context, clock):
        plan = await make_plan()
        clock.today = date(2024, 7, 2)

        assert await services.checker.check_plan_for_overdue_payments(UUID(plan.plan_id)) is True

    @pytest.mark.asyncio
    async def test_due_yesterday_paid_is_not_overdue(self, make_plan, services, context, clock):
        plan = await make_plan()
        await services.payments.mark_as_paid(installment_ids(plan)[0], context)
        clock.today = date(2024, 7, 2)

        assert await services.checker.check_plan_for_overdue_payments(UUID(plan.plan_id)) is False

    @pytest.mark.asyncio
    async def test_sent_and_marked_overdue_still_count(self, make_plan, services, context, clock):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        first = installment_ids(plan)[0]
        clock.today = date(2024, 7, 2)

        await services.payments.send_payment_request(first, context)
        assert await services.checker.check_plan_for_overdue_payments(plan_id) is True

        await services.installment_repo.update(first, {"status": InstallmentStatus.OVERDUE})
        assert await services.checker.check_plan_for_overdue_payments(plan_id) is True

    @pytest.mark.asyncio
    async def test_completed_beats_late_due_dates(self, make_plan, services, context, clock):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        clock.today = date(2025, 1, 1)

        for installment_id in installment_ids(plan):
            await services.payments.mark_as_paid(installment_id, context)

        stored = await services.plan_repo.get_by_id(plan_id)
        assert stored.status == PlanStatus.COMPLETED
        assert stored.progress == 100


# =============================================================================
# End-to-End Lifecycle
# =============================================================================

class TestLifecycle:
    """A four-installment plan from creation to completion."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, make_plan, services, context, clock):
        plan = await make_plan(total_installments=4)
        plan_id = UUID(plan.plan_id)
        ids = installment_ids(plan)

        assert plan.status == "pending"

        await services.payments.mark_as_paid(ids[0], context)
        stored = await services.plan_repo.get_by_id(plan_id)
        assert stored.status == PlanStatus.ACTIVE
        assert stored.paid_installments == 1
        assert stored.progress == 25

        clock.today = date(2024, 8, 2)
        result = await services.status.update_plan_status(plan_id, context)
        stored = await services.plan_repo.get_by_id(plan_id)
        assert result.status == PlanStatus.OVERDUE
        assert stored.has_overdue_payments is True

        await services.payments.mark_as_paid(ids[1], context)
        stored = await services.plan_repo.get_by_id(plan_id)
        assert stored.status == PlanStatus.ACTIVE
        assert stored.has_overdue_payments is False
        assert stored.progress == 50
        assert stored.next_due_date == date(2024, 9, 1)

        await services.payments.mark_as_paid(ids[2], context)
        result = await services.payments.mark_as_paid(ids[3], context)
        stored = await services.plan_repo.get_by_id(plan_id)
        assert result.status == PlanStatus.COMPLETED
        assert stored.status == PlanStatus.COMPLETED
        assert stored.progress == 100
        assert stored.next_due_date is None

    @pytest.mark.asyncio
    async def test_paid_date_defaults_to_today(self, make_plan, services, context, clock):
        plan = await make_plan()
        first = installment_ids(plan)[0]

        await services.payments.mark_as_paid(first, context)

        assert (await services.installment_repo.get_by_id(first)).paid_date == clock.today

    @pytest.mark.asyncio
    async def test_invalid_transition_is_rejected(self, make_plan, services, context):
        plan = await make_plan()
        first = installment_ids(plan)[0]

        result = await services.payments.record_refund(first, context=context)

        assert result.success is False
        assert result.code == "INVALID_STATUS_TRANSITION"
        assert (await services.installment_repo.get_by_id(first)).status == InstallmentStatus.PENDING

    @pytest.mark.asyncio
    async def test_payment_settles_payment_request(self, make_plan, services, context):
        plan = await make_plan()
        first = installment_ids(plan)[0]

        sent = await services.payments.send_payment_request(first, context)
        await services.payments.record_payment_success(first, "pay_42")

        request = await services.request_repo.get_by_id(UUID(sent.status))
        assert request.status.value == "paid"
        assert request.payment_id == "pay_42"


# =============================================================================
# Optimistic Concurrency
# =============================================================================

class TestVersionCheck:
    """Tests for the plan version column."""

    @pytest.mark.asyncio
    async def test_stale_version_is_rejected(self, make_plan, services, context):
        plan = await make_plan()
        plan_id = UUID(plan.plan_id)
        stale = (await services.plan_repo.get_by_id(plan_id)).version

        await services.plan_repo.update(plan_id, {"title": "Renamed"}, expected_version=stale)

        with pytest.raises(ConcurrentPlanUpdateException):
            await services.plan_repo.update(
                plan_id,
                {"status": PlanStatus.PAUSED},
                expected_version=stale,
            )

        stored = await services.plan_repo.get_by_id(plan_id)
        assert stored.title == "Renamed"
        assert stored.status == PlanStatus.PENDING
        assert stored.version == stale + 1

    @pytest.mark.asyncio
    async def test_missing_plan_update_raises_not_found(self, services):
        with pytest.raises(PlanNotFoundException):
            await services.plan_repo.update(uuid4(), {"title": "x"}, expected_version=1)
