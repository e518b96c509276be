"""
Integration tests for the HTTP API.

These tests verify:
1. POST /v1/plans creates a plan with its schedule
2. Plans are scoped to the calling clinic
3. Installment events drive the plan status end to end
4. Manual operations and their error mapping (400/404/409/503)
5. The overdue sweep endpoints, health check and metrics exposition
"""

from typing import Annotated
from uuid import uuid4

import pytest
from fastapi import Depends
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.core.dependencies import get_plan_repository
from clinicpay.infrastructure.database import get_db_session
from clinicpay.infrastructure.repositories import PostgresPlanRepository
from clinicpay.main import app


class ConflictingPlanRepository(PostgresPlanRepository):
    """Simulates another writer bumping the plan row before every checked write."""

    async def update(self, plan_id, values, expected_version=None):
        if expected_version is not None:
            await super().update(plan_id, {})
        return await super().update(plan_id, values, expected_version)


async def conflicting_plan_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ConflictingPlanRepository:
    return ConflictingPlanRepository(session)


async def create(client: AsyncClient, headers: dict, body: dict) -> dict:
    response = await client.post("/v1/plans", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()


# =============================================================================
# Plan Creation and Retrieval
# =============================================================================

class TestPlanEndpoints:
    """Tests for creating, listing and reading plans."""

    @pytest.mark.asyncio
    async def test_create_plan_generates_schedule(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        data = await create(client, clinic_headers, plan_request)

        assert data["status"] == "pending"
        assert data["clinic_id"] == "clinic_a"
        assert data["total_amount"] == 40000
        assert data["paid_installments"] == 0
        assert data["progress"] == 0
        assert data["next_due_date"] == "2024-07-01"
        assert [i["due_date"] for i in data["installments"]] == [
            "2024-07-01",
            "2024-08-01",
            "2024-09-01",
            "2024-10-01",
        ]
        assert sum(i["amount"] for i in data["installments"]) == 40000
        assert {i["status"] for i in data["installments"]} == {"pending"}

    @pytest.mark.asyncio
    async def test_get_plan_round_trip(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        created = await create(client, clinic_headers, plan_request)

        response = await client.get(f"/v1/plans/{created['plan_id']}", headers=clinic_headers)

        assert response.status_code == 200
        assert response.json()["installments"] == created["installments"]

    @pytest.mark.asyncio
    async def test_other_clinic_gets_404(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        other_clinic_headers: dict,
        plan_request: dict,
    ):
        created = await create(client, clinic_headers, plan_request)

        response = await client.get(
            f"/v1/plans/{created['plan_id']}",
            headers=other_clinic_headers,
        )

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "PLAN_NOT_FOUND"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_unknown_plan_gets_404(self, client: AsyncClient, clinic_headers: dict):
        response = await client.get(f"/v1/plans/{uuid4()}/status", headers=clinic_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_clinic_header_is_rejected(self, client: AsyncClient):
        response = await client.get("/v1/plans")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_plans_is_clinic_scoped(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        other_clinic_headers: dict,
        plan_request: dict,
    ):
        await create(client, clinic_headers, plan_request)
        await create(client, clinic_headers, plan_request)
        await create(client, other_clinic_headers, plan_request)

        mine = await client.get("/v1/plans", headers=clinic_headers)
        paused = await client.get("/v1/plans?status=paused", headers=clinic_headers)

        assert len(mine.json()) == 2
        assert mine.json()[0]["installments"] == []
        assert paused.json() == []

    @pytest.mark.asyncio
    async def test_invalid_plan_terms_are_rejected(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan_request.update(total_amount=2, total_installments=3)

        response = await client.post("/v1/plans", json=plan_request, headers=clinic_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_PLAN_REQUEST"

    @pytest.mark.asyncio
    async def test_schema_validation_errors(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan_request.update(total_installments=0, patient_id="   ")

        response = await client.post("/v1/plans", json=plan_request, headers=clinic_headers)

        assert response.status_code == 422


# =============================================================================
# Installment Events
# =============================================================================

class TestInstallmentEndpoints:
    """Payments, refunds and payment requests through the API."""

    @pytest.mark.asyncio
    async def test_payment_flow_updates_plan(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        plan_id = plan["plan_id"]
        first, second = [i["installment_id"] for i in plan["installments"][:2]]

        sent = await client.post(
            f"/v1/installments/{second}/payment-request",
            headers=clinic_headers,
        )
        paid = await client.post(f"/v1/installments/{first}/mark-paid", headers=clinic_headers)
        metrics = await client.get(f"/v1/plans/{plan_id}/metrics", headers=clinic_headers)
        stored = await client.get(f"/v1/plans/{plan_id}", headers=clinic_headers)

        assert sent.status_code == 200
        assert sent.json()["payment_request_id"]
        assert paid.json() == {"success": True, "status": "active"}
        assert metrics.json()["paid_installments"] == 1
        assert metrics.json()["progress"] == 25
        assert metrics.json()["next_due_date"] == "2024-08-01"
        assert stored.json()["installments"][0]["paid_date"] == "2024-06-15"
        assert stored.json()["installments"][1]["status"] == "sent"

    @pytest.mark.asyncio
    async def test_payment_webhook_is_idempotent(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        first = plan["installments"][0]["installment_id"]
        body = {"payment_id": "pi_123", "amount": 10000}

        responses = [
            await client.post(f"/v1/installments/{first}/payment-succeeded", json=body)
            for _ in range(3)
        ]
        metrics = await client.get(
            f"/v1/plans/{plan['plan_id']}/metrics",
            headers=clinic_headers,
        )

        assert [r.status_code for r in responses] == [200, 200, 200]
        assert metrics.json()["paid_installments"] == 1

    @pytest.mark.asyncio
    async def test_refund_of_unpaid_installment_is_rejected(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        first = plan["installments"][0]["installment_id"]

        response = await client.post(f"/v1/installments/{first}/refund", headers=clinic_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_partial_refund(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        first = plan["installments"][0]["installment_id"]
        await client.post(f"/v1/installments/{first}/mark-paid", headers=clinic_headers)

        response = await client.post(
            f"/v1/installments/{first}/refund",
            json={"amount": 2500, "full": False},
            headers=clinic_headers,
        )
        stored = await client.get(f"/v1/plans/{plan['plan_id']}", headers=clinic_headers)

        assert response.status_code == 200
        assert stored.json()["installments"][0]["status"] == "partially_refunded"
        assert stored.json()["progress"] == 25

    @pytest.mark.asyncio
    async def test_unknown_installment_gets_404(self, client: AsyncClient, clinic_headers: dict):
        response = await client.post(
            f"/v1/installments/{uuid4()}/mark-paid",
            headers=clinic_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "INSTALLMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_reschedule_single_installment(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        second = plan["installments"][1]["installment_id"]

        response = await client.post(
            f"/v1/installments/{second}/reschedule",
            json={"new_due_date": "2024-08-20"},
            headers=clinic_headers,
        )
        stored = await client.get(f"/v1/plans/{plan['plan_id']}", headers=clinic_headers)

        assert response.status_code == 200
        assert stored.json()["installments"][1]["due_date"] == "2024-08-20"


# =============================================================================
# Plan Operations
# =============================================================================

class TestOperationEndpoints:
    """Pause, resume, cancel and reschedule through the API."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        plan_id = plan["plan_id"]

        paused = await client.post(f"/v1/plans/{plan_id}/pause", headers=clinic_headers)
        again = await client.post(f"/v1/plans/{plan_id}/pause", headers=clinic_headers)
        assessment = await client.get(
            f"/v1/plans/{plan_id}/resume-assessment",
            params={"resume_date": "2024-07-10"},
            headers=clinic_headers,
        )
        resumed = await client.post(
            f"/v1/plans/{plan_id}/resume",
            json={"resume_date": "2024-07-10"},
            headers=clinic_headers,
        )
        stored = await client.get(f"/v1/plans/{plan_id}", headers=clinic_headers)

        assert paused.json() == {"success": True, "status": "paused"}
        assert again.status_code == 400
        assert again.json()["error"] == "PLAN_OPERATION_NOT_ALLOWED"
        assert assessment.json() == {
            "has_sent_payments": False,
            "has_past_due_after_resume": False,
            "has_paid_payments": False,
            "paused_installments": 4,
        }
        assert resumed.json() == {"success": True, "status": "pending"}
        assert stored.json()["installments"][0]["due_date"] == "2024-07-10"

    @pytest.mark.asyncio
    async def test_resume_active_plan_is_rejected(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)

        response = await client.post(
            f"/v1/plans/{plan['plan_id']}/resume",
            headers=clinic_headers,
        )

        assert response.status_code == 400
        assert "no paused installments" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_cancel_is_final(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        plan_id = plan["plan_id"]

        cancelled = await client.post(f"/v1/plans/{plan_id}/cancel", headers=clinic_headers)
        refreshed = await client.post(
            f"/v1/plans/{plan_id}/status/refresh",
            headers=clinic_headers,
        )

        assert cancelled.json() == {"success": True, "status": "cancelled"}
        assert refreshed.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_reschedule_plan(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)

        response = await client.post(
            f"/v1/plans/{plan['plan_id']}/reschedule",
            json={"new_start_date": "2024-09-01"},
            headers=clinic_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "status": "pending",
            "payments_shifted": 4,
            "requests_cancelled": 0,
            "failed_installment_ids": [],
        }

    @pytest.mark.asyncio
    async def test_concurrent_update_maps_to_409(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        app.dependency_overrides[get_plan_repository] = conflicting_plan_repository

        response = await client.post(
            f"/v1/plans/{plan['plan_id']}/pause",
            headers=clinic_headers,
        )
        del app.dependency_overrides[get_plan_repository]
        stored = await client.get(f"/v1/plans/{plan['plan_id']}", headers=clinic_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "PLAN_CONCURRENT_UPDATE"
        assert stored.json()["status"] == "pending"
        assert {i["status"] for i in stored.json()["installments"]} == {"pending"}

    @pytest.mark.asyncio
    async def test_other_clinic_cannot_pause(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        other_clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)

        response = await client.post(
            f"/v1/plans/{plan['plan_id']}/pause",
            headers=other_clinic_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_activity_feed(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        plan_id = plan["plan_id"]
        await client.post(f"/v1/plans/{plan_id}/pause", headers=clinic_headers)

        response = await client.get(f"/v1/plans/{plan_id}/activity", headers=clinic_headers)
        limited = await client.get(
            f"/v1/plans/{plan_id}/activity",
            params={"limit": 1},
            headers=clinic_headers,
        )

        actions = {a["action_type"] for a in response.json()}
        assert actions == {"plan_created", "plan_paused"}
        assert all(a["performed_by"] == "user_1" for a in response.json())
        assert len(limited.json()) == 1


# =============================================================================
# Status, Overdue and Sweep
# =============================================================================

class TestStatusEndpoints:
    """Status calculation, overdue check and the sweep endpoints."""

    @pytest.mark.asyncio
    async def test_overdue_check_and_sweep(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
        clock,
    ):
        plan_request["start_date"] = "2024-05-01"
        plan = await create(client, clinic_headers, plan_request)
        plan_id = plan["plan_id"]
        first = plan["installments"][0]["installment_id"]
        await client.post(
            f"/v1/installments/{first}/mark-paid",
            json={"paid_date": "2024-05-01"},
            headers=clinic_headers,
        )

        overdue = await client.get(f"/v1/plans/{plan_id}/overdue", headers=clinic_headers)
        calculated = await client.get(f"/v1/plans/{plan_id}/status", headers=clinic_headers)
        sweep = await client.post("/v1/plans/status-sweep", json={"plan_id": plan_id})

        assert overdue.json() == {"plan_id": plan_id, "has_overdue_payments": True}
        assert calculated.json()["status"] == "overdue"
        assert sweep.status_code == 200
        assert sweep.json()["plans_checked"] == 1
        assert sweep.json()["installments_marked_overdue"] == 1
        assert sweep.json()["failed_plan_ids"] == []

    @pytest.mark.asyncio
    async def test_sweep_without_body(self, client: AsyncClient):
        response = await client.post("/v1/plans/status-sweep")

        assert response.status_code == 200
        assert response.json()["plans_checked"] == 0

    @pytest.mark.asyncio
    async def test_trigger_sweep(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        sweep_client,
    ):
        response = await client.post("/v1/plans/status-sweep/trigger", headers=clinic_headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "result": {"plans_checked": 0}}
        assert sweep_client.calls == [None]

    @pytest.mark.asyncio
    async def test_trigger_sweep_unavailable(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        sweep_client,
    ):
        sweep_client.fail_mode = True

        response = await client.post("/v1/plans/status-sweep/trigger", headers=clinic_headers)

        assert response.status_code == 503
        assert response.json()["error"] == "STATUS_SWEEP_ERROR"

    @pytest.mark.asyncio
    async def test_metrics_refresh(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)

        response = await client.post(
            f"/v1/plans/{plan['plan_id']}/metrics/refresh",
            headers=clinic_headers,
        )

        assert response.status_code == 200
        assert response.json()["total_installments"] == 4
        assert response.json()["progress"] == 0


class TestServiceEndpoints:
    """Health check and Prometheus exposition."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_readiness_checks_database(self, client: AsyncClient):
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    @pytest.mark.asyncio
    async def test_metrics_exposition(
        self,
        client: AsyncClient,
        clinic_headers: dict,
        plan_request: dict,
    ):
        plan = await create(client, clinic_headers, plan_request)
        await client.post(f"/v1/plans/{plan['plan_id']}/pause", headers=clinic_headers)

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "clinicpay_plan_operations_total" in response.text
        assert "clinicpay_http_requests_total" in response.text
