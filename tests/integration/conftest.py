"""
Fixtures for integration tests.

Provides:
- In-memory SQLite database with savepoint support
- A movable clock fixed to a known day
- A fake status sweep client
- Fully wired services sharing one session
- Test client for the FastAPI app
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, AsyncGenerator, Dict, List, Optional
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from clinicpay.application.dto import CreatePlanRequest, PlanResponse
from clinicpay.application.services import (
    InstallmentPaymentService,
    OverdueSweepService,
    PlanNotifier,
    PlanOperationsService,
    PlanOverdueChecker,
    PlanPaymentMetrics,
    PlanRescheduleService,
    PlanService,
    PlanStatusCore,
    PlanStatusService,
    PlanStatusUpdater,
)
from clinicpay.core.dependencies import (
    get_clock,
    get_status_sweep_client,
)
from clinicpay.domain.entities import ClinicContext, PaymentFrequency
from clinicpay.domain.exceptions import StatusSweepException
from clinicpay.domain.interfaces import StatusSweepClient
from clinicpay.infrastructure.database import Base, SqlAlchemyUnitOfWork, get_db_session
from clinicpay.infrastructure.repositories import (
    PostgresActivityRepository,
    PostgresInstallmentRepository,
    PostgresNotificationRepository,
    PostgresPaymentRequestRepository,
    PostgresPlanRepository,
)
from clinicpay.main import app

TODAY = date(2024, 6, 15)
CLINIC_ID = "clinic_a"
OTHER_CLINIC_ID = "clinic_b"


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Clock that returns a fixed day until a test moves it."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


class FakeStatusSweepClient(StatusSweepClient):
    """Records sweep triggers instead of calling out."""

    def __init__(self, fail_mode: bool = False):
        self.fail_mode = fail_mode
        self.calls: List[Optional[UUID]] = []

    async def trigger(self, plan_id: Optional[UUID] = None) -> Dict[str, Any]:
        self.calls.append(plan_id)

        if self.fail_mode:
            raise StatusSweepException("Status sweep unavailable", status_code=502)

        return {"plans_checked": 1 if plan_id else 0}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """
    Create an in-memory SQLite async engine for testing.

    pysqlite's implicit transaction handling is switched off so that
    SAVEPOINT / begin_nested works the same way it does on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sweep_client() -> FakeStatusSweepClient:
    return FakeStatusSweepClient()


@pytest.fixture
def context() -> ClinicContext:
    return ClinicContext(clinic_id=CLINIC_ID, user_id="user_1")


@pytest.fixture
def other_context() -> ClinicContext:
    return ClinicContext(clinic_id=OTHER_CLINIC_ID, user_id="user_2")


@dataclass
class Services:
    """Every service wired against one session, as one API request would be."""

    plan_repo: PostgresPlanRepository
    installment_repo: PostgresInstallmentRepository
    request_repo: PostgresPaymentRequestRepository
    activity_repo: PostgresActivityRepository
    metrics: PlanPaymentMetrics
    checker: PlanOverdueChecker
    updater: PlanStatusUpdater
    status: PlanStatusService
    plans: PlanService
    operations: PlanOperationsService
    reschedule: PlanRescheduleService
    payments: InstallmentPaymentService
    sweep: OverdueSweepService


def build_services(
    session: AsyncSession,
    clock: FakeClock,
    sweep_client: StatusSweepClient,
) -> Services:
    uow = SqlAlchemyUnitOfWork(session)
    plan_repo = PostgresPlanRepository(session)
    installment_repo = PostgresInstallmentRepository(session)
    request_repo = PostgresPaymentRequestRepository(session)
    activity_repo = PostgresActivityRepository(session)
    notifier = PlanNotifier(PostgresNotificationRepository(session), uow)

    metrics = PlanPaymentMetrics(plan_repo, installment_repo, activity_repo, uow)
    checker = PlanOverdueChecker(installment_repo, sweep_client, clock)
    updater = PlanStatusUpdater(plan_repo, checker, metrics, uow)

    return Services(
        plan_repo=plan_repo,
        installment_repo=installment_repo,
        request_repo=request_repo,
        activity_repo=activity_repo,
        metrics=metrics,
        checker=checker,
        updater=updater,
        status=PlanStatusService(PlanStatusCore(plan_repo), checker, metrics, updater),
        plans=PlanService(plan_repo, activity_repo, metrics),
        operations=PlanOperationsService(
            plan_repo, installment_repo, request_repo, metrics, updater, notifier, clock
        ),
        reschedule=PlanRescheduleService(
            plan_repo, installment_repo, request_repo, metrics, updater, notifier, uow
        ),
        payments=InstallmentPaymentService(
            plan_repo, installment_repo, request_repo, metrics, updater, notifier, clock
        ),
        sweep=OverdueSweepService(plan_repo, installment_repo, updater, uow, clock),
    )


@pytest.fixture
def services(
    test_session: AsyncSession,
    clock: FakeClock,
    sweep_client: FakeStatusSweepClient,
) -> Services:
    return build_services(test_session, clock, sweep_client)


# =============================================================================
# Seeding Helpers
# =============================================================================

@pytest.fixture
def make_plan(services: Services, context: ClinicContext):
    """
    Factory creating a plan through PlanService, the same way the API does.

    Defaults to four monthly installments of 10000 starting 2024-07-01.
    """
    async def _make_plan(
        total_installments: int = 4,
        total_amount: int = 40000,
        start_date: date = date(2024, 7, 1),
        frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
        clinic: Optional[ClinicContext] = None,
    ) -> PlanResponse:
        return await services.plans.create_plan(
            CreatePlanRequest(
                patient_id="patient_1",
                payment_link_id="link_1",
                total_amount=total_amount,
                total_installments=total_installments,
                start_date=start_date,
                payment_frequency=frequency,
            ),
            clinic or context,
        )

    return _make_plan


# =============================================================================
# App Client Fixtures
# =============================================================================

@pytest.fixture
def clinic_headers() -> dict:
    return {"X-Clinic-ID": CLINIC_ID, "X-User-ID": "user_1"}


@pytest.fixture
def other_clinic_headers() -> dict:
    return {"X-Clinic-ID": OTHER_CLINIC_ID}


@pytest_asyncio.fixture
async def client(
    test_session: AsyncSession,
    clock: FakeClock,
    sweep_client: FakeStatusSweepClient,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client with mocked dependencies.

    This client:
    - Uses the in-memory SQLite session, one transaction per request
    - Uses the fixed test clock
    - Replaces the status sweep client with a recording fake
    """
    async def override_get_db_session():
        try:
            yield test_session
            await test_session.commit()
        except Exception:
            await test_session.rollback()
            raise

    def override_get_clock():
        return clock

    def override_get_status_sweep_client():
        return sweep_client

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_clock] = override_get_clock
    app.dependency_overrides[get_status_sweep_client] = override_get_status_sweep_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def plan_request() -> dict:
    """Request body for a four-installment monthly plan."""
    return {
        "patient_id": "patient_1",
        "payment_link_id": "link_1",
        "title": "Orthodontic treatment",
        "total_amount": 40000,
        "total_installments": 4,
        "payment_frequency": "monthly",
        "start_date": "2024-07-01",
    }
