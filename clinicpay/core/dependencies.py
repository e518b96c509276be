"""Dependency injection for FastAPI."""

from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

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
from clinicpay.domain.entities import ClinicContext
from clinicpay.infrastructure.clients import HttpStatusSweepClient
from clinicpay.infrastructure.database import SqlAlchemyUnitOfWork, get_db_session
from clinicpay.infrastructure.repositories import (
    PostgresActivityRepository,
    PostgresInstallmentRepository,
    PostgresNotificationRepository,
    PostgresPaymentRequestRepository,
    PostgresPlanRepository,
)
from clinicpay.utils.dates import Clock, utc_today

Session = Annotated[AsyncSession, Depends(get_db_session)]


# Request context
async def get_clinic_context(
    x_clinic_id: Annotated[str, Header(min_length=1, description="Calling clinic")],
    x_user_id: Annotated[Optional[str], Header(description="Acting user")] = None,
) -> ClinicContext:
    """Build the caller's ClinicContext from request headers."""
    return ClinicContext(clinic_id=x_clinic_id.strip(), user_id=x_user_id)


def get_clock() -> Clock:
    """Get the clock used for overdue checks and payment dates."""
    return utc_today


# Repository dependencies
async def get_plan_repository(session: Session) -> PostgresPlanRepository:
    """Get a PlanRepository instance."""
    return PostgresPlanRepository(session)


async def get_installment_repository(session: Session) -> PostgresInstallmentRepository:
    """Get an InstallmentRepository instance."""
    return PostgresInstallmentRepository(session)


async def get_payment_request_repository(
    session: Session,
) -> PostgresPaymentRequestRepository:
    """Get a PaymentRequestRepository instance."""
    return PostgresPaymentRequestRepository(session)


async def get_activity_repository(session: Session) -> PostgresActivityRepository:
    """Get an ActivityRepository instance."""
    return PostgresActivityRepository(session)


async def get_notification_repository(
    session: Session,
) -> PostgresNotificationRepository:
    """Get a NotificationRepository instance."""
    return PostgresNotificationRepository(session)


async def get_unit_of_work(session: Session) -> SqlAlchemyUnitOfWork:
    """Get the request's UnitOfWork."""
    return SqlAlchemyUnitOfWork(session)


PlanRepo = Annotated[PostgresPlanRepository, Depends(get_plan_repository)]
InstallmentRepo = Annotated[PostgresInstallmentRepository, Depends(get_installment_repository)]
RequestRepo = Annotated[
    PostgresPaymentRequestRepository,
    Depends(get_payment_request_repository),
]
UnitOfWorkDep = Annotated[SqlAlchemyUnitOfWork, Depends(get_unit_of_work)]
ClockDep = Annotated[Clock, Depends(get_clock)]


# External client dependencies
def get_status_sweep_client() -> HttpStatusSweepClient:
    """Get a StatusSweepClient instance."""
    return HttpStatusSweepClient()


# Service dependencies
async def get_payment_metrics(
    plan_repo: PlanRepo,
    installment_repo: InstallmentRepo,
    activity_repo: Annotated[PostgresActivityRepository, Depends(get_activity_repository)],
    uow: UnitOfWorkDep,
) -> PlanPaymentMetrics:
    """Get a PlanPaymentMetrics instance."""
    return PlanPaymentMetrics(
        plan_repository=plan_repo,
        installment_repository=installment_repo,
        activity_repository=activity_repo,
        unit_of_work=uow,
    )


async def get_overdue_checker(
    installment_repo: InstallmentRepo,
    sweep_client: Annotated[HttpStatusSweepClient, Depends(get_status_sweep_client)],
    clock: ClockDep,
) -> PlanOverdueChecker:
    """Get a PlanOverdueChecker instance."""
    return PlanOverdueChecker(
        installment_repository=installment_repo,
        sweep_client=sweep_client,
        clock=clock,
    )


async def get_notifier(
    notification_repo: Annotated[
        PostgresNotificationRepository,
        Depends(get_notification_repository),
    ],
    uow: UnitOfWorkDep,
) -> PlanNotifier:
    """Get a PlanNotifier instance."""
    return PlanNotifier(notification_repository=notification_repo, unit_of_work=uow)


MetricsDep = Annotated[PlanPaymentMetrics, Depends(get_payment_metrics)]
CheckerDep = Annotated[PlanOverdueChecker, Depends(get_overdue_checker)]
NotifierDep = Annotated[PlanNotifier, Depends(get_notifier)]


async def get_status_updater(
    plan_repo: PlanRepo,
    overdue_checker: CheckerDep,
    payment_metrics: MetricsDep,
    uow: UnitOfWorkDep,
) -> PlanStatusUpdater:
    """Get a PlanStatusUpdater instance."""
    return PlanStatusUpdater(
        plan_repository=plan_repo,
        overdue_checker=overdue_checker,
        payment_metrics=payment_metrics,
        unit_of_work=uow,
    )


UpdaterDep = Annotated[PlanStatusUpdater, Depends(get_status_updater)]


async def get_plan_status_service(
    plan_repo: PlanRepo,
    overdue_checker: CheckerDep,
    payment_metrics: MetricsDep,
    status_updater: UpdaterDep,
) -> PlanStatusService:
    """Get a PlanStatusService instance with all dependencies."""
    return PlanStatusService(
        status_core=PlanStatusCore(plan_repo),
        overdue_checker=overdue_checker,
        payment_metrics=payment_metrics,
        status_updater=status_updater,
    )


async def get_plan_service(
    plan_repo: PlanRepo,
    activity_repo: Annotated[PostgresActivityRepository, Depends(get_activity_repository)],
    payment_metrics: MetricsDep,
) -> PlanService:
    """Get a PlanService instance."""
    return PlanService(
        plan_repository=plan_repo,
        activity_repository=activity_repo,
        payment_metrics=payment_metrics,
    )


async def get_reschedule_service(
    plan_repo: PlanRepo,
    installment_repo: InstallmentRepo,
    request_repo: RequestRepo,
    payment_metrics: MetricsDep,
    status_updater: UpdaterDep,
    notifier: NotifierDep,
    uow: UnitOfWorkDep,
) -> PlanRescheduleService:
    """Get a PlanRescheduleService instance."""
    return PlanRescheduleService(
        plan_repository=plan_repo,
        installment_repository=installment_repo,
        payment_request_repository=request_repo,
        payment_metrics=payment_metrics,
        status_updater=status_updater,
        notifier=notifier,
        unit_of_work=uow,
    )


async def get_operations_service(
    plan_repo: PlanRepo,
    installment_repo: InstallmentRepo,
    request_repo: RequestRepo,
    payment_metrics: MetricsDep,
    status_updater: UpdaterDep,
    notifier: NotifierDep,
    clock: ClockDep,
) -> PlanOperationsService:
    """Get a PlanOperationsService instance."""
    return PlanOperationsService(
        plan_repository=plan_repo,
        installment_repository=installment_repo,
        payment_request_repository=request_repo,
        payment_metrics=payment_metrics,
        status_updater=status_updater,
        notifier=notifier,
        clock=clock,
    )


async def get_payment_service(
    plan_repo: PlanRepo,
    installment_repo: InstallmentRepo,
    request_repo: RequestRepo,
    payment_metrics: MetricsDep,
    status_updater: UpdaterDep,
    notifier: NotifierDep,
    clock: ClockDep,
) -> InstallmentPaymentService:
    """Get an InstallmentPaymentService instance."""
    return InstallmentPaymentService(
        plan_repository=plan_repo,
        installment_repository=installment_repo,
        payment_request_repository=request_repo,
        payment_metrics=payment_metrics,
        status_updater=status_updater,
        notifier=notifier,
        clock=clock,
    )


async def get_sweep_service(
    plan_repo: PlanRepo,
    installment_repo: InstallmentRepo,
    status_updater: UpdaterDep,
    uow: UnitOfWorkDep,
    clock: ClockDep,
) -> OverdueSweepService:
    """Get an OverdueSweepService instance."""
    return OverdueSweepService(
        plan_repository=plan_repo,
        installment_repository=installment_repo,
        status_updater=status_updater,
        unit_of_work=uow,
        clock=clock,
    )
