"""Application services (use cases)."""

from .notifier import PlanNotifier
from .operations_service import PlanOperationsService
from .overdue_checker import PlanOverdueChecker
from .payment_metrics import PlanPaymentMetrics
from .payment_service import InstallmentPaymentService
from .plan_service import PlanService
from .plan_status_service import PlanStatusService
from .reschedule_service import PlanRescheduleService
from .status_core import PlanStatusCore
from .status_updater import PlanStatusUpdater
from .sweep_service import OverdueSweepService

__all__ = [
    "InstallmentPaymentService",
    "OverdueSweepService",
    "PlanNotifier",
    "PlanOperationsService",
    "PlanOverdueChecker",
    "PlanPaymentMetrics",
    "PlanRescheduleService",
    "PlanService",
    "PlanStatusCore",
    "PlanStatusService",
    "PlanStatusUpdater",
]
