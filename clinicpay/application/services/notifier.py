"""Best-effort notification enqueueing."""

from typing import Any, Dict

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clinicpay.domain.entities import (
    Notification,
    NotificationType,
    Plan,
    RecipientType,
)
from clinicpay.domain.interfaces import NotificationRepository, UnitOfWork

logger = structlog.get_logger(__name__)


class PlanNotifier:
    """
    Queues patient notifications for plan events.

    Delivery is handled by an external worker. A failed enqueue is logged
    and never fails the operation that triggered it.
    """

    def __init__(
        self,
        notification_repository: NotificationRepository,
        unit_of_work: UnitOfWork,
    ):
        self._notification_repo = notification_repository
        self._uow = unit_of_work

    async def notify_patient(
        self,
        plan: Plan,
        notification_type: NotificationType,
        payload: Dict[str, Any],
    ) -> bool:
        notification = Notification(
            plan_id=plan.id,
            recipient_type=RecipientType.PATIENT,
            notification_type=notification_type,
            payload={
                "patient_id": plan.patient_id,
                "clinic_id": plan.clinic_id,
                "plan_title": plan.title,
                **payload,
            },
        )

        try:
            async with self._uow.savepoint():
                await self._notification_repo.enqueue(notification)
        except SQLAlchemyError as e:
            logger.warning(
                "notification_enqueue_failed",
                plan_id=str(plan.id),
                notification_type=notification_type.value,
                error=str(e),
            )
            return False

        return True
