"""PostgreSQL repository implementation for the notification queue."""

from sqlalchemy.ext.asyncio import AsyncSession

from clinicpay.domain.entities import Notification
from clinicpay.domain.interfaces import NotificationRepository
from clinicpay.infrastructure.database.models import NotificationModel


class PostgresNotificationRepository(NotificationRepository):
    """PostgreSQL-backed notification queue."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def enqueue(self, notification: Notification) -> Notification:
        model = NotificationModel(
            id=str(notification.id),
            plan_id=str(notification.plan_id),
            recipient_type=notification.recipient_type.value,
            notification_type=notification.notification_type.value,
            payload=notification.payload,
            status=notification.status.value,
            created_at=notification.created_at,
        )
        self._session.add(model)
        await self._session.flush()

        return notification
