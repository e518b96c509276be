"""Database infrastructure."""

from .connection import get_db_session, DatabaseSessionManager, db_manager, to_async_url
from .unit_of_work import SqlAlchemyUnitOfWork
from .models import (
    Base,
    InstallmentModel,
    NotificationModel,
    PaymentActivityModel,
    PaymentRequestModel,
    PlanModel,
)

__all__ = [
    "get_db_session",
    "DatabaseSessionManager",
    "db_manager",
    "to_async_url",
    "SqlAlchemyUnitOfWork",
    "Base",
    "InstallmentModel",
    "NotificationModel",
    "PaymentActivityModel",
    "PaymentRequestModel",
    "PlanModel",
]
