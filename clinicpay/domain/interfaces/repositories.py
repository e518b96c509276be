"""Repository interfaces for data persistence."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Collection, List, Mapping, Optional
from uuid import UUID

from clinicpay.domain.entities import (
    Installment,
    InstallmentStatus,
    Notification,
    PaymentActivity,
    PaymentRequest,
    Plan,
    PlanStatus,
)


class PlanRepository(ABC):
    """
    Abstract repository for Plan persistence.

    Implementations may use PostgreSQL, in-memory storage, etc.
    """

    @abstractmethod
    async def save(self, plan: Plan) -> Plan:
        """
        Persist a new plan together with its installments.

        Args:
            plan: The plan to save

        Returns:
            The saved plan
        """
        ...

    @abstractmethod
    async def get_by_id(
        self,
        plan_id: UUID,
        include_installments: bool = True,
    ) -> Optional[Plan]:
        """
        Retrieve a plan by ID.

        Args:
            plan_id: The plan's unique identifier
            include_installments: Load the payment schedule as well

        Returns:
            The plan if found, None otherwise
        """
        ...

    @abstractmethod
    async def get_by_clinic_id(
        self,
        clinic_id: str,
        status: Optional[PlanStatus] = None,
    ) -> List[Plan]:
        """
        Retrieve a clinic's plans, newest first, without installments.

        Args:
            clinic_id: The owning clinic
            status: Optional status filter

        Returns:
            List of plans
        """
        ...

    @abstractmethod
    async def get_raw_status(self, plan_id: UUID) -> Optional[str]:
        """
        Read the status column exactly as stored.

        Returns:
            The stored status string, or None if the plan does not exist
        """
        ...

    @abstractmethod
    async def update(
        self,
        plan_id: UUID,
        values: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Update plan columns and bump the row version.

        Args:
            plan_id: The plan to update
            values: Column values to write
            expected_version: When given, the write only succeeds if the
                stored version still matches

        Returns:
            The new row version

        Raises:
            PlanNotFoundException: If the plan does not exist
            ConcurrentPlanUpdateException: If expected_version no longer matches
        """
        ...

    @abstractmethod
    async def get_ids_for_sweep(self, plan_id: Optional[UUID] = None) -> List[UUID]:
        """
        IDs of plans eligible for automatic status changes.

        Excludes paused, cancelled and completed plans.

        Args:
            plan_id: Restrict the result to a single plan

        Returns:
            List of plan IDs
        """
        ...


class InstallmentRepository(ABC):
    """
    Abstract repository for the payment schedule.

    All counting and filtering happens against stored rows so derived plan
    fields can always be recomputed from source data.
    """

    @abstractmethod
    async def get_by_id(self, installment_id: UUID) -> Optional[Installment]:
        """Retrieve one installment, or None."""
        ...

    @abstractmethod
    async def get_by_plan_id(self, plan_id: UUID) -> List[Installment]:
        """All installments of a plan ordered by payment_number."""
        ...

    @abstractmethod
    async def get_by_statuses(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
    ) -> List[Installment]:
        """
        Installments of a plan whose status is in statuses.

        Returns:
            Installments ordered by due_date, then payment_number
        """
        ...

    @abstractmethod
    async def count_by_statuses(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
    ) -> int:
        """Count installments of a plan whose status is in statuses."""
        ...

    @abstractmethod
    async def exists_due_before(
        self,
        plan_id: UUID,
        statuses: Collection[InstallmentStatus],
        before: date,
    ) -> bool:
        """
        Whether any installment in statuses has due_date strictly before a date.

        Args:
            plan_id: The plan to check
            statuses: Statuses that qualify
            before: Exclusive upper bound on due_date

        Returns:
            True if at least one row matches
        """
        ...

    @abstractmethod
    async def update(self, installment_id: UUID, values: Mapping[str, Any]) -> None:
        """
        Update a single installment.

        Raises:
            InstallmentNotFoundException: If the installment does not exist
        """
        ...

    @abstractmethod
    async def update_statuses(
        self,
        plan_id: UUID,
        from_statuses: Collection[InstallmentStatus],
        new_status: InstallmentStatus,
        due_before: Optional[date] = None,
    ) -> int:
        """
        Move every matching installment of a plan to new_status.

        Args:
            plan_id: The plan whose schedule to update
            from_statuses: Only rows currently in one of these statuses
            new_status: Status to write
            due_before: Optionally only rows due strictly before this date

        Returns:
            Number of rows updated
        """
        ...


class PaymentRequestRepository(ABC):
    """Abstract repository for outbound payment requests."""

    @abstractmethod
    async def save(self, request: PaymentRequest) -> PaymentRequest:
        """Persist a payment request."""
        ...

    @abstractmethod
    async def get_by_id(self, request_id: UUID) -> Optional[PaymentRequest]:
        """Retrieve a payment request by ID."""
        ...

    @abstractmethod
    async def cancel(self, request_ids: Collection[UUID]) -> int:
        """
        Mark payment requests as cancelled.

        Returns:
            Number of requests updated
        """
        ...

    @abstractmethod
    async def mark_paid(self, request_id: UUID, payment_id: Optional[str]) -> None:
        """Record that a payment request was settled."""
        ...


class ActivityRepository(ABC):
    """
    Abstract repository for the plan activity audit log.

    The log is append-only: there is no update or delete.
    """

    @abstractmethod
    async def add(self, activity: PaymentActivity) -> PaymentActivity:
        """Append one activity row."""
        ...

    @abstractmethod
    async def get_by_plan_id(
        self,
        plan_id: UUID,
        limit: int = 50,
    ) -> List[PaymentActivity]:
        """
        Activity for a plan, newest first.

        Args:
            plan_id: The plan
            limit: Maximum number of rows to return
        """
        ...


class NotificationRepository(ABC):
    """Abstract repository for the outbound notification queue."""

    @abstractmethod
    async def enqueue(self, notification: Notification) -> Notification:
        """Queue a notification for external delivery."""
        ...
