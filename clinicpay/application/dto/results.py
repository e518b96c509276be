"""Result objects returned by plan lifecycle operations."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from clinicpay.domain.exceptions import DomainException

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a service operation.

    Service operations report failures through this object instead of
    raising, so callers can show a message without handling exceptions.

    Attributes:
        success: Whether the operation's critical path completed
        status: Operation-specific payload, usually the resulting PlanStatus
        error: Human-readable failure message
        code: Machine-readable failure code, taken from the domain exception
    """

    success: bool
    status: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def ok(cls, status: Any = None) -> "OperationResult":
        return cls(success=True, status=status)

    @classmethod
    def failed(cls, error: str, code: str = "OPERATION_FAILED") -> "OperationResult":
        return cls(success=False, error=error, code=code)

    @classmethod
    def from_exception(cls, exc: Exception) -> "OperationResult":
        """Build a failed result, keeping the message and code of domain errors."""
        if isinstance(exc, DomainException):
            return cls.failed(exc.message, exc.code)
        return cls.failed(str(exc) or GENERIC_ERROR_MESSAGE, "DATABASE_ERROR")


@dataclass(frozen=True)
class RescheduleResult:
    """
    Outcome of rescheduling a whole plan.

    success only reflects the critical path (the plan's start date and
    status write). Installments whose new due date could not be written
    are listed in failed_installment_ids.
    """

    success: bool
    status: Any = None
    payments_shifted: int = 0
    requests_cancelled: int = 0
    failed_installment_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None
    code: Optional[str] = None

    @property
    def partial(self) -> bool:
        return self.success and bool(self.failed_installment_ids)

    @classmethod
    def from_exception(cls, exc: Exception) -> "RescheduleResult":
        failure = OperationResult.from_exception(exc)
        return cls(success=False, error=failure.error, code=failure.code)


@dataclass(frozen=True)
class ResumeAssessment:
    """Warnings to show before resuming a paused plan."""

    has_sent_payments: bool
    has_past_due_after_resume: bool
    has_paid_payments: bool
    paused_installments: int = 0


@dataclass(frozen=True)
class SweepResult:
    """Summary of one overdue sweep run."""

    plans_checked: int = 0
    installments_marked_overdue: int = 0
    status_changes: int = 0
    failed_plan_ids: List[str] = field(default_factory=list)
