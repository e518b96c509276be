"""Plan-related domain exceptions."""

from .base import DomainException


class PlanNotFoundException(DomainException):
    """Raised when a plan cannot be found."""

    def __init__(self, plan_id: str):
        super().__init__(
            message=f"Plan not found: {plan_id}",
            code="PLAN_NOT_FOUND",
        )
        self.plan_id = plan_id


class PlanOperationNotAllowedException(DomainException):
    """Raised when an operation is not valid for the plan's current status."""

    def __init__(self, plan_id: str, operation: str, reason: str):
        super().__init__(
            message=f"Cannot {operation} plan {plan_id}: {reason}",
            code="PLAN_OPERATION_NOT_ALLOWED",
        )
        self.plan_id = plan_id
        self.operation = operation


class ConcurrentPlanUpdateException(DomainException):
    """Raised when a plan row changed underneath a status-affecting write."""

    def __init__(self, plan_id: str, expected_version: int):
        super().__init__(
            message=(
                f"Plan {plan_id} was modified concurrently "
                f"(expected version {expected_version})"
            ),
            code="PLAN_CONCURRENT_UPDATE",
        )
        self.plan_id = plan_id
        self.expected_version = expected_version


class InvalidPlanRequestException(DomainException):
    """Raised when a plan creation request is invalid."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="INVALID_PLAN_REQUEST",
        )
