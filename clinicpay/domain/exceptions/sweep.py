"""Overdue sweep job exceptions."""

from .base import DomainException


class StatusSweepException(DomainException):
    """Raised when the external overdue sweep cannot be triggered."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            message=message,
            code="STATUS_SWEEP_ERROR",
        )
        self.status_code = status_code


class StatusSweepTimeoutException(StatusSweepException):
    """Raised when the overdue sweep endpoint times out."""

    def __init__(self):
        super().__init__(
            message="Status sweep request timed out",
            status_code=None,
        )
        self.code = "STATUS_SWEEP_TIMEOUT"
