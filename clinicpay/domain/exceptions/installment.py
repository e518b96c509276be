"""Installment-related domain exceptions."""

from .base import DomainException


class InstallmentNotFoundException(DomainException):
    """Raised when an installment cannot be found."""

    def __init__(self, installment_id: str):
        super().__init__(
            message=f"Installment not found: {installment_id}",
            code="INSTALLMENT_NOT_FOUND",
        )
        self.installment_id = installment_id


class InvalidStatusTransitionException(DomainException):
    """Raised when an installment status change is not allowed."""

    def __init__(self, current_status: str | None, new_status: str):
        super().__init__(
            message=(
                f"Invalid status transition from {current_status or 'none'} "
                f"to {new_status}"
            ),
            code="INVALID_STATUS_TRANSITION",
        )
        self.current_status = current_status
        self.new_status = new_status
