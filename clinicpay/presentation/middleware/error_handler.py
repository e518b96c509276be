"""Error handling middleware and exception handlers."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from clinicpay.domain.exceptions import (
    ConcurrentPlanUpdateException,
    DomainException,
    InstallmentNotFoundException,
    PlanNotFoundException,
    StatusSweepException,
)
from .request_context import get_request_id

logger = structlog.get_logger(__name__)

# Codes reported by failed OperationResults, mapped to HTTP statuses.
STATUS_BY_CODE = {
    "PLAN_NOT_FOUND": 404,
    "INSTALLMENT_NOT_FOUND": 404,
    "PLAN_CONCURRENT_UPDATE": 409,
    "STATUS_SWEEP_ERROR": 503,
    "STATUS_SWEEP_TIMEOUT": 503,
    "DATABASE_ERROR": 500,
}


class OperationFailedException(DomainException):
    """Raised by the API layer for a failed OperationResult."""

    def __init__(self, message: str | None, code: str | None):
        super().__init__(
            message=message or "Operation failed",
            code=code or "OPERATION_FAILED",
        )

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.code, 400)


def ensure_success(result) -> None:
    """Raise OperationFailedException unless the result succeeded."""
    if not result.success:
        raise OperationFailedException(result.error, result.code)


def error_handler_middleware(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI app.

    Maps domain exceptions to appropriate HTTP responses.
    """

    @app.exception_handler(PlanNotFoundException)
    async def plan_not_found_handler(
        request: Request,
        exc: PlanNotFoundException,
    ) -> JSONResponse:
        """Handle plan not found errors."""
        return JSONResponse(status_code=404, content=exc.to_dict(get_request_id()))

    @app.exception_handler(InstallmentNotFoundException)
    async def installment_not_found_handler(
        request: Request,
        exc: InstallmentNotFoundException,
    ) -> JSONResponse:
        """Handle installment not found errors."""
        return JSONResponse(status_code=404, content=exc.to_dict(get_request_id()))

    @app.exception_handler(ConcurrentPlanUpdateException)
    async def concurrent_update_handler(
        request: Request,
        exc: ConcurrentPlanUpdateException,
    ) -> JSONResponse:
        """Handle lost optimistic-concurrency races; the caller may retry."""
        logger.warning(
            "concurrent_plan_update",
            request_id=get_request_id(),
            plan_id=exc.plan_id,
        )
        return JSONResponse(status_code=409, content=exc.to_dict(get_request_id()))

    @app.exception_handler(StatusSweepException)
    async def status_sweep_handler(
        request: Request,
        exc: StatusSweepException,
    ) -> JSONResponse:
        """Handle overdue sweep trigger errors."""
        logger.error(
            "status_sweep_error",
            request_id=get_request_id(),
            message=exc.message,
            status_code=exc.status_code,
        )
        body = exc.to_dict(get_request_id())
        body["message"] = "Status sweep unavailable. Please try again later."
        return JSONResponse(status_code=503, content=body)

    @app.exception_handler(OperationFailedException)
    async def operation_failed_handler(
        request: Request,
        exc: OperationFailedException,
    ) -> JSONResponse:
        """Handle failed operation results."""
        logger.warning(
            "operation_failed",
            request_id=get_request_id(),
            code=exc.code,
            message=exc.message,
        )
        body = exc.to_dict(get_request_id())
        if exc.status_code >= 500:
            body["message"] = "An unexpected error occurred."
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request,
        exc: DomainException,
    ) -> JSONResponse:
        """Handle generic domain exceptions."""
        logger.warning(
            "domain_exception",
            request_id=get_request_id(),
            code=exc.code,
            message=exc.message,
        )
        return JSONResponse(status_code=400, content=exc.to_dict(get_request_id()))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_exception",
            request_id=get_request_id(),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
                "request_id": get_request_id(),
            },
        )
