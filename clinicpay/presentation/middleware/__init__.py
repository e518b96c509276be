"""Middleware for request processing."""

from .error_handler import (
    OperationFailedException,
    ensure_success,
    error_handler_middleware,
)
from .request_context import RequestContextMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "OperationFailedException",
    "ensure_success",
    "error_handler_middleware",
    "RequestContextMiddleware",
    "LoggingMiddleware",
]
