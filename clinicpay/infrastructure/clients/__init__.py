"""External API client implementations."""

from .status_sweep_client import HttpStatusSweepClient

__all__ = [
    "HttpStatusSweepClient",
]
