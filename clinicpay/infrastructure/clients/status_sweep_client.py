"""HTTP implementation of StatusSweepClient."""

import asyncio
from typing import Any, Dict, Optional
from uuid import UUID

import httpx
import structlog

from clinicpay.core.config import settings
from clinicpay.core.metrics import (
    record_status_sweep_failure,
    record_status_sweep_retry,
    track_status_sweep_latency,
)
from clinicpay.domain.exceptions import (
    StatusSweepException,
    StatusSweepTimeoutException,
)
from clinicpay.domain.interfaces import StatusSweepClient

logger = structlog.get_logger(__name__)


class HttpStatusSweepClient(StatusSweepClient):
    """
    HTTP client for the overdue sweep job.

    Retries timeouts and transport errors with exponential backoff.
    An error response from the job is not retried.
    """

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url or settings.status_sweep_url
        self._timeout = timeout or settings.status_sweep_timeout
        self._max_retries = max_retries or settings.status_sweep_max_retries
        self._transport = transport

    async def trigger(self, plan_id: Optional[UUID] = None) -> Dict[str, Any]:
        """
        Trigger the sweep, optionally for a single plan.

        Uses exponential backoff: 0.1s, 0.2s, 0.4s, ...
        """
        payload = {"plan_id": str(plan_id) if plan_id else None}
        last_exception: StatusSweepException | None = None

        for attempt in range(self._max_retries):
            try:
                with track_status_sweep_latency():
                    async with httpx.AsyncClient(
                        timeout=self._timeout,
                        transport=self._transport,
                    ) as client:
                        response = await client.post(self._url, json=payload)

                if response.status_code >= 400:
                    record_status_sweep_failure("error")
                    raise StatusSweepException(
                        message=f"Status sweep error: {response.text[:200]}",
                        status_code=response.status_code,
                    )

                logger.info(
                    "status_sweep_triggered",
                    plan_id=payload["plan_id"],
                    status_code=response.status_code,
                )
                return response.json()

            except httpx.TimeoutException:
                record_status_sweep_failure("timeout")
                last_exception = StatusSweepTimeoutException()
                logger.warning(
                    "status_sweep_timeout",
                    plan_id=payload["plan_id"],
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                )
            except StatusSweepException:
                raise
            except httpx.HTTPError as e:
                record_status_sweep_failure("error")
                last_exception = StatusSweepException(
                    message=f"Unexpected error: {str(e)}",
                )
                logger.error(
                    "status_sweep_error",
                    plan_id=payload["plan_id"],
                    attempt=attempt + 1,
                    error=str(e),
                )

            if attempt < self._max_retries - 1:
                record_status_sweep_retry()
                await asyncio.sleep(2**attempt * 0.1)

        raise last_exception or StatusSweepException("Failed to trigger status sweep")
