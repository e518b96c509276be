"""External client interfaces."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from uuid import UUID


class StatusSweepClient(ABC):
    """
    Abstract client for the out-of-process overdue sweep job.

    Used for manual remediation; the sweep re-evaluates overdue status
    for one plan or for every eligible plan.
    """

    @abstractmethod
    async def trigger(self, plan_id: Optional[UUID] = None) -> Dict[str, Any]:
        """
        Ask the sweep job to run.

        Args:
            plan_id: Restrict the sweep to one plan, or None for all plans

        Returns:
            The sweep job's JSON response

        Raises:
            StatusSweepException: If the job returns an error
            StatusSweepTimeoutException: If the request times out
        """
        ...
