"""Caller context threaded through plan operations."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClinicContext:
    """
    Identifies the clinic (and optionally the user) a request acts for.

    Passed explicitly to every service call instead of being read from
    process-wide state.
    """

    clinic_id: str
    user_id: Optional[str] = None

    def owns(self, clinic_id: str) -> bool:
        return self.clinic_id == clinic_id
