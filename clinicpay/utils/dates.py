"""Calendar date helpers."""

from datetime import date, datetime, timezone
from typing import Callable

Clock = Callable[[], date]


def utc_today() -> date:
    """Current calendar date in UTC, the reference day for overdue checks."""
    return datetime.now(timezone.utc).date()
