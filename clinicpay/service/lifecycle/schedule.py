"""
Installment schedule generation.

All arithmetic is on calendar dates. Every due date is offset from the
schedule start (i x interval) rather than chained from the previous one,
so month-end clamping never accumulates drift.
"""

from datetime import date, timedelta
from typing import Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from clinicpay.domain.entities import Installment, PaymentFrequency

from .settings import LifecycleSettings, lifecycle_settings
from .statuses import SETTLED_INSTALLMENT_STATUSES


def parse_frequency(raw: object) -> PaymentFrequency:
    """Map a stored frequency string to PaymentFrequency, defaulting to monthly."""
    if isinstance(raw, PaymentFrequency):
        return raw
    try:
        return PaymentFrequency(raw)
    except ValueError:
        return PaymentFrequency.MONTHLY


def due_date_for(
    start_date: date,
    index: int,
    frequency: PaymentFrequency,
    settings: LifecycleSettings = lifecycle_settings,
) -> date:
    """
    Due date of the index-th installment (0-based) counted from start_date.

    Args:
        start_date: Due date of the first installment
        index: Position in the schedule, 0 for the first installment
        frequency: Plan payment frequency
        settings: Lifecycle settings (uses defaults if not provided)

    Returns:
        The calendar due date
    """
    if frequency == PaymentFrequency.WEEKLY:
        return start_date + timedelta(days=index * settings.weekly_interval_days)
    if frequency == PaymentFrequency.BI_WEEKLY:
        return start_date + timedelta(days=index * settings.bi_weekly_interval_days)
    return start_date + relativedelta(months=index * settings.monthly_interval_months)


def generate_due_dates(
    start_date: date,
    count: int,
    frequency: PaymentFrequency,
    settings: LifecycleSettings = lifecycle_settings,
) -> List[date]:
    """Due dates for count installments starting exactly on start_date."""
    return [due_date_for(start_date, i, frequency, settings) for i in range(count)]


def split_amount(total_amount: int, count: int) -> List[int]:
    """
    Split a total in minor units across count installments.

    The remainder goes on the first installment so amounts always sum
    to the total.
    """
    if count <= 0:
        return []

    base_amount = total_amount // count
    remainder = total_amount % count

    return [base_amount + (remainder if i == 0 else 0) for i in range(count)]


def shift_days(due_date: date, resume_date: Optional[date], earliest: date) -> date:
    """Move a due date forward by however far resume_date is past earliest."""
    if resume_date is None or resume_date <= earliest:
        return due_date
    return due_date + timedelta(days=(resume_date - earliest).days)


def next_due_date(installments: Iterable[Installment]) -> Optional[date]:
    """Earliest due date among installments that are still owed."""
    outstanding = [
        inst.due_date
        for inst in installments
        if inst.status not in SETTLED_INSTALLMENT_STATUSES
    ]
    return min(outstanding) if outstanding else None
