"""
ClinicPay - Payment Plan Lifecycle Service

A FastAPI-based service that tracks clinic payment plans: installment
schedules, plan status derivation, overdue detection, progress metrics
and pause/resume/cancel/reschedule operations.
"""

__version__ = "0.1.0"
