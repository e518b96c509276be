"""
Lifecycle Settings for plan scheduling rules.

Environment variables use the LIFECYCLE_ prefix:
    LIFECYCLE_WEEKLY_INTERVAL_DAYS=7
    LIFECYCLE_MONTHLY_INTERVAL_MONTHS=1

Usage:
    from clinicpay.service.lifecycle.settings import lifecycle_settings

    interval = lifecycle_settings.bi_weekly_interval_days
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LifecycleSettings(BaseSettings):
    """Configurable parameters for installment scheduling."""

    model_config = SettingsConfigDict(
        env_prefix="LIFECYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weekly_interval_days: int = Field(
        default=7,
        gt=0,
        description="Days between installments on a weekly plan",
    )
    bi_weekly_interval_days: int = Field(
        default=14,
        gt=0,
        description="Days between installments on a bi-weekly plan",
    )
    monthly_interval_months: int = Field(
        default=1,
        gt=0,
        description="Calendar months between installments on a monthly plan",
    )


@lru_cache
def get_lifecycle_settings() -> LifecycleSettings:
    """Get cached lifecycle settings instance."""
    return LifecycleSettings()


lifecycle_settings = get_lifecycle_settings()
