"""
Configuration for the calendar ledger.

Uses pydantic-settings so deployments can set the day-boundary zone and the
reconciliation tolerance through LEDGER_CALENDAR_* environment variables or
a .env file. Constructor keyword arguments override both.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core import DEFAULT_RECONCILIATION_TOLERANCE, resolve_zone


class CalendarSettings(BaseSettings):
    """Settings recognized by the query service."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_CALENDAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    time_zone: Optional[str] = Field(
        default=None,
        description="IANA zone for day boundaries; None uses the snapshot's fetch locale",
    )
    reconciliation_tolerance: Decimal = Field(
        default=DEFAULT_RECONCILIATION_TOLERANCE,
        ge=0,
        description="Largest per-account difference the reconciliation check ignores",
    )
    reconcile_on_build: bool = Field(
        default=True,
        description="Run the advisory reconciliation when a snapshot version is first built",
    )

    @field_validator('time_zone')
    @classmethod
    def validate_time_zone(cls, v: Optional[str]) -> Optional[str]:
        """Reject identifiers zoneinfo cannot load."""
        if v is not None:
            resolve_zone(v)
        return v


@lru_cache()
def get_settings() -> CalendarSettings:
    """
    Get settings from the environment (cached).

    Call get_settings.cache_clear() to reload.
    """
    return CalendarSettings()
