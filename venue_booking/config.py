"""Runtime settings, read from ``VENUE_BOOKING_*`` environment variables."""

from __future__ import annotations

import os
from functools import cached_property
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, field_validator

_PREFIX = "VENUE_BOOKING_"


class Settings(BaseModel):
    # Local timezone in which operating hours are evaluated and naive
    # timestamps are interpreted.
    timezone: str = "UTC"
    log_level: str = "INFO"
    enforce_operating_hours: bool = True
    compensate_partial_batches: bool = False
    seed_demo_data: bool = True

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @cached_property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from the environment, ignoring unset variables."""
    env = os.environ if environ is None else environ
    values = {
        name: env[_PREFIX + name.upper()]
        for name in Settings.model_fields
        if _PREFIX + name.upper() in env
    }
    return Settings(**values)
