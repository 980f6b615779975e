"""Half-open time intervals over absolute instants."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class Interval(BaseModel):
    """A ``[start, end)`` range of timezone-aware instants, normalized to UTC."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _aware_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("interval bounds must be timezone-aware")
        return value.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _end_after_start(self) -> Interval:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    def overlaps(self, other: Interval) -> bool:
        return overlaps(self, other)


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when the two intervals share at least one instant.

    Intervals that only touch (``a.end == b.start``) do not overlap, so
    back-to-back bookings are legal.
    """
    return a.start < b.end and b.start < a.end
