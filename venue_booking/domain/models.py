"""Domain models for the venue booking system."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from venue_booking.domain.interval import Interval


class EventType(StrEnum):
    CLOSED_CLUB = "closed_club"
    OPEN_ALL = "open_all"
    CO_CURRICULAR = "co_curricular"


class VenueCategory(StrEnum):
    AUTO_APPROVAL = "auto_approval"
    NEEDS_APPROVAL = "needs_approval"


class BookingStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimelineEntryType(StrEnum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"


Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Catalog (owned outside the booking core)
# ---------------------------------------------------------------------------


class Venue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    capacity: int = Field(ge=0)
    category: VenueCategory


class Organizer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    group_category: str | None = None


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class Booking(BaseModel):
    id: str = Field(default_factory=_new_id)
    organizer_id: str
    venue_id: str
    event_name: str
    event_type: EventType
    start_time: datetime
    end_time: datetime
    expected_attendees: int | None = None
    status: BookingStatus = BookingStatus.PENDING
    batch_id: str
    admin_note: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _end_after_start(self) -> Booking:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    booking_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    """Accepts both snake_case and the camelCase names used by the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingRequest(_WireModel):
    """Raw creation request.

    Fields are deliberately loose: structural checks happen in the
    orchestrator so that they surface as booking validation errors rather
    than schema errors.
    """

    organizer_id: str | None = Field(default=None, alias="clubId")
    venue_ids: list[str] | None = None
    event_type: str | None = None
    event_name: str | None = None
    start_time: str | datetime | None = None
    end_time: str | datetime | None = None
    expected_attendees: int | None = None


class ConflictCheckRequest(_WireModel):
    organizer_id: str | None = Field(default=None, alias="clubId")
    venue_ids: list[str] | str | None = None
    start_time: str | datetime | None = None
    end_time: str | datetime | None = None


class ConflictCheckResult(_WireModel):
    has_conflict: bool
    message: str = ""


class StatusUpdateRequest(_WireModel):
    status: str
    admin_note: str | None = None


class PolicyWarning(BaseModel):
    field: str
    message: str
    level: str = "error"


class BookingPreview(_WireModel):
    warnings: list[PolicyWarning] = Field(default_factory=list)
    conflict: ConflictCheckResult

    @computed_field(alias="isSubmittable")
    @property
    def is_submittable(self) -> bool:
        return not self.conflict.has_conflict and not any(
            w.level == "error" for w in self.warnings
        )
