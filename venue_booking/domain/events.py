"""Domain events emitted by the booking core."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from venue_booking.domain.models import BookingStatus


class BookingsCreated(BaseModel):
    """Fired once per successful creation request, after every row is stored."""

    batch_id: str
    booking_ids: list[str]
    organizer_id: str


class BookingStatusChanged(BaseModel):
    """Fired when an admin approves or rejects a pending booking."""

    booking_id: str
    previous_status: BookingStatus
    status: BookingStatus
    admin_note: str | None = None
    changed_at: datetime
