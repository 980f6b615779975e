"""Admin approve/reject transitions for pending bookings."""

from __future__ import annotations

import logging

from venue_booking.domain.bus import EventBus
from venue_booking.domain.errors import (
    InvalidTransition,
    NotFound,
    StorageUnavailable,
    ValidationError,
)
from venue_booking.domain.events import BookingStatusChanged
from venue_booking.domain.models import Booking, BookingStatus, Clock, utcnow
from venue_booking.repos.memory import BookingRepository, DatastoreError

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED}),
    BookingStatus.APPROVED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class StatusTransitionGuard:
    """Applies admin status changes.

    Time and capacity rules are not re-checked here: they held when the
    booking was created, and rejecting one row never affects its batch.
    """

    def __init__(
        self, booking_repo: BookingRepository, bus: EventBus, clock: Clock = utcnow
    ) -> None:
        self.booking_repo = booking_repo
        self.bus = bus
        self.clock = clock

    def update_status(
        self, booking_id: str, status: str | BookingStatus, admin_note: str | None = None
    ) -> Booking:
        try:
            target = BookingStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Invalid status {status!r}") from exc

        current = self._get(booking_id)
        if not can_transition(current.status, target):
            raise InvalidTransition(booking_id, current.status, target)

        changed_at = self.clock()
        try:
            updated = self.booking_repo.update_status(
                booking_id,
                target,
                admin_note,
                updated_at=changed_at,
                expected_status=current.status,
            )
        except DatastoreError as exc:
            raise StorageUnavailable(f"Could not update booking {booking_id}: {exc}") from exc

        if updated is None:
            # Another admin action won the race; report against the fresh state.
            latest = self._get(booking_id)
            raise InvalidTransition(booking_id, latest.status, target)

        logger.info("Booking %s: %s -> %s", booking_id, current.status, target)
        self.bus.publish(
            BookingStatusChanged(
                booking_id=booking_id,
                previous_status=current.status,
                status=target,
                admin_note=admin_note,
                changed_at=changed_at,
            )
        )
        return updated

    def _get(self, booking_id: str) -> Booking:
        try:
            booking = self.booking_repo.get(booking_id)
        except DatastoreError as exc:
            raise StorageUnavailable(f"Could not load booking {booking_id}: {exc}") from exc
        if booking is None:
            raise NotFound("booking", [booking_id], "Booking not found")
        return booking
