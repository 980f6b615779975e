"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from venue_booking.domain.bus import EventBus
from venue_booking.domain.events import BookingsCreated, BookingStatusChanged
from venue_booking.domain.models import BookingStatus, TimelineEntry, TimelineEntryType
from venue_booking.repos.memory import BookingRepository, TimelineRepository

logger = logging.getLogger(__name__)

_STATUS_ENTRY_TYPES = {
    BookingStatus.APPROVED: TimelineEntryType.APPROVED,
    BookingStatus.REJECTED: TimelineEntryType.REJECTED,
}


class HandlerRegistry:
    """Wires audit-trail handlers to the bus."""

    def __init__(
        self,
        bus: EventBus,
        booking_repo: BookingRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.booking_repo = booking_repo
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(BookingsCreated, self.on_bookings_created)
        self.bus.subscribe(BookingStatusChanged, self.on_status_changed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_bookings_created(self, event: BookingsCreated) -> None:
        for booking_id in event.booking_ids:
            stored = self.booking_repo.get(booking_id)
            if stored is None:
                continue
            self.timeline_repo.add(
                TimelineEntry(
                    booking_id=booking_id,
                    timestamp=stored.created_at,
                    type=TimelineEntryType.CREATED,
                    payload={
                        "batch_id": event.batch_id,
                        "venue_id": stored.venue_id,
                        "status": stored.status,
                    },
                )
            )

    def on_status_changed(self, event: BookingStatusChanged) -> None:
        entry_type = _STATUS_ENTRY_TYPES.get(event.status)
        if entry_type is None:
            logger.warning(
                "No timeline entry for status %s on booking %s", event.status, event.booking_id
            )
            return
        self.timeline_repo.add(
            TimelineEntry(
                booking_id=event.booking_id,
                timestamp=event.changed_at,
                type=entry_type,
                payload={"from": event.previous_status, "note": event.admin_note},
            )
        )
