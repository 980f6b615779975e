"""Service for detecting scheduling conflicts between venue bookings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from venue_booking.domain.errors import StorageUnavailable
from venue_booking.domain.interval import Interval
from venue_booking.domain.models import BookingStatus
from venue_booking.repos.memory import BookingRepository, DatastoreError, VenueRepository

logger = logging.getLogger(__name__)

CONFLICT_PREFIX = "Conflict: The following venues are already booked during this time: "
UNKNOWN_VENUE = "Unknown Venue"


@dataclass(frozen=True)
class ConflictReport:
    venue_ids: frozenset[str] = field(default_factory=frozenset)
    message: str = ""

    @property
    def has_conflict(self) -> bool:
        return bool(self.venue_ids)


class ConflictResolver:
    """Finds venues whose active bookings overlap a requested window.

    Used both for the read-only pre-submission probe and as the gate inside
    booking creation. Rejected bookings never count as conflicts.
    """

    def __init__(self, booking_repo: BookingRepository, venue_repo: VenueRepository) -> None:
        self.booking_repo = booking_repo
        self.venue_repo = venue_repo

    def find_conflicts(
        self, venue_ids: Sequence[str], start: datetime, end: datetime
    ) -> ConflictReport:
        """Return the conflicting subset of *venue_ids* for ``[start, end)``.

        Overlap follows :func:`~venue_booking.domain.interval.overlaps`, so
        touching boundaries are NOT conflicts.
        Raises :class:`StorageUnavailable` if the datastore cannot be read.
        """
        if not venue_ids:
            return ConflictReport()

        window = Interval(start=start, end=end)
        try:
            rows = self.booking_repo.query_overlapping(
                venue_ids, window, exclude_status=BookingStatus.REJECTED
            )
        except DatastoreError as exc:
            logger.error("Conflict query failed for venues %s: %s", list(venue_ids), exc)
            raise StorageUnavailable(f"Could not check venue availability: {exc}") from exc

        if not rows:
            return ConflictReport()

        conflicting = {row.venue_id for row in rows}
        ordered = [vid for vid in dict.fromkeys(venue_ids) if vid in conflicting]
        names = self._venue_names(ordered)
        logger.info("Conflict on venues %s for %s - %s", ordered, start, end)
        return ConflictReport(
            venue_ids=frozenset(conflicting),
            message=CONFLICT_PREFIX + ", ".join(names),
        )

    def _venue_names(self, venue_ids: list[str]) -> list[str]:
        try:
            venues = {v.id: v.name for v in self.venue_repo.get_many(venue_ids)}
        except DatastoreError as exc:
            raise StorageUnavailable(f"Could not load venue names: {exc}") from exc
        return list(dict.fromkeys(venues.get(vid, UNKNOWN_VENUE) for vid in venue_ids))
