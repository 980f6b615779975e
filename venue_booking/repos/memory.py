"""In-memory repositories standing in for the booking datastore."""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Iterable

from venue_booking.domain.interval import Interval, overlaps
from venue_booking.domain.models import (
    Booking,
    BookingStatus,
    Organizer,
    TimelineEntry,
    Venue,
    VenueCategory,
)


class DatastoreError(Exception):
    """Raised by a repository when a read or write cannot be completed."""


class VenueRepository:
    """Dict-backed store for Venue instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Venue] = {}
        self._lock = Lock()

    def add(self, venue: Venue) -> None:
        with self._lock:
            self._store[venue.id] = venue

    def get_many(self, venue_ids: Iterable[str]) -> list[Venue]:
        """Return the known venues among *venue_ids*; unknown ids are skipped."""
        with self._lock:
            return [self._store[vid] for vid in venue_ids if vid in self._store]

    def list_all(self) -> list[Venue]:
        with self._lock:
            return sorted(self._store.values(), key=lambda v: v.name)


class OrganizerRepository:
    """Dict-backed store for Organizer (club) instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Organizer] = {}
        self._lock = Lock()

    def add(self, organizer: Organizer) -> None:
        with self._lock:
            self._store[organizer.id] = organizer

    def get(self, organizer_id: str) -> Organizer | None:
        with self._lock:
            return self._store.get(organizer_id)

    def list_all(self) -> list[Organizer]:
        with self._lock:
            return sorted(self._store.values(), key=lambda o: o.name)


class BookingRepository:
    """Dict-backed store for Booking rows.

    Each method holds the repository lock for its own duration only; callers
    that need check-then-insert atomicity must serialize around it.
    """

    def __init__(self) -> None:
        self._store: dict[str, Booking] = {}
        self._lock = Lock()

    def insert(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id in self._store:
                raise DatastoreError(f"Duplicate booking id {booking.id}")
            self._store[booking.id] = booking.model_copy()
            return booking

    def get(self, booking_id: str) -> Booking | None:
        with self._lock:
            stored = self._store.get(booking_id)
            return stored.model_copy() if stored else None

    def delete(self, booking_id: str) -> bool:
        with self._lock:
            return self._store.pop(booking_id, None) is not None

    def query_overlapping(
        self,
        venue_ids: Iterable[str],
        window: Interval,
        exclude_status: BookingStatus | None = BookingStatus.REJECTED,
    ) -> list[Booking]:
        """Return bookings on *venue_ids* whose ``[start_time, end_time)`` overlaps *window*."""
        wanted = set(venue_ids)
        with self._lock:
            return [
                b.model_copy()
                for b in self._store.values()
                if b.venue_id in wanted
                and b.status != exclude_status
                and overlaps(b.interval, window)
            ]

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        admin_note: str | None,
        updated_at: datetime,
        expected_status: BookingStatus | None = None,
    ) -> Booking | None:
        """Set status and note, returning the updated row.

        With *expected_status* the update only applies while the row still has
        that status; otherwise ``None`` is returned and nothing changes.
        """
        with self._lock:
            stored = self._store.get(booking_id)
            if stored is None:
                return None
            if expected_status is not None and stored.status != expected_status:
                return None
            updated = stored.model_copy(
                update={"status": status, "admin_note": admin_note, "updated_at": updated_at}
            )
            self._store[booking_id] = updated
            return updated.model_copy()

    def list_all(self) -> list[Booking]:
        with self._lock:
            return sorted(
                (b.model_copy() for b in self._store.values()), key=lambda b: b.start_time
            )

    def list_by_status(self, status: BookingStatus) -> list[Booking]:
        return [b for b in self.list_all() if b.status == status]

    def list_for_organizer(self, organizer_id: str) -> list[Booking]:
        return [b for b in self.list_all() if b.organizer_id == organizer_id]


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []
        self._lock = Lock()

    def add(self, entry: TimelineEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def list_for_booking(self, booking_id: str) -> list[TimelineEntry]:
        with self._lock:
            return sorted(
                [e for e in self._entries if e.booking_id == booking_id],
                key=lambda e: e.timestamp,
            )


# ---------------------------------------------------------------------------
# Seed data – a small venue catalog and a few clubs for local runs
# ---------------------------------------------------------------------------

_AUTO = VenueCategory.AUTO_APPROVAL
_NEEDS = VenueCategory.NEEDS_APPROVAL

DEMO_VENUES = [
    Venue(id="lt-1", name="Lecture Theatre 1", capacity=300, category=_NEEDS),
    Venue(id="lt-2", name="Lecture Theatre 2", capacity=150, category=_NEEDS),
    Venue(id="oat", name="Open Air Theatre", capacity=800, category=_NEEDS),
    Venue(id="cep-102", name="CEP 102", capacity=60, category=_AUTO),
    Venue(id="cep-110", name="CEP 110", capacity=100, category=_AUTO),
    Venue(id="seminar", name="Seminar Hall", capacity=120, category=_AUTO),
]

DEMO_ORGANIZERS = [
    Organizer(id="club-music", name="Music Club", group_category="cultural"),
    Organizer(id="club-robotics", name="Robotics Club", group_category="technical"),
    Organizer(id="club-debate", name="Debate Society", group_category="cultural"),
    Organizer(id="committee-sports", name="Sports Committee", group_category="committee"),
]


def seed_catalog(venue_repo: VenueRepository, organizer_repo: OrganizerRepository) -> None:
    for venue in DEMO_VENUES:
        venue_repo.add(venue)
    for organizer in DEMO_ORGANIZERS:
        organizer_repo.add(organizer)
