"""Booking orchestration: validate a creation request end-to-end and persist it."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

from dateutil.parser import isoparse

from venue_booking.config import Settings
from venue_booking.domain.bus import EventBus
from venue_booking.domain.errors import (
    Conflict,
    NotFound,
    PartialFailure,
    StorageUnavailable,
    ValidationError,
)
from venue_booking.domain.events import BookingsCreated
from venue_booking.domain.models import (
    Booking,
    BookingPreview,
    BookingRequest,
    Clock,
    ConflictCheckResult,
    EventType,
    Organizer,
    Venue,
    utcnow,
)
from venue_booking.repos.memory import (
    BookingRepository,
    DatastoreError,
    OrganizerRepository,
    VenueRepository,
)
from venue_booking.services import policy
from venue_booking.services.conflicts import ConflictResolver
from venue_booking.services.locks import NoVenueLocks, VenueLocks

logger = logging.getLogger(__name__)


def parse_instant(value: str | datetime, tz: tzinfo) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be in the local timezone *tz*. Raises
    ``ValueError`` for anything that is not a valid timestamp.
    """
    parsed = value if isinstance(value, datetime) else isoparse(value.strip())
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


def split_venue_ids(raw: list[str] | str | None) -> list[str]:
    """Accept a list and/or comma-separated strings of venue ids."""
    if not raw:
        return []
    items = [raw] if isinstance(raw, str) else raw
    return [part.strip() for item in items for part in item.split(",") if part.strip()]


@dataclass(frozen=True)
class _Draft:
    """A structurally valid creation request."""

    organizer_id: str
    venue_ids: list[str]
    event_type: EventType
    event_name: str
    start: datetime
    end: datetime
    expected_attendees: int | None


class BookingOrchestrator:
    """Creates bookings after all validations pass.

    Handles:
    - Structural validation of the request
    - Advance-notice and operating-hours policy
    - Venue and organizer resolution
    - Conflict and capacity gates, serialized per venue
    - Sequential per-venue persistence with partial-failure reporting
    """

    def __init__(
        self,
        venue_repo: VenueRepository,
        organizer_repo: OrganizerRepository,
        booking_repo: BookingRepository,
        bus: EventBus,
        settings: Settings,
        clock: Clock = utcnow,
        serialize: bool = True,
    ) -> None:
        self.venue_repo = venue_repo
        self.organizer_repo = organizer_repo
        self.booking_repo = booking_repo
        self.bus = bus
        self.settings = settings
        self.clock = clock
        self.resolver = ConflictResolver(booking_repo, venue_repo)
        self.locks: VenueLocks = VenueLocks() if serialize else NoVenueLocks()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_booking(self, request: BookingRequest) -> list[Booking]:
        """Validate *request* and store one booking per requested venue.

        Returns the created rows in request order. Raises a
        :class:`~venue_booking.domain.errors.BookingError` subclass on any
        failure; only :class:`PartialFailure` can leave rows behind.
        """
        draft = self._validate(request)

        now = self.clock()
        policy.check_advance_notice(draft.event_type, draft.start, now, self.settings.tz)
        if self.settings.enforce_operating_hours:
            policy.check_operating_hours(draft.start, draft.end, self.settings.tz)

        venues = self._resolve_venues(draft.venue_ids)
        organizer = self._resolve_organizer(draft.organizer_id)

        with self.locks.hold(draft.venue_ids):
            report = self.resolver.find_conflicts(draft.venue_ids, draft.start, draft.end)
            if report.has_conflict:
                raise Conflict(sorted(report.venue_ids), report.message)

            policy.check_capacity(draft.expected_attendees, venues)
            try:
                created = self._persist_batch(draft, venues)
            except PartialFailure as exc:
                # rows left behind are live bookings and need their audit entries
                if exc.created:
                    self._announce(exc.batch_id, exc.created, organizer)
                raise

        logger.info(
            "Created %d booking(s) in batch %s for %s",
            len(created),
            created[0].batch_id,
            organizer.name,
        )
        self._announce(created[0].batch_id, created, organizer)
        return created

    def _announce(self, batch_id: str, rows: list[Booking], organizer: Organizer) -> None:
        self.bus.publish(
            BookingsCreated(
                batch_id=batch_id,
                booking_ids=[b.id for b in rows],
                organizer_id=organizer.id,
            )
        )

    def _persist_batch(self, draft: _Draft, venues: list[Venue]) -> list[Booking]:
        batch_id = str(uuid.uuid4())
        created: list[Booking] = []
        for venue in venues:
            now = self.clock()
            booking = Booking(
                organizer_id=draft.organizer_id,
                venue_id=venue.id,
                event_name=draft.event_name,
                event_type=draft.event_type,
                start_time=draft.start,
                end_time=draft.end,
                expected_attendees=draft.expected_attendees,
                status=policy.initial_status(venue.category),
                batch_id=batch_id,
                created_at=now,
                updated_at=now,
            )
            try:
                created.append(self.booking_repo.insert(booking))
            except DatastoreError as exc:
                logger.error(
                    "Failed to book venue %s in batch %s after %d row(s): %s",
                    venue.name,
                    batch_id,
                    len(created),
                    exc,
                )
                remaining = created
                compensated = False
                if self.settings.compensate_partial_batches and created:
                    remaining = self._compensate(batch_id, created)
                    compensated = not remaining
                raise PartialFailure(
                    batch_id=batch_id,
                    failed_venue_id=venue.id,
                    failed_venue_name=venue.name,
                    created=remaining,
                    compensated=compensated,
                ) from exc
        return created

    def _compensate(self, batch_id: str, created: list[Booking]) -> list[Booking]:
        """Delete already-written rows, newest first; return those left behind."""
        remaining = list(created)
        while remaining:
            try:
                self.booking_repo.delete(remaining[-1].id)
            except DatastoreError:
                logger.exception("Could not roll back batch %s", batch_id)
                break
            remaining.pop()
        return remaining

    # ------------------------------------------------------------------
    # Read-only probes
    # ------------------------------------------------------------------

    def check_conflict(
        self,
        organizer_id: str | None,
        venue_ids: list[str] | str | None,
        start: str | datetime | None,
        end: str | datetime | None,
    ) -> ConflictCheckResult:
        """Advisory conflict probe; runs only the conflict query."""
        if not organizer_id or not start or not end:
            raise ValidationError("Missing required fields")
        try:
            start_at = parse_instant(start, self.settings.tz)
            end_at = parse_instant(end, self.settings.tz)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValidationError("Invalid startTime or endTime") from exc
        if end_at <= start_at:
            raise ValidationError("endTime must be after startTime")

        report = self.resolver.find_conflicts(split_venue_ids(venue_ids), start_at, end_at)
        return ConflictCheckResult(has_conflict=report.has_conflict, message=report.message)

    def preview_booking(self, request: BookingRequest) -> BookingPreview:
        """Evaluate every rule without raising on policy failures or persisting."""
        draft = self._validate(request)
        venues = self._resolve_venues(draft.venue_ids)
        warnings = policy.preview_warnings(
            draft.event_type,
            draft.start,
            draft.end,
            self.clock(),
            self.settings.tz,
            venues,
            draft.expected_attendees,
        )
        report = self.resolver.find_conflicts(draft.venue_ids, draft.start, draft.end)
        return BookingPreview(
            warnings=warnings,
            conflict=ConflictCheckResult(
                has_conflict=report.has_conflict, message=report.message
            ),
        )

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _validate(self, request: BookingRequest) -> _Draft:
        missing = [
            name
            for name, value in (
                ("clubId", request.organizer_id),
                ("venueIds", request.venue_ids),
                ("eventType", request.event_type),
                ("eventName", request.event_name),
                ("startTime", request.start_time),
                ("endTime", request.end_time),
            )
            if value is None or (isinstance(value, (str, list)) and not value)
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        organizer_id = request.organizer_id.strip()
        event_name = request.event_name.strip()
        if not organizer_id or not event_name:
            raise ValidationError("clubId and eventName must not be blank")

        venue_ids = [vid.strip() for vid in request.venue_ids]
        if any(not vid for vid in venue_ids):
            raise ValidationError("venueIds must not contain blank ids")
        if len(set(venue_ids)) != len(venue_ids):
            raise ValidationError("venueIds must not contain duplicates")

        try:
            event_type = EventType(request.event_type)
        except ValueError as exc:
            raise ValidationError("Invalid eventType") from exc

        try:
            start = parse_instant(request.start_time, self.settings.tz)
            end = parse_instant(request.end_time, self.settings.tz)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValidationError("Invalid startTime or endTime") from exc
        if end <= start:
            raise ValidationError("endTime must be after startTime")

        if request.expected_attendees is not None and request.expected_attendees < 0:
            raise ValidationError("expectedAttendees must not be negative")

        return _Draft(
            organizer_id=organizer_id,
            venue_ids=venue_ids,
            event_type=event_type,
            event_name=event_name,
            start=start,
            end=end,
            expected_attendees=request.expected_attendees,
        )

    def _resolve_venues(self, venue_ids: list[str]) -> list[Venue]:
        try:
            found = {v.id: v for v in self.venue_repo.get_many(venue_ids)}
        except DatastoreError as exc:
            raise StorageUnavailable(f"Could not load venues: {exc}") from exc
        unknown = [vid for vid in venue_ids if vid not in found]
        if unknown:
            raise NotFound("venue", unknown, "One or more venues not found")
        return [found[vid] for vid in venue_ids]

    def _resolve_organizer(self, organizer_id: str) -> Organizer:
        try:
            organizer = self.organizer_repo.get(organizer_id)
        except DatastoreError as exc:
            raise StorageUnavailable(f"Could not load club: {exc}") from exc
        if organizer is None:
            raise NotFound("organizer", [organizer_id], "Club not found")
        return organizer
