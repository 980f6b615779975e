"""Booking policy rules.

Pure functions shared by the advisory preview and the authoritative
orchestrator. Rule failures raise :class:`PolicyViolation` (or
:class:`CapacityExceeded`); :func:`preview_warnings` runs the same checks and
collects the failures instead.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, tzinfo

from venue_booking.domain.errors import CapacityExceeded, PolicyViolation
from venue_booking.domain.models import (
    BookingStatus,
    EventType,
    PolicyWarning,
    Venue,
    VenueCategory,
)

ADVANCE_NOTICE = "advance_notice"
OPERATING_HOURS = "operating_hours"

MIN_ADVANCE_DAYS: dict[EventType, int] = {
    EventType.CO_CURRICULAR: 30,
    EventType.OPEN_ALL: 20,
    EventType.CLOSED_CLUB: 1,
}

_EVENT_LABELS: dict[EventType, str] = {
    EventType.CO_CURRICULAR: "Co-curricular",
    EventType.OPEN_ALL: "Open-for-All",
    EventType.CLOSED_CLUB: "Closed club",
}

WEEKEND_OPENING = time(8, 0)
WEEKDAY_OPENING = time(16, 0)


# ---------------------------------------------------------------------------
# Advance notice
# ---------------------------------------------------------------------------


def lead_days(start: datetime, now: datetime, tz: tzinfo) -> int:
    """Whole days from *now* to local midnight of the start date, rounded up.

    An event later today has zero lead days, however many hours away it is.
    """
    start_day = datetime.combine(start.astimezone(tz).date(), time(0), tzinfo=tz)
    return math.ceil((start_day - now) / timedelta(days=1))


def check_advance_notice(
    event_type: EventType, start: datetime, now: datetime, tz: tzinfo
) -> None:
    minimum = MIN_ADVANCE_DAYS[event_type]
    if lead_days(start, now, tz) < minimum:
        unit = "day" if minimum == 1 else "days"
        raise PolicyViolation(
            ADVANCE_NOTICE,
            f"{_EVENT_LABELS[event_type]} events must be booked at least "
            f"{minimum} {unit} in advance.",
        )


# ---------------------------------------------------------------------------
# Operating hours
# ---------------------------------------------------------------------------


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def opening_time(day: date) -> time:
    return WEEKEND_OPENING if is_weekend(day) else WEEKDAY_OPENING


def check_operating_hours(start: datetime, end: datetime, tz: tzinfo) -> None:
    """Validate the window against the local opening hours of the start date.

    Weekends open at 08:00, weekdays at 16:00; every day closes at midnight.
    """
    if end <= start:
        raise PolicyViolation(OPERATING_HOURS, "End time must be after start time.")

    local_start = start.astimezone(tz)
    day = local_start.date()
    if local_start.time() < opening_time(day):
        if is_weekend(day):
            message = "On weekends, bookings are allowed from 8:00 AM to 12:00 AM."
        else:
            message = "On weekdays, bookings are only allowed from 4:00 PM to 12:00 AM."
        raise PolicyViolation(OPERATING_HOURS, message)

    closing = datetime.combine(day + timedelta(days=1), time(0), tzinfo=tz)
    if end > closing:
        raise PolicyViolation(OPERATING_HOURS, "Bookings must end by 12:00 AM.")


# ---------------------------------------------------------------------------
# Category approval and capacity
# ---------------------------------------------------------------------------


def initial_status(category: VenueCategory) -> BookingStatus:
    if category == VenueCategory.AUTO_APPROVAL:
        return BookingStatus.APPROVED
    return BookingStatus.PENDING


def requires_approval(category: VenueCategory) -> bool:
    return initial_status(category) == BookingStatus.PENDING


def check_capacity(expected_attendees: int | None, venues: list[Venue]) -> None:
    if expected_attendees is None:
        return
    for venue in venues:
        if expected_attendees > venue.capacity:
            raise CapacityExceeded(venue.id, venue.name, venue.capacity, expected_attendees)


# ---------------------------------------------------------------------------
# Advisory preview
# ---------------------------------------------------------------------------


def preview_warnings(
    event_type: EventType,
    start: datetime,
    end: datetime,
    now: datetime,
    tz: tzinfo,
    venues: list[Venue],
    expected_attendees: int | None = None,
) -> list[PolicyWarning]:
    warnings: list[PolicyWarning] = []

    try:
        check_advance_notice(event_type, start, now, tz)
    except PolicyViolation as exc:
        warnings.append(PolicyWarning(field="timeline", message=exc.message))

    try:
        check_operating_hours(start, end, tz)
    except PolicyViolation as exc:
        warnings.append(PolicyWarning(field="hours", message=exc.message))

    try:
        check_capacity(expected_attendees, venues)
    except CapacityExceeded as exc:
        warnings.append(PolicyWarning(field="capacity", message=exc.message))

    for venue in venues:
        if requires_approval(venue.category):
            warnings.append(
                PolicyWarning(
                    field="venue",
                    message=f"{venue.name}: requires convener and faculty approval.",
                    level="warning",
                )
            )
        else:
            warnings.append(
                PolicyWarning(
                    field="venue",
                    message=f"{venue.name}: direct booking available (subject to vacancy).",
                    level="info",
                )
            )
    return warnings
