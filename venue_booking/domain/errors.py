"""Error taxonomy for the booking core.

Every error carries the HTTP status used by the deployed API and a
machine-readable ``code``; :meth:`BookingError.to_payload` renders the body
returned to clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from venue_booking.domain.models import Booking


class BookingError(Exception):
    status_code: int = 500
    code: str = "booking_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.details()}


class ValidationError(BookingError):
    """Malformed or missing input. Nothing is persisted."""

    status_code = 400
    code = "validation_error"


class PolicyViolation(BookingError):
    """A booking rule (advance notice, operating hours) was not met."""

    status_code = 400
    code = "policy_violation"

    def __init__(self, rule: str, message: str) -> None:
        super().__init__(message)
        self.rule = rule

    def details(self) -> dict[str, Any]:
        return {"rule": self.rule}


class NotFound(BookingError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, ids: list[str], message: str | None = None) -> None:
        super().__init__(message or f"{entity.capitalize()} not found: {', '.join(ids)}")
        self.entity = entity
        self.ids = ids

    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "ids": self.ids}


class Conflict(BookingError):
    """The requested window overlaps an active booking on one or more venues."""

    status_code = 409
    code = "conflict"

    def __init__(self, venue_ids: list[str], message: str) -> None:
        super().__init__(message)
        self.venue_ids = venue_ids

    def details(self) -> dict[str, Any]:
        return {"venueIds": self.venue_ids}


class CapacityExceeded(BookingError):
    status_code = 400
    code = "capacity_exceeded"

    def __init__(self, venue_id: str, venue_name: str, capacity: int, expected: int) -> None:
        super().__init__(
            f"Expected attendees ({expected}) exceed capacity of "
            f"{venue_name} ({capacity})"
        )
        self.venue_id = venue_id
        self.capacity = capacity
        self.expected = expected

    def details(self) -> dict[str, Any]:
        return {
            "venueId": self.venue_id,
            "capacity": self.capacity,
            "expectedAttendees": self.expected,
        }


class PartialFailure(BookingError):
    """A batch insert failed after zero or more rows were written.

    ``created`` holds the rows that were persisted before the failure so the
    caller can retry only the venues that are missing. When ``compensated`` is
    set those rows have already been removed again.
    """

    status_code = 500
    code = "partial_failure"

    def __init__(
        self,
        batch_id: str,
        failed_venue_id: str,
        failed_venue_name: str,
        created: list[Booking],
        compensated: bool = False,
    ) -> None:
        suffix = (
            "Already created bookings were rolled back."
            if compensated
            else "Partial success may have occurred."
        )
        super().__init__(f"Failed to book venue {failed_venue_name}. {suffix}")
        self.batch_id = batch_id
        self.failed_venue_id = failed_venue_id
        self.created = created
        self.compensated = compensated

    @property
    def booked_venue_ids(self) -> list[str]:
        return [b.venue_id for b in self.created]

    def details(self) -> dict[str, Any]:
        return {
            "batchId": self.batch_id,
            "failedVenueId": self.failed_venue_id,
            "bookedVenueIds": [] if self.compensated else self.booked_venue_ids,
            "created": (
                [] if self.compensated else [b.model_dump(mode="json") for b in self.created]
            ),
            "compensated": self.compensated,
        }


class StorageUnavailable(BookingError):
    """The datastore could not be read or written."""

    status_code = 500
    code = "storage_unavailable"


class InvalidTransition(BookingError):
    status_code = 400
    code = "invalid_transition"

    def __init__(self, booking_id: str, current: str, requested: str) -> None:
        super().__init__(f"Cannot change booking status from {current} to {requested}")
        self.booking_id = booking_id
        self.current = current
        self.requested = requested

    def details(self) -> dict[str, Any]:
        return {"bookingId": self.booking_id, "from": self.current, "to": self.requested}
