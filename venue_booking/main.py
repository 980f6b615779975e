"""FastAPI application: entry point for the venue booking service."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from venue_booking.config import load_settings
from venue_booking.domain.bus import EventBus
from venue_booking.domain.errors import BookingError, NotFound
from venue_booking.domain.handlers import HandlerRegistry
from venue_booking.domain.models import (
    Booking,
    BookingPreview,
    BookingRequest,
    BookingStatus,
    ConflictCheckRequest,
    ConflictCheckResult,
    Organizer,
    StatusUpdateRequest,
    TimelineEntry,
    Venue,
)
from venue_booking.repos.memory import (
    BookingRepository,
    OrganizerRepository,
    TimelineRepository,
    VenueRepository,
    seed_catalog,
)
from venue_booking.services.booking import BookingOrchestrator
from venue_booking.services.transitions import StatusTransitionGuard

settings = load_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Venue Booking Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
venue_repo = VenueRepository()
organizer_repo = OrganizerRepository()
booking_repo = BookingRepository()
timeline_repo = TimelineRepository()

if settings.seed_demo_data:
    seed_catalog(venue_repo, organizer_repo)

handler_registry = HandlerRegistry(
    bus=event_bus,
    booking_repo=booking_repo,
    timeline_repo=timeline_repo,
)
orchestrator = BookingOrchestrator(
    venue_repo=venue_repo,
    organizer_repo=organizer_repo,
    booking_repo=booking_repo,
    bus=event_bus,
    settings=settings,
)
transition_guard = StatusTransitionGuard(booking_repo=booking_repo, bus=event_bus)


# ── Error mapping ─────────────────────────────────────────────────────


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies are reported as 400, like every other validation failure."""
    problems = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "code": "validation_error", "problems": problems},
    )


# ── Routes: bookings ──────────────────────────────────────────────────


@app.post("/bookings", response_model=list[Booking], status_code=201)
def create_booking(payload: BookingRequest) -> list[Booking]:
    """Create one booking per requested venue, sharing a batch id."""
    return orchestrator.create_booking(payload)


@app.get("/bookings/check-conflict", response_model=ConflictCheckResult)
def check_conflict(
    club_id: str | None = Query(default=None, alias="clubId"),
    venue_ids: list[str] | None = Query(default=None, alias="venueIds"),
    start_time: str | None = Query(default=None, alias="startTime"),
    end_time: str | None = Query(default=None, alias="endTime"),
) -> ConflictCheckResult:
    """Advisory conflict probe; ``venueIds`` may be repeated or comma-separated."""
    return orchestrator.check_conflict(club_id, venue_ids, start_time, end_time)


@app.post("/bookings/check-conflict", response_model=ConflictCheckResult)
def check_conflict_body(payload: ConflictCheckRequest) -> ConflictCheckResult:
    return orchestrator.check_conflict(
        payload.organizer_id, payload.venue_ids, payload.start_time, payload.end_time
    )


@app.post("/bookings/preview", response_model=BookingPreview)
def preview_booking(payload: BookingRequest) -> BookingPreview:
    """Return policy warnings and conflicts for a draft request without saving it."""
    return orchestrator.preview_booking(payload)


@app.get("/bookings/{booking_id}", response_model=Booking)
def get_booking(booking_id: str) -> Booking:
    booking = booking_repo.get(booking_id)
    if booking is None:
        raise NotFound("booking", [booking_id], "Booking not found")
    return booking


@app.get("/bookings/{booking_id}/timeline", response_model=list[TimelineEntry])
def get_booking_timeline(booking_id: str) -> list[TimelineEntry]:
    if booking_repo.get(booking_id) is None:
        raise NotFound("booking", [booking_id], "Booking not found")
    return timeline_repo.list_for_booking(booking_id)


@app.get("/my-bookings", response_model=list[Booking])
def list_club_bookings(club_id: str = Query(alias="clubId")) -> list[Booking]:
    """Return every booking made by one club, ordered by start time."""
    return booking_repo.list_for_organizer(club_id)


# ── Routes: admin ─────────────────────────────────────────────────────


@app.get("/admin/pending", response_model=list[Booking])
def list_pending() -> list[Booking]:
    return booking_repo.list_by_status(BookingStatus.PENDING)


@app.get("/admin/bookings", response_model=list[Booking])
def list_all_bookings() -> list[Booking]:
    """Master schedule: all bookings in any status."""
    return booking_repo.list_all()


@app.patch("/admin/bookings/{booking_id}/status", response_model=Booking)
def update_booking_status(booking_id: str, payload: StatusUpdateRequest) -> Booking:
    return transition_guard.update_status(booking_id, payload.status, payload.admin_note)


# ── Routes: catalog ───────────────────────────────────────────────────


@app.get("/venues", response_model=list[Venue])
def list_venues() -> list[Venue]:
    return venue_repo.list_all()


@app.get("/clubs", response_model=list[Organizer])
def list_clubs() -> list[Organizer]:
    return organizer_repo.list_all()
