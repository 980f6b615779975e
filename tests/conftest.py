"""Shared fixtures: a fresh bus, repositories and services per test."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from venue_booking.config import Settings
from venue_booking.domain.bus import EventBus
from venue_booking.domain.handlers import HandlerRegistry
from venue_booking.domain.models import BookingRequest, Organizer, Venue, VenueCategory
from venue_booking.repos.memory import (
    BookingRepository,
    OrganizerRepository,
    TimelineRepository,
    VenueRepository,
)
from venue_booking.services.booking import BookingOrchestrator
from venue_booking.services.transitions import StatusTransitionGuard

# Monday
_NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

AUTO_VENUE = Venue(id="cep-102", name="CEP 102", capacity=60, category=VenueCategory.AUTO_APPROVAL)
APPROVAL_VENUE = Venue(
    id="lt-1", name="Lecture Theatre 1", capacity=300, category=VenueCategory.NEEDS_APPROVAL
)
HALL_VENUE = Venue(id="hall", name="Main Hall", capacity=100, category=VenueCategory.AUTO_APPROVAL)
CLUB = Organizer(id="club-music", name="Music Club", group_category="cultural")


class Env:
    """Bundle of wired-up services plus helpers for building requests."""

    now = _NOW
    auto_venue = AUTO_VENUE
    approval_venue = APPROVAL_VENUE
    hall_venue = HALL_VENUE
    club = CLUB

    def at(self, days: int, hour: int, minute: int = 0) -> datetime:
        """UTC instant *days* after the fixed clock's date at ``hour:minute``."""
        day = self.now.date() + timedelta(days=days)
        return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)

    def request(self, **overrides) -> BookingRequest:
        defaults = dict(
            organizer_id=CLUB.id,
            venue_ids=[AUTO_VENUE.id],
            event_type="closed_club",
            event_name="Jam night",
            start_time=self.at(2, 18).isoformat(),
            end_time=self.at(2, 20).isoformat(),
            expected_attendees=40,
        )
        defaults.update(overrides)
        return BookingRequest(**defaults)


@pytest.fixture()
def make_env():
    def _make(
        booking_repo: BookingRepository | None = None,
        settings: Settings | None = None,
        serialize: bool = True,
    ) -> Env:
        e = Env()
        e.bus = EventBus()
        e.settings = settings or Settings(timezone="UTC")
        e.venue_repo = VenueRepository()
        e.organizer_repo = OrganizerRepository()
        e.booking_repo = booking_repo or BookingRepository()
        e.timeline_repo = TimelineRepository()
        for venue in (AUTO_VENUE, APPROVAL_VENUE, HALL_VENUE):
            e.venue_repo.add(venue)
        e.organizer_repo.add(CLUB)
        e.registry = HandlerRegistry(
            bus=e.bus, booking_repo=e.booking_repo, timeline_repo=e.timeline_repo
        )
        e.orchestrator = BookingOrchestrator(
            venue_repo=e.venue_repo,
            organizer_repo=e.organizer_repo,
            booking_repo=e.booking_repo,
            bus=e.bus,
            settings=e.settings,
            clock=lambda: _NOW,
            serialize=serialize,
        )
        e.guard = StatusTransitionGuard(e.booking_repo, e.bus, clock=lambda: _NOW)
        return e

    return _make


@pytest.fixture()
def env(make_env) -> Env:
    return make_env()
