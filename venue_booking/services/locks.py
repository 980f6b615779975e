"""Per-venue locks serializing check-then-insert during booking creation."""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterable, Iterator


class VenueLocks:
    """Registry of one lock per venue id.

    :meth:`hold` acquires the locks for several venues in sorted id order so
    that two batches sharing venues can never deadlock.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._guard = Lock()

    def _lock_for(self, venue_id: str) -> Lock:
        with self._guard:
            return self._locks.setdefault(venue_id, Lock())

    @contextmanager
    def hold(self, venue_ids: Iterable[str]) -> Iterator[None]:
        locks = [self._lock_for(vid) for vid in sorted(set(venue_ids))]
        acquired: list[Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class NoVenueLocks(VenueLocks):
    """Lock registry that never blocks; concurrent creations may race."""

    @contextmanager
    def hold(self, venue_ids: Iterable[str]) -> Iterator[None]:
        yield
