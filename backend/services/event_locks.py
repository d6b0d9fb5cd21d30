"""
Per-event single-writer locks for live odds recalculation.

A recalculation is a read-modify-write on the event's market and selections.
Two overlapping runs for the same event (a feed-triggered recalculation
racing the scheduled batch) could otherwise create duplicate markets or
lose an odds update.  The pipeline therefore runs inside
``locks.hold(event_id)``; any object with that method can be supplied.

Two implementations:

    EventLockRegistry      - in-process ``threading.Lock`` per event id.
                             Enough for a single API/scheduler process.
    PostgresAdvisoryLocks  - transaction-scoped Postgres advisory lock,
                             for several processes sharing one database.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT_SEC = float(os.getenv("LIVE_ODDS_LOCK_TIMEOUT_SEC", "5"))


class _EventLock:
    """A lock plus the number of threads holding or waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class EventLockRegistry:
    """
    Process-local lock per event id.

    Usage::

        locks = EventLockRegistry()
        with locks.hold(event_id) as acquired:
            if acquired:
                ...  # exclusive for this event

    An event's entry exists only while some thread holds or waits on it,
    so the map stays bounded by the number of in-flight recalculations.
    """

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT_SEC):
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, _EventLock] = {}

    def _checkout(self, event_id: str) -> _EventLock:
        with self._guard:
            entry = self._locks.get(event_id)
            if entry is None:
                entry = _EventLock()
                self._locks[event_id] = entry
            entry.users += 1
            return entry

    def _checkin(self, event_id: str, entry: _EventLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[event_id]

    @contextmanager
    def hold(self, event_id: str, timeout: Optional[float] = None) -> Iterator[bool]:
        """Yield True once the event's lock is held, False on timeout."""
        entry = self._checkout(event_id)
        try:
            wait = self._timeout if timeout is None else timeout
            acquired = entry.lock.acquire(timeout=wait)
            if not acquired:
                logger.warning("Timed out after %.1fs waiting for event lock %s", wait, event_id)
            try:
                yield acquired
            finally:
                if acquired:
                    entry.lock.release()
        finally:
            self._checkin(event_id, entry)

    def is_held(self, event_id: str) -> bool:
        with self._guard:
            entry = self._locks.get(event_id)
        return entry is not None and entry.lock.locked()

    def active_count(self) -> int:
        """Number of events currently held or waited on."""
        with self._guard:
            return len(self._locks)


class PostgresAdvisoryLocks:
    """
    Cross-process lock keyed by ``hashtext(event_id)``.

    ``pg_advisory_xact_lock`` blocks until granted and is released when the
    session's transaction commits or rolls back, so it must be taken on the
    same session the recalculation writes through.
    """

    def __init__(self, db: Session):
        self._db = db

    @contextmanager
    def hold(self, event_id: str) -> Iterator[bool]:
        self._db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": f"live_odds:{event_id}"},
        )
        yield True


def locks_for_session(db: Session):
    """Advisory locks on PostgreSQL, the process-wide registry elsewhere."""
    bind = db.get_bind()
    if bind is not None and bind.dialect.name == "postgresql":
        return PostgresAdvisoryLocks(db)
    return get_event_locks()


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_event_locks: Optional[EventLockRegistry] = None
_event_locks_guard = threading.Lock()


def get_event_locks() -> EventLockRegistry:
    global _event_locks
    with _event_locks_guard:
        if _event_locks is None:
            _event_locks = EventLockRegistry()
        return _event_locks
