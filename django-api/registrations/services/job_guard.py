"""Lease-based guard against overlapping runs of the same periodic job."""

import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TypeVar

import structlog

from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class JobGuard:
    """Runs a job only if no other run of it holds the lease.

    The lease expires after ``ttl`` so a crashed holder cannot block the
    job forever.
    """

    def __init__(
        self,
        store: RecordStore,
        ttl: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._clock = clock

    def run(self, name: str, job: Callable[[], T]) -> T | None:
        """Run ``job`` under the ``name`` lease; return None if it was skipped."""
        holder = uuid.uuid4().hex
        now = self._clock()
        if not self._store.acquire_lease(name, holder, expires_at=now + self._ttl, now=now):
            logger.info("job_overlap_skipped", job=name)
            return None
        try:
            return job()
        finally:
            self._store.release_lease(name, holder)
