"""Periodic job loop for the reconciliation, waitlist and payment sweep cycles."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

from registrations.domain.errors import UpstreamUnavailableError
from registrations.services.job_guard import JobGuard

logger = structlog.get_logger(__name__)


@dataclass
class ScheduledJob:
    name: str
    interval: timedelta
    run: Callable[[], object]
    next_run: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.next_run is None or now >= self.next_run


class Worker:
    """Single logical worker that runs each job on its own interval.

    A failing job only loses its current cycle; it runs again on its next
    tick.
    """

    def __init__(
        self,
        jobs: list[ScheduledJob],
        guard: JobGuard,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.jobs = jobs
        self._guard = guard
        self._clock = clock

    def tick(self) -> list[str]:
        """Run every due job once; return the names of the jobs that ran."""
        ran = []
        for job in self.jobs:
            now = self._clock()
            if not job.is_due(now):
                continue
            job.next_run = now + job.interval
            self.run_job(job)
            ran.append(job.name)
        return ran

    def run_job(self, job: ScheduledJob) -> object:
        log = logger.bind(job=job.name)
        started = time.monotonic()
        try:
            result = self._guard.run(job.name, job.run)
        except UpstreamUnavailableError as exc:
            log.warning("job_cycle_aborted", system=exc.system, error=exc.detail or str(exc))
            return None
        except Exception:
            log.exception("job_failed")
            return None
        log.info("job_finished", duration_ms=round((time.monotonic() - started) * 1000))
        return result

    def run_forever(self, poll_seconds: float, should_stop: Callable[[], bool]) -> None:
        logger.info("worker_started", jobs=[job.name for job in self.jobs])
        try:
            while not should_stop():
                self.tick()
                time.sleep(poll_seconds)
        finally:
            logger.info("worker_stopped")
