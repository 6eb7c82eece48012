"""Unit tests for the JobGuard lease and the periodic Worker.

Run with: pytest tests/test_worker.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest
from django.conf import settings

from registrations import bootstrap
from registrations.domain.errors import UpstreamUnavailableError
from registrations.services.job_guard import JobGuard
from registrations.services.worker import ScheduledJob, Worker

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class TestJobGuard:
    """Tests for lease-based overlap prevention."""

    def test_runs_job_and_releases_lease(self, store):
        """A free lease is taken for the run and given back afterwards."""
        guard = JobGuard(store, clock=Clock())
        assert guard.run("sync", lambda: "done") == "done"
        assert store.leases["sync"][0] == ""

    def test_overlapping_run_is_skipped(self, store):
        """A second run while the first holds the lease does nothing."""
        guard = JobGuard(store, clock=Clock())
        inner = []

        def outer_job():
            inner.append(guard.run("sync", lambda: "nested"))
            return "outer"

        assert guard.run("sync", outer_job) == "outer"
        assert inner == [None]

    def test_expired_lease_is_taken_over(self, store):
        """A lease left behind by a crashed holder expires after its TTL."""
        clock = Clock()
        store.leases["sync"] = ("crashed", START + timedelta(minutes=5))
        guard = JobGuard(store, ttl=timedelta(minutes=10), clock=clock)
        assert guard.run("sync", lambda: "done") is None
        clock.advance(minutes=6)
        assert guard.run("sync", lambda: "done") == "done"

    def test_lease_released_when_job_fails(self, store):
        """A failing job still gives the lease back."""
        guard = JobGuard(store, clock=Clock())

        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            guard.run("sync", boom)
        assert store.leases["sync"][0] == ""


class TestWorker:
    """Tests for interval scheduling and failure isolation."""

    def test_jobs_run_on_their_own_intervals(self, store):
        """Each job runs when due and not before."""
        clock = Clock()
        calls = []
        jobs = [
            ScheduledJob("fast", timedelta(minutes=1), lambda: calls.append("fast")),
            ScheduledJob("slow", timedelta(minutes=10), lambda: calls.append("slow")),
        ]
        worker = Worker(jobs, JobGuard(store, clock=clock), clock=clock)
        assert worker.tick() == ["fast", "slow"]
        clock.advance(minutes=2)
        assert worker.tick() == ["fast"]
        assert calls == ["fast", "slow", "fast"]

    def test_failing_job_does_not_stop_others(self, store):
        """An upstream outage or crash in one job leaves the others running."""
        clock = Clock()

        def unavailable():
            raise UpstreamUnavailableError("content-publishing")

        def crash():
            raise RuntimeError("bug")

        ran = []
        jobs = [
            ScheduledJob("sync", timedelta(minutes=1), unavailable),
            ScheduledJob("sweep", timedelta(minutes=1), crash),
            ScheduledJob("waitlist", timedelta(minutes=1), lambda: ran.append(True)),
        ]
        worker = Worker(jobs, JobGuard(store, clock=clock), clock=clock)
        assert worker.tick() == ["sync", "sweep", "waitlist"]
        assert ran == [True]

    def test_run_forever_stops_on_request(self, store, monkeypatch):
        """The loop exits once should_stop returns true."""
        monkeypatch.setattr("registrations.services.worker.time.sleep", lambda seconds: None)
        clock = Clock()
        ticks = []
        worker = Worker(
            [ScheduledJob("job", timedelta(seconds=0), lambda: ticks.append(1))],
            JobGuard(store, clock=clock),
            clock=clock,
        )
        worker.run_forever(0, should_stop=lambda: len(ticks) >= 3)
        assert len(ticks) == 3

    def test_build_worker_schedules_every_cycle(self, engine):
        """The configured worker runs the sweep, reconciliation and waitlist jobs."""
        worker = bootstrap.build_worker(engine, settings.REGISTRATIONS)
        assert [job.name for job in worker.jobs] == ["payment-sweep", "reconciliation", "waitlist"]
        assert worker.tick() == ["payment-sweep", "reconciliation", "waitlist"]
