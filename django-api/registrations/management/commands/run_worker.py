"""Runs the periodic registration jobs.

Usage:
    python manage.py run_worker
    python manage.py run_worker --once
    python manage.py run_worker --job reconciliation
"""

import signal

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from registrations import bootstrap


class Command(BaseCommand):
    help = "Run the payment sweep, reconciliation and waitlist jobs on their intervals"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run every job a single time and exit",
        )
        parser.add_argument(
            "--job",
            help="Run only the named job a single time and exit",
        )

    def handle(self, *args, **options):
        config = settings.REGISTRATIONS
        worker = bootstrap.build_worker(bootstrap.get_engine(), config)

        if options["job"]:
            jobs = {job.name: job for job in worker.jobs}
            job = jobs.get(options["job"])
            if job is None:
                raise CommandError(
                    f"Unknown job {options['job']!r}; choose from {', '.join(sorted(jobs))}"
                )
            result = worker.run_job(job)
            self.stdout.write(f"{job.name}: {result}")
            return

        if options["once"]:
            ran = worker.tick()
            self.stdout.write(self.style.SUCCESS(f"Ran jobs: {', '.join(ran)}"))
            return

        stopping = False

        def stop(signum, frame):
            nonlocal stopping
            stopping = True

        signal.signal(signal.SIGINT, stop)
        signal.signal(signal.SIGTERM, stop)
        worker.run_forever(config["WORKER_POLL_SECONDS"], should_stop=lambda: stopping)
