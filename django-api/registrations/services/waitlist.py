"""Waitlist notifier - tells waiting people when seats open up."""

from dataclasses import asdict, dataclass

import structlog

from registrations.domain import ClassId, WaitlistEntry
from registrations.domain.errors import ClassNotFoundError, UpstreamUnavailableError
from registrations.gateways.interfaces import NotificationSender
from registrations.services.seat_ledger import SeatLedger
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)


@dataclass
class WaitlistReport:
    notified: int = 0
    waiting: int = 0
    failed: int = 0


class WaitlistNotifier:
    def __init__(self, store: RecordStore, ledger: SeatLedger, sender: NotificationSender) -> None:
        self._store = store
        self._ledger = ledger
        self._sender = sender

    def add(self, class_id: ClassId, email: str, name: str = "") -> WaitlistEntry:
        entry = self._store.add_waitlist_entry(class_id, email, name)
        logger.info("waitlist_joined", class_id=class_id.value, entry_id=entry.id)
        return entry

    def run_cycle(self) -> WaitlistReport:
        """Notify every waiting entry whose class has a free seat.

        A failed send leaves the entry waiting for the next cycle.
        """
        report = WaitlistReport()
        remaining: dict[ClassId, int | None] = {}

        for entry in self._store.list_waiting():
            if entry.class_id not in remaining:
                try:
                    remaining[entry.class_id] = self._ledger.available(entry.class_id)
                except ClassNotFoundError:
                    logger.info("waitlist_class_missing", class_id=entry.class_id.value)
                    remaining[entry.class_id] = None

            seats = remaining[entry.class_id]
            if not seats:
                report.waiting += 1
                continue

            try:
                self._sender.send(
                    [entry.email],
                    "A seat just opened up",
                    f"Hi {entry.name or 'there'}, a seat is now available in class "
                    f"{entry.class_id}. Register soon, seats go first come first served.",
                )
            except UpstreamUnavailableError as exc:
                logger.warning("waitlist_notify_failed", entry_id=entry.id, error=str(exc))
                report.failed += 1
                continue

            if self._store.mark_notified(entry.id):
                report.notified += 1
                logger.info("waitlist_notified", entry_id=entry.id, class_id=entry.class_id.value)

        logger.info("waitlist_cycle_finished", **asdict(report))
        return report
