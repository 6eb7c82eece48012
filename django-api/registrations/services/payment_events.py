"""Payment event processor.

Maps payment confirmations and refunds onto booking transitions. Payment
events may be redelivered or arrive concurrently; the booking's current
status is the only idempotency record.
"""

from datetime import datetime

import structlog

from registrations.domain import (
    Booking,
    BookingStatus,
    EventOutcome,
    OutcomeStatus,
    PaymentEvent,
    PaymentEventKind,
)
from registrations.domain.booking_states import is_terminal
from registrations.domain.errors import (
    AlreadyTerminalError,
    BookingNotFoundError,
    CapacityExceededError,
    ConflictError,
    InvalidTransitionError,
)
from registrations.gateways.interfaces import PaymentGateway
from registrations.services.alerts import OperatorAlerts
from registrations.services.booking_service import BookingService
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)

ALREADY_PROCESSED = "already-processed"
UNKNOWN_BOOKING = "unknown-booking"
NOT_PAID = "not-paid"
PARTIAL_REFUND = "partial-refund"
FAILED = "failed"
CAPACITY_EXCEEDED = "capacity-exceeded"


class PaymentEventProcessor:
    def __init__(
        self,
        store: RecordStore,
        bookings: BookingService,
        payments: PaymentGateway,
        alerts: OperatorAlerts,
    ) -> None:
        self._store = store
        self._bookings = bookings
        self._payments = payments
        self._alerts = alerts

    def handle(self, event: PaymentEvent) -> EventOutcome:
        if event.kind is PaymentEventKind.REFUND:
            return self.handle_refund(event)
        if event.kind is PaymentEventKind.PARTIAL_REFUND:
            return self.handle_partial_refund(event)
        return self.handle_confirmation(event)

    def handle_confirmation(self, event: PaymentEvent) -> EventOutcome:
        log = logger.bind(event_id=event.event_id, kind=event.kind.value)
        booking = self._find_booking(event)
        if booking is None:
            log.info("payment_event_ignored", reason=UNKNOWN_BOOKING)
            return EventOutcome.ignored(UNKNOWN_BOOKING)

        log = log.bind(booking_ref=booking.id.value, status=booking.status.value)
        if booking.status is not BookingStatus.PENDING:
            log.info("payment_event_ignored", reason=ALREADY_PROCESSED)
            return EventOutcome.ignored(ALREADY_PROCESSED)

        if event.amount is not None and event.amount != booking.amount:
            self._alerts.amount_mismatch(booking, str(event.amount))

        try:
            self._bookings.confirm_payment(booking.id, event.payment_intent_id)
        except (AlreadyTerminalError, InvalidTransitionError):
            log.info("payment_event_ignored", reason=ALREADY_PROCESSED)
            return EventOutcome.ignored(ALREADY_PROCESSED)
        except BookingNotFoundError:
            log.info("payment_event_ignored", reason=UNKNOWN_BOOKING)
            return EventOutcome.ignored(UNKNOWN_BOOKING)
        except CapacityExceededError:
            # Already on the operator channel; redelivery must not retry it.
            return EventOutcome.escalated(CAPACITY_EXCEEDED)

        log.info("payment_event_applied")
        return EventOutcome.applied()

    def handle_refund(self, event: PaymentEvent) -> EventOutcome:
        log = logger.bind(event_id=event.event_id, kind=event.kind.value)
        booking = self._find_booking(event)
        if booking is None:
            log.info("payment_event_ignored", reason=UNKNOWN_BOOKING)
            return EventOutcome.ignored(UNKNOWN_BOOKING)

        log = log.bind(booking_ref=booking.id.value, status=booking.status.value)
        if is_terminal(booking.status):
            log.info("payment_event_ignored", reason=ALREADY_PROCESSED)
            return EventOutcome.ignored(ALREADY_PROCESSED)
        if booking.status is not BookingStatus.PAID:
            log.info("payment_event_ignored", reason=NOT_PAID)
            return EventOutcome.ignored(NOT_PAID)

        try:
            self._bookings.apply_external_refund(booking.id)
        except (AlreadyTerminalError, InvalidTransitionError):
            log.info("payment_event_ignored", reason=ALREADY_PROCESSED)
            return EventOutcome.ignored(ALREADY_PROCESSED)

        log.info("payment_event_applied")
        return EventOutcome.applied()

    def handle_partial_refund(self, event: PaymentEvent) -> EventOutcome:
        """Report a partial refund to operators; the booking keeps its status and seats."""
        log = logger.bind(event_id=event.event_id, kind=event.kind.value)
        booking = self._find_booking(event)
        if booking is None:
            log.info("payment_event_ignored", reason=UNKNOWN_BOOKING)
            return EventOutcome.ignored(UNKNOWN_BOOKING)

        refunded = str(event.amount) if event.amount is not None else "an unknown amount"
        self._alerts.partial_refund(booking, refunded)
        log.info("payment_event_ignored", booking_ref=booking.id.value, reason=PARTIAL_REFUND)
        return EventOutcome.ignored(PARTIAL_REFUND)

    def sweep(self, since: datetime) -> dict[str, int]:
        """Replay checkouts completed since ``since`` through the confirmation path.

        Recovers confirmations whose webhook never arrived; everything else
        comes back as already-processed.
        """
        counts = {status.value: 0 for status in OutcomeStatus}
        counts[FAILED] = 0
        for event in self._payments.list_completed_payments(since):
            try:
                outcome = self.handle(event)
            except ConflictError:
                logger.warning("payment_sweep_event_failed", event_id=event.event_id)
                counts[FAILED] += 1
                continue
            counts[outcome.status.value] += 1
        logger.info("payment_sweep_finished", since=since.isoformat(), **counts)
        return counts

    def _find_booking(self, event: PaymentEvent) -> Booking | None:
        if event.reference_id is not None:
            booking = self._store.get_booking(event.reference_id)
            if booking is not None:
                return booking
        if event.payment_intent_id:
            return self._store.find_booking_by_payment_intent(event.payment_intent_id)
        return None
