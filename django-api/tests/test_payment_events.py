"""Unit tests for PaymentEventProcessor.

Payment events may be redelivered and may race each other; these tests
pin down that every delivery after the first is a no-op.
Run with: pytest tests/test_payment_events.py -v
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from registrations.domain import (
    BookingRef,
    BookingStatus,
    ClassId,
    Money,
    OutcomeStatus,
    PaymentEvent,
    PaymentEventKind,
)

CLASS = ClassId("class-1")
REF = BookingRef("booking-1")


def confirmation(
    reference: str | None = "booking-1",
    payment_intent_id: str | None = "pi_1",
    amount: str | None = "30.00",
    event_id: str = "evt_1",
) -> PaymentEvent:
    return PaymentEvent(
        kind=PaymentEventKind.CONFIRMATION,
        event_id=event_id,
        reference_id=BookingRef(reference) if reference else None,
        payment_intent_id=payment_intent_id,
        amount=Money(Decimal(amount)) if amount else None,
    )


def refund(
    reference: str | None = "booking-1", payment_intent_id: str | None = "pi_1"
) -> PaymentEvent:
    return PaymentEvent(
        kind=PaymentEventKind.REFUND,
        event_id="evt_refund",
        reference_id=BookingRef(reference) if reference else None,
        payment_intent_id=payment_intent_id,
    )


class TestConfirmation:
    """Tests for confirmation events."""

    def test_confirmation_marks_paid(self, store, engine):
        """A confirmation for a Pending booking is applied."""
        store.add_class(capacity=10)
        store.add_booking(seat_count=2)
        outcome = engine.processor.handle(confirmation())
        assert outcome.status is OutcomeStatus.APPLIED
        assert store.get_booking(REF).status is BookingStatus.PAID
        assert store.get_class(CLASS).seats_remaining == 8

    def test_duplicate_delivery_mutates_once(self, store, engine):
        """The same confirmation delivered twice reserves seats exactly once."""
        store.add_class(capacity=10)
        store.add_booking(seat_count=2)
        engine.processor.handle(confirmation())
        outcome = engine.processor.handle(confirmation())
        assert outcome.status is OutcomeStatus.IGNORED
        assert outcome.reason == "already-processed"
        assert store.seat_writes == 1
        assert store.get_class(CLASS).seats_remaining == 8

    def test_concurrent_delivery_loses_cleanly(self, store, engine):
        """A delivery that read Pending but lost the claim reports already-processed."""
        store.add_class(capacity=10)
        store.add_booking(seat_count=2)
        original_get = store.get_booking
        reads = []

        def get_then_race(reference):
            booking = original_get(reference)
            reads.append(booking.status)
            if len(reads) == 2:
                # Another worker confirms the booking between read and claim.
                engine.bookings.confirm_payment(reference, "pi_1")
            return booking

        store.get_booking = get_then_race
        outcome = engine.processor.handle(confirmation())
        assert outcome.status is OutcomeStatus.IGNORED
        assert outcome.reason == "already-processed"
        assert store.seat_writes == 1
        assert store.get_class(CLASS).seats_remaining == 8

    def test_capacity_exceeded_is_escalated(self, store, sender, engine):
        """A paid booking for 5 seats with 2 left stays Pending and reaches operators."""
        store.add_class(capacity=10, seats_remaining=2, purchased=8)
        store.add_booking(seat_count=5)
        outcome = engine.processor.handle(confirmation())
        assert outcome.status is OutcomeStatus.ESCALATED
        assert outcome.reason == "capacity-exceeded"
        booking = store.get_booking(REF)
        assert booking.status is BookingStatus.PENDING
        assert booking.needs_attention is True
        assert store.get_class(CLASS).seats_remaining == 2
        assert len(sender.sent) == 1

    def test_unknown_booking_ignored(self, engine):
        """A confirmation for an unknown reference is ignored."""
        outcome = engine.processor.handle(confirmation(reference="nope", payment_intent_id=None))
        assert outcome.reason == "unknown-booking"

    def test_lookup_falls_back_to_payment_intent(self, store, engine):
        """Without a reference the booking is found by payment intent."""
        store.add_class(capacity=10)
        store.add_booking(status=BookingStatus.PAID, payment_intent_id="pi_7")
        outcome = engine.processor.handle(confirmation(reference=None, payment_intent_id="pi_7"))
        assert outcome.reason == "already-processed"

    def test_amount_mismatch_alerts_but_applies(self, store, sender, engine):
        """A different paid amount is reported to operators; the booking is still paid."""
        store.add_class(capacity=10)
        store.add_booking(amount="30.00")
        outcome = engine.processor.handle(confirmation(amount="25.00"))
        assert outcome.status is OutcomeStatus.APPLIED
        assert any("mismatch" in subject for _, subject, _ in sender.sent)


class TestRefund:
    """Tests for refund events."""

    def test_refund_closes_paid_booking(self, store, engine):
        """A refund for a Paid booking closes it and releases its seats."""
        store.add_class(capacity=10, seats_remaining=7, purchased=3)
        store.add_booking(seat_count=3, status=BookingStatus.PAID, payment_intent_id="pi_1")
        outcome = engine.processor.handle(refund(reference=None))
        assert outcome.status is OutcomeStatus.APPLIED
        assert store.get_booking(REF).status is BookingStatus.REFUNDED
        assert store.get_class(CLASS).seats_remaining == 10

    def test_refund_for_terminal_booking_ignored(self, store, engine):
        """A refund after the booking was already cancelled changes nothing."""
        store.add_class(capacity=10, seats_remaining=10)
        store.add_booking(status=BookingStatus.REFUNDED, payment_intent_id="pi_1")
        outcome = engine.processor.handle(refund())
        assert outcome.reason == "already-processed"
        assert store.seat_writes == 0

    def test_partial_refund_keeps_booking_paid(self, store, sender, engine):
        """A partial refund alerts operators and leaves the booking and its seats alone."""
        store.add_class(capacity=10, seats_remaining=7, purchased=3)
        store.add_booking(
            seat_count=3, status=BookingStatus.PAID, amount="100.00", payment_intent_id="pi_1"
        )
        event = PaymentEvent(
            kind=PaymentEventKind.PARTIAL_REFUND,
            event_id="evt_partial",
            payment_intent_id="pi_1",
            amount=Money(Decimal("10.00")),
        )
        outcome = engine.processor.handle(event)
        assert outcome.status is OutcomeStatus.IGNORED
        assert outcome.reason == "partial-refund"
        assert store.get_booking(REF).status is BookingStatus.PAID
        stored = store.get_class(CLASS)
        assert (stored.seats_remaining, stored.total_purchased) == (7, 3)
        assert any("Partial refund" in subject for _, subject, _ in sender.sent)

    def test_refund_for_pending_booking_ignored(self, store, engine):
        """A refund for a booking that was never paid is ignored."""
        store.add_class()
        store.add_booking()
        outcome = engine.processor.handle(refund())
        assert outcome.reason == "not-paid"


class TestSweep:
    """Tests for the periodic payment sweep."""

    def test_sweep_recovers_missed_confirmation(self, store, payments, engine):
        """Completed checkouts whose webhook never arrived are applied."""
        store.add_class(capacity=10)
        store.add_booking(reference="booking-1")
        store.add_booking(
            reference="booking-2", status=BookingStatus.PAID, payment_intent_id="pi_2"
        )
        payments.completed = [
            confirmation(reference="booking-1", payment_intent_id="pi_1"),
            confirmation(reference="booking-2", payment_intent_id="pi_2"),
        ]
        counts = engine.processor.sweep(datetime.now(timezone.utc) - timedelta(hours=1))
        assert counts == {"applied": 1, "ignored": 1, "escalated": 0, "failed": 0}
        assert store.get_booking(REF).status is BookingStatus.PAID

    def test_conflict_on_one_event_does_not_stop_sweep(self, store, payments, engine):
        """A seat conflict fails that confirmation only; the rest of the sweep runs."""
        store.add_class(capacity=10)
        store.add_class("class-2", capacity=10)
        store.add_booking(reference="booking-1")
        store.add_booking(reference="booking-2", class_id="class-2")
        payments.completed = [
            confirmation(reference="booking-1", payment_intent_id="pi_1"),
            confirmation(reference="booking-2", payment_intent_id="pi_2"),
        ]
        store.seat_conflicts = 3
        counts = engine.processor.sweep(datetime.now(timezone.utc) - timedelta(hours=1))
        assert counts["failed"] == 1
        assert counts["applied"] == 1
        assert store.get_booking(REF).status is BookingStatus.PENDING
        assert store.get_booking(BookingRef("booking-2")).status is BookingStatus.PAID
