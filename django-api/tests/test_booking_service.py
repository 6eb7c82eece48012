"""Unit tests for BookingService.

These test the payment-status lifecycle and its effect on seats.
Run with: pytest tests/test_booking_service.py -v
"""

from decimal import Decimal

import pytest

from fakes import participant
from registrations.domain import (
    BookingRef,
    BookingRequest,
    BookingStatus,
    BookingType,
    CancellationIntent,
    ClassId,
    Money,
)
from registrations.domain.errors import (
    AlreadyTerminalError,
    BookingNotFoundError,
    CapacityExceededError,
    ClassNotFoundError,
    InsufficientCapacityError,
    InvalidQuantityError,
    InvalidTransitionError,
    UpstreamUnavailableError,
)

CLASS = ClassId("class-1")
REF = BookingRef("booking-1")


def request(
    seat_count: int = 2,
    booking_type: BookingType = BookingType.PAID,
    reference: str = "booking-1",
    **fields,
) -> BookingRequest:
    return BookingRequest(
        reference=BookingRef(reference),
        class_id=CLASS,
        seat_count=seat_count,
        booking_type=booking_type,
        amount=Money(Decimal("60.00")),
        **fields,
    )


def seats(store) -> tuple[int, int]:
    offering = store.get_class(CLASS)
    return offering.seats_remaining, offering.total_purchased


class TestCreateBooking:
    """Tests for BookingService.create_booking."""

    def test_paid_booking_starts_pending_without_reserving(self, store, engine):
        """A paid registration is Pending and leaves the seats untouched."""
        store.add_class(capacity=10)
        booking = engine.bookings.create_booking(request(participants=(participant(),)))
        assert booking.status is BookingStatus.PENDING
        assert store.get_class(CLASS).seats_remaining is None

    def test_paid_booking_rejected_when_full(self, store, engine):
        """A paid registration for more seats than remain is refused."""
        store.add_class(capacity=3, seats_remaining=1, purchased=2)
        with pytest.raises(InsufficientCapacityError):
            engine.bookings.create_booking(request(seat_count=2))
        assert store.get_booking(REF) is None

    def test_comped_booking_reserves_immediately(self, store, engine):
        """ROII bookings start ROII-Free and take their seats at once."""
        store.add_class(capacity=10)
        booking = engine.bookings.create_booking(
            request(seat_count=3, booking_type=BookingType.ROII)
        )
        assert booking.status is BookingStatus.ROII_FREE
        assert seats(store) == (7, 3)

    def test_zero_seats_rejected(self, store, engine):
        """A booking for zero seats raises InvalidQuantityError."""
        store.add_class()
        with pytest.raises(InvalidQuantityError):
            engine.bookings.create_booking(request(seat_count=0))

    def test_unknown_class(self, engine):
        """A booking for a missing class raises ClassNotFoundError."""
        with pytest.raises(ClassNotFoundError):
            engine.bookings.create_booking(request())

    def test_resubmission_returns_existing_booking(self, store, engine):
        """Submitting the same reference twice creates one booking and reserves once."""
        store.add_class(capacity=10)
        first = engine.bookings.create_booking(request(booking_type=BookingType.ADMIN))
        second = engine.bookings.create_booking(request(booking_type=BookingType.ADMIN))
        assert first == second
        assert seats(store) == (8, 2)


class TestConfirmPayment:
    """Tests for BookingService.confirm_payment."""

    def test_confirm_reserves_seats_and_fans_out(self, store, engine):
        """Pending to Paid takes the seats and copies the status to participants."""
        store.add_class(capacity=10)
        engine.bookings.create_booking(
            request(seat_count=2, participants=(participant("Ada"), participant("Bob")))
        )
        paid = engine.bookings.confirm_payment(REF, "pi_1")
        assert paid.status is BookingStatus.PAID
        assert paid.payment_intent_id == "pi_1"
        assert seats(store) == (8, 2)
        stored = store.get_booking(REF)
        assert {p.payment_status for p in stored.participants} == {BookingStatus.PAID}

    def test_confirm_updates_batch_siblings(self, store, engine):
        """Linked bookings in the same batch see the new status."""
        store.add_class(capacity=10)
        engine.bookings.create_booking(request(seat_count=1, batch_id="batch-9"))
        engine.bookings.create_booking(
            request(seat_count=1, batch_id="batch-9", reference="booking-2")
        )
        engine.bookings.confirm_payment(REF, "pi_1")
        sibling = store.get_booking(BookingRef("booking-2"))
        assert sibling.status is BookingStatus.PENDING
        assert sibling.batch_status is BookingStatus.PAID

    def test_confirm_over_capacity_stays_pending_and_alerts(self, store, sender, engine):
        """A paid booking that no longer fits is flagged, not seated."""
        store.add_class(capacity=10, seats_remaining=2, purchased=8)
        store.add_booking(seat_count=5)
        with pytest.raises(CapacityExceededError):
            engine.bookings.confirm_payment(REF, "pi_1")
        booking = store.get_booking(REF)
        assert booking.status is BookingStatus.PENDING
        assert booking.needs_attention is True
        assert seats(store) == (2, 8)
        assert any("cannot be seated" in subject for _, subject, _ in sender.sent)

    def test_confirm_terminal_booking(self, store, engine):
        """Confirming a closed booking raises AlreadyTerminalError."""
        store.add_class()
        store.add_booking(status=BookingStatus.REFUNDED)
        with pytest.raises(AlreadyTerminalError):
            engine.bookings.confirm_payment(REF, "pi_1")

    def test_confirm_unknown_booking(self, engine):
        """Confirming a missing booking raises BookingNotFoundError."""
        with pytest.raises(BookingNotFoundError):
            engine.bookings.confirm_payment(REF, "pi_1")

    def test_fan_out_failure_alerts_without_undoing_seats(self, store, sender, engine):
        """When copying the status keeps failing, seats stay taken and operators hear of it."""
        store.add_class(capacity=10)
        store.add_booking(seat_count=2)
        store.mirror_failures = 10
        paid = engine.bookings.confirm_payment(REF, "pi_1")
        assert paid.status is BookingStatus.PAID
        assert seats(store) == (8, 2)
        assert any("out of sync" in subject for _, subject, _ in sender.sent)


class TestCancel:
    """Tests for BookingService.cancel and apply_external_refund."""

    def test_refund_releases_original_seat_count(self, store, payments, engine):
        """A refunded booking requests the refund and gives back every seat."""
        store.add_class(capacity=10)
        engine.bookings.create_booking(request(seat_count=3))
        engine.bookings.confirm_payment(REF, "pi_1")
        closed = engine.bookings.cancel(REF, CancellationIntent.REFUND)
        assert closed.status is BookingStatus.REFUNDED
        assert closed.seats_purchased == 0
        assert closed.refund_confirmed is True
        assert seats(store) == (10, 0)
        assert payments.refunds == [("pi_1", "refund-booking-1")]

    def test_cancel_without_refund_does_not_touch_payments(self, store, payments, engine):
        """Cancelled-Without-Refund releases seats but keeps the money."""
        store.add_class(capacity=10, seats_remaining=8, purchased=2)
        store.add_booking(seat_count=2, status=BookingStatus.PAID, payment_intent_id="pi_1")
        closed = engine.bookings.cancel(REF, CancellationIntent.NO_REFUND)
        assert closed.status is BookingStatus.CANCELLED_WITHOUT_REFUND
        assert seats(store) == (10, 0)
        assert payments.refunds == []

    def test_roii_cancellation(self, store, engine):
        """A comped booking cancels to ROII-Cancelled and releases its seats."""
        store.add_class(capacity=10)
        engine.bookings.create_booking(request(seat_count=2, booking_type=BookingType.ROII))
        closed = engine.bookings.cancel(REF, CancellationIntent.NO_REFUND)
        assert closed.status is BookingStatus.ROII_CANCELLED
        assert seats(store) == (10, 0)

    def test_second_cancel_is_a_no_op(self, store, engine):
        """Cancelling a closed booking raises AlreadyTerminalError and releases nothing twice."""
        store.add_class(capacity=10, seats_remaining=8, purchased=2)
        store.add_booking(seat_count=2, status=BookingStatus.PAID, payment_intent_id="pi_1")
        engine.bookings.cancel(REF, CancellationIntent.NO_REFUND)
        with pytest.raises(AlreadyTerminalError):
            engine.bookings.cancel(REF, CancellationIntent.NO_REFUND)
        assert seats(store) == (10, 0)

    def test_pending_booking_cannot_be_cancelled(self, store, engine):
        """Cancelling a Pending booking raises InvalidTransitionError."""
        store.add_class()
        store.add_booking()
        with pytest.raises(InvalidTransitionError):
            engine.bookings.cancel(REF, CancellationIntent.REFUND)

    def test_refund_failure_leaves_booking_paid(self, store, payments, engine):
        """If the processor cannot refund, nothing changes locally."""
        store.add_class(capacity=10, seats_remaining=8, purchased=2)
        store.add_booking(seat_count=2, status=BookingStatus.PAID, payment_intent_id="pi_1")
        payments.refund_error = UpstreamUnavailableError("payment-processor")
        with pytest.raises(UpstreamUnavailableError):
            engine.bookings.cancel(REF, CancellationIntent.REFUND)
        assert store.get_booking(REF).status is BookingStatus.PAID
        assert seats(store) == (8, 2)

    def test_external_refund(self, store, payments, engine):
        """A refund issued at the processor closes the booking without a new refund call."""
        store.add_class(capacity=10, seats_remaining=7, purchased=3)
        store.add_booking(seat_count=3, status=BookingStatus.PAID, payment_intent_id="pi_1")
        closed = engine.bookings.apply_external_refund(REF)
        assert closed.status is BookingStatus.REFUNDED
        assert seats(store) == (10, 0)
        assert payments.refunds == []
