"""Booking service - the payment-status state machine and its side effects.

Every transition runs in the same order: claim the booking with a status
compare-and-set, mutate the seat ledger, then copy the new status onto the
participants and the batch. The claim makes concurrent or redelivered
requests lose cleanly; the copy step is retried on its own and never
undoes the ledger mutation.
"""

import structlog
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from registrations.domain import (
    Booking,
    BookingRef,
    BookingRequest,
    BookingStatus,
    CancellationIntent,
)
from registrations.domain.booking_states import (
    cancellation_target,
    check_transition,
    initial_status,
    is_terminal,
)
from registrations.domain.errors import (
    AlreadyTerminalError,
    BookingNotFoundError,
    CapacityExceededError,
    ClassNotFoundError,
    ConflictError,
    InsufficientCapacityError,
    InvalidQuantityError,
    InvalidTransitionError,
    UpstreamUnavailableError,
)
from registrations.domain.value_objects import validate_quantity
from registrations.gateways.interfaces import PaymentGateway
from registrations.services.alerts import OperatorAlerts
from registrations.services.seat_ledger import SeatLedger
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)


class BookingService:
    """Service for booking creation, payment confirmation and cancellation."""

    def __init__(
        self,
        store: RecordStore,
        ledger: SeatLedger,
        payments: PaymentGateway,
        alerts: OperatorAlerts,
        fan_out_attempts: int = 3,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._payments = payments
        self._alerts = alerts
        self._fan_out_attempts = fan_out_attempts

    def get_booking(self, reference: BookingRef) -> Booking:
        """Return a booking by reference.

        Raises:
            BookingNotFoundError: If the booking does not exist.
        """
        booking = self._store.get_booking(reference)
        if booking is None:
            raise BookingNotFoundError(reference.value)
        return booking

    def create_booking(self, request: BookingRequest) -> Booking:
        """Register a booking in its initial status.

        Paid bookings are checked against remaining seats but reserve
        nothing until payment is confirmed. Comped and admin bookings
        reserve immediately and start as ROII-Free.

        Raises:
            InvalidQuantityError: If the seat count is not a positive integer.
            ClassNotFoundError: If the class does not exist.
            InsufficientCapacityError: If not enough seats remain.
        """
        seats = validate_quantity(request.seat_count)
        if seats == 0:
            raise InvalidQuantityError(request.seat_count)

        existing = self._store.get_booking(request.reference)
        if existing is not None:
            logger.info("booking_resubmitted", booking_ref=request.reference.value)
            return existing

        status = initial_status(request.booking_type)
        log = logger.bind(
            booking_ref=request.reference.value,
            class_id=request.class_id.value,
            seats=seats,
            status=status.value,
        )

        if status is BookingStatus.PENDING:
            remaining = self._ledger.available(request.class_id)
            if remaining < seats:
                log.info("booking_rejected_capacity", remaining=remaining)
                raise InsufficientCapacityError(request.class_id.value, seats, remaining)
            booking = self._store.create_booking(request, status)
            log.info("booking_created")
            return booking

        self._ledger.reserve(request.class_id, seats)
        try:
            booking = self._store.create_booking(request, status)
        except Exception:
            log.warning("booking_create_failed_releasing_seats")
            self._ledger.release(request.class_id, seats)
            raise
        log.info("booking_created")
        return booking

    def confirm_payment(self, reference: BookingRef, payment_intent_id: str | None) -> Booking:
        """Move a booking from Pending to Paid and take its seats.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            AlreadyTerminalError: If the booking is closed.
            InvalidTransitionError: If the booking is not Pending.
            CapacityExceededError: If the class cannot seat the booking; the
                booking is left Pending and flagged for operators.
        """
        booking = self.get_booking(reference)
        check_transition(reference.value, booking.status, BookingStatus.PAID)

        changes = {"needs_attention": False, "seats_purchased": booking.seat_count}
        if payment_intent_id:
            changes["payment_intent_id"] = payment_intent_id
        self._claim(booking, BookingStatus.PAID, **changes)

        try:
            self._ledger.reserve(booking.class_id, booking.seat_count)
        except InsufficientCapacityError as exc:
            self._store.transition_booking(
                reference, BookingStatus.PAID, BookingStatus.PENDING, needs_attention=True
            )
            flagged = self.get_booking(reference)
            self._alerts.capacity_exceeded(flagged, exc.remaining)
            raise CapacityExceededError(
                reference.value, booking.class_id.value, booking.seat_count, exc.remaining
            ) from exc
        except Exception:
            logger.warning("payment_confirmation_reverted", booking_ref=reference.value)
            self._store.transition_booking(reference, BookingStatus.PAID, BookingStatus.PENDING)
            raise

        paid = self.get_booking(reference)
        logger.info(
            "booking_paid",
            booking_ref=reference.value,
            class_id=booking.class_id.value,
            seats=booking.seat_count,
        )
        self._fan_out(paid)
        return paid

    def cancel(self, reference: BookingRef, intent: CancellationIntent) -> Booking:
        """Close a booking and give its seats back.

        Only the Refunded outcome asks the payment processor for money back.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            AlreadyTerminalError: If the booking is already closed (no-op).
            InvalidTransitionError: If the booking is still Pending.
            UpstreamUnavailableError: If the refund could not be requested.
        """
        booking = self.get_booking(reference)
        target = cancellation_target(reference.value, booking.status, intent)

        if target is BookingStatus.REFUNDED:
            if not booking.payment_intent_id:
                raise InvalidTransitionError(reference.value, booking.status.value, target.value)
            self._payments.request_refund(
                booking.payment_intent_id, idempotency_key=f"refund-{reference.value}"
            )
        return self._close(booking, target)

    def apply_external_refund(self, reference: BookingRef) -> Booking:
        """Record a refund that was issued at the payment processor."""
        booking = self.get_booking(reference)
        check_transition(reference.value, booking.status, BookingStatus.REFUNDED)
        return self._close(booking, BookingStatus.REFUNDED)

    def _close(self, booking: Booking, target: BookingStatus) -> Booking:
        self._claim(booking, target, seats_purchased=0, refund_confirmed=True)
        try:
            # The original seat count, not the zeroed display value.
            self._ledger.release(booking.class_id, booking.seat_count)
        except (ClassNotFoundError, ConflictError, UpstreamUnavailableError) as exc:
            self._alerts.seat_release_failed(booking, exc)
            raise

        closed = self.get_booking(booking.id)
        logger.info(
            "booking_closed",
            booking_ref=booking.id.value,
            status=target.value,
            seats_released=booking.seat_count,
        )
        self._fan_out(closed)
        return closed

    def _claim(self, booking: Booking, target: BookingStatus, **changes) -> None:
        if self._store.transition_booking(booking.id, booking.status, target, **changes):
            return
        current = self.get_booking(booking.id)
        logger.info(
            "booking_transition_lost",
            booking_ref=booking.id.value,
            expected=booking.status.value,
            current=current.status.value,
        )
        if is_terminal(current.status):
            raise AlreadyTerminalError(booking.id.value, current.status.value)
        raise InvalidTransitionError(booking.id.value, current.status.value, target.value)

    def _fan_out(self, booking: Booking) -> None:
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._fan_out_attempts),
                retry=retry_if_exception_type(UpstreamUnavailableError),
            ):
                with attempt:
                    self._store.mirror_status(booking)
        except RetryError as exc:
            self._alerts.fan_out_failed(booking, exc.last_attempt.exception())
