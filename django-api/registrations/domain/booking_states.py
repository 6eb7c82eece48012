"""Booking payment-status lifecycle rules."""

from registrations.domain.errors import AlreadyTerminalError, InvalidTransitionError
from registrations.domain.models import BookingStatus, BookingType, CancellationIntent

TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.REFUNDED,
        BookingStatus.CANCELLED_WITHOUT_REFUND,
        BookingStatus.ROII_CANCELLED,
    }
)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.PAID}),
    BookingStatus.PAID: frozenset(
        {BookingStatus.REFUNDED, BookingStatus.CANCELLED_WITHOUT_REFUND}
    ),
    BookingStatus.ROII_FREE: frozenset({BookingStatus.ROII_CANCELLED}),
}

# Statuses a booking may be created in.
INITIAL_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.ROII_FREE})


def is_terminal(status: BookingStatus) -> bool:
    return status in TERMINAL_STATUSES


def initial_status(booking_type: BookingType) -> BookingStatus:
    """Comped and admin bookings skip payment confirmation entirely."""
    return BookingStatus.ROII_FREE if booking_type.is_comped else BookingStatus.PENDING


def check_transition(booking_ref: str, current: BookingStatus, target: BookingStatus) -> None:
    """Validate ``current -> target``.

    Raises:
        AlreadyTerminalError: If ``current`` is terminal.
        InvalidTransitionError: If the move is not in the lifecycle.
    """
    if is_terminal(current):
        raise AlreadyTerminalError(booking_ref, current.value)
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(booking_ref, current.value, target.value)


def cancellation_target(
    booking_ref: str, current: BookingStatus, intent: CancellationIntent
) -> BookingStatus:
    """Return the terminal status a cancellation leads to."""
    if current is BookingStatus.ROII_FREE:
        target = BookingStatus.ROII_CANCELLED
    elif intent is CancellationIntent.REFUND:
        target = BookingStatus.REFUNDED
    else:
        target = BookingStatus.CANCELLED_WITHOUT_REFUND
    check_transition(booking_ref, current, target)
    return target


def is_publishable(status: BookingStatus, refund_confirmed: bool) -> bool:
    """Whether a booking may appear as a purchase listing."""
    if status is BookingStatus.PENDING:
        return False
    if is_terminal(status):
        return refund_confirmed
    return True
