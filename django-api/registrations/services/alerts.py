"""Operator channel: error-level logs plus an email to the operators."""

import structlog

from registrations.domain import Booking
from registrations.domain.errors import DomainError
from registrations.gateways.interfaces import NotificationSender

logger = structlog.get_logger(__name__)


class OperatorAlerts:
    """Surfaces conditions that need a human: oversold seats, stuck fan-outs."""

    def __init__(self, sender: NotificationSender, recipients: list[str]) -> None:
        self._sender = sender
        self._recipients = recipients

    def _notify(self, subject: str, body: str) -> None:
        try:
            self._sender.send(self._recipients, subject, body)
        except DomainError as exc:
            logger.warning("operator_alert_undelivered", subject=subject, error=str(exc))

    def capacity_exceeded(self, booking: Booking, remaining: int) -> None:
        logger.error(
            "capacity_exceeded",
            booking_ref=str(booking.id),
            class_id=str(booking.class_id),
            requested=booking.seat_count,
            remaining=remaining,
            payment_intent_id=booking.payment_intent_id,
        )
        self._notify(
            f"Confirmed payment cannot be seated: {booking.id}",
            f"Booking {booking.id} for class {booking.class_id} was paid "
            f"(payment intent {booking.payment_intent_id}) for {booking.seat_count} seat(s), "
            f"but only {remaining} remain. The booking stays Pending and needs manual resolution.",
        )

    def amount_mismatch(self, booking: Booking, paid: str) -> None:
        logger.warning(
            "payment_amount_mismatch",
            booking_ref=str(booking.id),
            expected=str(booking.amount),
            paid=paid,
        )
        self._notify(
            f"Payment amount mismatch: {booking.id}",
            f"Booking {booking.id} expected {booking.amount} but the processor reported {paid}.",
        )

    def fan_out_failed(self, booking: Booking, error: Exception) -> None:
        logger.error(
            "status_fan_out_failed",
            booking_ref=str(booking.id),
            batch_id=booking.batch_id,
            status=booking.status.value,
            error=str(error),
        )
        self._notify(
            f"Participant status out of sync: {booking.id}",
            f"Booking {booking.id} is {booking.status.value}; copying that status to its "
            f"participants and batch {booking.batch_id or '-'} failed: {error}",
        )

    def seat_release_failed(self, booking: Booking, error: Exception) -> None:
        logger.error(
            "seat_release_failed",
            booking_ref=str(booking.id),
            class_id=str(booking.class_id),
            seats=booking.seat_count,
            error=str(error),
        )
        self._notify(
            f"Seats not released: {booking.id}",
            f"Booking {booking.id} is {booking.status.value} but releasing "
            f"{booking.seat_count} seat(s) of class {booking.class_id} failed: {error}",
        )

    def partial_refund(self, booking: Booking, refunded: str) -> None:
        logger.warning(
            "partial_refund_received",
            booking_ref=str(booking.id),
            status=booking.status.value,
            refunded=refunded,
            amount=str(booking.amount),
        )
        self._notify(
            f"Partial refund: {booking.id}",
            f"The payment processor refunded {refunded} of {booking.amount} for booking "
            f"{booking.id}. The booking stays {booking.status.value} and keeps its "
            f"{booking.seat_count} seat(s); cancel it explicitly if the seats should be freed.",
        )
