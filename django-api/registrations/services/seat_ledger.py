"""Seat ledger - the only writer of a class's seat fields.

Every mutation is read, compute, compare-and-set. A lost compare-and-set
means another request changed the class in between; the ledger re-reads
and tries again, a bounded number of times.
"""

from collections.abc import Callable

import structlog
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from registrations.domain import ClassId, ClassOffering, SeatCounts
from registrations.domain.errors import ClassNotFoundError, ConflictError
from registrations.domain.value_objects import validate_quantity
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)


class _StaleRead(Exception):
    """The class changed between read and write."""


class SeatLedger:
    def __init__(self, store: RecordStore, max_attempts: int = 3) -> None:
        self._store = store
        self._max_attempts = max_attempts

    def counts(self, class_id: ClassId) -> SeatCounts:
        offering = self._store.get_class(class_id)
        if offering is None:
            raise ClassNotFoundError(class_id.value)
        return _stored_counts(offering)

    def available(self, class_id: ClassId) -> int:
        return self.counts(class_id).seats_remaining

    def reserve(self, class_id: ClassId, quantity: object) -> SeatCounts:
        """Take ``quantity`` seats.

        Raises:
            InvalidQuantityError: If quantity is not a non-negative integer.
            InsufficientCapacityError: If fewer seats remain; nothing changes.
            ConflictError: If concurrent writers win every attempt.
        """
        seats = validate_quantity(quantity)
        counts = self._apply(
            class_id, lambda offering: _stored_counts(offering).reserve(seats, class_id.value)
        )
        logger.info(
            "seats_reserved",
            class_id=class_id.value,
            seats=seats,
            seats_remaining=counts.seats_remaining,
        )
        return counts

    def release(self, class_id: ClassId, quantity: object) -> SeatCounts:
        """Give back ``quantity`` seats, never more than were purchased."""
        seats = validate_quantity(quantity)

        def _release(offering: ClassOffering) -> SeatCounts:
            current = _stored_counts(offering)
            if seats > current.total_purchased:
                logger.warning(
                    "release_exceeds_purchased",
                    class_id=class_id.value,
                    seats=seats,
                    total_purchased=current.total_purchased,
                )
            return current.release(seats)

        counts = self._apply(class_id, _release)
        logger.info(
            "seats_released",
            class_id=class_id.value,
            seats=seats,
            seats_remaining=counts.seats_remaining,
        )
        return counts

    def resize(self, class_id: ClassId, capacity: object) -> SeatCounts:
        """Set the class capacity, keeping purchased seats purchased.

        Also repairs a class whose stored counts no longer add up, since
        only ``total_purchased`` is read.

        Raises:
            InvalidQuantityError: If capacity is not a whole number or is
                below the seats already purchased; nothing changes.
            ConflictError: If concurrent writers win every attempt.
        """
        counts = self._apply(
            class_id, lambda offering: SeatCounts.sized(capacity, offering.total_purchased)
        )
        logger.info(
            "class_resized",
            class_id=class_id.value,
            total_capacity=counts.total_capacity,
            seats_remaining=counts.seats_remaining,
        )
        return counts

    def _apply(
        self, class_id: ClassId, operation: Callable[[ClassOffering], SeatCounts]
    ) -> SeatCounts:
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._max_attempts),
                retry=retry_if_exception_type(_StaleRead),
            ):
                with attempt:
                    offering = self._store.get_class(class_id)
                    if offering is None:
                        raise ClassNotFoundError(class_id.value)
                    updated = operation(offering)
                    written = self._store.update_seat_counts(
                        class_id,
                        expected_remaining=offering.seats_remaining,
                        expected_purchased=offering.total_purchased,
                        seats_remaining=updated.seats_remaining,
                        total_purchased=updated.total_purchased,
                        total_capacity=updated.total_capacity,
                    )
                    if not written:
                        logger.info(
                            "seat_update_conflict",
                            class_id=class_id.value,
                            attempt=attempt.retry_state.attempt_number,
                        )
                        raise _StaleRead()
                    return updated
        except RetryError as exc:
            logger.warning("seat_update_gave_up", class_id=class_id.value, attempts=self._max_attempts)
            raise ConflictError(f"class:{class_id.value}") from exc
        raise AssertionError("unreachable")


def _stored_counts(offering: ClassOffering) -> SeatCounts:
    return SeatCounts.from_stored(
        offering.total_capacity, offering.seats_remaining, offering.total_purchased
    )
