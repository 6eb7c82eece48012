"""Seat-count arithmetic for a class.

Pure state transitions only; persistence and retries live in
services/seat_ledger.py.
"""

from dataclasses import dataclass, replace
from typing import Self

from registrations.domain.errors import (
    InconsistentSeatsError,
    InsufficientCapacityError,
    InvalidQuantityError,
)
from registrations.domain.value_objects import validate_quantity


@dataclass(frozen=True)
class SeatCounts:
    """Seat fields of a class.

    Invariant: ``0 <= seats_remaining <= total_capacity`` and
    ``seats_remaining + total_purchased == total_capacity``.
    """

    total_capacity: int
    seats_remaining: int
    total_purchased: int

    def __post_init__(self) -> None:
        if (
            self.total_capacity < 0
            or not 0 <= self.seats_remaining <= self.total_capacity
            or self.seats_remaining + self.total_purchased != self.total_capacity
        ):
            raise InconsistentSeatsError(
                self.total_capacity, self.seats_remaining, self.total_purchased
            )

    @classmethod
    def sized(cls, total_capacity: object, total_purchased: int | None) -> Self:
        """Counts for a class whose capacity is set to ``total_capacity``.

        Seats already purchased stay purchased; the rest become remaining.

        Raises:
            InvalidQuantityError: If the capacity is not a whole number or is
                below the seats already purchased.
        """
        capacity = validate_quantity(total_capacity)
        purchased = total_purchased or 0
        if capacity < purchased:
            raise InvalidQuantityError(total_capacity)
        return cls(
            total_capacity=capacity,
            seats_remaining=capacity - purchased,
            total_purchased=purchased,
        )

    @classmethod
    def from_stored(
        cls, total_capacity: int, seats_remaining: int | None, total_purchased: int | None
    ) -> Self:
        """Build counts from stored fields, initializing a fresh class.

        A class that has never been touched by the ledger has no
        ``seats_remaining`` yet; it is derived from what was purchased.
        """
        purchased = total_purchased or 0
        if seats_remaining is None:
            seats_remaining = total_capacity - purchased
        return cls(
            total_capacity=total_capacity,
            seats_remaining=seats_remaining,
            total_purchased=purchased,
        )

    def reserve(self, quantity: object, class_id: str = "") -> Self:
        seats = validate_quantity(quantity)
        if seats > self.seats_remaining:
            raise InsufficientCapacityError(class_id, seats, self.seats_remaining)
        return replace(
            self,
            seats_remaining=self.seats_remaining - seats,
            total_purchased=self.total_purchased + seats,
        )

    def release(self, quantity: object) -> Self:
        # Never hand back more than was purchased.
        seats = min(validate_quantity(quantity), self.total_purchased)
        return replace(
            self,
            seats_remaining=self.seats_remaining + seats,
            total_purchased=self.total_purchased - seats,
        )
