"""Domain error codes for the registrations module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    INVALID_QUANTITY = "INVALID_QUANTITY"
    INVALID_PRICE = "INVALID_PRICE"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    ALREADY_TERMINAL = "ALREADY_TERMINAL"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONFLICT = "CONFLICT"
    CLASS_NOT_FOUND = "CLASS_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    LISTING_REJECTED = "LISTING_REJECTED"
    INVALID_PAYMENT_EVENT = "INVALID_PAYMENT_EVENT"
    INCONSISTENT_SEATS = "INCONSISTENT_SEATS"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class InvalidQuantityError(DomainError):
    """Raised when a seat count is fractional, negative or not a number."""

    def __init__(self, value: object) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message="Seat count must be a non-negative whole number",
        )
        self.value = value


class InvalidPriceError(DomainError):
    """Raised when a price cannot be parsed."""

    def __init__(self, value: object) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PRICE,
            message="Price is missing or invalid",
        )
        self.value = value


class InsufficientCapacityError(DomainError):
    """Raised when a class does not have enough seats left."""

    def __init__(self, class_id: str, requested: int, remaining: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_CAPACITY,
            message="Not enough seats remaining",
        )
        self.class_id = class_id
        self.requested = requested
        self.remaining = remaining


class CapacityExceededError(InsufficientCapacityError):
    """Raised when a confirmed payment cannot be honoured by the inventory."""

    def __init__(self, booking_ref: str, class_id: str, requested: int, remaining: int) -> None:
        super().__init__(class_id, requested, remaining)
        self.code = ErrorCode.CAPACITY_EXCEEDED
        self.message = "Confirmed payment exceeds remaining seats"
        self.booking_ref = booking_ref


class AlreadyTerminalError(DomainError):
    """Raised when a booking in a terminal status is asked to transition."""

    def __init__(self, booking_ref: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_TERMINAL,
            message="Booking is already closed",
        )
        self.booking_ref = booking_ref
        self.status = status


class InvalidTransitionError(DomainError):
    """Raised when a booking transition is not allowed from its status."""

    def __init__(self, booking_ref: str, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot move booking from {current} to {target}",
        )
        self.booking_ref = booking_ref
        self.current = current
        self.target = target


class ConflictError(DomainError):
    """Raised when a concurrent update keeps winning the compare-and-set."""

    def __init__(self, resource: str) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="Concurrent update, try again",
        )
        self.resource = resource


class NotFoundError(DomainError):
    """Base for unknown class or booking references."""


class ClassNotFoundError(NotFoundError):
    """Raised when a class is not found."""

    def __init__(self, class_id: str) -> None:
        super().__init__(
            code=ErrorCode.CLASS_NOT_FOUND,
            message="Class not found",
        )
        self.class_id = class_id


class BookingNotFoundError(NotFoundError):
    """Raised when a booking is not found."""

    def __init__(self, booking_ref: str) -> None:
        super().__init__(
            code=ErrorCode.BOOKING_NOT_FOUND,
            message="Booking not found",
        )
        self.booking_ref = booking_ref


class UpstreamUnavailableError(DomainError):
    """Raised when an external system is unreachable or erroring."""

    def __init__(self, system: str, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.UPSTREAM_UNAVAILABLE,
            message=f"{system} is unavailable",
        )
        self.system = system
        self.detail = detail


class ListingRejectedError(DomainError):
    """Raised when the publishing system refuses a single listing."""

    def __init__(self, key: str, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.LISTING_REJECTED,
            message="Listing was rejected by the publishing system",
        )
        self.key = key
        self.detail = detail


class InvalidPaymentEventError(DomainError):
    """Raised when a webhook payload is unsigned, malformed or incomplete."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PAYMENT_EVENT,
            message="Invalid payment event",
        )
        self.reason = reason


class InconsistentSeatsError(DomainError):
    """Raised when stored seat fields do not add up to the class capacity."""

    def __init__(self, total_capacity: int, seats_remaining: int, total_purchased: int) -> None:
        super().__init__(
            code=ErrorCode.INCONSISTENT_SEATS,
            message="Seat counts for this class are inconsistent",
        )
        self.total_capacity = total_capacity
        self.seats_remaining = seats_remaining
        self.total_purchased = total_purchased


class PaymentRejectedError(DomainError):
    """Raised when the payment processor refuses a request outright.

    Unlike UpstreamUnavailableError, repeating the same request will not help.
    """

    def __init__(self, operation: str, detail: str = "") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_REJECTED,
            message="Payment processor rejected the request",
        )
        self.operation = operation
        self.detail = detail
