"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in registrations/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self

from registrations.domain.value_objects import BookingRef, ClassId, Money


class ClassStatus(str, Enum):
    """Lifecycle/publish status of a class."""

    DRAFT = "Draft"
    PUBLISH = "Publish"
    PUBLISHED = "Published"
    UPDATED = "Updated"
    DELETE = "Delete"


class BookingStatus(str, Enum):
    """Payment status of a booking."""

    PENDING = "Pending"
    PAID = "Paid"
    ROII_FREE = "ROII-Free"
    REFUNDED = "Refunded"
    CANCELLED_WITHOUT_REFUND = "Cancelled-Without-Refund"
    ROII_CANCELLED = "ROII-Cancelled"


class BookingType(str, Enum):
    PAID = "paid"
    ROII = "roii"
    ADMIN = "admin"

    @property
    def is_comped(self) -> bool:
        return self is not BookingType.PAID


class CancellationIntent(str, Enum):
    """What the caller wants done with the money on cancellation."""

    REFUND = "refund"
    PARTIAL_REFUND = "partial-refund"
    NO_REFUND = "no-refund"


class WaitlistStatus(str, Enum):
    YET_TO_NOTIFY = "Yet-to-Notify"
    NOTIFIED = "Notified"


class PaymentEventKind(str, Enum):
    CONFIRMATION = "confirmation"
    REFUND = "refund"
    PARTIAL_REFUND = "partial-refund"


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class ClassOffering:
    """Domain representation of a Class."""

    id: ClassId
    name: str
    total_capacity: int
    seats_remaining: int | None
    total_purchased: int
    status: ClassStatus
    description: str = ""
    location: str = ""
    class_type: str = ""
    instructor_name: str = ""
    starts_on: date | None = None
    ends_on: date | None = None
    start_time: str = ""
    end_time: str = ""
    price_member: Decimal | None = None
    price_non_member: Decimal | None = None
    price_roii: str = ""
    product_id: str = ""
    member_price_id: str = ""
    non_member_price_id: str = ""
    payment_link: str = ""
    updated_at: datetime | None = None

    @property
    def is_provisioned(self) -> bool:
        return bool(self.product_id)


@dataclass(frozen=True)
class Participant:
    """Per-seat sub-record of a booking."""

    name: str
    email: str = ""
    phone: str = ""
    payment_status: BookingStatus = BookingStatus.PENDING


@dataclass(frozen=True)
class Booking:
    """Domain representation of a Booking."""

    id: BookingRef
    class_id: ClassId
    seat_count: int
    seats_purchased: int
    status: BookingStatus
    booking_type: BookingType
    amount: Money
    refund_confirmed: bool = False
    payment_intent_id: str | None = None
    batch_id: str = ""
    batch_status: BookingStatus | None = None
    needs_attention: bool = False
    contact_email: str = ""
    participants: tuple[Participant, ...] = ()
    created_at: datetime | None = None


@dataclass(frozen=True)
class BookingRequest:
    """A registration submission, validated at the HTTP boundary."""

    reference: BookingRef
    class_id: ClassId
    seat_count: int
    booking_type: BookingType
    amount: Money
    contact_email: str = ""
    batch_id: str = ""
    participants: tuple[Participant, ...] = ()


@dataclass(frozen=True)
class WaitlistEntry:
    id: int
    class_id: ClassId
    email: str
    name: str = ""
    status: WaitlistStatus = WaitlistStatus.YET_TO_NOTIFY


@dataclass(frozen=True)
class PaymentEvent:
    """A payment confirmation or refund, normalized at the webhook boundary.

    Either identifier may be missing from the processor's payload; the
    boundary guarantees that at least one of them is present.
    """

    kind: PaymentEventKind
    event_id: str
    reference_id: BookingRef | None = None
    payment_intent_id: str | None = None
    amount: Money | None = None


@dataclass(frozen=True)
class EventOutcome:
    status: OutcomeStatus
    reason: str | None = None

    @classmethod
    def applied(cls) -> Self:
        return cls(status=OutcomeStatus.APPLIED)

    @classmethod
    def ignored(cls, reason: str) -> Self:
        return cls(status=OutcomeStatus.IGNORED, reason=reason)

    @classmethod
    def escalated(cls, reason: str) -> Self:
        return cls(status=OutcomeStatus.ESCALATED, reason=reason)


@dataclass(frozen=True)
class ProductProvision:
    """Identifiers created at the payment processor for a class."""

    product_id: str
    member_price_id: str
    non_member_price_id: str
    payment_link: str


@dataclass(frozen=True)
class PublishedListing:
    """An item in the content publishing system."""

    item_id: str
    fields: dict[str, Any] = field(default_factory=dict)
    archived: bool = False
