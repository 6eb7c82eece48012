from registrations.domain.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    BookingType,
    CancellationIntent,
    ClassOffering,
    ClassStatus,
    EventOutcome,
    OutcomeStatus,
    Participant,
    PaymentEvent,
    PaymentEventKind,
    ProductProvision,
    PublishedListing,
    WaitlistEntry,
    WaitlistStatus,
)
from registrations.domain.seat_ledger import SeatCounts
from registrations.domain.value_objects import BookingRef, ClassId, Money

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "BookingType",
    "CancellationIntent",
    "ClassOffering",
    "ClassStatus",
    "EventOutcome",
    "OutcomeStatus",
    "Participant",
    "PaymentEvent",
    "PaymentEventKind",
    "ProductProvision",
    "PublishedListing",
    "WaitlistEntry",
    "WaitlistStatus",
    "SeatCounts",
    "BookingRef",
    "ClassId",
    "Money",
]
