"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Implementations raise
UpstreamUnavailableError when the Record Store cannot be reached.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from registrations.domain import (
    Booking,
    BookingRef,
    BookingRequest,
    BookingStatus,
    ClassId,
    ClassOffering,
    ClassStatus,
    ProductProvision,
    WaitlistEntry,
)


class RecordStore(ABC):
    """Interface for the system of record holding classes, bookings and the waitlist."""

    @abstractmethod
    def get_class(self, class_id: ClassId) -> ClassOffering | None:
        """Return a class by external ID, or None if not found."""
        ...

    @abstractmethod
    def list_classes(self, statuses: frozenset[ClassStatus]) -> list[ClassOffering]:
        """Return classes whose status is one of ``statuses``."""
        ...

    @abstractmethod
    def update_seat_counts(
        self,
        class_id: ClassId,
        expected_remaining: int | None,
        expected_purchased: int,
        seats_remaining: int,
        total_purchased: int,
        total_capacity: int | None = None,
    ) -> bool:
        """Compare-and-set the seat fields of a class.

        Writes only if the stored fields still equal the expected ones.
        ``total_capacity`` is written alongside when given.
        Returns False when another writer got there first.
        """
        ...

    @abstractmethod
    def set_class_status(self, class_id: ClassId, status: ClassStatus) -> None:
        ...

    @abstractmethod
    def save_provisioning(self, class_id: ClassId, provision: ProductProvision) -> None:
        """Record payment processor identifiers on a class."""
        ...

    @abstractmethod
    def get_booking(self, reference: BookingRef) -> Booking | None:
        ...

    @abstractmethod
    def find_booking_by_payment_intent(self, payment_intent_id: str) -> Booking | None:
        ...

    @abstractmethod
    def list_bookings(self, exclude_statuses: frozenset[BookingStatus]) -> list[Booking]:
        ...

    @abstractmethod
    def create_booking(self, request: BookingRequest, status: BookingStatus) -> Booking:
        """Persist a new booking together with its participants."""
        ...

    @abstractmethod
    def transition_booking(
        self,
        reference: BookingRef,
        expected_status: BookingStatus,
        status: BookingStatus,
        **changes: Any,
    ) -> bool:
        """Compare-and-set a booking's status, applying ``changes`` with it.

        Returns False if the booking is no longer in ``expected_status``.
        """
        ...

    @abstractmethod
    def mirror_status(self, booking: Booking) -> None:
        """Copy ``booking.status`` onto its participants and its batch siblings."""
        ...

    @abstractmethod
    def add_waitlist_entry(self, class_id: ClassId, email: str, name: str = "") -> WaitlistEntry:
        ...

    @abstractmethod
    def list_waiting(self) -> list[WaitlistEntry]:
        """Return entries still waiting to be notified, oldest first."""
        ...

    @abstractmethod
    def mark_notified(self, entry_id: int) -> bool:
        """Move an entry to Notified; False if it already was."""
        ...

    @abstractmethod
    def acquire_lease(self, name: str, holder: str, expires_at: datetime, now: datetime) -> bool:
        """Take the named lease if it is free or expired."""
        ...

    @abstractmethod
    def release_lease(self, name: str, holder: str) -> None:
        """Give up the named lease if ``holder`` still owns it."""
        ...
