"""Integration tests for DjangoRecordStore against the test database.

Run with: pytest tests/test_django_store.py -v
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from registrations import models
from registrations.domain import (
    BookingRef,
    BookingRequest,
    BookingStatus,
    BookingType,
    ClassId,
    ClassStatus,
    Money,
    Participant,
    ProductProvision,
    WaitlistStatus,
)
from registrations.domain.errors import ClassNotFoundError, ConflictError
from registrations.stores.django_store import DjangoRecordStore

CLASS = ClassId("rec-class-1")
REF = BookingRef("booking-1")


@pytest.fixture
def django_store() -> DjangoRecordStore:
    return DjangoRecordStore()


@pytest.fixture
def offering() -> models.ClassOffering:
    return models.ClassOffering.objects.create(
        external_id=CLASS.value,
        name="Wheel Throwing",
        total_capacity=10,
        status=ClassStatus.PUBLISH.value,
        price_member=Decimal("30.00"),
        price_non_member=Decimal("45.00"),
    )


def booking_request(reference: str = "booking-1", batch_id: str = "") -> BookingRequest:
    return BookingRequest(
        reference=BookingRef(reference),
        class_id=CLASS,
        seat_count=2,
        booking_type=BookingType.PAID,
        amount=Money(Decimal("60.00")),
        batch_id=batch_id,
        participants=(Participant(name="Ada"), Participant(name="Bob")),
    )


@pytest.mark.django_db
class TestClasses:
    """Tests for class reads and seat compare-and-set."""

    def test_get_class_maps_to_domain(self, django_store, offering):
        """Stored classes come back as domain objects keyed by external id."""
        result = django_store.get_class(CLASS)
        assert result.id == CLASS
        assert result.seats_remaining is None
        assert result.price_member == Decimal("30.00")

    def test_get_class_missing(self, django_store):
        """A missing class returns None."""
        assert django_store.get_class(ClassId("nope")) is None

    def test_seat_update_matches_uninitialized_class(self, django_store, offering):
        """The first write succeeds against a class whose remaining seats were never set."""
        assert django_store.update_seat_counts(CLASS, None, 0, 8, 2)
        offering.refresh_from_db()
        assert (offering.seats_remaining, offering.total_purchased) == (8, 2)

    def test_stale_seat_update_is_rejected(self, django_store, offering):
        """A write based on old counts changes nothing."""
        django_store.update_seat_counts(CLASS, None, 0, 8, 2)
        assert not django_store.update_seat_counts(CLASS, None, 0, 7, 3)
        offering.refresh_from_db()
        assert offering.seats_remaining == 8

    def test_list_classes_filters_by_status(self, django_store, offering):
        """Only classes in the requested statuses are listed."""
        assert django_store.list_classes(frozenset({ClassStatus.DRAFT})) == []
        assert len(django_store.list_classes(frozenset({ClassStatus.PUBLISH}))) == 1

    def test_save_provisioning(self, django_store, offering):
        """Provisioned identifiers are stored on the class."""
        django_store.save_provisioning(
            CLASS, ProductProvision("prod_1", "price_m", "price_n", "https://pay/1")
        )
        assert django_store.get_class(CLASS).is_provisioned


@pytest.mark.django_db
class TestBookings:
    """Tests for booking persistence and status compare-and-set."""

    def test_create_booking_with_participants(self, django_store, offering):
        """A booking is stored with one participant row per attendee."""
        booking = django_store.create_booking(booking_request(), BookingStatus.PENDING)
        assert booking.status is BookingStatus.PENDING
        assert [p.name for p in booking.participants] == ["Ada", "Bob"]
        assert booking.amount == Money(Decimal("60.00"))

    def test_create_booking_unknown_class(self, django_store):
        """A booking for a missing class raises ClassNotFoundError."""
        with pytest.raises(ClassNotFoundError):
            django_store.create_booking(booking_request(), BookingStatus.PENDING)

    def test_duplicate_reference_conflicts(self, django_store, offering):
        """A second booking with the same reference raises ConflictError."""
        django_store.create_booking(booking_request(), BookingStatus.PENDING)
        with pytest.raises(ConflictError):
            django_store.create_booking(booking_request(), BookingStatus.PENDING)

    def test_transition_is_compare_and_set(self, django_store, offering):
        """Only one of two transitions from the same status wins."""
        django_store.create_booking(booking_request(), BookingStatus.PENDING)
        assert django_store.transition_booking(
            REF, BookingStatus.PENDING, BookingStatus.PAID, payment_intent_id="pi_1"
        )
        assert not django_store.transition_booking(REF, BookingStatus.PENDING, BookingStatus.PAID)
        booking = django_store.get_booking(REF)
        assert booking.status is BookingStatus.PAID
        assert django_store.find_booking_by_payment_intent("pi_1") == booking

    def test_transition_rejects_unknown_fields(self, django_store, offering):
        """Only lifecycle fields may change alongside the status."""
        django_store.create_booking(booking_request(), BookingStatus.PENDING)
        with pytest.raises(ValueError):
            django_store.transition_booking(
                REF, BookingStatus.PENDING, BookingStatus.PAID, seat_count=9
            )

    def test_mirror_status_updates_participants_and_batch(self, django_store, offering):
        """Participants and batch siblings receive the booking's status."""
        django_store.create_booking(booking_request(batch_id="b1"), BookingStatus.PENDING)
        django_store.create_booking(
            booking_request(reference="booking-2", batch_id="b1"), BookingStatus.PENDING
        )
        django_store.transition_booking(REF, BookingStatus.PENDING, BookingStatus.PAID)
        django_store.mirror_status(django_store.get_booking(REF))
        booking = django_store.get_booking(REF)
        sibling = django_store.get_booking(BookingRef("booking-2"))
        assert {p.payment_status for p in booking.participants} == {BookingStatus.PAID}
        assert sibling.batch_status is BookingStatus.PAID
        assert sibling.status is BookingStatus.PENDING

    def test_list_bookings_excludes_statuses(self, django_store, offering):
        """Excluded statuses are filtered out."""
        django_store.create_booking(booking_request(), BookingStatus.PENDING)
        assert django_store.list_bookings(frozenset({BookingStatus.PENDING})) == []


@pytest.mark.django_db
class TestWaitlistAndLeases:
    """Tests for waitlist entries and job leases."""

    def test_waitlist_round(self, django_store, offering):
        """Entries are listed while waiting and marked notified once."""
        entry = django_store.add_waitlist_entry(CLASS, "ada@example.com", "Ada")
        assert django_store.list_waiting() == [entry]
        assert django_store.mark_notified(entry.id)
        assert not django_store.mark_notified(entry.id)
        row = models.WaitlistEntry.objects.get(pk=entry.id)
        assert row.status == WaitlistStatus.NOTIFIED.value
        assert row.notified_at is not None

    def test_lease_is_exclusive_until_expiry(self, django_store):
        """A held lease blocks others until it expires or is released."""
        now = timezone.now()
        ttl = now + timedelta(minutes=10)
        assert django_store.acquire_lease("sync", "a", ttl, now)
        assert not django_store.acquire_lease("sync", "b", ttl, now)
        assert django_store.acquire_lease("sync", "b", ttl, now + timedelta(minutes=11))

    def test_release_only_by_holder(self, django_store):
        """Releasing someone else's lease does nothing."""
        now = timezone.now()
        django_store.acquire_lease("sync", "a", now + timedelta(minutes=10), now)
        django_store.release_lease("sync", "b")
        assert not django_store.acquire_lease("sync", "c", now + timedelta(minutes=10), now)
        django_store.release_lease("sync", "a")
        assert django_store.acquire_lease("sync", "c", now + timedelta(minutes=10), now)
