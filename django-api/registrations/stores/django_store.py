"""Django ORM implementation of the RecordStore."""

import functools
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.db.models import Q
from django.utils import timezone

from registrations import models
from registrations.cache import invalidate_class
from registrations.domain import (
    Booking,
    BookingRef,
    BookingRequest,
    BookingStatus,
    BookingType,
    ClassId,
    ClassOffering,
    ClassStatus,
    Money,
    Participant,
    ProductProvision,
    WaitlistEntry,
    WaitlistStatus,
)
from registrations.domain.errors import ClassNotFoundError, ConflictError, UpstreamUnavailableError
from registrations.stores.interfaces import RecordStore

BOOKING_CHANGE_FIELDS = frozenset(
    {"seats_purchased", "refund_confirmed", "payment_intent_id", "needs_attention"}
)


def _translate_errors(method):
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            raise UpstreamUnavailableError("record-store", str(exc)) from exc

    return wrapper


def _to_class(row: models.ClassOffering) -> ClassOffering:
    return ClassOffering(
        id=ClassId(row.external_id),
        name=row.name,
        total_capacity=row.total_capacity,
        seats_remaining=row.seats_remaining,
        total_purchased=row.total_purchased,
        status=ClassStatus(row.status),
        description=row.description,
        location=row.location,
        class_type=row.class_type,
        instructor_name=row.instructor_name,
        starts_on=row.starts_on,
        ends_on=row.ends_on,
        start_time=row.start_time,
        end_time=row.end_time,
        price_member=row.price_member,
        price_non_member=row.price_non_member,
        price_roii=row.price_roii,
        product_id=row.product_id,
        member_price_id=row.member_price_id,
        non_member_price_id=row.non_member_price_id,
        payment_link=row.payment_link,
        updated_at=row.updated_at,
    )


def _to_booking(row: models.Booking) -> Booking:
    return Booking(
        id=BookingRef(row.reference),
        class_id=ClassId(row.class_offering.external_id),
        seat_count=row.seat_count,
        seats_purchased=row.seats_purchased,
        status=BookingStatus(row.status),
        booking_type=BookingType(row.booking_type),
        amount=Money(Decimal(row.amount)),
        refund_confirmed=row.refund_confirmed,
        payment_intent_id=row.payment_intent_id,
        batch_id=row.batch_id,
        batch_status=BookingStatus(row.batch_status) if row.batch_status else None,
        needs_attention=row.needs_attention,
        contact_email=row.contact_email,
        participants=tuple(
            Participant(
                name=p.name,
                email=p.email,
                phone=p.phone,
                payment_status=BookingStatus(p.payment_status),
            )
            for p in row.participants.all()
        ),
        created_at=row.created_at,
    )


def _to_waitlist(row: models.WaitlistEntry) -> WaitlistEntry:
    return WaitlistEntry(
        id=row.pk,
        class_id=ClassId(row.class_offering.external_id),
        email=row.email,
        name=row.name,
        status=WaitlistStatus(row.status),
    )


def _bookings():
    return models.Booking.objects.select_related("class_offering").prefetch_related(
        "participants"
    )


class DjangoRecordStore(RecordStore):
    """PostgreSQL-backed record store using Django ORM."""

    @_translate_errors
    def get_class(self, class_id: ClassId) -> ClassOffering | None:
        row = models.ClassOffering.objects.filter(external_id=class_id.value).first()
        return _to_class(row) if row else None

    @_translate_errors
    def list_classes(self, statuses: frozenset[ClassStatus]) -> list[ClassOffering]:
        rows = models.ClassOffering.objects.filter(status__in=[s.value for s in statuses])
        return [_to_class(row) for row in rows]

    @_translate_errors
    def update_seat_counts(
        self,
        class_id: ClassId,
        expected_remaining: int | None,
        expected_purchased: int,
        seats_remaining: int,
        total_purchased: int,
        total_capacity: int | None = None,
    ) -> bool:
        fields = {"seats_remaining": seats_remaining, "total_purchased": total_purchased}
        if total_capacity is not None:
            fields["total_capacity"] = total_capacity
        # filter(seats_remaining=None) matches IS NULL, i.e. an uninitialized class.
        updated = models.ClassOffering.objects.filter(
            external_id=class_id.value,
            seats_remaining=expected_remaining,
            total_purchased=expected_purchased,
        ).update(**fields, updated_at=timezone.now())
        if updated:
            invalidate_class(class_id.value)
        return bool(updated)

    @_translate_errors
    def set_class_status(self, class_id: ClassId, status: ClassStatus) -> None:
        models.ClassOffering.objects.filter(external_id=class_id.value).update(
            status=status.value, updated_at=timezone.now()
        )

    @_translate_errors
    def save_provisioning(self, class_id: ClassId, provision: ProductProvision) -> None:
        models.ClassOffering.objects.filter(external_id=class_id.value).update(
            product_id=provision.product_id,
            member_price_id=provision.member_price_id,
            non_member_price_id=provision.non_member_price_id,
            payment_link=provision.payment_link,
            updated_at=timezone.now(),
        )

    @_translate_errors
    def get_booking(self, reference: BookingRef) -> Booking | None:
        row = _bookings().filter(reference=reference.value).first()
        return _to_booking(row) if row else None

    @_translate_errors
    def find_booking_by_payment_intent(self, payment_intent_id: str) -> Booking | None:
        row = _bookings().filter(payment_intent_id=payment_intent_id).first()
        return _to_booking(row) if row else None

    @_translate_errors
    def list_bookings(self, exclude_statuses: frozenset[BookingStatus]) -> list[Booking]:
        rows = _bookings().exclude(status__in=[s.value for s in exclude_statuses])
        return [_to_booking(row) for row in rows]

    @_translate_errors
    def create_booking(self, request: BookingRequest, status: BookingStatus) -> Booking:
        offering = models.ClassOffering.objects.filter(external_id=request.class_id.value).first()
        if offering is None:
            raise ClassNotFoundError(request.class_id.value)
        try:
            with transaction.atomic():
                row = models.Booking.objects.create(
                    reference=request.reference.value,
                    class_offering=offering,
                    seat_count=request.seat_count,
                    seats_purchased=request.seat_count,
                    status=status.value,
                    booking_type=request.booking_type.value,
                    amount=request.amount.amount,
                    batch_id=request.batch_id,
                    batch_status=status.value if request.batch_id else "",
                    contact_email=request.contact_email,
                )
                models.Participant.objects.bulk_create(
                    models.Participant(
                        booking=row,
                        name=p.name,
                        email=p.email,
                        phone=p.phone,
                        payment_status=status.value,
                    )
                    for p in request.participants
                )
        except IntegrityError as exc:
            raise ConflictError(f"booking:{request.reference}") from exc
        return self.get_booking(request.reference)

    @_translate_errors
    def transition_booking(
        self,
        reference: BookingRef,
        expected_status: BookingStatus,
        status: BookingStatus,
        **changes: Any,
    ) -> bool:
        unknown = set(changes) - BOOKING_CHANGE_FIELDS
        if unknown:
            raise ValueError(f"Booking fields cannot be changed: {sorted(unknown)}")
        updated = models.Booking.objects.filter(
            reference=reference.value, status=expected_status.value
        ).update(status=status.value, updated_at=timezone.now(), **changes)
        return bool(updated)

    @_translate_errors
    def mirror_status(self, booking: Booking) -> None:
        with transaction.atomic():
            models.Participant.objects.filter(booking__reference=booking.id.value).update(
                payment_status=booking.status.value
            )
            if booking.batch_id:
                models.Booking.objects.filter(batch_id=booking.batch_id).update(
                    batch_status=booking.status.value
                )

    @_translate_errors
    def add_waitlist_entry(self, class_id: ClassId, email: str, name: str = "") -> WaitlistEntry:
        offering = models.ClassOffering.objects.filter(external_id=class_id.value).first()
        if offering is None:
            raise ClassNotFoundError(class_id.value)
        row = models.WaitlistEntry.objects.create(class_offering=offering, email=email, name=name)
        return _to_waitlist(row)

    @_translate_errors
    def list_waiting(self) -> list[WaitlistEntry]:
        rows = models.WaitlistEntry.objects.select_related("class_offering").filter(
            status=WaitlistStatus.YET_TO_NOTIFY.value
        )
        return [_to_waitlist(row) for row in rows]

    @_translate_errors
    def mark_notified(self, entry_id: int) -> bool:
        updated = models.WaitlistEntry.objects.filter(
            pk=entry_id, status=WaitlistStatus.YET_TO_NOTIFY.value
        ).update(status=WaitlistStatus.NOTIFIED.value, notified_at=timezone.now())
        return bool(updated)

    @_translate_errors
    def acquire_lease(self, name: str, holder: str, expires_at: datetime, now: datetime) -> bool:
        models.JobLease.objects.get_or_create(name=name)
        updated = models.JobLease.objects.filter(
            Q(holder="") | Q(expires_at__lte=now), name=name
        ).update(holder=holder, expires_at=expires_at)
        return bool(updated)

    @_translate_errors
    def release_lease(self, name: str, holder: str) -> None:
        models.JobLease.objects.filter(name=name, holder=holder).update(
            holder="", expires_at=None
        )
