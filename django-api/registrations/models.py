"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
Seat fields on ClassOffering are written only through the seat ledger.
"""

import uuid

from django.db import models

from registrations.domain.models import (
    BookingStatus,
    BookingType,
    ClassStatus,
    WaitlistStatus,
)


def _choices(enum_cls) -> list[tuple[str, str]]:
    return [(member.value, member.value) for member in enum_cls]


class ClassOffering(models.Model):
    """Persistence model for classes."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    external_id = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    class_type = models.CharField(max_length=100, blank=True, default="")
    instructor_name = models.CharField(max_length=255, blank=True, default="")
    starts_on = models.DateField(null=True, blank=True)
    ends_on = models.DateField(null=True, blank=True)
    start_time = models.CharField(max_length=20, blank=True, default="")
    end_time = models.CharField(max_length=20, blank=True, default="")
    price_member = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    price_non_member = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    price_roii = models.CharField(max_length=100, blank=True, default="")
    total_capacity = models.PositiveIntegerField()
    seats_remaining = models.PositiveIntegerField(null=True, blank=True)
    total_purchased = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=20, choices=_choices(ClassStatus), default=ClassStatus.DRAFT.value
    )
    product_id = models.CharField(max_length=255, blank=True, default="")
    member_price_id = models.CharField(max_length=255, blank=True, default="")
    non_member_price_id = models.CharField(max_length=255, blank=True, default="")
    payment_link = models.URLField(max_length=500, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_on", "name"]
        indexes = [
            models.Index(fields=["status"], name="class_status_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class Booking(models.Model):
    """Persistence model for bookings. Rows are never deleted."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference = models.CharField(max_length=64, unique=True)
    class_offering = models.ForeignKey(
        ClassOffering, on_delete=models.PROTECT, related_name="bookings"
    )
    seat_count = models.PositiveIntegerField()
    seats_purchased = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=30, choices=_choices(BookingStatus), default=BookingStatus.PENDING.value
    )
    booking_type = models.CharField(
        max_length=10, choices=_choices(BookingType), default=BookingType.PAID.value
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    refund_confirmed = models.BooleanField(default=False)
    payment_intent_id = models.CharField(max_length=255, null=True, blank=True)
    batch_id = models.CharField(max_length=64, blank=True, default="")
    batch_status = models.CharField(
        max_length=30, choices=_choices(BookingStatus), blank=True, default=""
    )
    needs_attention = models.BooleanField(default=False)
    contact_email = models.EmailField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="booking_status_idx"),
            models.Index(fields=["payment_intent_id"], name="booking_intent_idx"),
            models.Index(fields=["batch_id"], name="booking_batch_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.reference} ({self.status})"


class Participant(models.Model):
    """One seat of a booking."""

    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name="participants")
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=40, blank=True, default="")
    payment_status = models.CharField(
        max_length=30, choices=_choices(BookingStatus), default=BookingStatus.PENDING.value
    )

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return self.name


class WaitlistEntry(models.Model):
    class_offering = models.ForeignKey(
        ClassOffering, on_delete=models.CASCADE, related_name="waitlist"
    )
    email = models.EmailField()
    name = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=_choices(WaitlistStatus),
        default=WaitlistStatus.YET_TO_NOTIFY.value,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    notified_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "waitlist entries"
        indexes = [
            models.Index(fields=["status"], name="waitlist_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.email} - {self.class_offering}"


class JobLease(models.Model):
    """Mutual exclusion record for a periodic job."""

    name = models.CharField(max_length=64, primary_key=True)
    holder = models.CharField(max_length=64, blank=True, default="")
    expires_at = models.DateTimeField(null=True, blank=True)

    def __str__(self) -> str:
        return self.name
