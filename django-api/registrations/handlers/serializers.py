"""Serializers for registration input and for domain models in API responses."""

import uuid

from rest_framework import serializers

from registrations.domain import (
    BookingRef,
    BookingRequest,
    BookingType,
    ClassId,
    Money,
    Participant,
)
from registrations.domain.errors import InvalidPriceError


class ParticipantSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True, default="")
    payment_status = serializers.CharField(source="payment_status.value", read_only=True)


class BookingRequestSerializer(serializers.Serializer):
    """Input for POST /api/bookings."""

    reference = serializers.CharField(max_length=64, required=False)
    class_id = serializers.CharField(max_length=64)
    seat_count = serializers.IntegerField(min_value=1)
    booking_type = serializers.ChoiceField(
        choices=[t.value for t in BookingType], default=BookingType.PAID.value
    )
    amount = serializers.CharField(required=False, default="0")
    contact_email = serializers.EmailField(required=False, allow_blank=True, default="")
    batch_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    participants = ParticipantSerializer(many=True, required=False, default=list)

    def validate_amount(self, value: str) -> Money:
        try:
            return Money.parse(value)
        except InvalidPriceError:
            raise serializers.ValidationError("Amount must be a non-negative number") from None

    def validate(self, attrs):
        if len(attrs["participants"]) > attrs["seat_count"]:
            raise serializers.ValidationError("More participants than seats")
        return attrs

    def to_request(self) -> BookingRequest:
        data = self.validated_data
        return BookingRequest(
            reference=BookingRef.from_string(data.get("reference") or uuid.uuid4().hex),
            class_id=ClassId.from_string(data["class_id"]),
            seat_count=data["seat_count"],
            booking_type=BookingType(data["booking_type"]),
            amount=data["amount"],
            contact_email=data["contact_email"],
            batch_id=data["batch_id"],
            participants=tuple(
                Participant(name=p["name"], email=p["email"], phone=p["phone"])
                for p in data["participants"]
            ),
        )


class BookingSerializer(serializers.Serializer):
    """Serializer for Booking domain model."""

    reference = serializers.CharField(source="id.value")
    class_id = serializers.CharField(source="class_id.value")
    seat_count = serializers.IntegerField()
    seats_purchased = serializers.IntegerField()
    status = serializers.CharField(source="status.value")
    booking_type = serializers.CharField(source="booking_type.value")
    amount = serializers.CharField()
    refund_confirmed = serializers.BooleanField()
    needs_attention = serializers.BooleanField()
    batch_id = serializers.CharField()
    participants = ParticipantSerializer(many=True)


class CancellationSerializer(serializers.Serializer):
    refund = serializers.BooleanField(required=True)


class WaitlistSignupSerializer(serializers.Serializer):
    class_id = serializers.CharField(max_length=64)
    email = serializers.EmailField()
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class WaitlistEntrySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    class_id = serializers.CharField(source="class_id.value")
    email = serializers.EmailField()
    status = serializers.CharField(source="status.value")


class AvailabilitySerializer(serializers.Serializer):
    """Serializer for a class and its current seat counts."""

    class_id = serializers.CharField(source="offering.id.value")
    name = serializers.CharField(source="offering.name")
    status = serializers.CharField(source="offering.status.value")
    total_capacity = serializers.IntegerField(source="counts.total_capacity")
    seats_remaining = serializers.IntegerField(source="counts.seats_remaining")
    total_purchased = serializers.IntegerField(source="counts.total_purchased")
