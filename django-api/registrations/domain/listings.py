"""Projection of classes and bookings onto published listings, and diffing.

Listing field names follow the publishing system's slugs. Every value is
JSON-native so that what is published compares equal to what is projected.
"""

import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from registrations.domain.models import Booking, ClassOffering, ClassStatus

RECORD_KEY = "record-id"
AUDIENCE_KEY = "audience"

MEMBER = "member"
NON_MEMBER = "non-member"

PUBLISHABLE_CLASS_STATUSES = frozenset(
    {ClassStatus.PUBLISH, ClassStatus.PUBLISHED, ClassStatus.UPDATED, ClassStatus.DELETE}
)


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def _price(value: Decimal | None) -> str | None:
    return f"{value:.2f}" if value is not None else None


def _date(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


def class_listing_fields(offering: ClassOffering, segment: str) -> dict[str, Any]:
    """Fields of the class listing shown to one audience segment."""
    price = offering.price_member if segment == MEMBER else offering.price_non_member
    slug = slugify(offering.name)
    if segment != MEMBER:
        slug = f"{slug}-{segment}"
    return {
        RECORD_KEY: str(offering.id),
        AUDIENCE_KEY: segment,
        "name": offering.name,
        "slug": slug,
        "description": offering.description,
        "location": offering.location,
        "class-type": offering.class_type,
        "instructor-name": offering.instructor_name,
        "date": _date(offering.starts_on),
        "end-date": _date(offering.ends_on),
        "start-time": offering.start_time,
        "end-time": offering.end_time,
        "price": _price(price),
        "price-roii-participants": offering.price_roii,
        "item-id": offering.product_id,
        "payment-link": offering.payment_link,
        "number-of-seats": offering.total_capacity,
        "seats-remaining": offering.seats_remaining,
    }


def purchase_listing_fields(booking: Booking) -> dict[str, Any]:
    names = ", ".join(p.name for p in booking.participants if p.name)
    return {
        RECORD_KEY: str(booking.id),
        "name": names or str(booking.id),
        "slug": slugify(f"purchase {booking.id}"),
        "class-record-id": str(booking.class_id),
        "booking-type": booking.booking_type.value,
        "payment-status": booking.status.value,
        "seats-purchased": booking.seats_purchased,
        "refund-confirmed": booking.refund_confirmed,
        "amount": str(booking.amount),
        "contact-email": booking.contact_email,
    }


def listing_key(fields: Mapping[str, Any], segmented: bool) -> tuple[str, ...] | None:
    """Matching key of a listing, or None when it carries no cross-reference."""
    record_id = fields.get(RECORD_KEY)
    if not record_id:
        return None
    if segmented:
        return (str(record_id), str(fields.get(AUDIENCE_KEY) or MEMBER))
    return (str(record_id),)


def is_empty(value: Any) -> bool:
    """Empty source values never overwrite what is published."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def compute_patch(source: Mapping[str, Any], published: Mapping[str, Any]) -> dict[str, Any]:
    """Fields whose non-empty source value differs from the published one."""
    return {
        name: value
        for name, value in source.items()
        if not is_empty(value) and published.get(name) != value
    }
