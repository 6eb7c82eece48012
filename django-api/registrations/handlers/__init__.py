from registrations.handlers.views import (
    BookingCancelView,
    BookingListView,
    ClassAvailabilityView,
    PaymentWebhookView,
    WaitlistView,
)

__all__ = [
    "BookingCancelView",
    "BookingListView",
    "ClassAvailabilityView",
    "PaymentWebhookView",
    "WaitlistView",
]
