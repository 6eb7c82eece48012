from django.urls import path

from registrations.handlers import (
    BookingCancelView,
    BookingListView,
    ClassAvailabilityView,
    PaymentWebhookView,
    WaitlistView,
)

urlpatterns = [
    path("webhooks/payments", PaymentWebhookView.as_view(), name="payment-webhook"),
    path("bookings", BookingListView.as_view(), name="booking-list"),
    path(
        "bookings/<str:reference>/cancel",
        BookingCancelView.as_view(),
        name="booking-cancel",
    ),
    path("waitlist", WaitlistView.as_view(), name="waitlist"),
    path("classes/<str:class_id>", ClassAvailabilityView.as_view(), name="class-availability"),
]
