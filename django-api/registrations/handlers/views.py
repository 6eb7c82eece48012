"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from types import SimpleNamespace

import structlog
from django.core.cache import cache
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from registrations import bootstrap
from registrations.cache import AVAILABILITY_TIMEOUT, availability_key
from registrations.domain import BookingRef, CancellationIntent, ClassId
from registrations.domain.errors import (
    AlreadyTerminalError,
    ConflictError,
    DomainError,
    InconsistentSeatsError,
    InsufficientCapacityError,
    InvalidPaymentEventError,
    InvalidQuantityError,
    InvalidTransitionError,
    NotFoundError,
    PaymentRejectedError,
    UpstreamUnavailableError,
)
from registrations.handlers.serializers import (
    AvailabilitySerializer,
    BookingRequestSerializer,
    BookingSerializer,
    CancellationSerializer,
    WaitlistEntrySerializer,
    WaitlistSignupSerializer,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidQuantityError, status.HTTP_400_BAD_REQUEST),
    (InvalidPaymentEventError, status.HTTP_400_BAD_REQUEST),
    (InsufficientCapacityError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InconsistentSeatsError, status.HTTP_409_CONFLICT),
    (PaymentRejectedError, status.HTTP_502_BAD_GATEWAY),
    (UpstreamUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def error_response(error: DomainError) -> Response:
    for error_type, http_status in ERROR_STATUS:
        if isinstance(error, error_type):
            break
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    return Response({"code": error.code.value, "message": error.message}, status=http_status)


class PaymentWebhookView(APIView):
    """Handler for POST /api/webhooks/payments"""

    authentication_classes: list = []
    permission_classes: list = []

    def post(self, request: Request) -> Response:
        engine = bootstrap.get_engine()
        signature = request.META.get("HTTP_STRIPE_SIGNATURE", "")
        try:
            event = engine.payments.parse_webhook(request.body, signature)
            if event is None:
                return Response({"status": "ignored", "reason": "unhandled-event-type"})
            outcome = engine.processor.handle(event)
        except DomainError as exc:
            return error_response(exc)
        return Response({"status": outcome.status.value, "reason": outcome.reason})


class BookingListView(APIView):
    """Handler for POST /api/bookings"""

    def post(self, request: Request) -> Response:
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            booking = bootstrap.get_engine().bookings.create_booking(serializer.to_request())
        except DomainError as exc:
            return error_response(exc)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingCancelView(APIView):
    """Handler for POST /api/bookings/{reference}/cancel"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, reference: str) -> Response:
        serializer = CancellationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        intent = (
            CancellationIntent.REFUND
            if serializer.validated_data["refund"]
            else CancellationIntent.NO_REFUND
        )
        bookings = bootstrap.get_engine().bookings
        booking_ref = BookingRef.from_string(reference)
        try:
            booking = bookings.cancel(booking_ref, intent)
        except AlreadyTerminalError:
            logger.info("cancellation_repeated", booking_ref=reference)
            booking = bookings.get_booking(booking_ref)
        except DomainError as exc:
            return error_response(exc)
        return Response(BookingSerializer(booking).data)


class WaitlistView(APIView):
    """Handler for POST /api/waitlist"""

    def post(self, request: Request) -> Response:
        serializer = WaitlistSignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            entry = bootstrap.get_engine().waitlist.add(
                ClassId.from_string(data["class_id"]), data["email"], data["name"]
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(WaitlistEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class ClassAvailabilityView(APIView):
    """Handler for GET /api/classes/{class_id}"""

    def get(self, request: Request, class_id: str) -> Response:
        key = availability_key(class_id)
        cached = cache.get(key)
        if cached is not None:
            return Response(cached)

        engine = bootstrap.get_engine()
        offering = engine.store.get_class(ClassId.from_string(class_id))
        if offering is None:
            return Response(
                {"code": "CLASS_NOT_FOUND", "message": "Class not found"},
                status=status.HTTP_404_NOT_FOUND,
            )
        try:
            counts = engine.ledger.counts(offering.id)
        except InconsistentSeatsError as exc:
            logger.error("class_seats_inconsistent", class_id=class_id)
            return error_response(exc)
        data = AvailabilitySerializer(SimpleNamespace(offering=offering, counts=counts)).data
        cache.set(key, data, AVAILABILITY_TIMEOUT)
        return Response(data)
