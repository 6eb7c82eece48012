"""Stripe implementation of the PaymentGateway."""

import json
from datetime import datetime
from typing import Any, Callable, TypeVar

import stripe
import structlog

from registrations.domain import (
    BookingRef,
    ClassOffering,
    Money,
    PaymentEvent,
    PaymentEventKind,
    ProductProvision,
)
from registrations.domain.errors import (
    InvalidPaymentEventError,
    PaymentRejectedError,
    UpstreamUnavailableError,
)
from registrations.gateways.interfaces import PaymentGateway

logger = structlog.get_logger(__name__)

T = TypeVar("T")

CONFIRMATION_EVENT_TYPES = frozenset(
    {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
)
REFUND_EVENT_TYPES = frozenset({"charge.refunded"})
PAID_STATUSES = frozenset({"paid", "no_payment_required"})

TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


def _object_id(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("id")
    return value or None


def _fully_refunded(charge: dict[str, Any]) -> bool:
    # charge.refunded also fires for partial refunds.
    if charge.get("refunded") is True:
        return True
    refunded, charged = charge.get("amount_refunded"), charge.get("amount")
    return isinstance(refunded, int) and isinstance(charged, int) and refunded >= charged > 0


def event_from_payload(body: dict[str, Any]) -> PaymentEvent | None:
    """Normalize a Stripe event body into a PaymentEvent.

    Returns None for event types and checkout states that do not confirm
    or refund a payment.
    """
    event_type = body.get("type")
    obj = (body.get("data") or {}).get("object") or {}

    if event_type in CONFIRMATION_EVENT_TYPES:
        if obj.get("payment_status") not in PAID_STATUSES:
            return None
        kind = PaymentEventKind.CONFIRMATION
        reference = obj.get("client_reference_id")
        amount = obj.get("amount_total")
    elif event_type in REFUND_EVENT_TYPES:
        kind = PaymentEventKind.REFUND if _fully_refunded(obj) else PaymentEventKind.PARTIAL_REFUND
        reference = (obj.get("metadata") or {}).get("booking_reference")
        amount = obj.get("amount_refunded")
    else:
        return None

    payment_intent_id = _object_id(obj.get("payment_intent"))
    if not reference and not payment_intent_id:
        raise InvalidPaymentEventError("missing-identifiers")

    return PaymentEvent(
        kind=kind,
        event_id=body.get("id") or "",
        reference_id=BookingRef.from_string(reference) if reference else None,
        payment_intent_id=payment_intent_id,
        amount=Money.from_cents(amount) if isinstance(amount, int) else None,
    )


def _session_payload(session: Any) -> dict[str, Any]:
    return {
        "id": f"sweep:{session.id}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "payment_status": getattr(session, "payment_status", None),
                "client_reference_id": getattr(session, "client_reference_id", None),
                "payment_intent": getattr(session, "payment_intent", None),
                "amount_total": getattr(session, "amount_total", None),
            }
        },
    }


class StripePaymentGateway(PaymentGateway):
    """Payment gateway backed by the Stripe API."""

    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        currency: str = "usd",
        timeout: float = 10.0,
        max_network_retries: int = 2,
    ) -> None:
        stripe.api_key = api_key
        stripe.max_network_retries = max_network_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        self._webhook_secret = webhook_secret
        self._currency = currency

        logger.info("stripe_gateway_initialized", currency=currency, timeout=timeout)

    def _call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            logger.warning("stripe_unavailable", operation=operation, error=str(exc))
            raise UpstreamUnavailableError("payment-processor", str(exc)) from exc
        except stripe.StripeError as exc:
            logger.error(
                "stripe_request_failed",
                operation=operation,
                error_code=getattr(exc, "code", None),
                error=str(exc),
            )
            raise PaymentRejectedError(operation, str(exc)) from exc

    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent | None:
        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("webhook_signature_invalid", error=str(exc))
            raise InvalidPaymentEventError("bad-signature") from exc
        except ValueError as exc:
            raise InvalidPaymentEventError("malformed-payload") from exc

        return event_from_payload(json.loads(payload))

    def request_refund(self, payment_intent_id: str, idempotency_key: str) -> str:
        logger.info("refund_requested", payment_intent_id=payment_intent_id)
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id,
                idempotency_key=idempotency_key,
            )
        except stripe.InvalidRequestError as exc:
            if getattr(exc, "code", None) == "charge_already_refunded":
                logger.info("refund_already_done", payment_intent_id=payment_intent_id)
                return ""
            raise UpstreamUnavailableError("payment-processor", str(exc)) from exc
        except stripe.StripeError as exc:
            logger.warning("refund_failed", payment_intent_id=payment_intent_id, error=str(exc))
            raise UpstreamUnavailableError("payment-processor", str(exc)) from exc
        return refund.id

    def list_completed_payments(self, since: datetime) -> list[PaymentEvent]:
        sessions = self._call(
            "list_checkout_sessions",
            stripe.checkout.Session.list,
            created={"gte": int(since.timestamp())},
            status="complete",
            limit=100,
        )
        events = []
        for session in self._call("page_checkout_sessions", list, sessions.auto_paging_iter()):
            try:
                event = event_from_payload(_session_payload(session))
            except InvalidPaymentEventError:
                logger.info("checkout_without_reference", session_id=session.id)
                continue
            if event is not None:
                events.append(event)
        return events

    def provision_product(
        self, offering: ClassOffering, member_price: Money, non_member_price: Money
    ) -> ProductProvision:
        key = str(offering.id)
        product = self._call(
            "create_product",
            stripe.Product.create,
            name=offering.name,
            description=offering.description or "No description provided",
            metadata={"record_id": key},
            idempotency_key=f"product-{key}",
        )
        member = self._call(
            "create_price",
            stripe.Price.create,
            unit_amount=member_price.cents,
            currency=self._currency,
            product=product.id,
            nickname="member",
            idempotency_key=f"price-member-{key}",
        )
        non_member = self._call(
            "create_price",
            stripe.Price.create,
            unit_amount=non_member_price.cents,
            currency=self._currency,
            product=product.id,
            nickname="non-member",
            idempotency_key=f"price-non-member-{key}",
        )
        link = self._call(
            "create_payment_link",
            stripe.PaymentLink.create,
            line_items=[
                {"price": member.id, "quantity": 1},
                {"price": non_member.id, "quantity": 1},
            ],
            idempotency_key=f"payment-link-{key}",
        )
        logger.info("stripe_product_provisioned", class_id=key, product_id=product.id)
        return ProductProvision(
            product_id=product.id,
            member_price_id=member.id,
            non_member_price_id=non_member.id,
            payment_link=link.url,
        )
