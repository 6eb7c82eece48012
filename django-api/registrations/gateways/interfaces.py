"""Interfaces to the external collaborators of the booking engine.

Implementations raise UpstreamUnavailableError for network failures,
timeouts and server-side errors, so callers can abort the current cycle.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from registrations.domain import ClassOffering, Money, PaymentEvent, ProductProvision, PublishedListing

CLASSES_COLLECTION = "classes"
PURCHASES_COLLECTION = "purchases"


class PaymentGateway(ABC):
    """Payment Processor: charges, refunds and products."""

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent | None:
        """Verify and normalize a webhook delivery.

        Returns None for event types the engine does not act on.

        Raises:
            InvalidPaymentEventError: If the signature or payload is invalid.
        """
        ...

    @abstractmethod
    def request_refund(self, payment_intent_id: str, idempotency_key: str) -> str:
        """Refund a payment in full and return the refund identifier."""
        ...

    @abstractmethod
    def list_completed_payments(self, since: datetime) -> list[PaymentEvent]:
        """Return confirmations for checkouts completed after ``since``."""
        ...

    @abstractmethod
    def provision_product(
        self, offering: ClassOffering, member_price: Money, non_member_price: Money
    ) -> ProductProvision:
        """Create a product, its member/non-member prices and a payment link.

        Raises:
            PaymentRejectedError: If the processor refuses this class.
            UpstreamUnavailableError: If the processor cannot be reached.
        """
        ...


class ListingPublisher(ABC):
    """Content Publishing System holding the public listings."""

    @abstractmethod
    def list_listings(self, collection: str) -> list[PublishedListing]:
        ...

    @abstractmethod
    def create_listing(self, collection: str, fields: dict[str, Any]) -> PublishedListing:
        """Create a listing.

        Raises:
            ListingRejectedError: If the publishing system refuses the item.
        """
        ...

    @abstractmethod
    def patch_listing(
        self,
        collection: str,
        item_id: str,
        fields: dict[str, Any],
        archived: bool | None = None,
    ) -> PublishedListing:
        """Update only ``fields`` (and the archive flag when given)."""
        ...


class NotificationSender(ABC):
    """Fire-and-forget message dispatch."""

    @abstractmethod
    def send(self, recipients: list[str], subject: str, body: str) -> None:
        ...
