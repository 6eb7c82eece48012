"""Creates the payment processor's product, prices and payment link for new classes."""

import structlog

from registrations.domain import ClassOffering, Money
from registrations.domain.errors import InvalidPriceError
from registrations.gateways.interfaces import PaymentGateway
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)


class CatalogProvisioner:
    def __init__(self, store: RecordStore, payments: PaymentGateway) -> None:
        self._store = store
        self._payments = payments

    def provision(self, offering: ClassOffering) -> ClassOffering:
        """Return ``offering`` with payment identifiers, creating them if missing.

        Raises:
            InvalidPriceError: If a member or non-member price is unusable.
            PaymentRejectedError: If the payment processor refuses the class.
            UpstreamUnavailableError: If the payment processor cannot be reached.
        """
        if offering.is_provisioned:
            return offering

        log = logger.bind(class_id=str(offering.id), name=offering.name)
        try:
            member_price = Money.parse(offering.price_member)
            non_member_price = Money.parse(offering.price_non_member)
        except InvalidPriceError as exc:
            log.warning("class_price_invalid", value=repr(exc.value))
            raise

        provision = self._payments.provision_product(offering, member_price, non_member_price)
        self._store.save_provisioning(offering.id, provision)
        log.info("class_provisioned", product_id=provision.product_id)
        return self._store.get_class(offering.id) or offering
