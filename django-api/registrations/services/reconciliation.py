"""Reconciliation syncer - keeps published listings in line with the Record Store.

Each cycle diffs every publishable class and booking against its listing
and sends only the fields that changed. A field that reads empty at the
source is left alone on the listing. Running a cycle twice with no source
change sends nothing the second time.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

import structlog

from registrations.domain import BookingStatus, ClassOffering, ClassStatus, PublishedListing
from registrations.domain.booking_states import is_publishable
from registrations.domain.errors import (
    InvalidPriceError,
    ListingRejectedError,
    PaymentRejectedError,
)
from registrations.domain.listings import (
    MEMBER,
    NON_MEMBER,
    PUBLISHABLE_CLASS_STATUSES,
    class_listing_fields,
    compute_patch,
    is_empty,
    listing_key,
    purchase_listing_fields,
)
from registrations.gateways.interfaces import (
    CLASSES_COLLECTION,
    PURCHASES_COLLECTION,
    ListingPublisher,
)
from registrations.services.provisioning import CatalogProvisioner
from registrations.stores.interfaces import RecordStore

logger = structlog.get_logger(__name__)

Key = tuple[str, ...]


@dataclass
class SyncReport:
    created: int = 0
    patched: int = 0
    archived: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def patches(self) -> int:
        return self.created + self.patched + self.archived


class ReconciliationSyncer:
    def __init__(
        self,
        store: RecordStore,
        publisher: ListingPublisher,
        provisioner: CatalogProvisioner,
        segments: Iterable[str] = (MEMBER, NON_MEMBER),
    ) -> None:
        self._store = store
        self._publisher = publisher
        self._provisioner = provisioner
        self._segments = tuple(segments)

    def run_cycle(self) -> SyncReport:
        """Run one diff-and-patch pass over classes and purchases.

        Raises:
            UpstreamUnavailableError: If any system cannot be reached; the
                cycle stops and the next scheduled run starts over.
        """
        report = SyncReport()
        self._sync_classes(report)
        self._sync_purchases(report)
        logger.info("reconciliation_cycle_finished", patches=report.patches, **asdict(report))
        return report

    def _sync_classes(self, report: SyncReport) -> None:
        published = self._index(self._publisher.list_listings(CLASSES_COLLECTION), segmented=True)

        for offering in self._store.list_classes(PUBLISHABLE_CLASS_STATUSES):
            if offering.status is ClassStatus.DELETE:
                self._archive_class(offering, published, report)
                continue

            try:
                offering = self._provisioner.provision(offering)
            except (InvalidPriceError, PaymentRejectedError) as exc:
                logger.warning(
                    "class_provisioning_failed", class_id=str(offering.id), code=exc.code.value
                )
                report.failed += 1
                continue

            in_sync = True
            for segment in self._segments:
                fields = class_listing_fields(offering, segment)
                in_sync &= self._sync_listing(
                    CLASSES_COLLECTION, listing_key(fields, segmented=True), fields, published, report
                )

            if in_sync and offering.status in (ClassStatus.PUBLISH, ClassStatus.UPDATED):
                self._store.set_class_status(offering.id, ClassStatus.PUBLISHED)

    def _archive_class(
        self, offering: ClassOffering, published: dict[Key, PublishedListing], report: SyncReport
    ) -> None:
        for segment in self._segments:
            existing = published.get((str(offering.id), segment))
            if existing is None or existing.archived:
                continue
            try:
                self._publisher.patch_listing(
                    CLASSES_COLLECTION, existing.item_id, {}, archived=True
                )
            except ListingRejectedError:
                report.failed += 1
                continue
            report.archived += 1
            logger.info("listing_archived", class_id=str(offering.id), segment=segment)

    def _sync_purchases(self, report: SyncReport) -> None:
        published = self._index(
            self._publisher.list_listings(PURCHASES_COLLECTION), segmented=False
        )
        for booking in self._store.list_bookings(exclude_statuses=frozenset({BookingStatus.PENDING})):
            if not is_publishable(booking.status, booking.refund_confirmed):
                report.skipped += 1
                continue
            fields = purchase_listing_fields(booking)
            self._sync_listing(
                PURCHASES_COLLECTION, listing_key(fields, segmented=False), fields, published, report
            )

    def _sync_listing(
        self,
        collection: str,
        key: Key,
        fields: dict[str, Any],
        published: dict[Key, PublishedListing],
        report: SyncReport,
    ) -> bool:
        existing = published.get(key)
        try:
            if existing is None:
                values = {name: value for name, value in fields.items() if not is_empty(value)}
                self._publisher.create_listing(collection, values)
                report.created += 1
                logger.info("listing_created", collection=collection, key=list(key))
                return True

            patch = compute_patch(fields, existing.fields)
            if not patch and not existing.archived:
                return True
            self._publisher.patch_listing(
                collection,
                existing.item_id,
                patch,
                archived=False if existing.archived else None,
            )
        except ListingRejectedError:
            report.failed += 1
            return False

        report.patched += 1
        logger.info(
            "listing_patched", collection=collection, key=list(key), fields=sorted(patch)
        )
        return True

    @staticmethod
    def _index(listings: list[PublishedListing], segmented: bool) -> dict[Key, PublishedListing]:
        index: dict[Key, PublishedListing] = {}
        for listing in listings:
            key = listing_key(listing.fields, segmented)
            if key is None:
                continue
            if key in index:
                logger.warning("listing_duplicate", key=list(key), item_id=listing.item_id)
                continue
            index[key] = listing
        return index
