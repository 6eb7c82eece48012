"""Wires stores, gateways and services together from Django settings."""

import functools
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from django.conf import settings

from registrations.gateways.email_sender import EmailNotificationSender
from registrations.gateways.interfaces import (
    CLASSES_COLLECTION,
    PURCHASES_COLLECTION,
    ListingPublisher,
    NotificationSender,
    PaymentGateway,
)
from registrations.gateways.stripe_gateway import StripePaymentGateway
from registrations.gateways.webflow_publisher import WebflowPublisher
from registrations.services.alerts import OperatorAlerts
from registrations.services.booking_service import BookingService
from registrations.services.job_guard import JobGuard
from registrations.services.payment_events import PaymentEventProcessor
from registrations.services.provisioning import CatalogProvisioner
from registrations.services.reconciliation import ReconciliationSyncer
from registrations.services.seat_ledger import SeatLedger
from registrations.services.waitlist import WaitlistNotifier
from registrations.services.worker import ScheduledJob, Worker
from registrations.stores.django_store import DjangoRecordStore
from registrations.stores.interfaces import RecordStore


@dataclass
class Engine:
    store: RecordStore
    payments: PaymentGateway
    publisher: ListingPublisher
    sender: NotificationSender
    ledger: SeatLedger
    bookings: BookingService
    processor: PaymentEventProcessor
    syncer: ReconciliationSyncer
    waitlist: WaitlistNotifier
    guard: JobGuard


def build_engine(
    store: RecordStore,
    payments: PaymentGateway,
    publisher: ListingPublisher,
    sender: NotificationSender,
    config: dict[str, Any],
    operators: list[str],
) -> Engine:
    alerts = OperatorAlerts(sender, operators)
    ledger = SeatLedger(store, max_attempts=config["LEDGER_MAX_ATTEMPTS"])
    bookings = BookingService(
        store, ledger, payments, alerts, fan_out_attempts=config["FAN_OUT_ATTEMPTS"]
    )
    return Engine(
        store=store,
        payments=payments,
        publisher=publisher,
        sender=sender,
        ledger=ledger,
        bookings=bookings,
        processor=PaymentEventProcessor(store, bookings, payments, alerts),
        syncer=ReconciliationSyncer(
            store,
            publisher,
            CatalogProvisioner(store, payments),
            segments=config["AUDIENCE_SEGMENTS"],
        ),
        waitlist=WaitlistNotifier(store, ledger, sender),
        guard=JobGuard(store, ttl=timedelta(seconds=config["LEASE_TTL_SECONDS"])),
    )


@functools.lru_cache(maxsize=1)
def get_engine() -> Engine:
    config = settings.REGISTRATIONS
    return build_engine(
        store=DjangoRecordStore(),
        payments=StripePaymentGateway(
            api_key=config["STRIPE_API_KEY"],
            webhook_secret=config["STRIPE_WEBHOOK_SECRET"],
            currency=config["CURRENCY"],
            timeout=config["NETWORK_TIMEOUT"],
        ),
        publisher=WebflowPublisher(
            api_token=config["WEBFLOW_API_TOKEN"],
            collections={
                CLASSES_COLLECTION: config["WEBFLOW_CLASSES_COLLECTION_ID"],
                PURCHASES_COLLECTION: config["WEBFLOW_PURCHASES_COLLECTION_ID"],
            },
            timeout=config["NETWORK_TIMEOUT"],
        ),
        sender=EmailNotificationSender(settings.DEFAULT_FROM_EMAIL),
        config=config,
        operators=[email for _, email in settings.ADMINS],
    )


def build_worker(engine: Engine, config: dict[str, Any]) -> Worker:
    lookback = timedelta(minutes=config["PAYMENT_SWEEP_LOOKBACK_MINUTES"])

    def payment_sweep() -> object:
        return engine.processor.sweep(since=datetime.now(timezone.utc) - lookback)

    jobs = [
        ScheduledJob(
            "payment-sweep",
            timedelta(seconds=config["PAYMENT_SWEEP_INTERVAL_SECONDS"]),
            payment_sweep,
        ),
        ScheduledJob(
            "reconciliation",
            timedelta(seconds=config["RECONCILIATION_INTERVAL_SECONDS"]),
            engine.syncer.run_cycle,
        ),
        ScheduledJob(
            "waitlist",
            timedelta(seconds=config["WAITLIST_INTERVAL_SECONDS"]),
            engine.waitlist.run_cycle,
        ),
    ]
    return Worker(jobs, engine.guard)
