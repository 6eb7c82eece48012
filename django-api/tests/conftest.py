"""Pytest configuration and shared fixtures."""

import pytest
from django.conf import settings
from rest_framework.test import APIClient

from fakes import FakePaymentGateway, FakePublisher, FakeSender, InMemoryRecordStore
from registrations import bootstrap
from registrations.stores.django_store import DjangoRecordStore

OPERATORS = ["ops@example.com"]


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def payments() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def engine(store, payments, publisher, sender) -> bootstrap.Engine:
    """Engine wired to in-memory fakes."""
    return bootstrap.build_engine(
        store, payments, publisher, sender, settings.REGISTRATIONS, OPERATORS
    )


@pytest.fixture
def db_engine(db, payments, publisher, sender, monkeypatch) -> bootstrap.Engine:
    """Engine on the test database, installed as the one the API handlers use."""
    engine = bootstrap.build_engine(
        DjangoRecordStore(), payments, publisher, sender, settings.REGISTRATIONS, OPERATORS
    )
    monkeypatch.setattr(bootstrap, "get_engine", lambda: engine)
    return engine
