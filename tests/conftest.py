"""
Shared fixtures: built-in menu, fixed tax table, in-memory storage and a
controllable clock.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from kitchenflow.core.config import Settings
from kitchenflow.schemas import LineItemCreate, OrderCreate
from kitchenflow.services.catalog import StaticCatalogService
from kitchenflow.services.events import InMemoryEventPublisher
from kitchenflow.services.fulfillment.service import OrderFulfillmentService
from kitchenflow.services.payment import ConfiguredPaymentMethodService
from kitchenflow.services.repository import InMemoryOrderRepository


class FakeClock:
    """Returns a fixed time until advanced."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int = 1) -> datetime:
        self.now += timedelta(minutes=minutes)
        return self.now


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        env_mode="development",
        order_prefix="CHZ",
        payment_methods="Cash:0.16,Card:0.05,Online:0.05",
        default_payment_method="Cash",
    )


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def catalog():
    return StaticCatalogService()


@pytest.fixture
def payment_methods():
    return ConfiguredPaymentMethodService({
        "Cash": Decimal("0.16"),
        "Card": Decimal("0.05"),
        "Online": Decimal("0.05"),
    })


@pytest.fixture
def repository():
    return InMemoryOrderRepository()


@pytest.fixture
def publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def service(repository, catalog, payment_methods, publisher, clock, settings):
    return OrderFulfillmentService(
        repository=repository,
        catalog=catalog,
        payment_methods=payment_methods,
        publisher=publisher,
        clock=clock,
        settings=settings,
    )


def line(catalog_id: str, quantity: int = 1, **extra) -> LineItemCreate:
    return LineItemCreate(catalog_id=catalog_id, quantity=quantity, **extra)


def cart(*lines: LineItemCreate, **extra) -> OrderCreate:
    return OrderCreate(lines=list(lines), **extra)
