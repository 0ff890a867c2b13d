"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings defaults so tests never touch a real broker
    - Broker Fixtures: settings for connection tests (doubles live in tests/fakes.py)
    - Domain Fixtures: in-memory stores and sample orders/products
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

# Ensure tests run without external infrastructure or local config files
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("RABBIT_HOST", "localhost")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("APP_CONFIG_DIR", "/nonexistent/app-conf")
os.environ.setdefault("RABBIT_CONFIG_DIR", "/nonexistent/rabbit-conf")
os.environ.setdefault("LOG_CONFIG_DIR", "/nonexistent/log-conf")

from order_fulfillment.core.settings import RabbitSettings, clear_all_caches  # noqa: E402
from order_fulfillment.features.inventory import InMemoryProductStore, Product  # noqa: E402
from order_fulfillment.features.sales import InMemoryOrderStore, Order  # noqa: E402
from tests.fakes import GADGET_ID, WIDGET_ID  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_settings_caches() -> Iterator[None]:
    """Reset cached settings around every test."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Broker Fixtures
# ============================================================================


@pytest.fixture
def rabbit_settings() -> RabbitSettings:
    """RabbitSettings without startup delay, for connection tests."""
    return RabbitSettings(
        host="rabbit.test",
        connection_timeout=1.0,
        supervisor_startup_delay=0,
    )


# ============================================================================
# Domain Fixtures
# ============================================================================


@pytest.fixture
def order() -> Order:
    """A valid two-item order."""
    order = Order(order_id="ord-1", customer_id="cust-1")
    order.add_item(product_id=WIDGET_ID, quantity=5, unit_price=Decimal("10.00"), product_name="Widget")
    order.add_item(product_id=GADGET_ID, quantity=2, unit_price=Decimal("2.50"), product_name="Gadget")
    order.calculate_total()
    return order


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def product_store() -> InMemoryProductStore:
    return InMemoryProductStore(
        [
            Product(product_id=WIDGET_ID, name="Widget", price=Decimal("10.00"), stock_quantity=20),
            Product(product_id=GADGET_ID, name="Gadget", price=Decimal("2.50"), stock_quantity=3),
        ]
    )


@pytest.fixture
def producer() -> AsyncMock:
    """EventProducer double returning a fixed message id."""
    producer = AsyncMock()
    producer.publish_event = AsyncMock(return_value="msg-id")
    return producer
