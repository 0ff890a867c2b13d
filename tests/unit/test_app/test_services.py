"""Unit tests for boundary wiring."""
from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from order_fulfillment.app import (
    InventoryService,
    SalesService,
    build_inventory_service,
    build_sales_service,
    build_service,
)
from order_fulfillment.core.events import (
    ORDER_CREATED_QUEUE,
    STOCK_CONFIRMED_QUEUE,
    OrderCreated,
    OrderItemPayload,
    OrderStatus,
    StockConfirmed,
)
from order_fulfillment.core.settings import AppSettings, LoggingSettings, QueueSettings, RabbitSettings, Settings
from order_fulfillment.features.inventory import InMemoryProductStore, Product
from order_fulfillment.infra.external import StockClient
from tests.fakes import WIDGET_ID, make_channel


def _settings(boundary: str = "sales", **rabbit) -> Settings:
    return Settings(
        app=AppSettings(boundary=boundary, product_url="http://inventory.test/api"),
        rabbit=RabbitSettings(supervisor_startup_delay=0, **rabbit),
        logging=LoggingSettings(file_enabled=False),
    )


class InStock:
    async def get_available_stock(self, product_id: str) -> int:
        return 100


@pytest.mark.unit
class TestSalesService:
    """Test suite for build_sales_service."""

    async def test_registers_stock_confirmed_queue(self):
        service = build_sales_service(_settings(), stock_gateway=InStock())

        assert isinstance(service, SalesService)
        assert service.registry.queue_names == [STOCK_CONFIRMED_QUEUE]
        assert service.registry.get(STOCK_CONFIRMED_QUEUE).payload_type is StockConfirmed
        await service.stop()

    async def test_default_stock_gateway_is_http_client(self):
        """Test that the StockClient points at the product API and is closed on stop."""
        service = build_sales_service(_settings())
        client = service.stock_gateway

        assert isinstance(client, StockClient)
        assert client.base_url == "http://inventory.test/api/"
        assert len(service.closers) == 1

        await service.stop()
        assert client.client.is_closed

    async def test_confirmation_updates_order_end_to_end(self, order):
        """Test OrderProcess publishing and the registered handler applying a confirmation."""
        service = build_sales_service(_settings(), stock_gateway=InStock())
        channel = make_channel()
        service.connection.create_channel = AsyncMock(return_value=channel)

        result = await service.order_process.handle_order(order)
        assert result.is_success
        assert channel.declare_exchange.await_args.args[0] == "order-exchange"

        async with service.registry.get(STOCK_CONFIRMED_QUEUE).handler_scope() as handler:
            await handler.handle(
                StockConfirmed(order_id="ord-1", product_id=WIDGET_ID, quantity_reserved=5, new_stock_quantity=15)
            )

        assert (await service.order_store.get_by_id("ord-1")).status is OrderStatus.CONFIRMED
        await service.stop()


@pytest.mark.unit
class TestInventoryService:
    """Test suite for build_inventory_service."""

    async def test_registers_order_created_queue(self):
        service = build_inventory_service(_settings("inventory"))

        assert isinstance(service, InventoryService)
        assert service.registry.queue_names == [ORDER_CREATED_QUEUE]
        await service.stop()

    async def test_confirmations_use_inventory_exchange(self):
        """Test that StockConfirmed never routes through the order-created binding."""
        store = InMemoryProductStore([Product(product_id=WIDGET_ID, name="Widget", stock_quantity=20)])
        service = build_inventory_service(_settings("inventory"), product_store=store)
        channel = make_channel()
        service.connection.create_channel = AsyncMock(return_value=channel)
        event = OrderCreated(
            order_id="ord-1",
            customer_id="cust-1",
            total_amount=Decimal("5"),
            items=[OrderItemPayload(product_id=WIDGET_ID, quantity=5)],
        )

        async with service.registry.get(ORDER_CREATED_QUEUE).handler_scope() as handler:
            await handler.handle(event)

        assert channel.declare_exchange.await_args.args[0] == "inventory-exchange"
        assert channel.declare_queue.await_args.args[0] == STOCK_CONFIRMED_QUEUE
        exchange = channel.declare_exchange.return_value
        assert exchange.publish.await_args.kwargs == {"routing_key": "stock.confirmed"}
        assert (await store.get_by_id(WIDGET_ID)).stock_quantity == 15
        await service.stop()


@pytest.mark.unit
class TestBuildService:
    """Test suite for boundary selection and queue configuration."""

    async def test_selects_boundary(self):
        sales = build_service(_settings("sales"))
        inventory = build_service(_settings("inventory"))

        assert isinstance(sales, SalesService)
        assert isinstance(inventory, InventoryService)
        await sales.stop()
        await inventory.stop()

    async def test_configured_queues_replace_defaults(self):
        """Test that a configured entry replaces the boundary default of the same name."""
        queues = [QueueSettings(name=ORDER_CREATED_QUEUE, arguments={"x-dead-letter-exchange": "dlx"})]
        service = build_service(_settings("inventory", queues=queues))

        assert service.supervisor.queues == queues
        await service.stop()

    async def test_stop_disposes_connection(self):
        service = build_service(_settings("inventory"))

        await service.stop()

        assert service.connection.is_disposed
        assert service.supervisor.is_stopping

    async def test_publish_only_queue_keeps_default_consumers(self):
        """Test that listing a queue the boundary only publishes to does not drop its own queue."""
        confirmed = QueueSettings(name=STOCK_CONFIRMED_QUEUE, arguments={"x-dead-letter-exchange": "dlx"})
        service = build_service(_settings("inventory", queues=[confirmed]))

        assert [queue.name for queue in service.supervisor.queues] == [ORDER_CREATED_QUEUE]
        await service.stop()

    async def test_confirmations_declared_with_configured_arguments(self):
        """Test that Inventory declares the confirmation queue the way Sales consumes it."""
        confirmed = QueueSettings(name=STOCK_CONFIRMED_QUEUE, arguments={"x-dead-letter-exchange": "dlx"})
        store = InMemoryProductStore([Product(product_id=WIDGET_ID, name="Widget", stock_quantity=20)])
        service = build_inventory_service(_settings("inventory", queues=[confirmed]), product_store=store)
        channel = make_channel()
        service.connection.create_channel = AsyncMock(return_value=channel)
        event = OrderCreated(
            order_id="ord-1",
            customer_id="cust-1",
            total_amount=Decimal("5"),
            items=[OrderItemPayload(product_id=WIDGET_ID, quantity=5)],
        )

        await service.stock_decrement.execute(event)

        assert channel.declare_queue.await_args.kwargs["arguments"] == {"x-dead-letter-exchange": "dlx"}
        assert channel.declare_exchange.await_args.args[0] == "inventory-exchange"
        await service.stop()
