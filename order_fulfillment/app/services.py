"""Assembles the components of one boundary process.

Each builder wires connection, publisher, stores, use cases and the
consumer registry for its boundary, then hands back a container whose
``start``/``stop`` drive the consumer supervisor and release resources.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from order_fulfillment.core.events.contracts import (
    ORDER_CREATED_QUEUE,
    STOCK_CONFIRMED_QUEUE,
    OrderCreated,
    StockConfirmed,
)
from order_fulfillment.core.settings import QueueSettings, Settings, get_settings
from order_fulfillment.features.inventory import (
    InMemoryProductStore,
    OrderCreatedSubscriber,
    ProcessStockDecrement,
    ProductStore,
)
from order_fulfillment.features.sales import (
    InMemoryOrderStore,
    OrderConfirmedProcess,
    OrderConfirmedSubscriber,
    OrderProcess,
    OrderStore,
)
from order_fulfillment.features.sales.ports import StockGateway
from order_fulfillment.infra.external import StockClient
from order_fulfillment.infra.messaging import (
    INVENTORY_EXCHANGE_NAME,
    STOCK_CONFIRMED_ROUTING_KEY,
    BrokerConnection,
    ConsumerRegistry,
    ConsumerSupervisor,
    GenericEventProducer,
    Publisher,
    default_queues,
    scoped,
)

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Shared plumbing of a boundary process."""

    boundary: str
    connection: BrokerConnection
    publisher: Publisher
    registry: ConsumerRegistry
    supervisor: ConsumerSupervisor
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    def start(self) -> asyncio.Task[None]:
        """Start the consumer supervisor in the background."""
        logger.info("Starting service", extra={"boundary": self.boundary})
        return self.supervisor.start_in_background()

    async def stop(self) -> None:
        """Stop consumers, close clients, then dispose the connection."""
        await self.supervisor.shutdown()
        for close in self.closers:
            await close()
        await self.connection.dispose()
        logger.info("Service stopped", extra={"boundary": self.boundary})


@dataclass
class SalesService(ServiceContainer):
    order_store: OrderStore | None = None
    stock_gateway: StockGateway | None = None
    order_process: OrderProcess | None = None
    order_confirmed: OrderConfirmedProcess | None = None


@dataclass
class InventoryService(ServiceContainer):
    product_store: ProductStore | None = None
    stock_decrement: ProcessStockDecrement | None = None


def _plumbing(settings: Settings) -> tuple[BrokerConnection, Publisher, ConsumerRegistry]:
    connection = BrokerConnection(settings.rabbit)
    return connection, Publisher(connection), ConsumerRegistry()


def _consumed_queues(settings: Settings, boundary: str, registry: ConsumerRegistry) -> list[QueueSettings]:
    """Boundary defaults, each replaced by a configured entry of the same name.

    Other configured entries are supervised only when a consumer is
    registered for them; the rest describe queues this boundary publishes to.
    """
    configured = {queue.name: queue for queue in settings.rabbit.queues}
    queues = [configured.pop(queue.name, queue) for queue in default_queues(boundary)]
    for queue in configured.values():
        if queue.name in registry:
            queues.append(queue)
        else:
            logger.debug("Configured queue is publish-only here", extra={"queue": queue.name, "boundary": boundary})
    return queues


def _supervisor(
    settings: Settings,
    boundary: str,
    connection: BrokerConnection,
    registry: ConsumerRegistry,
) -> ConsumerSupervisor:
    rabbit = settings.rabbit
    return ConsumerSupervisor(
        connection,
        registry,
        _consumed_queues(settings, boundary, registry),
        sweep_interval=rabbit.supervisor_interval,
        startup_delay=rabbit.supervisor_startup_delay,
        prefetch_count=rabbit.prefetch_count,
    )


def build_sales_service(
    settings: Settings | None = None,
    *,
    order_store: OrderStore | None = None,
    stock_gateway: StockGateway | None = None,
) -> SalesService:
    """Wire the Sales boundary.

    Args:
        settings: Settings to use; defaults to the cached unified settings.
        order_store: Order store; defaults to an in-memory store.
        stock_gateway: Stock lookup; defaults to an HTTP StockClient.
    """
    settings = settings or get_settings()
    connection, publisher, registry = _plumbing(settings)
    closers: list[Callable[[], Awaitable[None]]] = []

    store = order_store or InMemoryOrderStore()
    if stock_gateway is None:
        client = StockClient(
            base_url=settings.app.product_url,
            timeout=settings.app.stock_timeout,
            max_retries=settings.app.stock_max_retries,
        )
        closers.append(client.close)
        stock_gateway = client

    producer = GenericEventProducer(publisher, rabbit=settings.rabbit)
    order_process = OrderProcess(store, stock_gateway, producer)
    order_confirmed = OrderConfirmedProcess(store)

    registry.register(
        STOCK_CONFIRMED_QUEUE,
        StockConfirmed,
        scoped(lambda: OrderConfirmedSubscriber(order_confirmed)),
    )

    return SalesService(
        boundary="sales",
        connection=connection,
        publisher=publisher,
        registry=registry,
        supervisor=_supervisor(settings, "sales", connection, registry),
        closers=closers,
        order_store=store,
        stock_gateway=stock_gateway,
        order_process=order_process,
        order_confirmed=order_confirmed,
    )


def build_inventory_service(
    settings: Settings | None = None,
    *,
    product_store: ProductStore | None = None,
) -> InventoryService:
    """Wire the Inventory boundary.

    Confirmations go out on their own exchange and routing key so the
    ``order-created-queue`` binding never receives them.
    """
    settings = settings or get_settings()
    connection, publisher, registry = _plumbing(settings)

    store = product_store or InMemoryProductStore()
    producer = GenericEventProducer(
        publisher,
        exchange=INVENTORY_EXCHANGE_NAME,
        routing_key=STOCK_CONFIRMED_ROUTING_KEY,
        rabbit=settings.rabbit,
    )
    stock_decrement = ProcessStockDecrement(
        store,
        producer,
        legacy_running_total=settings.app.legacy_running_stock_total,
    )

    registry.register(
        ORDER_CREATED_QUEUE,
        OrderCreated,
        scoped(lambda: OrderCreatedSubscriber(stock_decrement)),
    )

    return InventoryService(
        boundary="inventory",
        connection=connection,
        publisher=publisher,
        registry=registry,
        supervisor=_supervisor(settings, "inventory", connection, registry),
        product_store=store,
        stock_decrement=stock_decrement,
    )


def build_service(settings: Settings | None = None) -> ServiceContainer:
    """Wire the boundary named by ``APP_BOUNDARY``."""
    settings = settings or get_settings()
    if settings.app.boundary == "inventory":
        return build_inventory_service(settings)
    return build_sales_service(settings)
