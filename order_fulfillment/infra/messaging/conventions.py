"""Exchange, routing key and queue naming contract shared by both boundaries.

These names must match across services for the choreography to work:

    order-created-queue               bound to "order-exchange" on "order.created"
    inventory-stock-update-confirmed  declared bare by Sales; Inventory binds it
                                      to "inventory-exchange" on "stock.confirmed"
"""

from __future__ import annotations

from order_fulfillment.core.events.contracts import ORDER_CREATED_QUEUE, STOCK_CONFIRMED_QUEUE
from order_fulfillment.core.settings.rabbit import QueueSettings

# ──────────────────────────────────────────────────────────────────────────────
# Exchanges and routing keys
# ──────────────────────────────────────────────────────────────────────────────

ORDER_EXCHANGE_NAME = "order-exchange"
ORDER_CREATED_ROUTING_KEY = "order.created"

INVENTORY_EXCHANGE_NAME = "inventory-exchange"
STOCK_CONFIRMED_ROUTING_KEY = "stock.confirmed"

# ──────────────────────────────────────────────────────────────────────────────
# Queues consumed by each boundary when none are configured
# ──────────────────────────────────────────────────────────────────────────────

SALES_QUEUES: tuple[QueueSettings, ...] = (
    QueueSettings(name=STOCK_CONFIRMED_QUEUE),
)

INVENTORY_QUEUES: tuple[QueueSettings, ...] = (
    QueueSettings(
        name=ORDER_CREATED_QUEUE,
        exchange=ORDER_EXCHANGE_NAME,
        routing_key=ORDER_CREATED_ROUTING_KEY,
    ),
)


def default_queues(boundary: str) -> list[QueueSettings]:
    """Return the queues a boundary consumes by default.

    Args:
        boundary: "sales" or "inventory".

    Raises:
        ValueError: For an unknown boundary.
    """
    if boundary == "sales":
        return list(SALES_QUEUES)
    if boundary == "inventory":
        return list(INVENTORY_QUEUES)
    msg = f"Unknown boundary: {boundary!r}"
    raise ValueError(msg)
