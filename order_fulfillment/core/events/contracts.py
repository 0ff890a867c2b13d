"""Events exchanged between the Sales and Inventory boundaries.

Queue naming contract:
    order-created-queue               OrderCreated, via exchange "order-exchange"
                                      with routing key "order.created"
    inventory-stock-update-confirmed  StockConfirmed, consumed bare by Sales
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar

from pydantic import Field

from .base import IntegrationEvent, IntegrationPayload, Money, ProductId

ORDER_CREATED_QUEUE = "order-created-queue"
STOCK_CONFIRMED_QUEUE = "inventory-stock-update-confirmed"


class OrderStatus(str, Enum):
    """Lifecycle status of a Sales order."""

    CREATED = "Created"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

    @classmethod
    def _missing_(cls, value: object) -> OrderStatus | None:
        # Accept "confirmed", "CONFIRMED", ...
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class OrderItemPayload(IntegrationPayload):
    """One line item of an ``OrderCreated`` event."""

    product_id: ProductId
    product_name: str = ""
    quantity: int
    unit_price: Money = Field(default=0)


class OrderCreated(IntegrationEvent):
    """Published by Sales once per successfully persisted order."""

    queue_name: ClassVar[str | None] = ORDER_CREATED_QUEUE

    order_id: str
    customer_id: str
    total_amount: Money
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    items: list[OrderItemPayload] = Field(default_factory=list)


class StockConfirmed(IntegrationEvent):
    """Published by Inventory once per line item after the stock decrement."""

    queue_name: ClassVar[str | None] = STOCK_CONFIRMED_QUEUE

    order_id: str
    product_id: ProductId
    product_name: str = ""
    quantity_reserved: int
    new_stock_quantity: int
    confirmed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    status: OrderStatus = OrderStatus.CONFIRMED
