"""Integration events emitted by Sales."""

from __future__ import annotations

from order_fulfillment.core.events.contracts import OrderCreated, OrderItemPayload

from .models import Order


def order_created_from(order: Order) -> OrderCreated:
    """Build the ``OrderCreated`` event for a persisted order."""
    return OrderCreated(
        order_id=order.order_id,
        customer_id=order.customer_id,
        total_amount=order.total_amount,
        created_at=order.created_at,
        items=[
            OrderItemPayload(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
    )
