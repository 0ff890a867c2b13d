"""Stock decrement for newly created orders."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from order_fulfillment.core.events.contracts import OrderStatus, StockConfirmed

if TYPE_CHECKING:
    from order_fulfillment.core.events.contracts import OrderCreated
    from order_fulfillment.core.events.publisher import EventProducer

    from .repository import ProductStore

logger = logging.getLogger(__name__)


class ProcessStockDecrement:
    """Decrements stock for every line item and confirms each one.

    Stock is not re-validated here: Sales checked availability before
    publishing, so the new quantity may go negative. A missing product is
    logged and left alone, but its line item is still confirmed.

    ``newStockQuantity`` on each confirmation is the product's stock after
    the decrement (0 for a missing product). With ``legacy_running_total``
    it is the total quantity ordered across all line items instead, for
    consumers that still read it that way.
    """

    def __init__(
        self,
        product_store: ProductStore,
        producer: EventProducer,
        *,
        legacy_running_total: bool = False,
    ) -> None:
        self._products = product_store
        self._producer = producer
        self._legacy_running_total = legacy_running_total

    async def execute(self, order_created: OrderCreated) -> list[StockConfirmed]:
        """Apply ``order_created`` and publish one StockConfirmed per item.

        Returns:
            The confirmations, in line item order, after all were published.
        """
        order_id = order_created.order_id
        ordered_total = sum(item.quantity for item in order_created.items)
        logger.info(
            "Processing OrderCreated",
            extra={"order_id": order_id, "items": len(order_created.items)},
        )

        confirmations: list[StockConfirmed] = []
        for item in order_created.items:
            product = await self._products.get_by_id(item.product_id)
            if product is None:
                logger.warning(
                    "Product not found; stock left unchanged",
                    extra={"order_id": order_id, "product_id": item.product_id},
                )
                new_quantity = 0
            else:
                new_quantity = product.stock_quantity - item.quantity
                await self._products.update_quantity(new_quantity, item.product_id)

            confirmation = StockConfirmed(
                order_id=order_id,
                product_id=item.product_id,
                product_name=item.product_name or (product.name if product else ""),
                quantity_reserved=item.quantity,
                new_stock_quantity=ordered_total if self._legacy_running_total else new_quantity,
                status=OrderStatus.CONFIRMED,
            )
            await self._producer.publish_event(confirmation)
            confirmations.append(confirmation)
            logger.info(
                "StockConfirmed published",
                extra={
                    "order_id": order_id,
                    "product_id": item.product_id,
                    "new_stock_quantity": confirmation.new_stock_quantity,
                },
            )

        return confirmations
