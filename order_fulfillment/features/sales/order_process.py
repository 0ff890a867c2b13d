"""Order intake: stock check, persist, publish ``OrderCreated``."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from order_fulfillment.core.events.contracts import OrderStatus
from order_fulfillment.core.exceptions import AppException, DataAccessError, StockLookupError
from order_fulfillment.core.results import Result
from order_fulfillment.infra.messaging.exceptions import MessagingError

from .events import order_created_from

if TYPE_CHECKING:
    from order_fulfillment.core.events.publisher import EventProducer

    from .models import Order
    from .ports import StockGateway
    from .repository import OrderStore

logger = logging.getLogger(__name__)

PROCESSING_ERROR_MESSAGE = "An error occurred while processing the order."


class OrderProcess:
    """Accepts an order when every line item is in stock.

    The whole order is rejected on the first item whose requested quantity
    exceeds the available stock; nothing is persisted or published then.
    An accepted order is persisted first and published second. If the
    publish fails, the stored order is marked ``Failed`` so it is never
    mistaken for one Inventory knows about.

    Example:
        process = OrderProcess(order_store, stock_client, producer)
        result = await process.handle_order(order)
        if result.is_success:
            ...
    """

    def __init__(
        self,
        order_store: OrderStore,
        stock_gateway: StockGateway,
        producer: EventProducer,
    ) -> None:
        self._orders = order_store
        self._stock = stock_gateway
        self._producer = producer

    async def handle_order(self, order: Order) -> Result[Order]:
        extra = {"order_id": order.order_id, "items": len(order.items)}

        errors = order.validation_errors()
        if errors:
            logger.info("Order rejected: invalid", extra={**extra, "errors": errors})
            return Result.fail(" ".join(errors))

        shortage = await self._find_shortage(order)
        if shortage is not None:
            return shortage

        try:
            await self._orders.add(order)
        except DataAccessError:
            logger.exception("Order could not be stored", extra=extra)
            return Result.fail(PROCESSING_ERROR_MESSAGE)

        try:
            message_id = await self._producer.publish_event(order_created_from(order))
        except MessagingError as exc:
            logger.error(
                "OrderCreated publish failed after the order was stored",
                extra={**extra, "error": exc.detail, "error_type": exc.type},
            )
            await self._mark_failed(order)
            return Result.fail(PROCESSING_ERROR_MESSAGE)

        logger.info("Order accepted", extra={**extra, "message_id": message_id})
        return Result.success(order)

    async def _find_shortage(self, order: Order) -> Result[Order] | None:
        for item in order.items:
            try:
                available = await self._stock.get_available_stock(item.product_id)
            except StockLookupError as exc:
                logger.warning(
                    "Stock lookup failed",
                    extra={"order_id": order.order_id, "product_id": item.product_id, "error": exc.detail},
                )
                return Result.fail(PROCESSING_ERROR_MESSAGE)

            if available < item.quantity:
                message = (
                    f"Insufficient stock for product {item.product_id}. "
                    f"Requested: {item.quantity}, Available: {available}"
                )
                logger.info(
                    "Order rejected: insufficient stock",
                    extra={
                        "order_id": order.order_id,
                        "product_id": item.product_id,
                        "requested": item.quantity,
                        "available": available,
                    },
                )
                return Result.fail(message)
        return None

    async def _mark_failed(self, order: Order) -> None:
        try:
            await self._orders.update_status(order.order_id, OrderStatus.FAILED)
        except AppException as exc:
            logger.error(
                "Could not mark unpublished order as failed",
                extra={"order_id": order.order_id, "error": exc.detail, "error_type": exc.type},
            )
            return
        order.status = OrderStatus.FAILED
