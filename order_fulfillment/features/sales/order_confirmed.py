"""Applies stock confirmations to Sales orders."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from order_fulfillment.core.results import Result

if TYPE_CHECKING:
    from order_fulfillment.core.events.contracts import OrderStatus

    from .repository import OrderStore

logger = logging.getLogger(__name__)


class OrderConfirmedProcess:
    """Persists the status carried by a stock confirmation.

    Store errors propagate so the delivering consumer requeues the message.
    """

    def __init__(self, order_store: OrderStore) -> None:
        self._orders = order_store

    async def handle_order(self, order_id: str, status: OrderStatus) -> Result[None]:
        await self._orders.update_status(order_id, status)
        logger.info("Order status updated", extra={"order_id": order_id, "status": status.value})
        return Result.success(None)
