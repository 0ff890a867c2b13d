"""Message handlers for events consumed by Inventory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from order_fulfillment.core.events.contracts import OrderCreated

    from .stock_decrement import ProcessStockDecrement

logger = logging.getLogger(__name__)


class OrderCreatedSubscriber:
    """Routes ``OrderCreated`` deliveries to ProcessStockDecrement."""

    def __init__(self, process: ProcessStockDecrement) -> None:
        self._process = process

    async def handle(self, payload: OrderCreated) -> None:
        try:
            await self._process.execute(payload)
        except Exception:
            logger.exception("Failed to process OrderCreated", extra={"order_id": payload.order_id})
            raise
