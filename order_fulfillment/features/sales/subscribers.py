"""Message handlers for events consumed by Sales."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from order_fulfillment.core.events.contracts import StockConfirmed

    from .order_confirmed import OrderConfirmedProcess

logger = logging.getLogger(__name__)


class OrderConfirmedSubscriber:
    """Routes ``StockConfirmed`` deliveries to OrderConfirmedProcess."""

    def __init__(self, process: OrderConfirmedProcess) -> None:
        self._process = process

    async def handle(self, payload: StockConfirmed) -> None:
        try:
            await self._process.handle_order(payload.order_id, payload.status)
        except Exception:
            logger.exception(
                "Failed to apply stock confirmation",
                extra={"order_id": payload.order_id, "product_id": payload.product_id},
            )
            raise
