"""Order persistence boundary.

``OrderStore`` is the interface the use cases depend on. ``InMemoryOrderStore``
backs development runs and tests; a database-backed store plugs in by
implementing the same protocol and raising ``DataAccessError`` on storage
failures.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Protocol, runtime_checkable

from order_fulfillment.core.events.contracts import OrderStatus
from order_fulfillment.core.exceptions import DataAccessError, NotFoundError

from .models import Order

logger = logging.getLogger(__name__)


@runtime_checkable
class OrderStore(Protocol):
    async def get_by_id(self, order_id: str) -> Order | None: ...

    async def get_all(self) -> list[Order]: ...

    async def add(self, order: Order) -> Order: ...

    async def update(self, order: Order) -> Order: ...

    async def update_status(self, order_id: str, status: OrderStatus) -> None: ...

    async def delete(self, order_id: str) -> None: ...


class InMemoryOrderStore:
    """Dict-backed OrderStore guarded by an asyncio lock.

    Stored orders are copies, so callers cannot mutate persisted state by
    accident.

    Example:
        store = InMemoryOrderStore()
        await store.add(order)
        await store.update_status(order.order_id, OrderStatus.CONFIRMED)
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._lock = asyncio.Lock()

    async def get_by_id(self, order_id: str) -> Order | None:
        async with self._lock:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order else None

    async def get_all(self) -> list[Order]:
        async with self._lock:
            return [copy.deepcopy(order) for order in self._orders.values()]

    async def add(self, order: Order) -> Order:
        async with self._lock:
            if order.order_id in self._orders:
                raise DataAccessError(
                    detail=f"Order {order.order_id} already exists",
                    extra={"order_id": order.order_id},
                )
            self._orders[order.order_id] = copy.deepcopy(order)
        logger.debug("Order stored", extra={"order_id": order.order_id})
        return order

    async def update(self, order: Order) -> Order:
        async with self._lock:
            self._require(order.order_id)
            self._orders[order.order_id] = copy.deepcopy(order)
        return order

    async def update_status(self, order_id: str, status: OrderStatus) -> None:
        async with self._lock:
            self._require(order_id).status = status
        logger.debug("Order status updated", extra={"order_id": order_id, "status": status.value})

    async def delete(self, order_id: str) -> None:
        async with self._lock:
            self._require(order_id)
            del self._orders[order_id]

    def _require(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError(detail=f"Order {order_id} not found", extra={"order_id": order_id})
        return order
