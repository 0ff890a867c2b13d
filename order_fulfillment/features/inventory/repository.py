"""Product persistence boundary."""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Protocol, runtime_checkable

from order_fulfillment.core.exceptions import DataAccessError, NotFoundError

from .models import Product

logger = logging.getLogger(__name__)


@runtime_checkable
class ProductStore(Protocol):
    async def get_by_id(self, product_id: str) -> Product | None: ...

    async def get_all(self) -> list[Product]: ...

    async def add(self, product: Product) -> Product: ...

    async def update(self, product: Product) -> Product: ...

    async def update_quantity(self, new_quantity: int, product_id: str) -> None: ...

    async def delete(self, product_id: str) -> None: ...


class InMemoryProductStore:
    """Dict-backed ProductStore guarded by an asyncio lock.

    Example:
        store = InMemoryProductStore([Product(product_id="3fa85f64-5717-4562-b3fc-2c963f66afa6", name="Widget", stock_quantity=20)])
        await store.update_quantity(15, 1)
    """

    def __init__(self, products: list[Product] | None = None) -> None:
        self._products: dict[int, Product] = {
            product.product_id: copy.deepcopy(product) for product in products or []
        }
        self._lock = asyncio.Lock()

    async def get_by_id(self, product_id: str) -> Product | None:
        async with self._lock:
            product = self._products.get(product_id)
            return copy.deepcopy(product) if product else None

    async def get_all(self) -> list[Product]:
        async with self._lock:
            return [copy.deepcopy(product) for product in self._products.values()]

    async def add(self, product: Product) -> Product:
        async with self._lock:
            if product.product_id in self._products:
                raise DataAccessError(
                    detail=f"Product {product.product_id} already exists",
                    extra={"product_id": product.product_id},
                )
            self._products[product.product_id] = copy.deepcopy(product)
        return product

    async def update(self, product: Product) -> Product:
        async with self._lock:
            self._require(product.product_id)
            self._products[product.product_id] = copy.deepcopy(product)
        return product

    async def update_quantity(self, new_quantity: int, product_id: str) -> None:
        async with self._lock:
            self._require(product_id).stock_quantity = new_quantity
        logger.debug("Stock quantity written", extra={"product_id": product_id, "stock_quantity": new_quantity})

    async def delete(self, product_id: str) -> None:
        async with self._lock:
            self._require(product_id)
            del self._products[product_id]

    def _require(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise NotFoundError(detail=f"Product {product_id} not found", extra={"product_id": product_id})
        return product
