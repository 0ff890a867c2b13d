"""Inventory boundary: stock decrement and confirmation."""

from __future__ import annotations

from .models import Product
from .repository import InMemoryProductStore, ProductStore
from .stock_decrement import ProcessStockDecrement
from .subscribers import OrderCreatedSubscriber

__all__ = [
    "InMemoryProductStore",
    "OrderCreatedSubscriber",
    "ProcessStockDecrement",
    "Product",
    "ProductStore",
]
