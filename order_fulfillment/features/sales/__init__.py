"""Sales boundary: order intake and confirmation."""

from __future__ import annotations

from .models import Order, OrderItem
from .order_confirmed import OrderConfirmedProcess
from .order_process import OrderProcess
from .repository import InMemoryOrderStore, OrderStore
from .subscribers import OrderConfirmedSubscriber

__all__ = [
    "InMemoryOrderStore",
    "Order",
    "OrderConfirmedProcess",
    "OrderConfirmedSubscriber",
    "OrderItem",
    "OrderProcess",
    "OrderStore",
]
