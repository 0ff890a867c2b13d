"""Integration events and their JSON codec."""

from __future__ import annotations

from .base import IntegrationEvent, IntegrationPayload, Money, ProductId
from .codec import decode_payload, encode_payload
from .contracts import (
    ORDER_CREATED_QUEUE,
    STOCK_CONFIRMED_QUEUE,
    OrderCreated,
    OrderItemPayload,
    OrderStatus,
    StockConfirmed,
)
from .publisher import EventProducer

__all__ = [
    "ORDER_CREATED_QUEUE",
    "STOCK_CONFIRMED_QUEUE",
    "EventProducer",
    "IntegrationEvent",
    "IntegrationPayload",
    "Money",
    "OrderCreated",
    "OrderItemPayload",
    "OrderStatus",
    "ProductId",
    "StockConfirmed",
    "decode_payload",
    "encode_payload",
]
