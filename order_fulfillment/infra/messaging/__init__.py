"""Reliable RabbitMQ messaging on aio-pika.

Components (leaves first):
    BrokerConnection     one lock-guarded connection per process
    QueueTopology        idempotent exchange/queue/binding declaration
    Publisher            durable publish with broker confirms
    TypedConsumer        manual-ack consumer decoding one payload type
    ConsumerRegistry     queue name -> payload type and handler
    ConsumerSupervisor   starts consumers and restarts dead ones
"""

from __future__ import annotations

from .connection import BrokerConnection
from .consumer import ConsumerState, ConsumerStats, HandlerScope, MessageHandler, TypedConsumer, scoped
from .conventions import (
    INVENTORY_EXCHANGE_NAME,
    ORDER_CREATED_ROUTING_KEY,
    ORDER_EXCHANGE_NAME,
    STOCK_CONFIRMED_ROUTING_KEY,
    default_queues,
)
from .exceptions import (
    BrokerUnreachable,
    DeserializationFailed,
    HandlerFailed,
    MessagingError,
    NoHandlerRegistered,
    PublishFailed,
    TopologyConflict,
    UnsupportedEventType,
)
from .publisher import GenericEventProducer, Publisher, build_message
from .registry import ConsumerBinding, ConsumerRegistry
from .supervisor import ConsumerSupervisor
from .topology import QueueTopology, declare_topology

__all__ = [
    "INVENTORY_EXCHANGE_NAME",
    "ORDER_CREATED_ROUTING_KEY",
    "ORDER_EXCHANGE_NAME",
    "STOCK_CONFIRMED_ROUTING_KEY",
    "BrokerConnection",
    "BrokerUnreachable",
    "ConsumerBinding",
    "ConsumerRegistry",
    "ConsumerState",
    "ConsumerStats",
    "ConsumerSupervisor",
    "DeserializationFailed",
    "GenericEventProducer",
    "HandlerFailed",
    "HandlerScope",
    "MessageHandler",
    "MessagingError",
    "NoHandlerRegistered",
    "PublishFailed",
    "Publisher",
    "QueueTopology",
    "TopologyConflict",
    "TypedConsumer",
    "UnsupportedEventType",
    "build_message",
    "declare_topology",
    "default_queues",
    "scoped",
]
