"""Durable publishing of integration events.

Every publish declares the topology it needs, sends one persistent message
on its own channel, waits for the broker confirm, and closes the channel.
There is no retry here: callers decide whether to compensate or try again.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika import DeliveryMode

from order_fulfillment.core.events.codec import encode_payload

from .conventions import ORDER_CREATED_ROUTING_KEY, ORDER_EXCHANGE_NAME
from .exceptions import BROKER_ERRORS, BrokerUnreachable, MessagingError, PublishFailed, UnsupportedEventType
from .topology import QueueTopology, declare_topology

if TYPE_CHECKING:
    from pydantic import BaseModel

    from order_fulfillment.core.settings.rabbit import RabbitSettings

    from .connection import BrokerConnection

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"


def build_message(payload: BaseModel) -> aio_pika.Message:
    """Wrap a payload in an AMQP message with the standard envelope.

    The envelope carries a fresh UUID4 message id, the payload class name as
    the ``type`` property, a UTC timestamp and persistent delivery mode.
    """
    return aio_pika.Message(
        body=encode_payload(payload),
        content_type=CONTENT_TYPE_JSON,
        content_encoding="utf-8",
        delivery_mode=DeliveryMode.PERSISTENT,
        message_id=str(uuid.uuid4()),
        timestamp=datetime.now(UTC),
        type=type(payload).__name__,
    )


class Publisher:
    """Publishes payloads over a shared BrokerConnection.

    Example:
        publisher = Publisher(connection)
        await publisher.publish(event, "order-exchange", "order.created", "order-created-queue")
    """

    def __init__(self, connection: BrokerConnection) -> None:
        self._connection = connection

    async def publish(
        self,
        message: BaseModel,
        exchange: str,
        routing_key: str,
        queue_name: str,
        *,
        arguments: dict[str, Any] | None = None,
    ) -> str:
        """Publish ``message`` to ``exchange`` with ``routing_key``.

        The exchange (direct, durable) and queue (durable) are declared and
        bound first, so the message is never dropped for lack of a route.

        Args:
            message: Payload to serialize as camelCase JSON.
            exchange: Direct exchange name.
            routing_key: Routing key; also the binding key for ``queue_name``.
            queue_name: Queue to declare and bind.
            arguments: Extra queue arguments (e.g. dead-letter settings).

        Returns:
            The message id written to the envelope.

        Raises:
            TopologyConflict: If the topology exists with other arguments.
            PublishFailed: For any other channel or connection error, including
                an unreachable broker and a broker nack.
        """
        topology = QueueTopology(
            name=queue_name,
            exchange=exchange,
            routing_key=routing_key,
            arguments=dict(arguments or {}),
        )
        return await self._publish(message, topology)

    async def publish_to_queue(
        self,
        message: BaseModel,
        queue_name: str,
        *,
        arguments: dict[str, Any] | None = None,
    ) -> str:
        """Publish straight to ``queue_name`` through the default exchange."""
        topology = QueueTopology(name=queue_name, arguments=dict(arguments or {}))
        return await self._publish(message, topology)

    async def publish_topology(self, message: BaseModel, topology: QueueTopology) -> str:
        """Publish ``message`` after declaring ``topology`` as given.

        Use this when the queue carries flags or arguments that must match the
        consumer's own declaration.
        """
        return await self._publish(message, topology)

    async def _publish(self, payload: BaseModel, topology: QueueTopology) -> str:
        amqp_message = build_message(payload)
        channel = None
        try:
            channel = await self._connection.create_channel(publisher_confirms=True)
            declared = await declare_topology(channel, topology)
            exchange = declared.exchange or channel.default_exchange
            await exchange.publish(amqp_message, routing_key=topology.effective_routing_key)
        except BrokerUnreachable as exc:
            logger.error(
                "Publish failed: broker unreachable",
                extra={"queue": topology.name, "message_type": amqp_message.type, "error": exc.detail},
            )
            raise PublishFailed(
                detail=f"Failed to publish {amqp_message.type} to '{topology.name}': {exc.detail}",
                extra={"queue": topology.name, "exchange": topology.exchange, "reason": exc.type},
            ) from exc
        except MessagingError:
            raise
        except BROKER_ERRORS as exc:
            logger.error(
                "Publish failed",
                extra={
                    "queue": topology.name,
                    "exchange": topology.exchange,
                    "routing_key": topology.effective_routing_key,
                    "message_type": amqp_message.type,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise PublishFailed(
                detail=f"Failed to publish {amqp_message.type} to '{topology.name}': {exc}",
                extra={"queue": topology.name, "exchange": topology.exchange},
            ) from exc
        finally:
            if channel is not None:
                await _close_quietly(channel)

        logger.info(
            "Message published",
            extra={
                "message_id": amqp_message.message_id,
                "message_type": amqp_message.type,
                "queue": topology.name,
                "exchange": topology.exchange,
                "routing_key": topology.effective_routing_key,
            },
        )
        return amqp_message.message_id  # type: ignore[return-value]


async def _close_quietly(channel: Any) -> None:
    if channel.is_closed:
        return
    try:
        await channel.close()
    except BROKER_ERRORS as exc:
        logger.debug("Channel close failed", extra={"error": str(exc)})


class GenericEventProducer:
    """Publishes events that self-describe their queue.

    The exchange and routing key are fixed per producer; they default to the
    order exchange contract (``order-exchange`` / ``order.created``). When
    ``rabbit`` lists the target queue, its durability flags and arguments are
    declared exactly as the consuming side declares them.

    Example:
        producer = GenericEventProducer(publisher, rabbit=settings.rabbit)
        await producer.publish_event(OrderCreated(...))
    """

    def __init__(
        self,
        publisher: Publisher,
        exchange: str = ORDER_EXCHANGE_NAME,
        routing_key: str = ORDER_CREATED_ROUTING_KEY,
        *,
        rabbit: RabbitSettings | None = None,
    ) -> None:
        self._publisher = publisher
        self._rabbit = rabbit
        self.exchange = exchange
        self.routing_key = routing_key

    def topology_for(self, queue_name: str) -> QueueTopology:
        """Topology this producer declares before publishing to ``queue_name``."""
        queue = self._rabbit.get_queue(queue_name) if self._rabbit is not None else None
        if queue is None:
            return QueueTopology(name=queue_name, exchange=self.exchange, routing_key=self.routing_key)
        return replace(
            QueueTopology.from_settings(queue),
            exchange=self.exchange,
            routing_key=self.routing_key,
        )

    async def publish_event(self, event: BaseModel) -> str:
        """Publish ``event`` to the queue named by its type.

        Raises:
            UnsupportedEventType: If the event type has no ``queue_name``.
        """
        event_type = type(event)
        queue_name = getattr(event_type, "queue_name", None)
        if not queue_name:
            raise UnsupportedEventType(
                detail=f"{event_type.__name__} does not define a queue name",
                extra={"event_type": event_type.__name__},
            )
        return await self._publisher.publish_topology(event, self.topology_for(queue_name))
