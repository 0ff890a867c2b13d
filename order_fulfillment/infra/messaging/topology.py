"""Queue topology and idempotent declaration helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from aio_pika import ExchangeType
from aio_pika.exceptions import ChannelPreconditionFailed

from .exceptions import TopologyConflict

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

    from order_fulfillment.core.settings.rabbit import QueueSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueueTopology:
    """Exchange, queue and binding needed for one publish or subscription.

    A topology without ``exchange`` is a bare queue reached through the
    default exchange with the queue name as routing key.
    """

    name: str
    exchange: str | None = None
    routing_key: str | None = None
    durable: bool = True
    auto_delete: bool = False
    exclusive: bool = False
    arguments: dict[str, Any] = field(default_factory=dict)

    @property
    def is_bare(self) -> bool:
        return not self.exchange or not self.routing_key

    @property
    def effective_routing_key(self) -> str:
        """Routing key to publish with."""
        return self.name if self.is_bare else self.routing_key  # type: ignore[return-value]

    @classmethod
    def from_settings(cls, queue: QueueSettings) -> QueueTopology:
        return cls(
            name=queue.name,
            exchange=queue.exchange,
            routing_key=queue.routing_key,
            durable=queue.durable,
            auto_delete=queue.auto_delete,
            exclusive=queue.exclusive,
            arguments=dict(queue.arguments),
        )


@dataclass(frozen=True, slots=True)
class DeclaredTopology:
    """Broker objects returned by declare_topology()."""

    queue: AbstractQueue
    exchange: AbstractExchange | None = None


async def declare_topology(channel: AbstractChannel, topology: QueueTopology) -> DeclaredTopology:
    """Declare exchange, queue and binding on ``channel``.

    Re-declaring with identical arguments is a no-op on the broker. A bare
    topology declares only the queue, which lets a service consume a queue
    owned by another service without knowing its exchange.

    Raises:
        TopologyConflict: If the broker rejects a declaration because the
            entity exists with different arguments.
    """
    try:
        exchange = None
        if not topology.is_bare:
            exchange = await channel.declare_exchange(
                topology.exchange,
                ExchangeType.DIRECT,
                durable=True,
            )

        queue = await channel.declare_queue(
            topology.name,
            durable=topology.durable,
            exclusive=topology.exclusive,
            auto_delete=topology.auto_delete,
            arguments=topology.arguments or None,
        )

        if exchange is not None:
            await queue.bind(exchange, routing_key=topology.routing_key)
    except ChannelPreconditionFailed as exc:
        logger.error(
            "Topology declaration conflicts with existing broker state",
            extra={
                "queue": topology.name,
                "exchange": topology.exchange,
                "routing_key": topology.routing_key,
            },
        )
        raise TopologyConflict(
            detail=f"Conflicting declaration for queue '{topology.name}': {exc}",
            extra={"queue": topology.name, "exchange": topology.exchange},
        ) from exc

    logger.debug(
        "Topology declared",
        extra={
            "queue": topology.name,
            "exchange": topology.exchange,
            "routing_key": topology.routing_key,
        },
    )
    return DeclaredTopology(queue=queue, exchange=exchange)
