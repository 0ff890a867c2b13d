"""Typed queue consumer with manual acknowledgement.

Each TypedConsumer owns one channel and one subscription. Messages are
decoded into a single payload type and handed to a handler resolved per
delivery, then settled:

    undecodable body       -> nack(requeue=False)
    no handler available   -> nack(requeue=False)
    handler returns        -> ack
    handler raises         -> nack(requeue=True)

Errors never escape the delivery callback, so a failing handler cannot kill
the subscription.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

from pydantic import BaseModel

from order_fulfillment.core.events.codec import decode_payload
from order_fulfillment.infra.logging.context import log_context

from .exceptions import BROKER_ERRORS, DeserializationFailed, HandlerFailed, NoHandlerRegistered
from .topology import QueueTopology, declare_topology

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractIncomingMessage, AbstractQueue

    from .connection import BrokerConnection

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
T_contra = TypeVar("T_contra", bound=BaseModel, contravariant=True)


class MessageHandler(Protocol[T_contra]):
    """Handles one decoded payload. Raising requeues the message."""

    async def handle(self, payload: T_contra) -> None: ...


HandlerScope = Callable[[], AbstractAsyncContextManager[MessageHandler[T] | None]]
"""Opens a fresh scope per delivery and yields the handler, or None if there is none."""


def scoped(factory: Callable[[], MessageHandler[T] | None]) -> HandlerScope[T]:
    """Adapt a plain handler factory into a HandlerScope.

    Example:
        scope = scoped(lambda: OrderCreatedSubscriber(process_stock_decrement))
    """

    @asynccontextmanager
    async def scope() -> AsyncIterator[MessageHandler[T] | None]:
        yield factory()

    return scope


class ConsumerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(slots=True)
class ConsumerStats:
    """Delivery counters for diagnostics."""

    delivered: int = 0
    acked: int = 0
    requeued: int = 0
    dropped: int = 0


class TypedConsumer(Generic[T]):
    """Consumes one queue, decoding every body into ``payload_type``.

    ``start``/``stop`` are idempotent and serialized by an internal lock, so a
    supervisor restart can never race an explicit start or stop.

    Example:
        consumer = TypedConsumer(connection, OrderCreated, scoped(make_handler))
        await consumer.start_consuming("order-created-queue", "order-exchange", "order.created")
    """

    def __init__(
        self,
        connection: BrokerConnection,
        payload_type: type[T],
        handler_scope: HandlerScope[T],
        *,
        prefetch_count: int = 1,
    ) -> None:
        self._connection = connection
        self._payload_type = payload_type
        self._handler_scope = handler_scope
        self._prefetch_count = prefetch_count

        self._lock = asyncio.Lock()
        self._state = ConsumerState.STOPPED
        self._target: QueueTopology | None = None
        self._channel: AbstractChannel | None = None
        self._queue: AbstractQueue | None = None
        self._consumer_tag: str | None = None
        self.stats = ConsumerStats()

    # ─────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────
    @property
    def payload_type(self) -> type[T]:
        return self._payload_type

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def target(self) -> QueueTopology | None:
        """The subscription recorded by the last start_consuming call."""
        return self._target

    @property
    def consumer_tag(self) -> str | None:
        return self._consumer_tag

    @property
    def is_running(self) -> bool:
        """True when started and the channel is still open."""
        return (
            self._state is ConsumerState.RUNNING
            and self._channel is not None
            and not self._channel.is_closed
        )

    # ─────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────
    async def start(self) -> None:
        """Open a channel and (re)subscribe the recorded target, if any.

        A consumer whose channel died is restarted on a fresh channel.

        Raises:
            BrokerUnreachable: If no channel can be opened.
            TopologyConflict: If the queue exists with other arguments.
        """
        async with self._lock:
            await self._start_locked()

    async def stop(self) -> None:
        """Cancel the subscription and close the channel."""
        async with self._lock:
            if self._state is ConsumerState.STOPPED:
                logger.warning("Consumer is not running", extra=self._log_extra())
                return

            if self._queue is not None and self._consumer_tag is not None and self._channel_open:
                try:
                    await self._queue.cancel(self._consumer_tag)
                except BROKER_ERRORS as exc:
                    logger.warning(
                        "Failed to cancel consumer",
                        extra={**self._log_extra(), "error": str(exc)},
                    )

            await self._release_channel()
            self._state = ConsumerState.STOPPED
            logger.info("Consumer stopped", extra=self._log_extra())

    async def start_consuming(
        self,
        queue_name: str,
        exchange: str | None = None,
        routing_key: str | None = None,
    ) -> None:
        """Subscribe to ``queue_name``.

        Without ``exchange``/``routing_key`` the queue is declared bare, which
        lets a service consume a queue owned by another service.
        """
        await self.subscribe(QueueTopology(name=queue_name, exchange=exchange, routing_key=routing_key))

    async def subscribe(self, topology: QueueTopology) -> None:
        """Record ``topology`` as the target and subscribe to it.

        The target is recorded before anything touches the broker, so a failed
        attempt can be retried later with a plain ``start()``.
        """
        async with self._lock:
            previous, self._target = self._target, topology

            if not self.is_running:
                await self._start_locked()
                return

            if previous == topology and self._consumer_tag is not None:
                logger.warning("Consumer already subscribed", extra=self._log_extra())
                return

            if self._consumer_tag is not None and self._queue is not None:
                await self._queue.cancel(self._consumer_tag)
                self._consumer_tag = None
            await self._subscribe(self._channel, topology)  # type: ignore[arg-type]

    # ─────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────
    @property
    def _channel_open(self) -> bool:
        return self._channel is not None and not self._channel.is_closed

    async def _start_locked(self) -> None:
        if self.is_running:
            logger.warning("Consumer already running", extra=self._log_extra())
            return

        # A dead channel from a previous run is dropped before reconnecting
        await self._release_channel()
        self._state = ConsumerState.STARTING
        try:
            self._channel = await self._connection.create_channel(publisher_confirms=False)
            if self._target is not None:
                await self._subscribe(self._channel, self._target)
        except BaseException:
            await self._release_channel()
            self._state = ConsumerState.STOPPED
            raise

        self._state = ConsumerState.RUNNING
        logger.info("Consumer started", extra=self._log_extra())

    async def _subscribe(self, channel: AbstractChannel, topology: QueueTopology) -> None:
        declared = await declare_topology(channel, topology)
        await channel.set_qos(prefetch_count=self._prefetch_count)
        self._queue = declared.queue
        self._consumer_tag = await declared.queue.consume(self._on_message, no_ack=False)
        logger.info(
            "Subscribed to queue",
            extra={**self._log_extra(), "consumer_tag": self._consumer_tag},
        )

    async def _release_channel(self) -> None:
        channel, self._channel = self._channel, None
        self._queue = None
        self._consumer_tag = None
        if channel is None or channel.is_closed:
            return
        try:
            await channel.close()
        except BROKER_ERRORS as exc:
            logger.debug("Channel close failed", extra={**self._log_extra(), "error": str(exc)})

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        queue_name = self._target.name if self._target else None
        with log_context(
            message_id=message.message_id,
            queue=queue_name,
            payload_type=self._payload_type.__name__,
        ):
            self.stats.delivered += 1
            await self._dispatch(message)

    async def _dispatch(self, message: AbstractIncomingMessage) -> None:
        try:
            await self._process(message)
        except DeserializationFailed as exc:
            logger.error(
                "Dropping message: %s",
                exc.detail,
                extra={**exc.extra, "error_type": exc.type, "redelivered": message.redelivered},
            )
            await self._settle(message, requeue=False)
        except NoHandlerRegistered as exc:
            logger.warning("Dropping message: %s", exc.detail, extra={"error_type": exc.type})
            await self._settle(message, requeue=False)
        except HandlerFailed as exc:
            logger.error(
                "Handler failed; requeueing message",
                exc_info=exc.__cause__,
                extra={**exc.extra, "error_type": exc.type, "redelivered": message.redelivered},
            )
            await self._settle(message, requeue=True)
        else:
            await self._settle(message, ack=True)

    async def _process(self, message: AbstractIncomingMessage) -> None:
        payload_name = self._payload_type.__name__
        try:
            payload = decode_payload(self._payload_type, message.body)
        except ValueError as exc:
            raise DeserializationFailed(
                detail=f"Body is not a valid {payload_name}",
                extra={"error": str(exc)},
            ) from exc

        try:
            async with self._handler_scope() as handler:
                if handler is None:
                    raise NoHandlerRegistered(detail=f"No handler available for {payload_name}")
                await handler.handle(payload)
        except NoHandlerRegistered:
            raise
        except Exception as exc:
            raise HandlerFailed(
                detail=f"{payload_name} handler raised {type(exc).__name__}",
                extra={"error": str(exc)},
            ) from exc

    async def _settle(self, message: AbstractIncomingMessage, *, ack: bool = False, requeue: bool = False) -> None:
        try:
            if ack:
                await message.ack()
            else:
                await message.nack(requeue=requeue)
        except BROKER_ERRORS as exc:
            # Unsettled deliveries return to the queue when the channel closes
            logger.warning("Failed to settle message", extra={"error": str(exc), "ack": ack})
            return

        if ack:
            self.stats.acked += 1
            logger.debug("Message acknowledged")
        elif requeue:
            self.stats.requeued += 1
        else:
            self.stats.dropped += 1

    def _log_extra(self) -> dict[str, object]:
        return {
            "queue": self._target.name if self._target else None,
            "payload_type": self._payload_type.__name__,
            "state": self._state.value,
        }
