"""Background supervisor that keeps configured consumers alive.

The supervisor starts one TypedConsumer per configured queue, then sweeps
every ``sweep_interval`` seconds and restarts any consumer whose channel died.
A consumer that fails to start stays tracked and is retried on the next
sweep, so a broker that is down at deploy time only delays consumption.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .topology import QueueTopology

if TYPE_CHECKING:
    from order_fulfillment.core.settings.rabbit import QueueSettings

    from .connection import BrokerConnection
    from .consumer import TypedConsumer
    from .registry import ConsumerRegistry

logger = logging.getLogger(__name__)


class ConsumerSupervisor:
    """Starts, sweeps and stops the consumers of one service.

    Example:
        supervisor = ConsumerSupervisor(connection, registry, settings.queues)
        task = supervisor.start_in_background()
        ...
        await supervisor.shutdown()
    """

    def __init__(
        self,
        connection: BrokerConnection,
        registry: ConsumerRegistry,
        queues: Sequence[QueueSettings],
        *,
        sweep_interval: float = 30.0,
        startup_delay: float = 5.0,
        prefetch_count: int = 1,
    ) -> None:
        self._connection = connection
        self._registry = registry
        self._queues = list(queues)
        self._sweep_interval = sweep_interval
        self._startup_delay = startup_delay
        self._prefetch_count = prefetch_count

        self._consumers: dict[str, TypedConsumer[Any]] = {}
        self._stopping = asyncio.Event()
        self._sweep_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._shut_down = False

    @property
    def consumers(self) -> Mapping[str, TypedConsumer[Any]]:
        """Read-only view of tracked consumers keyed by queue name."""
        return MappingProxyType(self._consumers)

    @property
    def queues(self) -> list[QueueSettings]:
        """Queues this supervisor was configured to consume."""
        return list(self._queues)

    @property
    def is_stopping(self) -> bool:
        return self._stopping.is_set()

    async def run(self) -> None:
        """Start configured consumers, then sweep until shutdown is requested."""
        if self._startup_delay > 0 and await self._wait_for_stop(self._startup_delay):
            return

        await self._start_configured()

        while not await self._wait_for_stop(self._sweep_interval):
            await self.sweep()

        logger.debug("Consumer supervisor loop exited")

    def start_in_background(self) -> asyncio.Task[None]:
        """Run the supervisor as an asyncio task (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="consumer-supervisor")
        return self._task

    async def sweep(self) -> int:
        """Restart every tracked consumer that is not running.

        Returns:
            Number of consumers successfully restarted.
        """
        restarted = 0
        async with self._sweep_lock:
            for queue_name, consumer in list(self._consumers.items()):
                if self._stopping.is_set():
                    break
                if consumer.is_running:
                    continue

                logger.warning("Consumer not running; restarting", extra={"queue": queue_name})
                try:
                    await consumer.start()
                except Exception as exc:
                    logger.error(
                        "Consumer restart failed; will retry on next sweep",
                        extra={"queue": queue_name, "error": str(exc), "error_type": type(exc).__name__},
                    )
                    continue
                restarted += 1
        return restarted

    async def shutdown(self) -> None:
        """Stop the loop and every tracked consumer. Later calls are no-ops.

        A consumer that fails to stop is logged and does not prevent the
        others from stopping.
        """
        if self._shut_down:
            return
        self._shut_down = True
        self._stopping.set()

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)

        async with self._sweep_lock:
            for queue_name, consumer in self._consumers.items():
                try:
                    await consumer.stop()
                except Exception as exc:
                    logger.error(
                        "Error stopping consumer",
                        extra={"queue": queue_name, "error": str(exc), "error_type": type(exc).__name__},
                    )

        logger.info("Consumer supervisor shut down", extra={"consumers": len(self._consumers)})

    async def _start_configured(self) -> None:
        for queue in self._queues:
            if self._stopping.is_set():
                return

            consumer = self._registry.create_consumer(
                queue.name,
                self._connection,
                prefetch_count=self._prefetch_count,
            )
            if consumer is None:
                logger.warning("No payload type registered for queue; skipping", extra={"queue": queue.name})
                continue

            self._consumers[queue.name] = consumer
            try:
                await consumer.subscribe(QueueTopology.from_settings(queue))
            except Exception as exc:
                logger.error(
                    "Consumer failed to start; will retry on next sweep",
                    extra={"queue": queue.name, "error": str(exc), "error_type": type(exc).__name__},
                )

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds; True if shutdown was requested."""
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True
