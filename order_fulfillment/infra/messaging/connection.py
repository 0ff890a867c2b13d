"""Process-wide RabbitMQ connection.

One BrokerConnection is created per process and shared by every publisher
and consumer. Channels are never shared: each publish and each consumer
opens its own.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aio_pika

from .exceptions import BROKER_ERRORS, BrokerUnreachable

if TYPE_CHECKING:
    from types import TracebackType

    from aio_pika.abc import AbstractChannel, AbstractConnection

    from order_fulfillment.core.settings.rabbit import RabbitSettings

logger = logging.getLogger(__name__)


class BrokerConnection:
    """Lazily opened, lock-guarded AMQP connection.

    With ``automatic_recovery`` enabled the connection is an aio-pika robust
    connection, which reconnects every ``recovery_interval`` seconds and
    restores its channels, queues and consumers after a broker restart.

    Example:
        async with BrokerConnection(get_rabbit_settings()) as connection:
            channel = await connection.create_channel()
    """

    def __init__(self, settings: RabbitSettings) -> None:
        self._settings = settings
        self._connection: AbstractConnection | None = None
        self._lock = asyncio.Lock()
        self._disposed = False

    @property
    def settings(self) -> RabbitSettings:
        return self._settings

    @property
    def is_connected(self) -> bool:
        """True while a connection exists and has not been closed."""
        return self._connection is not None and not self._connection.is_closed

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def ensure_connected(self) -> AbstractConnection:
        """Return the live connection, opening one if needed.

        Concurrent callers share a single connection attempt.

        Raises:
            BrokerUnreachable: If the connection was disposed, or the broker
                could not be reached within ``connection_timeout``.
        """
        if self.is_connected and not self._disposed:
            return self._connection  # type: ignore[return-value]

        async with self._lock:
            if self._disposed:
                raise BrokerUnreachable(
                    detail="Broker connection has been disposed",
                    extra={"host": self._settings.host},
                )
            if self.is_connected:
                return self._connection  # type: ignore[return-value]

            self._connection = await self._open()
            return self._connection

    async def create_channel(self, *, publisher_confirms: bool = True) -> AbstractChannel:
        """Open a new channel on the shared connection.

        Raises:
            BrokerUnreachable: If no connection is available or the channel
                cannot be opened.
        """
        connection = await self.ensure_connected()
        try:
            return await connection.channel(publisher_confirms=publisher_confirms)
        except BROKER_ERRORS as exc:
            raise BrokerUnreachable(
                detail=f"Failed to open channel: {exc}",
                extra={"host": self._settings.host, "error_type": type(exc).__name__},
            ) from exc

    async def dispose(self) -> None:
        """Close the connection. Later calls are no-ops."""
        async with self._lock:
            if self._disposed:
                return
            self._disposed = True
            connection, self._connection = self._connection, None

        if connection is not None and not connection.is_closed:
            await connection.close()
            logger.info(
                "RabbitMQ connection closed",
                extra={"host": self._settings.host, "connection_name": self._settings.connection_name},
            )

    async def _open(self) -> AbstractConnection:
        settings = self._settings
        kwargs: dict[str, Any] = settings.to_connection_config()
        kwargs["timeout"] = settings.connection_timeout

        if settings.automatic_recovery:
            connect = aio_pika.connect_robust
            kwargs["reconnect_interval"] = settings.recovery_interval
        else:
            connect = aio_pika.connect

        try:
            connection = await asyncio.wait_for(connect(**kwargs), timeout=settings.connection_timeout)
        except (*BROKER_ERRORS, OSError, TimeoutError) as exc:
            logger.warning(
                "RabbitMQ unreachable",
                extra={
                    "host": settings.host,
                    "port": settings.port,
                    "vhost": settings.vhost,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise BrokerUnreachable(
                detail=f"Cannot connect to RabbitMQ at {settings.host}:{settings.port}",
                extra={"host": settings.host, "port": settings.port, "vhost": settings.vhost},
            ) from exc

        logger.info(
            "Connected to RabbitMQ",
            extra={
                "host": settings.host,
                "port": settings.port,
                "vhost": settings.vhost,
                "automatic_recovery": settings.automatic_recovery,
            },
        )
        return connection

    async def __aenter__(self) -> BrokerConnection:
        await self.ensure_connected()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()
