"""Queue name to payload type dispatch table.

The registry replaces reflection-based consumer discovery: each queue a
service may consume is registered once with its payload type and the scope
that yields its handler.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel

from .consumer import TypedConsumer

if TYPE_CHECKING:
    from .connection import BrokerConnection
    from .consumer import HandlerScope

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class ConsumerBinding(Generic[T]):
    """What to decode and whom to call for one queue."""

    queue_name: str
    payload_type: type[T]
    handler_scope: HandlerScope[T]

    def create_consumer(self, connection: BrokerConnection, *, prefetch_count: int = 1) -> TypedConsumer[T]:
        return TypedConsumer(
            connection,
            self.payload_type,
            self.handler_scope,
            prefetch_count=prefetch_count,
        )


class ConsumerRegistry:
    """Maps queue names to consumer bindings.

    Example:
        registry = ConsumerRegistry()
        registry.register(STOCK_CONFIRMED_QUEUE, StockConfirmed, scoped(make_subscriber))
        consumer = registry.create_consumer(STOCK_CONFIRMED_QUEUE, connection)
    """

    def __init__(self) -> None:
        self._bindings: dict[str, ConsumerBinding[Any]] = {}

    def register(
        self,
        queue_name: str,
        payload_type: type[T],
        handler_scope: HandlerScope[T],
    ) -> ConsumerBinding[T]:
        """Register the binding for ``queue_name``.

        Raises:
            ValueError: If the queue is already registered.
        """
        if queue_name in self._bindings:
            msg = f"Queue '{queue_name}' is already registered"
            raise ValueError(msg)
        binding = ConsumerBinding(queue_name, payload_type, handler_scope)
        self._bindings[queue_name] = binding
        logger.debug(
            "Registered consumer binding",
            extra={"queue": queue_name, "payload_type": payload_type.__name__},
        )
        return binding

    def get(self, queue_name: str) -> ConsumerBinding[Any] | None:
        return self._bindings.get(queue_name)

    def create_consumer(
        self,
        queue_name: str,
        connection: BrokerConnection,
        *,
        prefetch_count: int = 1,
    ) -> TypedConsumer[Any] | None:
        """Build a consumer for ``queue_name``, or None if it is not registered."""
        binding = self.get(queue_name)
        if binding is None:
            return None
        return binding.create_consumer(connection, prefetch_count=prefetch_count)

    @property
    def queue_names(self) -> list[str]:
        return list(self._bindings)

    def __contains__(self, queue_name: object) -> bool:
        return queue_name in self._bindings

    def __iter__(self) -> Iterator[ConsumerBinding[Any]]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)
