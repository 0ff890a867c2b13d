"""Context management for structured logging.

Provides automatic context injection into log records using contextvars, so
the message id, queue and payload type of the delivery being handled show up
on every log line emitted while handling it.

This approach is:
- Async-safe: each asyncio task works on its own copy of the context
- Implicit: no need to thread identifiers through every logging call
- Compatible: works with standard Python logging
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Set logging context for the current asyncio task.

    Example:
        set_log_context(message_id="5f0c...", queue="order-created-queue")
        logger.info("Handling delivery")  # Includes message_id and queue
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Clear all logging context for the current asyncio task."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context for the duration of a block, restoring the previous context after.

    Example:
        with log_context(message_id=message.message_id, queue=queue_name):
            await handler.handle(payload)
    """
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)


class ContextInjectingFilter(logging.Filter):
    """Logging filter that injects the contextvars log context into LogRecords.

    Attached to the QueueHandler so the context is captured on the emitting
    task, before the record crosses over to the listener thread.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            # Explicit extra={...} fields win over context
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
