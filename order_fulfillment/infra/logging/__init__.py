"""Structured logging: dictConfig + QueueHandler, JSONL output, contextvars context.

Usage:
    from order_fulfillment.infra.logging import setup_logging, log_context

    setup_logging()
    with log_context(queue="order-created-queue"):
        logger.info("Consumer started")
"""

from __future__ import annotations

from .config import complete, configure_logging, setup_logging, shutdown
from .context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    remove_from_log_context,
    set_log_context,
)
from .formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "complete",
    "configure_logging",
    "get_log_context",
    "log_context",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
