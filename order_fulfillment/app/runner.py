"""Process entrypoint: run one boundary until SIGINT/SIGTERM."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from order_fulfillment.core.settings import Settings, get_settings
from order_fulfillment.infra.logging import setup_logging
from order_fulfillment.infra.logging import shutdown as shutdown_logging

from .services import build_service

logger = logging.getLogger(__name__)

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def run_service(
    settings: Settings | None = None,
    *,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Run the configured boundary until ``stop_event`` is set or a signal arrives.

    Consumers are stopped before the connection is disposed, so in-flight
    handlers still settle their message.
    """
    settings = settings or get_settings()
    setup_logging(settings.logging)

    if not settings.rabbit.enabled:
        logger.warning("RabbitMQ integration disabled; nothing to run")
        return

    service = build_service(settings)
    stop = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in _SIGNALS:
        # Not available on every platform's event loop
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    supervisor_task = service.start()
    stop_task = asyncio.create_task(stop.wait(), name="stop-signal")
    try:
        await asyncio.wait({supervisor_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop_task.cancel()
        await service.stop()
        for sig in _SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)

    # Surface a crashed supervisor loop instead of exiting cleanly
    if supervisor_task.done() and not supervisor_task.cancelled():
        supervisor_task.result()


def main() -> None:
    """Console entrypoint (``python -m order_fulfillment``)."""
    try:
        asyncio.run(run_service())
    finally:
        shutdown_logging()
