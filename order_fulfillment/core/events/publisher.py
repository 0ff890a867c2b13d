"""Publishing port used by the use cases.

Use cases depend on this protocol rather than on the broker; the messaging
layer's ``GenericEventProducer`` implements it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .base import IntegrationEvent


class EventProducer(Protocol):
    """Publishes an event to the queue its type self-describes.

    Implementations return the broker message id and raise a
    ``MessagingError`` subclass when the event could not be published.
    """

    async def publish_event(self, event: IntegrationEvent) -> str: ...
