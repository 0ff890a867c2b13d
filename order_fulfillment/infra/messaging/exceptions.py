"""Messaging error taxonomy.

    MessagingError
    ├── BrokerUnreachable       connection-level, not retried internally
    ├── PublishFailed           channel or topology error while publishing
    │   └── TopologyConflict    re-declaration with conflicting arguments
    ├── UnsupportedEventType    payload type does not self-describe a queue
    ├── DeserializationFailed   malformed body; message dropped
    ├── NoHandlerRegistered     nothing to dispatch to; message dropped
    └── HandlerFailed           handler raised; message requeued

Connection and publish errors bubble to the calling use case. Consumer-side
errors stay inside the delivery callback and only decide ack/nack.
"""

from __future__ import annotations

from aio_pika.exceptions import AMQPError, ChannelInvalidStateError

from order_fulfillment.core.exceptions import AppException

BROKER_ERRORS: tuple[type[BaseException], ...] = (
    AMQPError,
    ChannelInvalidStateError,
    ConnectionError,
)
"""Exceptions raised by aio-pika for channel or connection trouble."""


class MessagingError(AppException):
    """Base class for broker and delivery failures."""

    default_type = "messaging-error"


class BrokerUnreachable(MessagingError):
    """The broker connection could not be opened or is no longer usable."""

    default_type = "broker-unreachable"


class PublishFailed(MessagingError):
    """A publish did not reach the broker."""

    default_type = "publish-failed"


class TopologyConflict(PublishFailed):
    """An exchange or queue already exists with different arguments.

    The broker closes the channel on a failed declaration; the caller cannot
    fix this locally.
    """

    default_type = "topology-conflict"


class UnsupportedEventType(MessagingError):
    """The event type does not expose the queue it should be routed to."""

    default_type = "unsupported-event-type"


class DeserializationFailed(MessagingError):
    """A message body could not be decoded into the expected payload type."""

    default_type = "deserialization-failed"


class NoHandlerRegistered(MessagingError):
    """No handler was available for a decoded payload."""

    default_type = "no-handler-registered"


class HandlerFailed(MessagingError):
    """A handler raised while processing a message."""

    default_type = "handler-failed"
