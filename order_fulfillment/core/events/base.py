"""Base class for integration events exchanged between boundaries.

Integration events travel as camelCase JSON bodies. Decoding is lenient about
key casing (``orderId``, ``OrderId`` and ``order_id`` all land on the same
field) so producers written against other serializers interoperate.

Key features:
- camelCase wire names via ``alias_generator``
- case-insensitive decoding, recursively for nested payloads
- Decimal amounts serialized as JSON numbers
- product ids carried as text (GUID strings on the wire)
- optional self-described queue name (``queue_name`` class attribute)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
"""Decimal amount that serializes to a JSON number."""


def _id_text(value: Any) -> Any:
    if isinstance(value, UUID) or (isinstance(value, int) and not isinstance(value, bool)):
        return str(value)
    return value


ProductId = Annotated[str, BeforeValidator(_id_text)]
"""Product identifier as text. GUIDs and legacy integer ids are both accepted."""


def _fold(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


class IntegrationPayload(BaseModel):
    """Base for every model carried inside a message body.

    Unknown keys are ignored so that older consumers keep working when a
    producer adds fields.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        use_enum_values=False,
    )

    @model_validator(mode="before")
    @classmethod
    def _fold_keys(cls, data: Any) -> Any:
        """Map incoming keys onto field names regardless of casing."""
        if not isinstance(data, dict):
            return data
        folded = {_fold(name): name for name in cls.model_fields}
        return {folded.get(_fold(key), key): value for key, value in data.items()}


class IntegrationEvent(IntegrationPayload):
    """Base class for events published to the broker.

    Subclasses that set ``queue_name`` can be published through
    ``GenericEventProducer``, which routes them without further configuration.

    Example:
        class InvoiceIssued(IntegrationEvent):
            queue_name: ClassVar[str | None] = "invoice-issued-queue"

            invoice_id: str
            total: Money
    """

    queue_name: ClassVar[str | None] = None

    @classmethod
    def get_queue_name(cls) -> str | None:
        """Queue the event type self-describes, if any."""
        return cls.queue_name

    @classmethod
    def type_name(cls) -> str:
        """Type tag written to the AMQP ``type`` property."""
        return cls.__name__
