"""JSON codec for integration payloads."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def encode_payload(payload: BaseModel) -> bytes:
    """Serialize a payload to UTF-8 camelCase JSON."""
    return payload.model_dump_json(by_alias=True).encode("utf-8")


def decode_payload(payload_type: type[PayloadT], body: bytes | str) -> PayloadT:
    """Deserialize a message body into ``payload_type``.

    A JSON ``null`` body is rejected like any other invalid payload.

    Raises:
        pydantic.ValidationError: If the body is not valid JSON or does not
            match the payload schema.
    """
    return payload_type.model_validate_json(body)
