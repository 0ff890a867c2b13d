"""Result type returned by use cases for expected business outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of a use case: a value on success, a message on failure.

    Example:
        result = await order_process.handle_order(order)
        if not result.is_success:
            logger.warning("Order rejected", extra={"reason": result.message})
    """

    is_success: bool
    value: T | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, message: str) -> Result[T]:
        return cls(is_success=False, message=message)

    @property
    def is_failure(self) -> bool:
        return not self.is_success
