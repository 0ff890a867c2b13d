"""Custom exception classes for the application."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class.

    Attributes:
        detail: Human-readable error message.
        type: Error type identifier, stable enough to log and alert on.
        extra: Additional context-specific information about the error.

    Example:
        raise AppException(
            detail="Order ord-1 could not be stored",
            type="data-access-error",
            extra={"order_id": "ord-1"},
        )
    """

    default_type = "about:blank"

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier (defaults to the class's default_type).
            extra: Additional context about the error.
        """
        self.detail = detail
        self.type = type or self.default_type
        self.extra = extra or {}
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(detail={self.detail!r}, type={self.type!r})"


class NotFoundError(AppException):
    """Raised when a requested entity does not exist.

    Example:
        raise NotFoundError(
            detail="Order ord-1 not found",
            extra={"order_id": "ord-1"},
        )
    """

    default_type = "not-found"


class ValidationException(AppException):
    """Raised when an argument violates a domain rule (e.g. non-positive quantity)."""

    default_type = "validation-error"


class ConflictException(AppException):
    """Raised when an operation conflicts with the entity's current state."""

    default_type = "conflict"


class DataAccessError(AppException):
    """Raised by stores when the underlying storage fails.

    The original storage exception is chained as ``__cause__``.
    """

    default_type = "data-access-error"


class ExternalServiceError(AppException):
    """Raised when a downstream HTTP service fails or answers unexpectedly."""

    default_type = "external-service-error"


class StockLookupError(ExternalServiceError):
    """Raised when the available stock for a product cannot be determined."""

    default_type = "stock-lookup-error"
