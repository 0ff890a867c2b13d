"""Inventory domain entities."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from order_fulfillment.core.exceptions import ConflictException, ValidationException


def _require_positive(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationException(
            detail="Quantity must be positive.",
            extra={"quantity": quantity},
        )


@dataclass(slots=True)
class Product:
    """A stocked product.

    ``stock_quantity`` may go negative through the stock decrement flow,
    which trusts the availability check Sales already performed.
    """

    product_id: str
    name: str
    description: str = ""
    price: Decimal = Decimal("0")
    stock_quantity: int = 0
    reserved_quantity: int = 0

    def reserve(self, quantity: int) -> None:
        """Move ``quantity`` units from stock into the reservation."""
        _require_positive(quantity)
        if quantity > self.stock_quantity:
            raise ConflictException(
                detail="Insufficient stock for reservation.",
                extra={"product_id": self.product_id, "requested": quantity, "available": self.stock_quantity},
            )
        self.stock_quantity -= quantity
        self.reserved_quantity += quantity

    def release(self, quantity: int) -> None:
        """Return ``quantity`` units to stock."""
        _require_positive(quantity)
        self.stock_quantity += quantity
        self.reserved_quantity = max(0, self.reserved_quantity - quantity)

    def add_stock(self, quantity: int) -> None:
        _require_positive(quantity)
        self.stock_quantity += quantity

    def set_price(self, price: Decimal) -> None:
        if price < 0:
            raise ValidationException(detail="Price cannot be negative.", extra={"price": str(price)})
        self.price = price
