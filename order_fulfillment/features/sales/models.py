"""Sales domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from order_fulfillment.core.events.contracts import OrderStatus


@dataclass(slots=True)
class OrderItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    product_name: str = ""

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(slots=True)
class Order:
    """A customer order.

    The status only changes through the confirmation flow or an explicit
    cancel/confirm call; ``total_amount`` is whatever the caller supplied
    until ``calculate_total`` is called.
    """

    order_id: str
    customer_id: str
    items: list[OrderItem] = field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.CREATED
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    cancellation_reason: str | None = None

    def add_item(
        self,
        product_id: str,
        quantity: int,
        unit_price: Decimal,
        product_name: str = "",
    ) -> OrderItem:
        item = OrderItem(product_id, quantity, unit_price, product_name)
        self.items.append(item)
        return item

    def calculate_total(self) -> Decimal:
        """Recompute ``total_amount`` from the line items and return it."""
        self.total_amount = sum((item.subtotal for item in self.items), Decimal("0"))
        return self.total_amount

    def confirm(self) -> None:
        self.status = OrderStatus.CONFIRMED

    def cancel(self, reason: str) -> None:
        self.status = OrderStatus.CANCELLED
        self.cancellation_reason = reason

    def validation_errors(self) -> list[str]:
        """Structural problems that make the order unprocessable."""
        errors: list[str] = []
        if not self.order_id or not str(self.order_id).strip():
            errors.append("Order id is required.")
        if not self.items:
            errors.append("Order must contain at least one item.")
        if self.total_amount <= 0:
            errors.append("Order total must be positive.")
        errors.extend(
            f"Quantity for product {item.product_id} must be positive."
            for item in self.items
            if item.quantity <= 0
        )
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()
