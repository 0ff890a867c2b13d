"""Unit tests for integration event contracts and the JSON codec."""
from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from order_fulfillment.core.events import (
    ORDER_CREATED_QUEUE,
    STOCK_CONFIRMED_QUEUE,
    OrderCreated,
    OrderItemPayload,
    OrderStatus,
    StockConfirmed,
    decode_payload,
    encode_payload,
)
from tests.fakes import WIDGET_ID


@pytest.mark.unit
class TestContracts:
    """Test suite for event types."""

    def test_events_self_describe_their_queue(self):
        """Test queue names carried by each event type."""
        assert OrderCreated.get_queue_name() == ORDER_CREATED_QUEUE == "order-created-queue"
        assert StockConfirmed.get_queue_name() == STOCK_CONFIRMED_QUEUE == "inventory-stock-update-confirmed"
        assert OrderCreated.type_name() == "OrderCreated"

    def test_stock_confirmed_defaults_to_confirmed(self):
        """Test default status and timestamp on StockConfirmed."""
        event = StockConfirmed(order_id="ord-1", product_id=WIDGET_ID, quantity_reserved=5, new_stock_quantity=15)

        assert event.status is OrderStatus.CONFIRMED
        assert event.confirmed_at.tzinfo is not None

    @pytest.mark.parametrize("raw", ["Confirmed", "confirmed", "CONFIRMED"])
    def test_order_status_is_case_insensitive(self, raw):
        """Test that status parsing ignores case."""
        assert OrderStatus(raw) is OrderStatus.CONFIRMED

    def test_unknown_order_status_is_rejected(self):
        """Test that an unknown status is a ValueError."""
        with pytest.raises(ValueError):
            OrderStatus("Shipped")

    def test_events_are_immutable(self):
        """Test that events cannot be mutated after construction."""
        event = StockConfirmed(order_id="ord-1", product_id=WIDGET_ID, quantity_reserved=5, new_stock_quantity=15)
        with pytest.raises(ValidationError):
            event.order_id = "ord-2"


@pytest.mark.unit
class TestCodec:
    """Test suite for encode_payload/decode_payload."""

    def test_encode_uses_camel_case_and_numbers(self):
        """Test wire format of an OrderCreated body."""
        event = OrderCreated(
            order_id="ord-1",
            customer_id="cust-1",
            total_amount=Decimal("12.50"),
            created_at=datetime(2025, 1, 1, 12, 0, tzinfo=UTC),
            items=[OrderItemPayload(product_id=WIDGET_ID, product_name="Widget", quantity=2, unit_price=Decimal("6.25"))],
        )

        body = json.loads(encode_payload(event))

        assert body == {
            "orderId": "ord-1",
            "customerId": "cust-1",
            "totalAmount": 12.5,
            "createdAt": "2025-01-01T12:00:00Z",
            "items": [{"productId": WIDGET_ID, "productName": "Widget", "quantity": 2, "unitPrice": 6.25}],
        }

    def test_encode_status_as_string(self):
        """Test that the status enum is written by value."""
        event = StockConfirmed(order_id="ord-1", product_id=WIDGET_ID, quantity_reserved=5, new_stock_quantity=15)

        body = json.loads(encode_payload(event))

        assert body["status"] == "Confirmed"
        assert body["newStockQuantity"] == 15

    def test_decode_accepts_any_key_casing(self):
        """Test that camelCase, PascalCase and snake_case keys all decode, with integer ids as text."""
        body = json.dumps(
            {
                "OrderId": "ord-1",
                "customer_id": "cust-1",
                "totalAmount": 12.5,
                "Items": [{"ProductId": 7, "quantity": 2, "unit_price": 6.25}],
            }
        )

        event = decode_payload(OrderCreated, body)

        assert event.order_id == "ord-1"
        assert event.customer_id == "cust-1"
        assert event.total_amount == Decimal("12.5")
        assert event.items[0].product_id == "7"
        assert event.items[0].unit_price == Decimal("6.25")

    def test_decode_ignores_unknown_fields(self):
        """Test that extra producer fields do not break decoding."""
        body = json.dumps(
            {"orderId": "ord-1", "productId": WIDGET_ID, "quantityReserved": 1, "newStockQuantity": 0, "warehouse": "A"}
        )

        event = decode_payload(StockConfirmed, body)

        assert event.product_id == WIDGET_ID

    def test_decode_guid_product_ids(self):
        """Test that GUID product ids from other producers decode as text."""
        product_id = str(uuid.uuid4())
        body = json.dumps(
            {
                "OrderId": "ord-1",
                "CustomerId": "cust-1",
                "TotalAmount": 5,
                "Items": [{"ProductId": product_id, "Quantity": 1, "UnitPrice": 5}],
            }
        )

        event = decode_payload(OrderCreated, body)

        assert event.items[0].product_id == product_id
        assert json.loads(encode_payload(event))["items"][0]["productId"] == product_id

    def test_product_id_accepts_uuid_objects(self):
        product_id = uuid.uuid4()

        item = OrderItemPayload(product_id=product_id, quantity=1)

        assert item.product_id == str(product_id)

    @pytest.mark.parametrize("body", [b"", b"null", b"[]", b"{not json", b'{"orderId": "ord-1"}'])
    def test_decode_rejects_invalid_bodies(self, body):
        """Test that invalid bodies raise a ValueError subclass."""
        with pytest.raises(ValueError):
            decode_payload(StockConfirmed, body)
