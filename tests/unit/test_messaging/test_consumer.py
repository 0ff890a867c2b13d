"""Unit tests for TypedConsumer delivery and lifecycle."""
from __future__ import annotations

import json
import uuid

import pytest

from order_fulfillment.core.events import OrderStatus, StockConfirmed
from order_fulfillment.infra.logging import get_log_context
from order_fulfillment.infra.messaging import (
    BrokerUnreachable,
    ConsumerState,
    QueueTopology,
    TypedConsumer,
    scoped,
)
from tests.fakes import GADGET_ID, WIDGET_ID, make_channel, make_connection, make_message, make_queue

QUEUE = "inventory-stock-update-confirmed"

VALID_BODY = json.dumps(
    {
        "orderId": "ord-1",
        "productId": WIDGET_ID,
        "productName": "Widget",
        "quantityReserved": 5,
        "newStockQuantity": 15,
        "status": "Confirmed",
    }
).encode()


class RecordingHandler:
    """Handler that records payloads and optionally fails a number of times."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.payloads: list[StockConfirmed] = []
        self.contexts: list[dict] = []

    async def handle(self, payload: StockConfirmed) -> None:
        self.contexts.append(get_log_context())
        if self.failures:
            self.failures -= 1
            raise RuntimeError("database unavailable")
        self.payloads.append(payload)


async def _running_consumer(handler, channel=None) -> tuple[TypedConsumer, object]:
    channel = channel or make_channel()
    consumer = TypedConsumer(make_connection(channel), StockConfirmed, scoped(lambda: handler))
    await consumer.start_consuming(QUEUE)
    callback = channel.declare_queue.return_value.consume.await_args.args[0]
    return consumer, callback


@pytest.mark.unit
class TestDelivery:
    """Test suite for decode, dispatch and settlement."""

    async def test_successful_handler_acks(self):
        """Test that a handled message is acknowledged exactly once."""
        handler = RecordingHandler()
        consumer, callback = await _running_consumer(handler)
        message = make_message(VALID_BODY)

        await callback(message)

        message.ack.assert_awaited_once()
        message.nack.assert_not_awaited()
        assert handler.payloads[0].order_id == "ord-1"
        assert handler.payloads[0].status is OrderStatus.CONFIRMED
        assert consumer.stats.acked == 1

    async def test_handler_failure_requeues_then_acks_on_redelivery(self):
        """Test at-least-once: a failed delivery is requeued and the redelivery succeeds."""
        handler = RecordingHandler(failures=1)
        consumer, callback = await _running_consumer(handler)
        first = make_message(VALID_BODY)
        redelivery = make_message(VALID_BODY, redelivered=True)

        await callback(first)
        await callback(redelivery)

        first.nack.assert_awaited_once_with(requeue=True)
        first.ack.assert_not_awaited()
        redelivery.ack.assert_awaited_once()
        assert len(handler.payloads) == 1
        assert consumer.stats.requeued == 1
        assert consumer.stats.acked == 1

    @pytest.mark.parametrize("body", [b"not-json", b"null", b'{"orderId": "ord-1"}'])
    async def test_undecodable_body_is_dropped(self, body):
        """Test that poison messages are rejected without requeue and never reach the handler."""
        handler = RecordingHandler()
        consumer, callback = await _running_consumer(handler)
        message = make_message(body)

        await callback(message)

        message.nack.assert_awaited_once_with(requeue=False)
        assert handler.contexts == []
        assert consumer.stats.dropped == 1

    async def test_missing_handler_drops_message(self):
        """Test that a scope yielding no handler drops the message."""
        channel = make_channel()
        consumer = TypedConsumer(make_connection(channel), StockConfirmed, scoped(lambda: None))
        await consumer.start_consuming(QUEUE)
        callback = channel.declare_queue.return_value.consume.await_args.args[0]
        message = make_message(VALID_BODY)

        await callback(message)

        message.nack.assert_awaited_once_with(requeue=False)
        message.ack.assert_not_awaited()

    async def test_case_insensitive_body(self):
        """Test that PascalCase keys decode like camelCase."""
        handler = RecordingHandler()
        _, callback = await _running_consumer(handler)
        body = json.dumps(
            {
                "OrderId": "ord-2",
                "ProductId": GADGET_ID,
                "QuantityReserved": 1,
                "NewStockQuantity": 0,
                "Status": "confirmed",
            }
        ).encode()

        await callback(make_message(body))

        assert handler.payloads[0].order_id == "ord-2"
        assert handler.payloads[0].product_id == GADGET_ID

    async def test_guid_product_id_is_acknowledged(self):
        """Test that a body with a GUID productId reaches the handler and is acked."""
        handler = RecordingHandler()
        _, callback = await _running_consumer(handler)
        product_id = str(uuid.uuid4())
        body = json.dumps(
            {"orderId": "ord-3", "productId": product_id, "quantityReserved": 2, "newStockQuantity": 8}
        ).encode()
        message = make_message(body)

        await callback(message)

        message.ack.assert_awaited_once()
        message.nack.assert_not_awaited()
        assert handler.payloads[0].product_id == product_id

    async def test_log_context_bound_during_handling(self):
        """Test that message id and queue are in the log context while handling."""
        handler = RecordingHandler()
        _, callback = await _running_consumer(handler)

        await callback(make_message(VALID_BODY, message_id="abc-123"))

        assert handler.contexts[0]["message_id"] == "abc-123"
        assert handler.contexts[0]["queue"] == QUEUE
        assert handler.contexts[0]["payload_type"] == "StockConfirmed"
        assert "message_id" not in get_log_context()

    async def test_settle_failure_is_swallowed(self):
        """Test that an ack on a dead channel does not escape the callback."""
        from aio_pika.exceptions import ChannelInvalidStateError

        handler = RecordingHandler()
        consumer, callback = await _running_consumer(handler)
        message = make_message(VALID_BODY)
        message.ack.side_effect = ChannelInvalidStateError("closed")

        await callback(message)

        assert consumer.stats.acked == 0


@pytest.mark.unit
class TestLifecycle:
    """Test suite for start/stop and restart."""

    async def test_start_consuming_subscribes_with_manual_ack(self):
        """Test subscription, QoS and running state."""
        queue = make_queue("ctag-7")
        channel = make_channel(queue)
        consumer = TypedConsumer(
            make_connection(channel), StockConfirmed, scoped(RecordingHandler), prefetch_count=4
        )

        await consumer.start_consuming(QUEUE)

        channel.set_qos.assert_awaited_once_with(prefetch_count=4)
        assert queue.consume.await_args.kwargs == {"no_ack": False}
        assert consumer.consumer_tag == "ctag-7"
        assert consumer.state is ConsumerState.RUNNING
        assert consumer.is_running
        assert consumer.target == QueueTopology(name=QUEUE)

    async def test_start_consuming_with_exchange_binds_queue(self):
        """Test that exchange and routing key produce a bound subscription."""
        channel = make_channel()
        consumer = TypedConsumer(make_connection(channel), StockConfirmed, scoped(RecordingHandler))

        await consumer.start_consuming("order-created-queue", "order-exchange", "order.created")

        channel.declare_exchange.assert_awaited_once()
        channel.declare_queue.return_value.bind.assert_awaited_once()

    async def test_start_twice_is_noop(self):
        """Test that starting a running consumer does not open another channel."""
        connection = make_connection()
        consumer = TypedConsumer(connection, StockConfirmed, scoped(RecordingHandler))
        await consumer.start_consuming(QUEUE)

        await consumer.start()

        assert connection.create_channel.await_count == 1

    async def test_stop_cancels_and_closes(self):
        """Test that stop cancels the consumer tag and closes the channel."""
        queue = make_queue("ctag-1")
        channel = make_channel(queue)
        consumer = TypedConsumer(make_connection(channel), StockConfirmed, scoped(RecordingHandler))
        await consumer.start_consuming(QUEUE)

        await consumer.stop()
        await consumer.stop()

        queue.cancel.assert_awaited_once_with("ctag-1")
        channel.close.assert_awaited_once()
        assert consumer.state is ConsumerState.STOPPED
        assert not consumer.is_running

    async def test_dead_channel_is_restarted_on_fresh_channel(self):
        """Test that start() after a channel death resubscribes the recorded queue."""
        first, second = make_channel(), make_channel()
        consumer = TypedConsumer(make_connection(first, second), StockConfirmed, scoped(RecordingHandler))
        await consumer.start_consuming(QUEUE)

        first.is_closed = True
        assert not consumer.is_running

        await consumer.start()

        second.declare_queue.assert_awaited_once()
        assert second.declare_queue.await_args.args[0] == QUEUE
        assert consumer.is_running

    async def test_failed_start_keeps_target_and_reverts_state(self):
        """Test that a start failure leaves the consumer stopped but retryable."""
        connection = make_connection()
        connection.create_channel.side_effect = BrokerUnreachable(detail="down")
        consumer = TypedConsumer(connection, StockConfirmed, scoped(RecordingHandler))

        with pytest.raises(BrokerUnreachable):
            await consumer.start_consuming(QUEUE)

        assert consumer.state is ConsumerState.STOPPED
        assert consumer.target == QueueTopology(name=QUEUE)

        connection.create_channel.side_effect = lambda **_: make_channel()
        await consumer.start()
        assert consumer.is_running

    async def test_resubscribe_to_new_queue_cancels_previous(self):
        """Test that subscribing a running consumer elsewhere moves the subscription."""
        queue = make_queue("ctag-1")
        channel = make_channel(queue)
        consumer = TypedConsumer(make_connection(channel), StockConfirmed, scoped(RecordingHandler))
        await consumer.start_consuming(QUEUE)

        await consumer.start_consuming("other-queue")

        queue.cancel.assert_awaited_once_with("ctag-1")
        assert channel.declare_queue.await_args.args[0] == "other-queue"
