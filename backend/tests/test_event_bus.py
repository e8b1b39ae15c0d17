"""AsyncEventBus (인메모리 모드) + 재고 부족 알림 전달"""

import asyncio

import pytest
import pytest_asyncio

from inventory_api.events import AsyncEventBus, TOPIC_STOCK_CHANGED, TOPIC_STOCK_LOW
from inventory_api.notifications import EventBusNotifier, LowStockAlertHandler, StockSnapshot


async def _wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("이벤트가 제시간에 도착하지 않았습니다")
        await asyncio.sleep(0.01)


def _snapshot(quantity=3) -> StockSnapshot:
    return StockSnapshot(
        stock_id=1,
        warehouse_id=2,
        inventory_item_id=3,
        quantity=quantity,
        warehouse_name="Regional Hub",
        item_name="Keyboard",
        item_sku="KEYBOARD-001",
    )


@pytest_asyncio.fixture
async def bus():
    event_bus = AsyncEventBus(redis_url=None, max_recent=5)
    yield event_bus
    await event_bus.stop()


@pytest.mark.asyncio
async def test_inmemory_delivery(bus):
    received = []

    async def handler(topic, data):
        received.append((topic, data))

    await bus.subscribe(TOPIC_STOCK_CHANGED, handler)
    await bus.start()
    await bus.publish(TOPIC_STOCK_CHANGED, {"stock_id": 1, "quantity": 7})

    await _wait_until(lambda: received)
    assert received == [(TOPIC_STOCK_CHANGED, {"stock_id": 1, "quantity": 7})]
    assert bus.is_running
    assert not bus.is_redis


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_other_handlers(bus):
    received = []

    async def broken(topic, data):
        raise RuntimeError("handler failed")

    async def healthy(topic, data):
        received.append(data)

    await bus.subscribe(TOPIC_STOCK_LOW, broken)
    await bus.subscribe(TOPIC_STOCK_LOW, healthy)
    await bus.start()
    await bus.publish(TOPIC_STOCK_LOW, {"stock_id": 1})
    await bus.publish(TOPIC_STOCK_LOW, {"stock_id": 2})

    await _wait_until(lambda: len(received) == 2)
    assert [d["stock_id"] for d in received] == [1, 2]


def test_stream_fields_are_decoded_for_handlers():
    fields = {
        "stock_id": "5",
        "snapshot": '{"quantity": 3, "item_sku": "KEYBOARD-001"}',
        "warehouse_name": "Regional Hub",
        "_timestamp": "2026-01-01T00:00:00+00:00",
    }

    assert AsyncEventBus._decode_fields(fields) == {
        "stock_id": 5,
        "snapshot": {"quantity": 3, "item_sku": "KEYBOARD-001"},
        "warehouse_name": "Regional Hub",
    }


@pytest.mark.asyncio
async def test_recent_events_are_capped(bus):
    await bus.start()
    for i in range(8):
        await bus.publish(TOPIC_STOCK_LOW, {"stock_id": i})

    recent = bus.get_recent(TOPIC_STOCK_LOW, count=10)
    assert [e["data"]["stock_id"] for e in recent] == [3, 4, 5, 6, 7]
    assert all(e["topic"] == TOPIC_STOCK_LOW for e in recent)


@pytest.mark.asyncio
async def test_publish_threadsafe_from_worker_thread(bus):
    received = []

    async def handler(topic, data):
        received.append(data)

    await bus.subscribe(TOPIC_STOCK_CHANGED, handler)
    await bus.start()

    future = await asyncio.to_thread(bus.publish_threadsafe, TOPIC_STOCK_CHANGED, {"stock_id": 9})

    assert future is not None
    await _wait_until(lambda: received)
    assert received == [{"stock_id": 9}]


def test_publish_threadsafe_before_start_drops_event():
    bus = AsyncEventBus(redis_url=None)
    assert bus.publish_threadsafe(TOPIC_STOCK_LOW, {"stock_id": 1}) is None
    assert bus.get_recent(TOPIC_STOCK_LOW) == []


@pytest.mark.asyncio
async def test_notifier_reaches_alert_handler(bus):
    handler = LowStockAlertHandler(bus)
    await handler.start()
    await bus.start()

    notifier = EventBusNotifier(bus)
    await asyncio.to_thread(notifier.notify_low_stock, _snapshot(quantity=3), 10)

    await _wait_until(lambda: handler.alerts_sent == 1)
    [event] = bus.get_recent(TOPIC_STOCK_LOW)
    assert event["data"]["quantity"] == 3
    assert event["data"]["threshold"] == 10
    assert event["data"]["item_sku"] == "KEYBOARD-001"


def test_notifier_without_running_bus_falls_back_to_log(caplog):
    notifier = EventBusNotifier(AsyncEventBus(redis_url=None))

    with caplog.at_level("WARNING"):
        notifier.notify_low_stock(_snapshot(quantity=4), 10)

    assert "재고 부족" in caplog.text
