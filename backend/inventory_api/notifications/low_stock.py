"""
재고 부족 알림 — Stock Ledger → 알림 전달 경계
- StockSnapshot: 알림 시점의 재고 상태 (세션과 분리된 값 객체)
- LowStockNotifier: 원장이 호출하는 단일 인터페이스 notify_low_stock()
- EventBusNotifier: stock.low 토픽에 발행만 하고 즉시 반환 (전달은 버스가 비동기로)
- LowStockAlertHandler: stock.low 구독자, 경고 로그를 남긴다
"""

import logging
from dataclasses import dataclass, asdict
from typing import Protocol

from inventory_api.events.event_bus import AsyncEventBus, TOPIC_STOCK_LOW
from inventory_api.models import Stock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockSnapshot:
    stock_id: int
    warehouse_id: int
    inventory_item_id: int
    quantity: int
    warehouse_name: str | None = None
    item_name: str | None = None
    item_sku: str | None = None

    @classmethod
    def from_stock(cls, stock: Stock) -> "StockSnapshot":
        warehouse = stock.warehouse
        item = stock.item
        return cls(
            stock_id=stock.id,
            warehouse_id=stock.warehouse_id,
            inventory_item_id=stock.inventory_item_id,
            quantity=stock.quantity,
            warehouse_name=warehouse.name if warehouse else None,
            item_name=item.name if item else None,
            item_sku=item.sku if item else None,
        )


@dataclass(frozen=True)
class LowStockEvent:
    """저장하지 않는 일시적 이벤트 — 스냅샷 + 발동 임계치"""

    snapshot: StockSnapshot
    threshold: int

    def to_payload(self) -> dict:
        payload = asdict(self.snapshot)
        payload["threshold"] = self.threshold
        return payload


class LowStockNotifier(Protocol):
    def notify_low_stock(self, stock_snapshot: StockSnapshot, threshold: int) -> None:
        ...


class LoggingNotifier:
    """버스 없이 로그만 남기는 알림기 (버스 시작 전 / 단독 실행용)"""

    def notify_low_stock(self, stock_snapshot: StockSnapshot, threshold: int) -> None:
        logger.warning(
            f"재고 부족: warehouse={stock_snapshot.warehouse_id} "
            f"item={stock_snapshot.inventory_item_id} "
            f"qty={stock_snapshot.quantity} < {threshold}"
        )


class EventBusNotifier:
    """stock.low 토픽으로 넘기고 바로 반환 — 느린 소비자가 요청을 막지 않는다."""

    def __init__(self, event_bus: AsyncEventBus):
        self.event_bus = event_bus
        self._fallback = LoggingNotifier()

    def notify_low_stock(self, stock_snapshot: StockSnapshot, threshold: int) -> None:
        event = LowStockEvent(snapshot=stock_snapshot, threshold=threshold)
        future = self.event_bus.publish_threadsafe(TOPIC_STOCK_LOW, event.to_payload())
        if future is None:
            # 버스가 내려가 있어도 알림 자체는 남긴다
            self._fallback.notify_low_stock(stock_snapshot, threshold)


class LowStockAlertHandler:
    """
    stock.low 구독자.
    실제 운영에서는 관리자 메일/메신저 발송 자리 — 현재는 경고 로그만 남긴다.
    """

    def __init__(self, event_bus: AsyncEventBus):
        self.event_bus = event_bus
        self.alerts_sent = 0

    async def start(self):
        await self.event_bus.subscribe(TOPIC_STOCK_LOW, self._on_low_stock)
        logger.info("LowStockAlertHandler 구독 등록 완료")

    async def _on_low_stock(self, topic: str, data: dict):
        self.alerts_sent += 1
        logger.warning(
            "[LowStock] "
            f"창고={data.get('warehouse_name') or data.get('warehouse_id')} "
            f"품목={data.get('item_name') or data.get('inventory_item_id')} "
            f"(sku={data.get('item_sku')}) "
            f"현재 수량={data.get('quantity')} / 임계치={data.get('threshold')}"
        )
