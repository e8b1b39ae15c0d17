"""
API 공용 의존성
- 이벤트 버스 / 캐시 싱글턴 (main.py lifespan에서 설정)
- 요청마다 StockLedger / TransferEngine 생성
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from inventory_api.cache import ListCache
from inventory_api.config import settings
from inventory_api.database import get_db
from inventory_api.events.event_bus import AsyncEventBus
from inventory_api.ledger import StockLedger, TransferEngine
from inventory_api.notifications.low_stock import (
    EventBusNotifier,
    LoggingNotifier,
    LowStockNotifier,
)

logger = logging.getLogger(__name__)

_event_bus: AsyncEventBus | None = None
_cache: ListCache = ListCache(redis_url=None, default_ttl=settings.CACHE_TTL_SECONDS)


def set_event_bus(bus: AsyncEventBus | None):
    """main.py에서 호출하여 이벤트 버스 참조 설정"""
    global _event_bus
    _event_bus = bus


def set_cache(cache: ListCache):
    """main.py에서 호출하여 캐시 교체 (Redis 연결 시)"""
    global _cache
    _cache = cache


def get_event_bus() -> AsyncEventBus | None:
    return _event_bus


def get_cache() -> ListCache:
    return _cache


def get_notifier() -> LowStockNotifier:
    if _event_bus is not None:
        return EventBusNotifier(_event_bus)
    return LoggingNotifier()


def get_ledger(
    db: Session = Depends(get_db),
    notifier: LowStockNotifier = Depends(get_notifier),
) -> StockLedger:
    return StockLedger(db, notifier=notifier, threshold=settings.LOW_STOCK_THRESHOLD)


def get_transfer_engine(ledger: StockLedger = Depends(get_ledger)) -> TransferEngine:
    return TransferEngine(ledger)


def publish_event(topic: str, data: dict):
    """commit 이후 호출 — 버스가 없으면 조용히 건너뛴다."""
    bus = get_event_bus()
    if bus is not None:
        bus.publish_threadsafe(topic, data)
