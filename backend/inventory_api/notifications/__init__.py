"""
알림 패키지
- 재고 부족 이벤트의 스냅샷/알림기/구독 핸들러
"""

from inventory_api.notifications.low_stock import (
    StockSnapshot,
    LowStockEvent,
    LowStockNotifier,
    LoggingNotifier,
    EventBusNotifier,
    LowStockAlertHandler,
)

__all__ = [
    "StockSnapshot",
    "LowStockEvent",
    "LowStockNotifier",
    "LoggingNotifier",
    "EventBusNotifier",
    "LowStockAlertHandler",
]
