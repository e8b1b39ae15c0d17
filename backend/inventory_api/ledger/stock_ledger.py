"""
Stock Ledger — (창고, 품목) 재고 수량의 단일 진실 원천.

- 수량은 절대 음수가 되지 않는다 (쓰기 전에 검사).
- (warehouse_id, inventory_item_id) 쌍마다 재고 행은 최대 1개.
- 재고 부족 알림:
    record_stock            레벨 트리거 — 결과가 임계치 미만이면 매번 알림
    set_quantity / adjust   엣지 트리거 — 임계치 이상 → 미만으로 내려갈 때만 알림
- 알림은 트랜잭션 안에서 대기열에 쌓였다가 commit 이후에 전달된다.
  rollback 되면 버려지고, 알림기 예외는 변경을 실패시키지 않는다.
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from inventory_api.config import settings
from inventory_api.database import transaction
from inventory_api.exceptions import (
    ConcurrencyConflictError,
    DuplicateResourceError,
    NegativeQuantityError,
    NotFoundError,
)
from inventory_api.models import Stock
from inventory_api.notifications.low_stock import (
    LoggingNotifier,
    LowStockEvent,
    LowStockNotifier,
    StockSnapshot,
)

logger = logging.getLogger(__name__)


class StockLedger:
    """요청(작업 단위)마다 하나씩 만든다."""

    def __init__(
        self,
        db: Session,
        notifier: LowStockNotifier | None = None,
        threshold: int | None = None,
    ):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.threshold = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
        self._depth = 0
        self._pending: list[LowStockEvent] = []

    # ── 트랜잭션 ───────────────────────────────────────────

    @contextmanager
    def transaction(self):
        """
        원자적 실행 블록. 중첩 호출은 바깥 블록에 합류한다.
        낙관적 잠금 실패 / 동시 생성으로 인한 유니크 위반은 ConcurrencyConflictError로 바꾼다.
        """
        if self._depth:
            yield self.db
            return

        self._depth += 1
        try:
            with transaction(self.db):
                yield self.db
        except (StaleDataError, IntegrityError) as e:
            self._pending.clear()
            logger.warning(f"재고 동시 수정 충돌 — rollback: {e}")
            raise ConcurrencyConflictError(
                "다른 요청이 같은 재고를 먼저 변경했습니다. 다시 시도하세요."
            ) from e
        except Exception:
            self._pending.clear()
            raise
        finally:
            self._depth -= 1

        self._flush_notifications()

    def _flush_notifications(self):
        """commit 이후 대기 중인 재고 부족 알림을 알림기에 넘긴다."""
        events, self._pending = self._pending, []
        for event in events:
            try:
                self.notifier.notify_low_stock(event.snapshot, event.threshold)
            except Exception as e:
                logger.error(
                    f"재고 부족 알림 전달 실패 (stock={event.snapshot.stock_id}): {e}"
                )

    def _queue_low_stock(self, stock: Stock):
        event = LowStockEvent(snapshot=StockSnapshot.from_stock(stock), threshold=self.threshold)
        self._pending.append(event)
        logger.debug(f"재고 부족 감지 대기열 등록: {stock!r}")

    def _notify_on_transition(self, stock: Stock, previous_quantity: int):
        """엣지 트리거 — 임계치 이상에서 미만으로 내려간 경우만"""
        if previous_quantity >= self.threshold and stock.quantity < self.threshold:
            self._queue_low_stock(stock)

    # ── 조회 ───────────────────────────────────────────────

    def get(self, warehouse_id: int, item_id: int, for_update: bool = False) -> Stock | None:
        """복합 키 조회 — 없으면 None (재고 0으로 간주, 에러 아님)"""
        query = self.db.query(Stock).filter(
            Stock.warehouse_id == warehouse_id,
            Stock.inventory_item_id == item_id,
        )
        if for_update:
            query = query.with_for_update().populate_existing()
        return query.first()

    def get_by_id(self, stock_id: int, for_update: bool = False) -> Stock:
        query = self.db.query(Stock).filter(Stock.id == stock_id)
        if for_update:
            query = query.with_for_update().populate_existing()
        stock = query.first()
        if stock is None:
            raise NotFoundError("Stock", stock_id)
        return stock

    # ── 변경 ───────────────────────────────────────────────

    def _write(self, stock: Stock, new_quantity: int):
        if new_quantity < 0:
            raise NegativeQuantityError(stock.id, new_quantity)
        stock.quantity = new_quantity
        self.db.flush()

    def create(self, warehouse_id: int, item_id: int, quantity: int = 0) -> Stock:
        """새 재고 행 생성 — 알림 판단은 호출자 몫"""
        if quantity < 0:
            raise NegativeQuantityError(None, quantity)
        with self.transaction():
            stock = Stock(warehouse_id=warehouse_id, inventory_item_id=item_id, quantity=quantity)
            self.db.add(stock)
            self.db.flush()
        return stock

    def record_stock(self, warehouse_id: int, item_id: int, quantity: int) -> Stock:
        """입고 — 기존 행이 있으면 증가, 없으면 생성. 레벨 트리거 알림."""
        with self.transaction():
            stock = self.get(warehouse_id, item_id, for_update=True)
            if stock is not None:
                self._write(stock, stock.quantity + quantity)
            else:
                stock = self.create(warehouse_id, item_id, quantity)

            if stock.quantity < self.threshold:
                self._queue_low_stock(stock)

        logger.info(
            f"[Ledger] 입고 기록: warehouse={warehouse_id} item={item_id} "
            f"+{quantity} → {stock.quantity}"
        )
        return stock

    def set_quantity(self, stock_id: int, quantity: int) -> Stock:
        """절대값 설정 — 음수 거부, 엣지 트리거 알림."""
        if quantity < 0:
            raise NegativeQuantityError(stock_id, quantity)

        with self.transaction():
            stock = self.get_by_id(stock_id, for_update=True)
            previous = stock.quantity
            self._write(stock, quantity)
            self._notify_on_transition(stock, previous)

        logger.info(f"[Ledger] 수량 설정: stock={stock_id} {previous} → {quantity}")
        return stock

    def adjust_quantity(self, stock_id: int, delta: int) -> Stock:
        """상대값 변경 — 결과가 음수면 거부, 엣지 트리거 알림."""
        with self.transaction():
            stock = self.get_by_id(stock_id, for_update=True)
            previous = stock.quantity
            self._write(stock, previous + delta)
            self._notify_on_transition(stock, previous)

        logger.info(f"[Ledger] 수량 조정: stock={stock_id} {previous} {delta:+d} → {previous + delta}")
        return stock

    def update_location(
        self,
        stock_id: int,
        warehouse_id: int | None = None,
        item_id: int | None = None,
    ) -> Stock:
        """재고 행의 창고/품목 변경 — 대상 쌍에 이미 행이 있으면 거부"""
        with self.transaction():
            stock = self.get_by_id(stock_id, for_update=True)
            target_warehouse = warehouse_id if warehouse_id is not None else stock.warehouse_id
            target_item = item_id if item_id is not None else stock.inventory_item_id

            if (target_warehouse, target_item) != (stock.warehouse_id, stock.inventory_item_id):
                existing = self.get(target_warehouse, target_item)
                if existing is not None:
                    raise DuplicateResourceError(
                        f"창고 #{target_warehouse}에 품목 #{target_item} 재고가 이미 있습니다 "
                        f"(stock #{existing.id})"
                    )
                stock.warehouse_id = target_warehouse
                stock.inventory_item_id = target_item
                self.db.flush()

        return stock

    def delete(self, stock_id: int):
        with self.transaction():
            stock = self.get_by_id(stock_id, for_update=True)
            self.db.delete(stock)
        logger.info(f"[Ledger] 재고 행 삭제: stock={stock_id}")
