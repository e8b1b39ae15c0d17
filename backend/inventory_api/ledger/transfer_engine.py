"""
Transfer Engine — 창고 간 재고 이동을 하나의 원자적 단위로 실행한다.

transfer(from, to, item, qty) 순서 (단일 트랜잭션):
  1. 출고/입고 재고 행을 잠금 조회 — 없거나 부족하면 InsufficientQuantityError
  2. 입고 창고 재고가 없으면 수량 0으로 생성
  3. 출고 차감 (원장의 adjust 경로, 음수 가드 유지)
  4. 입고 가산 (원장의 adjust 경로)
  5. 이동 기록 추가
  6. commit — 어느 단계든 실패하면 전체 rollback

동시성: 두 행을 창고 id 순서로 한 번에 잠가 반대 방향 이동끼리 교착을 피하고,
Stock.version 낙관적 잠금이 잠금 미지원 엔진(SQLite)에서의 경합을 잡는다.
재시도는 하지 않는다 — 충돌 시 ConcurrencyConflictError, 호출자가 재요청.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import desc, or_
from sqlalchemy.orm import Query

from inventory_api.exceptions import (
    InsufficientQuantityError,
    InvalidRequestError,
    NegativeQuantityError,
    NotFoundError,
)
from inventory_api.ledger.stock_ledger import StockLedger
from inventory_api.models import Stock, StockTransfer

logger = logging.getLogger(__name__)


class TransferEngine:

    def __init__(self, ledger: StockLedger):
        self.ledger = ledger
        self.db = ledger.db

    def _lock_pair(self, item_id: int, from_warehouse_id: int, to_warehouse_id: int) -> dict[int, Stock]:
        """출고/입고 재고 행을 warehouse_id 순서로 잠그고 {warehouse_id: Stock} 반환"""
        rows = (
            self.db.query(Stock)
            .filter(
                Stock.inventory_item_id == item_id,
                Stock.warehouse_id.in_([from_warehouse_id, to_warehouse_id]),
            )
            .order_by(Stock.warehouse_id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        return {row.warehouse_id: row for row in rows}

    def transfer(
        self,
        from_warehouse_id: int,
        to_warehouse_id: int,
        item_id: int,
        quantity: int,
    ) -> StockTransfer:
        if from_warehouse_id == to_warehouse_id:
            raise InvalidRequestError("출고 창고와 입고 창고는 달라야 합니다")
        if quantity <= 0:
            raise InvalidRequestError("이동 수량은 1 이상이어야 합니다")

        with self.ledger.transaction():
            locked = self._lock_pair(item_id, from_warehouse_id, to_warehouse_id)
            source = locked.get(from_warehouse_id)
            destination = locked.get(to_warehouse_id)

            available = source.quantity if source is not None else 0
            if source is None or available < quantity:
                raise InsufficientQuantityError(from_warehouse_id, item_id, quantity, available)

            if destination is None:
                destination = self.ledger.create(to_warehouse_id, item_id, 0)

            try:
                self.ledger.adjust_quantity(source.id, -quantity)
            except NegativeQuantityError as e:
                # 잠금 조회 이후 다른 요청이 먼저 출고한 경우 (행 잠금 없는 엔진)
                raise InsufficientQuantityError(
                    from_warehouse_id, item_id, quantity, e.resulting_quantity + quantity,
                ) from e
            self.ledger.adjust_quantity(destination.id, quantity)

            record = StockTransfer(
                inventory_item_id=item_id,
                from_warehouse_id=from_warehouse_id,
                to_warehouse_id=to_warehouse_id,
                quantity=quantity,
                transferred_at=datetime.now(timezone.utc),
            )
            self.db.add(record)
            self.db.flush()

        logger.info(
            f"[Transfer] #{record.id} item={item_id} "
            f"{from_warehouse_id} → {to_warehouse_id} qty={quantity}"
        )
        return record

    # ── 이동 기록 조회 ─────────────────────────────────────

    def get(self, transfer_id: int) -> StockTransfer:
        record = self.db.get(StockTransfer, transfer_id)
        if record is None:
            raise NotFoundError("StockTransfer", transfer_id)
        return record

    def query(self, warehouse_id: int | None = None) -> Query:
        """이동 기록 (최신순) — warehouse_id가 출고 또는 입고인 것만"""
        query = self.db.query(StockTransfer)
        if warehouse_id is not None:
            query = query.filter(or_(
                StockTransfer.from_warehouse_id == warehouse_id,
                StockTransfer.to_warehouse_id == warehouse_id,
            ))
        return query.order_by(desc(StockTransfer.transferred_at), desc(StockTransfer.id))

    def item_history_query(self, item_id: int) -> Query:
        return (
            self.db.query(StockTransfer)
            .filter(StockTransfer.inventory_item_id == item_id)
            .order_by(desc(StockTransfer.transferred_at), desc(StockTransfer.id))
        )
