"""
재고 API — 입고 기록, 수량 설정/조정, 재고 부족 목록, 최근 재고 부족 알림
- 모든 수량 변경은 StockLedger를 거친다.
- commit 이후 stock.changed 이벤트 발행 + 창고 캐시 무효화
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from inventory_api.api.deps import get_cache, get_event_bus, get_ledger, publish_event
from inventory_api.api.pagination import PageParams, paginate
from inventory_api.cache import ListCache
from inventory_api.config import settings
from inventory_api.database import get_db
from inventory_api.events.event_bus import AsyncEventBus, TOPIC_STOCK_CHANGED, TOPIC_STOCK_LOW
from inventory_api.exceptions import InvalidRequestError
from inventory_api.ledger import StockLedger
from inventory_api.models import InventoryItem, Stock, Warehouse
from inventory_api.schemas.common import DataResponse, MessageResponse, PageResponse
from inventory_api.schemas.stocks import (
    LowStockAlertResponse,
    StockAdjust,
    StockCreate,
    StockResponse,
    StockUpdate,
)

router = APIRouter(prefix="/api/stocks", tags=["stocks"])


def require_references(db: Session, warehouse_id: int | None = None, item_id: int | None = None):
    """참조하는 창고/품목이 실제로 있는지 확인 — 없으면 422"""
    if warehouse_id is not None and db.get(Warehouse, warehouse_id) is None:
        raise InvalidRequestError(f"창고 #{warehouse_id}이(가) 존재하지 않습니다")
    if item_id is not None and db.get(InventoryItem, item_id) is None:
        raise InvalidRequestError(f"품목 #{item_id}이(가) 존재하지 않습니다")


def _stock_changed(stock: StockResponse, cache: ListCache, *warehouse_ids: int):
    for wid in {stock.warehouse_id, *warehouse_ids}:
        cache.forget_warehouse(wid)
    publish_event(TOPIC_STOCK_CHANGED, {
        "stock_id": stock.id,
        "warehouse_id": stock.warehouse_id,
        "inventory_item_id": stock.inventory_item_id,
        "quantity": stock.quantity,
    })


@router.get("", response_model=PageResponse[StockResponse])
def list_stocks(
    warehouse_id: int | None = Query(None, description="창고 필터"),
    inventory_item_id: int | None = Query(None, description="품목 필터"),
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """재고 목록"""
    query = db.query(Stock)
    if warehouse_id is not None:
        query = query.filter(Stock.warehouse_id == warehouse_id)
    if inventory_item_id is not None:
        query = query.filter(Stock.inventory_item_id == inventory_item_id)

    stocks, pagination = paginate(query.order_by(Stock.id), page)
    return PageResponse[StockResponse](
        data=[StockResponse.model_validate(s) for s in stocks],
        pagination=pagination,
    )


@router.get("/low", response_model=PageResponse[StockResponse])
def list_low_stocks(
    threshold: int = Query(settings.LOW_STOCK_THRESHOLD, ge=0, description="이 값 미만이면 부족"),
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """임계치 미만 재고 목록 (수량 오름차순)"""
    query = (
        db.query(Stock)
        .filter(Stock.quantity < threshold)
        .order_by(Stock.quantity, Stock.id)
    )
    stocks, pagination = paginate(query, page)
    return PageResponse[StockResponse](
        data=[StockResponse.model_validate(s) for s in stocks],
        pagination=pagination,
    )


@router.get("/alerts", response_model=DataResponse[list[LowStockAlertResponse]])
def list_recent_alerts(
    limit: int = Query(20, ge=1, le=settings.RECENT_ALERTS_LIMIT),
    bus: AsyncEventBus | None = Depends(get_event_bus),
):
    """최근 재고 부족 알림 (최신순)"""
    events = bus.get_recent(TOPIC_STOCK_LOW, limit) if bus is not None else []
    return DataResponse[list[LowStockAlertResponse]](
        data=[LowStockAlertResponse(**e) for e in reversed(events)],
    )


@router.post("", response_model=DataResponse[StockResponse], status_code=201)
def record_stock(
    payload: StockCreate,
    ledger: StockLedger = Depends(get_ledger),
    cache: ListCache = Depends(get_cache),
):
    """입고 기록 — 기존 재고가 있으면 더하고, 없으면 새로 만든다"""
    require_references(ledger.db, payload.warehouse_id, payload.inventory_item_id)
    stock = ledger.record_stock(payload.warehouse_id, payload.inventory_item_id, payload.quantity)

    response = StockResponse.model_validate(stock)
    _stock_changed(response, cache)
    return DataResponse[StockResponse](message="재고가 기록되었습니다", data=response)


@router.get("/{stock_id}", response_model=DataResponse[StockResponse])
def get_stock(stock_id: int, ledger: StockLedger = Depends(get_ledger)):
    """재고 상세"""
    stock = ledger.get_by_id(stock_id)
    return DataResponse[StockResponse](data=StockResponse.model_validate(stock))


@router.put("/{stock_id}", response_model=DataResponse[StockResponse])
def update_stock(
    stock_id: int,
    payload: StockUpdate,
    ledger: StockLedger = Depends(get_ledger),
    cache: ListCache = Depends(get_cache),
):
    """
    재고 수정
    - quantity: 절대 수량 설정 (엣지 트리거 알림)
    - warehouse_id / inventory_item_id: 재고 행의 위치 변경
    둘 다 오면 한 트랜잭션으로 처리한다.
    """
    require_references(ledger.db, payload.warehouse_id, payload.inventory_item_id)
    previous_warehouse_id = ledger.get_by_id(stock_id).warehouse_id

    with ledger.transaction():
        if payload.warehouse_id is not None or payload.inventory_item_id is not None:
            stock = ledger.update_location(stock_id, payload.warehouse_id, payload.inventory_item_id)
        if payload.quantity is not None:
            stock = ledger.set_quantity(stock_id, payload.quantity)
        stock = ledger.get_by_id(stock_id)

    response = StockResponse.model_validate(stock)
    _stock_changed(response, cache, previous_warehouse_id)
    return DataResponse[StockResponse](message="재고가 수정되었습니다", data=response)


@router.post("/{stock_id}/adjust", response_model=DataResponse[StockResponse])
def adjust_stock(
    stock_id: int,
    payload: StockAdjust,
    ledger: StockLedger = Depends(get_ledger),
    cache: ListCache = Depends(get_cache),
):
    """재고 증감 — 결과가 음수면 422"""
    stock = ledger.adjust_quantity(stock_id, payload.delta)

    response = StockResponse.model_validate(stock)
    _stock_changed(response, cache)
    return DataResponse[StockResponse](message="재고가 조정되었습니다", data=response)


@router.delete("/{stock_id}", response_model=MessageResponse)
def delete_stock(
    stock_id: int,
    ledger: StockLedger = Depends(get_ledger),
    cache: ListCache = Depends(get_cache),
):
    """재고 행 삭제"""
    warehouse_id = ledger.get_by_id(stock_id).warehouse_id
    ledger.delete(stock_id)
    cache.forget_warehouse(warehouse_id)
    return MessageResponse(message="재고가 삭제되었습니다")
