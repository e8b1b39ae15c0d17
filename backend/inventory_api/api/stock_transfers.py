"""
창고 간 재고 이동 API
- POST: TransferEngine.transfer (원자적 5단계)
- 이동 완료 후 transfer.completed 발행, 두 창고 캐시 무효화
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from inventory_api.api.deps import get_cache, get_transfer_engine, publish_event
from inventory_api.api.pagination import PageParams, paginate
from inventory_api.api.stocks import require_references
from inventory_api.cache import ListCache
from inventory_api.events.event_bus import TOPIC_TRANSFER_COMPLETED
from inventory_api.ledger import TransferEngine
from inventory_api.schemas.common import DataResponse, PageResponse
from inventory_api.schemas.transfers import StockTransferCreate, StockTransferResponse

router = APIRouter(prefix="/api/stock-transfers", tags=["stock-transfers"])


@router.get("", response_model=PageResponse[StockTransferResponse])
def list_transfers(
    warehouse_id: int | None = Query(None, description="출고 또는 입고 창고"),
    page: PageParams = Depends(),
    engine: TransferEngine = Depends(get_transfer_engine),
):
    """이동 기록 목록 (최신순)"""
    transfers, pagination = paginate(engine.query(warehouse_id), page)
    return PageResponse[StockTransferResponse](
        data=[StockTransferResponse.model_validate(t) for t in transfers],
        pagination=pagination,
    )


@router.post("", response_model=DataResponse[StockTransferResponse], status_code=201)
def create_transfer(
    payload: StockTransferCreate,
    engine: TransferEngine = Depends(get_transfer_engine),
    cache: ListCache = Depends(get_cache),
):
    """
    재고 이동
    - 출고 창고 재고 부족 → 422 INSUFFICIENT_QUANTITY (재고 변화 없음)
    - 동시 수정 충돌 → 409 CONCURRENCY_CONFLICT
    """
    db: Session = engine.db
    require_references(db, payload.from_warehouse_id, payload.inventory_item_id)
    require_references(db, payload.to_warehouse_id)

    record = engine.transfer(
        payload.from_warehouse_id,
        payload.to_warehouse_id,
        payload.inventory_item_id,
        payload.quantity,
    )
    response = StockTransferResponse.model_validate(record)

    cache.forget_warehouse(response.from_warehouse_id)
    cache.forget_warehouse(response.to_warehouse_id)
    publish_event(TOPIC_TRANSFER_COMPLETED, {
        "transfer_id": response.id,
        "inventory_item_id": response.inventory_item_id,
        "from_warehouse_id": response.from_warehouse_id,
        "to_warehouse_id": response.to_warehouse_id,
        "quantity": response.quantity,
    })
    return DataResponse[StockTransferResponse](message="재고가 이동되었습니다", data=response)


@router.get("/item-history", response_model=PageResponse[StockTransferResponse])
def item_history(
    item_id: int = Query(..., gt=0, description="품목 ID"),
    page: PageParams = Depends(),
    engine: TransferEngine = Depends(get_transfer_engine),
):
    """품목별 이동 이력"""
    transfers, pagination = paginate(engine.item_history_query(item_id), page)
    return PageResponse[StockTransferResponse](
        data=[StockTransferResponse.model_validate(t) for t in transfers],
        pagination=pagination,
    )


@router.get("/{transfer_id}", response_model=DataResponse[StockTransferResponse])
def get_transfer(transfer_id: int, engine: TransferEngine = Depends(get_transfer_engine)):
    record = engine.get(transfer_id)
    return DataResponse[StockTransferResponse](data=StockTransferResponse.model_validate(record))
