"""
품목 API — 품목 CRUD, 이름/SKU/가격 검색
"""

from contextlib import contextmanager

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_api.api.deps import get_cache
from inventory_api.api.pagination import PageParams, paginate
from inventory_api.cache import ListCache
from inventory_api.database import get_db, transaction
from inventory_api.exceptions import DuplicateResourceError, NotFoundError, ResourceInUseError
from inventory_api.models import InventoryItem, Stock, StockTransfer
from inventory_api.schemas.common import DataResponse, MessageResponse, PageResponse
from inventory_api.schemas.inventory_items import (
    InventoryItemCreate,
    InventoryItemDetail,
    InventoryItemResponse,
    InventoryItemUpdate,
)

router = APIRouter(prefix="/api/inventory-items", tags=["inventory-items"])


def _get_item_or_404(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if item is None:
        raise NotFoundError("InventoryItem", item_id)
    return item


def _ensure_unique_sku(db: Session, sku: str, exclude_id: int | None = None):
    query = db.query(InventoryItem.id).filter(InventoryItem.sku == sku)
    if exclude_id is not None:
        query = query.filter(InventoryItem.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError(f"SKU '{sku}'는 이미 사용 중입니다")


@contextmanager
def _saving_sku(db: Session, sku: str):
    """검사 이후 다른 요청이 같은 SKU를 먼저 저장했으면 유니크 제약 위반을 409로 바꾼다"""
    try:
        with transaction(db):
            yield
    except IntegrityError as e:
        raise DuplicateResourceError(f"SKU '{sku}'는 이미 사용 중입니다") from e


@router.get("", response_model=PageResponse[InventoryItemResponse])
def list_items(
    search: str | None = Query(None, description="이름/SKU/설명 통합 검색"),
    name: str | None = Query(None, description="이름 부분 일치"),
    sku: str | None = Query(None, description="SKU 부분 일치"),
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """품목 목록 — 검색 조건은 search > name > sku > 가격 범위 순으로 하나만 적용"""
    query = db.query(InventoryItem)

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            InventoryItem.name.ilike(pattern),
            InventoryItem.sku.ilike(pattern),
            InventoryItem.description.ilike(pattern),
        ))
    elif name:
        query = query.filter(InventoryItem.name.ilike(f"%{name}%"))
    elif sku:
        query = query.filter(InventoryItem.sku.ilike(f"%{sku}%"))
    elif min_price is not None or max_price is not None:
        if min_price is not None:
            query = query.filter(InventoryItem.price >= min_price)
        if max_price is not None:
            query = query.filter(InventoryItem.price <= max_price)

    items, pagination = paginate(query.order_by(InventoryItem.id), page)
    return PageResponse[InventoryItemResponse](
        data=[InventoryItemResponse.model_validate(i) for i in items],
        pagination=pagination,
    )


@router.post("", response_model=DataResponse[InventoryItemResponse], status_code=201)
def create_item(payload: InventoryItemCreate, db: Session = Depends(get_db)):
    """품목 등록 — SKU 중복 시 409"""
    _ensure_unique_sku(db, payload.sku)
    item = InventoryItem(**payload.model_dump())
    with _saving_sku(db, payload.sku):
        db.add(item)
    db.refresh(item)
    return DataResponse[InventoryItemResponse](
        message="품목이 등록되었습니다",
        data=InventoryItemResponse.model_validate(item),
    )


@router.get("/{item_id}", response_model=DataResponse[InventoryItemDetail])
def get_item(item_id: int, db: Session = Depends(get_db)):
    """품목 상세 (창고별 재고 포함)"""
    item = _get_item_or_404(db, item_id)
    return DataResponse[InventoryItemDetail](data=InventoryItemDetail.model_validate(item))


@router.put("/{item_id}", response_model=DataResponse[InventoryItemResponse])
def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """품목 수정 — 전달된 필드만 반영"""
    item = _get_item_or_404(db, item_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("sku") and changes["sku"] != item.sku:
        _ensure_unique_sku(db, changes["sku"], exclude_id=item_id)

    with _saving_sku(db, changes.get("sku", item.sku)):
        for field, value in changes.items():
            setattr(item, field, value)

    # 창고 상세 캐시에 품목 이름/SKU가 들어 있으므로 보유 창고 캐시도 비운다
    warehouse_ids = [
        wid for (wid,) in db.query(Stock.warehouse_id).filter(Stock.inventory_item_id == item_id)
    ]
    cache.forget_warehouse()
    for wid in warehouse_ids:
        cache.forget_warehouse(wid)

    db.refresh(item)
    return DataResponse[InventoryItemResponse](
        message="품목이 수정되었습니다",
        data=InventoryItemResponse.model_validate(item),
    )


@router.delete("/{item_id}", response_model=MessageResponse)
def delete_item(item_id: int, db: Session = Depends(get_db)):
    """품목 삭제 — 재고 행이나 이동 기록이 남아 있으면 409"""
    item = _get_item_or_404(db, item_id)

    stock_count = db.query(Stock).filter(Stock.inventory_item_id == item_id).count()
    transfer_count = (
        db.query(StockTransfer).filter(StockTransfer.inventory_item_id == item_id).count()
    )
    if stock_count or transfer_count:
        raise ResourceInUseError(
            f"품목 #{item_id}을(를) 참조하는 재고 {stock_count}건, "
            f"이동 기록 {transfer_count}건이 있어 삭제할 수 없습니다"
        )

    with transaction(db):
        db.delete(item)
    return MessageResponse(message="품목이 삭제되었습니다")
