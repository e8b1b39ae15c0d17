"""
창고 API — 창고 CRUD, 창고별 재고 조회
- 목록/상세는 ListCache에 TTL 동안 보관, 쓰기 시 무효화
"""

from contextlib import contextmanager

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_api.api.deps import get_cache
from inventory_api.api.pagination import PageParams, paginate
from inventory_api.cache import ListCache, WAREHOUSES_ALL_KEY, warehouse_inventory_key
from inventory_api.config import settings
from inventory_api.database import get_db, transaction
from inventory_api.exceptions import DuplicateResourceError, NotFoundError, ResourceInUseError
from inventory_api.models import Stock, StockTransfer, Warehouse
from inventory_api.schemas.common import DataResponse, MessageResponse, WarehouseBrief
from inventory_api.schemas.stocks import StockResponse
from inventory_api.schemas.warehouses import (
    WarehouseCreate,
    WarehouseDetail,
    WarehouseInventory,
    WarehouseResponse,
    WarehouseUpdate,
)

router = APIRouter(prefix="/api/warehouses", tags=["warehouses"])


def _get_warehouse_or_404(db: Session, warehouse_id: int) -> Warehouse:
    warehouse = db.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None):
    query = db.query(Warehouse.id).filter(Warehouse.name == name)
    if exclude_id is not None:
        query = query.filter(Warehouse.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError(f"창고 이름 '{name}'은(는) 이미 사용 중입니다")


@contextmanager
def _saving_name(db: Session, name: str):
    """검사 이후 다른 요청이 같은 이름을 먼저 저장했으면 유니크 제약 위반을 409로 바꾼다"""
    try:
        with transaction(db):
            yield
    except IntegrityError as e:
        raise DuplicateResourceError(f"창고 이름 '{name}'은(는) 이미 사용 중입니다") from e


@router.get("", response_model=DataResponse[list[WarehouseDetail]])
def list_warehouses(
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """전체 창고 + 보유 재고 (캐시)"""

    def load():
        warehouses = db.query(Warehouse).order_by(Warehouse.id).all()
        return [WarehouseDetail.model_validate(w).model_dump(mode="json") for w in warehouses]

    data = cache.remember(WAREHOUSES_ALL_KEY, settings.CACHE_TTL_SECONDS, load)
    return {"status": "success", "data": data}


@router.post("", response_model=DataResponse[WarehouseResponse], status_code=201)
def create_warehouse(
    payload: WarehouseCreate,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """창고 등록 — 이름 중복 시 409"""
    _ensure_unique_name(db, payload.name)
    warehouse = Warehouse(**payload.model_dump())
    with _saving_name(db, payload.name):
        db.add(warehouse)
    cache.forget_warehouse()

    db.refresh(warehouse)
    return DataResponse[WarehouseResponse](
        message="창고가 등록되었습니다",
        data=WarehouseResponse.model_validate(warehouse),
    )


@router.get("/{warehouse_id}", response_model=DataResponse[WarehouseDetail])
def get_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """창고 상세 + 재고/품목 (캐시)"""

    def load():
        warehouse = _get_warehouse_or_404(db, warehouse_id)
        return WarehouseDetail.model_validate(warehouse).model_dump(mode="json")

    data = cache.remember(warehouse_inventory_key(warehouse_id), settings.CACHE_TTL_SECONDS, load)
    return {"status": "success", "data": data}


@router.get("/{warehouse_id}/inventory", response_model=DataResponse[WarehouseInventory])
def get_warehouse_inventory(
    warehouse_id: int,
    page: PageParams = Depends(),
    db: Session = Depends(get_db),
):
    """창고 재고 목록 (페이지네이션)"""
    warehouse = _get_warehouse_or_404(db, warehouse_id)
    query = db.query(Stock).filter(Stock.warehouse_id == warehouse_id).order_by(Stock.id)
    stocks, pagination = paginate(query, page)

    return DataResponse[WarehouseInventory](
        data=WarehouseInventory(
            warehouse=WarehouseBrief.model_validate(warehouse),
            stocks=[StockResponse.model_validate(s) for s in stocks],
            pagination=pagination,
        )
    )


@router.put("/{warehouse_id}", response_model=DataResponse[WarehouseResponse])
def update_warehouse(
    warehouse_id: int,
    payload: WarehouseUpdate,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """창고 수정 — 전달된 필드만 반영"""
    warehouse = _get_warehouse_or_404(db, warehouse_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name") and changes["name"] != warehouse.name:
        _ensure_unique_name(db, changes["name"], exclude_id=warehouse_id)

    with _saving_name(db, changes.get("name", warehouse.name)):
        for field, value in changes.items():
            setattr(warehouse, field, value)
    cache.forget_warehouse(warehouse_id)

    db.refresh(warehouse)
    return DataResponse[WarehouseResponse](
        message="창고가 수정되었습니다",
        data=WarehouseResponse.model_validate(warehouse),
    )


@router.delete("/{warehouse_id}", response_model=MessageResponse)
def delete_warehouse(
    warehouse_id: int,
    db: Session = Depends(get_db),
    cache: ListCache = Depends(get_cache),
):
    """창고 삭제 — 재고 행이나 이동 기록이 남아 있으면 409"""
    warehouse = _get_warehouse_or_404(db, warehouse_id)

    stock_count = db.query(Stock).filter(Stock.warehouse_id == warehouse_id).count()
    transfer_count = (
        db.query(StockTransfer)
        .filter(or_(
            StockTransfer.from_warehouse_id == warehouse_id,
            StockTransfer.to_warehouse_id == warehouse_id,
        ))
        .count()
    )
    if stock_count or transfer_count:
        raise ResourceInUseError(
            f"창고 #{warehouse_id}을(를) 참조하는 재고 {stock_count}건, "
            f"이동 기록 {transfer_count}건이 있어 삭제할 수 없습니다"
        )

    with transaction(db):
        db.delete(warehouse)
    cache.forget_warehouse(warehouse_id)
    return MessageResponse(message="창고가 삭제되었습니다")
