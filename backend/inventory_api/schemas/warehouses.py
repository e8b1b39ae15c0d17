"""
창고(Warehouse) 관련 Pydantic 스키마
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from inventory_api.schemas.common import InventoryItemBrief, Pagination, WarehouseBrief
from inventory_api.schemas.stocks import StockResponse


class WarehouseCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: str = Field(min_length=1, max_length=255)


class WarehouseUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    location: str | None = Field(None, min_length=1, max_length=255)

    @field_validator("name", "location")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("null로 변경할 수 없습니다")
        return value


class WarehouseResponse(BaseModel):
    id: int
    name: str
    location: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class WarehouseStockLine(BaseModel):
    id: int
    inventory_item_id: int
    quantity: int
    item: InventoryItemBrief | None = None

    model_config = {"from_attributes": True}


class WarehouseDetail(WarehouseResponse):
    stocks: list[WarehouseStockLine] = []


class WarehouseInventory(BaseModel):
    warehouse: WarehouseBrief
    stocks: list[StockResponse]
    pagination: Pagination
