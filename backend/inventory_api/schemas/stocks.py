"""
재고(Stock) 관련 Pydantic 스키마
"""

from datetime import datetime

from pydantic import BaseModel, Field

from inventory_api.schemas.common import InventoryItemBrief, WarehouseBrief


class StockCreate(BaseModel):
    warehouse_id: int = Field(gt=0)
    inventory_item_id: int = Field(gt=0)
    quantity: int = Field(ge=0, description="입고 수량 (기존 재고에 더해진다)")


class StockUpdate(BaseModel):
    warehouse_id: int | None = Field(None, gt=0)
    inventory_item_id: int | None = Field(None, gt=0)
    quantity: int | None = Field(None, ge=0, description="설정할 절대 수량")


class StockAdjust(BaseModel):
    delta: int = Field(description="증감량 (음수 가능)")


class StockResponse(BaseModel):
    id: int
    warehouse_id: int
    inventory_item_id: int
    quantity: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    warehouse: WarehouseBrief | None = None
    item: InventoryItemBrief | None = None

    model_config = {"from_attributes": True}


class LowStockAlertResponse(BaseModel):
    topic: str
    timestamp: str
    data: dict
