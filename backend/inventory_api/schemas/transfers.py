"""
창고 간 재고 이동 관련 Pydantic 스키마
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from inventory_api.schemas.common import InventoryItemBrief, WarehouseBrief


class StockTransferCreate(BaseModel):
    inventory_item_id: int = Field(gt=0)
    from_warehouse_id: int = Field(gt=0)
    to_warehouse_id: int = Field(gt=0)
    quantity: int = Field(ge=1)

    @model_validator(mode="after")
    def _distinct_warehouses(self):
        if self.from_warehouse_id == self.to_warehouse_id:
            raise ValueError("출고 창고와 입고 창고는 달라야 합니다")
        return self


class StockTransferResponse(BaseModel):
    id: int
    inventory_item_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: int
    transferred_at: datetime
    item: InventoryItemBrief | None = None
    from_warehouse: WarehouseBrief | None = None
    to_warehouse: WarehouseBrief | None = None

    model_config = {"from_attributes": True}
