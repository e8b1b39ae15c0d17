"""
품목(InventoryItem) 관련 Pydantic 스키마
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class InventoryItemCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    price: float = Field(ge=0, le=999999.99)


class InventoryItemUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    sku: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1000)
    price: float | None = Field(None, ge=0, le=999999.99)

    @field_validator("name", "sku", "price")
    @classmethod
    def _not_null(cls, value):
        # 생략은 허용, 명시적 null은 NOT NULL 컬럼이므로 거부
        if value is None:
            raise ValueError("null로 변경할 수 없습니다")
        return value


class InventoryItemResponse(BaseModel):
    id: int
    name: str
    sku: str
    description: str | None = None
    price: float
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ItemStockLine(BaseModel):
    id: int
    warehouse_id: int
    quantity: int

    model_config = {"from_attributes": True}


class InventoryItemDetail(InventoryItemResponse):
    stocks: list[ItemStockLine] = []
