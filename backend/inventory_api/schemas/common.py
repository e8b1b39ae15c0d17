"""
공통 Pydantic 스키마
- 응답 봉투: {"status": "success", "message"?, "data", "pagination"?}
- 다른 리소스 응답에 끼워 넣는 간략 모델
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class HealthResponse(BaseModel):
    status: str
    db_connected: bool
    redis_connected: bool
    event_bus_running: bool
    timestamp: datetime


class Pagination(BaseModel):
    total: int
    per_page: int
    current_page: int
    last_page: int


class DataResponse(BaseModel, Generic[T]):
    status: str = "success"
    message: str | None = None
    data: T


class PageResponse(BaseModel, Generic[T]):
    status: str = "success"
    data: list[T]
    pagination: Pagination


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class ErrorResponse(BaseModel):
    status: str = "error"
    code: str
    message: str
    errors: list[dict] | None = None


class WarehouseBrief(BaseModel):
    id: int
    name: str
    location: str

    model_config = {"from_attributes": True}


class InventoryItemBrief(BaseModel):
    id: int
    name: str
    sku: str

    model_config = {"from_attributes": True}
