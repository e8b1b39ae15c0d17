"""
stocks 테이블 — 창고별 품목 재고 수량
- (warehouse_id, inventory_item_id) 쌍마다 최대 1행
- version: 낙관적 잠금 카운터, UPDATE마다 증가하며 동시 수정 시 StaleDataError
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class Stock(Base):
    __tablename__ = "stocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    warehouse = relationship("Warehouse", back_populates="stocks")
    item = relationship("InventoryItem", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("warehouse_id", "inventory_item_id", name="uq_stock_warehouse_item"),
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Stock id={self.id} warehouse={self.warehouse_id} "
            f"item={self.inventory_item_id} qty={self.quantity}>"
        )
