"""
stock_transfers 테이블 — 창고 간 재고 이동 기록 (append-only)
- 생성 후 수정/삭제하지 않는다.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class StockTransfer(Base):
    __tablename__ = "stock_transfers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False, index=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    transferred_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    item = relationship("InventoryItem", back_populates="transfers")
    from_warehouse = relationship(
        "Warehouse", foreign_keys=[from_warehouse_id], back_populates="outgoing_transfers",
    )
    to_warehouse = relationship(
        "Warehouse", foreign_keys=[to_warehouse_id], back_populates="incoming_transfers",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_quantity_positive"),
        CheckConstraint("from_warehouse_id <> to_warehouse_id", name="ck_transfer_distinct_warehouses"),
    )
