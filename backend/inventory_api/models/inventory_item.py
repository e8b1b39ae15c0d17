"""
inventory_items 테이블 — 품목(SKU) 마스터
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(255), unique=True, nullable=False)  # 예: "LAPTOP-001"
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    stocks = relationship("Stock", back_populates="item")
    transfers = relationship("StockTransfer", back_populates="item")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_inventory_item_price_non_negative"),
    )
