"""
warehouses 테이블 — 재고를 보관하는 창고
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from inventory_api.database import Base


class Warehouse(Base):
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)  # "Main Warehouse" 등
    location = Column(String(255), nullable=False)  # "New York" 등
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    stocks = relationship("Stock", back_populates="warehouse")
    outgoing_transfers = relationship(
        "StockTransfer", foreign_keys="StockTransfer.from_warehouse_id",
        back_populates="from_warehouse",
    )
    incoming_transfers = relationship(
        "StockTransfer", foreign_keys="StockTransfer.to_warehouse_id",
        back_populates="to_warehouse",
    )
