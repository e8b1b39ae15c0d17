"""
SQLAlchemy ORM 모델 패키지
- 모든 모델을 여기서 import하여 Base.metadata에 등록한다.
"""

from inventory_api.models.warehouse import Warehouse
from inventory_api.models.inventory_item import InventoryItem
from inventory_api.models.stock import Stock
from inventory_api.models.stock_transfer import StockTransfer

__all__ = [
    "Warehouse",
    "InventoryItem",
    "Stock",
    "StockTransfer",
]
