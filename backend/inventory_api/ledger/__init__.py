"""
재고 원장 패키지
- StockLedger: 재고 수량 변경 + 재고 부족 알림
- TransferEngine: 창고 간 원자적 재고 이동
"""

from inventory_api.ledger.stock_ledger import StockLedger
from inventory_api.ledger.transfer_engine import TransferEngine

__all__ = ["StockLedger", "TransferEngine"]
