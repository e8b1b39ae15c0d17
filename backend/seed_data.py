"""
마스터 데이터 시딩 스크립트
- Warehouses 3개, InventoryItems 5개, Stocks 9개 (그중 3개는 재고 부족)
- 재고는 StockLedger.record_stock으로 넣으므로 부족 재고는 알림 로그가 남는다.
- 실행: cd backend && python seed_data.py
"""

import logging
import sys
import os

# backend/ 디렉토리 기준으로 inventory_api 패키지를 찾을 수 있도록 경로 설정
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from inventory_api.database import engine, SessionLocal, Base
from inventory_api.ledger import StockLedger
from inventory_api.models import InventoryItem, Warehouse


def seed_warehouses(session):
    warehouses = [
        Warehouse(name="Main Warehouse", location="New York"),
        Warehouse(name="Secondary Warehouse", location="Los Angeles"),
        Warehouse(name="Regional Hub", location="Chicago"),
    ]
    session.add_all(warehouses)
    session.commit()
    print(f"  [OK] Warehouses: {len(warehouses)}개 생성")
    return warehouses


def seed_items(session):
    items = [
        InventoryItem(name="Laptop", sku="LAPTOP-001",
                      description="High-performance laptop", price=1299.99),
        InventoryItem(name="Mouse", sku="MOUSE-001",
                      description="Wireless mouse", price=29.99),
        InventoryItem(name="Keyboard", sku="KEYBOARD-001",
                      description="Mechanical keyboard", price=149.99),
        InventoryItem(name="Monitor", sku="MONITOR-001",
                      description="4K Display Monitor", price=499.99),
        InventoryItem(name="USB Cable", sku="CABLE-001",
                      description="USB-C to USB-A cable", price=9.99),
    ]
    session.add_all(items)
    session.commit()
    print(f"  [OK] InventoryItems: {len(items)}개 생성")
    return items


def seed_stocks(session, warehouses, items):
    """창고별 재고 — 일부는 임계치 미만으로 넣어 알림을 확인한다"""
    w1, w2, w3 = warehouses
    laptop, mouse, keyboard, monitor, cable = items

    layout = [
        (w1, laptop, 25),
        (w1, mouse, 5),       # 부족
        (w1, keyboard, 100),
        (w2, laptop, 15),
        (w2, monitor, 8),     # 부족
        (w2, cable, 250),
        (w3, mouse, 50),
        (w3, keyboard, 3),    # 부족
        (w3, monitor, 12),
    ]

    ledger = StockLedger(session)
    stocks = [ledger.record_stock(w.id, item.id, qty) for w, item, qty in layout]

    low = sum(1 for s in stocks if s.quantity < ledger.threshold)
    print(f"  [OK] Stocks: {len(stocks)}개 생성 (재고 부족 {low}개)")
    return stocks


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("창고 재고 관리 — 마스터 데이터 시딩")
    print("=" * 60)

    # 테이블 전체 재생성
    print("\n[1/4] 테이블 생성 중...")
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    print("  [OK] 테이블 생성 완료")

    session = SessionLocal()
    try:
        print("\n[2/4] Warehouses 시딩...")
        warehouses = seed_warehouses(session)

        print("\n[3/4] InventoryItems 시딩...")
        items = seed_items(session)

        print("\n[4/4] Stocks 시딩...")
        stocks = seed_stocks(session, warehouses, items)

        print("\n" + "=" * 60)
        print("시딩 완료!")
        print(f"  Warehouses:     {len(warehouses)}개")
        print(f"  InventoryItems: {len(items)}개")
        print(f"  Stocks:         {len(stocks)}개")
        print("=" * 60)

    except Exception as e:
        session.rollback()
        print(f"\n[ERROR] 시딩 실패: {e}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
