"""
공용 테스트 픽스처
- 인메모리 SQLite (StaticPool: 모든 세션이 한 커넥션을 공유)
- RecordingNotifier로 재고 부족 알림 캡처
- TestClient는 lifespan 없이 띄운다 (이벤트 버스/Redis 미사용)
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_api.api.deps import get_cache, get_notifier
from inventory_api.cache import ListCache
from inventory_api.database import Base, build_engine, get_db
from inventory_api.main import app
from inventory_api.models import InventoryItem, Stock, Warehouse

engine = build_engine("sqlite://", poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotifier:
    """notify_low_stock 호출을 그대로 쌓아 둔다"""

    def __init__(self):
        self.events = []

    def notify_low_stock(self, stock_snapshot, threshold):
        self.events.append((stock_snapshot, threshold))

    @property
    def quantities(self) -> list[int]:
        return [snapshot.quantity for snapshot, _ in self.events]


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cache():
    return ListCache(redis_url=None, default_ttl=60)


@pytest.fixture
def client(notifier, cache):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


# ── 데이터 생성 헬퍼 (ORM 직접) ──

def make_warehouse(db, name="Main Warehouse", location="New York") -> Warehouse:
    warehouse = Warehouse(name=name, location=location)
    db.add(warehouse)
    db.commit()
    return warehouse


def make_item(db, sku="LAPTOP-001", name="Laptop", price=1299.99) -> InventoryItem:
    item = InventoryItem(name=name, sku=sku, description=f"{name} for tests", price=price)
    db.add(item)
    db.commit()
    return item


def make_stock(db, warehouse, item, quantity) -> Stock:
    stock = Stock(warehouse_id=warehouse.id, inventory_item_id=item.id, quantity=quantity)
    db.add(stock)
    db.commit()
    return stock
