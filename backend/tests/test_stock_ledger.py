"""StockLedger: 수량 불변식과 재고 부족 알림 트리거"""

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from inventory_api.database import Base, build_engine
from inventory_api.exceptions import (
    ConcurrencyConflictError,
    DuplicateResourceError,
    NegativeQuantityError,
    NotFoundError,
)
from inventory_api.ledger import StockLedger
from inventory_api.models import Stock

from conftest import RecordingNotifier, make_item, make_stock, make_warehouse


@pytest.fixture
def warehouse(db):
    return make_warehouse(db)


@pytest.fixture
def item(db):
    return make_item(db)


@pytest.fixture
def ledger(db, notifier):
    return StockLedger(db, notifier=notifier, threshold=10)


def _quantity(db, stock_id):
    db.expire_all()
    return db.get(Stock, stock_id).quantity


class TestRecordStock:
    def test_creates_row_when_missing(self, ledger, warehouse, item):
        stock = ledger.record_stock(warehouse.id, item.id, 25)

        assert stock.id is not None
        assert stock.quantity == 25

    def test_adds_to_existing_row(self, db, ledger, warehouse, item):
        existing = make_stock(db, warehouse, item, 25)

        stock = ledger.record_stock(warehouse.id, item.id, 5)

        assert stock.id == existing.id
        assert stock.quantity == 30
        assert db.query(Stock).count() == 1

    def test_level_triggered_below_threshold(self, ledger, notifier, warehouse, item):
        ledger.record_stock(warehouse.id, item.id, 3)
        ledger.record_stock(warehouse.id, item.id, 2)

        # 두 번 모두 임계치 미만으로 끝났으므로 두 번 모두 알린다
        assert notifier.quantities == [3, 5]
        assert all(threshold == 10 for _, threshold in notifier.events)

    def test_no_notification_at_or_above_threshold(self, ledger, notifier, warehouse, item):
        ledger.record_stock(warehouse.id, item.id, 10)
        assert notifier.events == []

    def test_snapshot_carries_names(self, ledger, notifier, warehouse, item):
        ledger.record_stock(warehouse.id, item.id, 1)

        snapshot, _ = notifier.events[0]
        assert snapshot.warehouse_name == "Main Warehouse"
        assert snapshot.item_sku == "LAPTOP-001"


class TestSetQuantity:
    def test_edge_triggered_only_on_crossing(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 12)

        ledger.set_quantity(stock.id, 8)
        ledger.set_quantity(stock.id, 5)

        assert notifier.quantities == [8]

    def test_notifies_again_after_recovery(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 12)

        ledger.set_quantity(stock.id, 8)
        ledger.set_quantity(stock.id, 20)
        ledger.set_quantity(stock.id, 9)

        assert notifier.quantities == [8, 9]

    def test_negative_rejected_without_change(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 12)

        with pytest.raises(NegativeQuantityError):
            ledger.set_quantity(stock.id, -1)

        assert _quantity(db, stock.id) == 12
        assert notifier.events == []

    def test_unknown_stock(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.set_quantity(999, 5)


class TestAdjustQuantity:
    def test_increase_and_decrease(self, db, ledger, warehouse, item):
        stock = make_stock(db, warehouse, item, 20)

        ledger.adjust_quantity(stock.id, 15)
        ledger.adjust_quantity(stock.id, -5)

        assert _quantity(db, stock.id) == 30

    def test_overdraw_rejected_without_change(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 5)

        with pytest.raises(NegativeQuantityError) as exc_info:
            ledger.adjust_quantity(stock.id, -1000)

        assert exc_info.value.resulting_quantity == -995
        assert _quantity(db, stock.id) == 5
        assert notifier.events == []

    def test_crossing_threshold_notifies_once(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 10)

        ledger.adjust_quantity(stock.id, -1)
        ledger.adjust_quantity(stock.id, -1)

        assert notifier.quantities == [9]

    def test_threshold_is_configurable(self, db, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 60)
        ledger = StockLedger(db, notifier=notifier, threshold=50)

        ledger.adjust_quantity(stock.id, -20)

        assert notifier.events[0][1] == 50
        assert notifier.quantities == [40]


class TestTransactionBoundary:
    def test_rollback_discards_pending_notifications(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 12)

        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.set_quantity(stock.id, 3)
                raise RuntimeError("boom")

        assert notifier.events == []
        assert _quantity(db, stock.id) == 12

    def test_notifications_wait_for_outer_commit(self, db, ledger, notifier, warehouse, item):
        stock = make_stock(db, warehouse, item, 12)

        with ledger.transaction():
            ledger.set_quantity(stock.id, 3)
            assert notifier.events == []

        assert notifier.quantities == [3]

    def test_failing_notifier_does_not_fail_mutation(self, db, warehouse, item):
        class ExplodingNotifier:
            def notify_low_stock(self, stock_snapshot, threshold):
                raise RuntimeError("mail server down")

        stock = make_stock(db, warehouse, item, 12)
        ledger = StockLedger(db, notifier=ExplodingNotifier(), threshold=10)

        ledger.set_quantity(stock.id, 2)

        assert _quantity(db, stock.id) == 2


class TestUpdateLocation:
    def test_moves_row_to_other_warehouse(self, db, ledger, warehouse, item):
        other = make_warehouse(db, name="Regional Hub", location="Chicago")
        stock = make_stock(db, warehouse, item, 7)

        moved = ledger.update_location(stock.id, warehouse_id=other.id)

        assert moved.warehouse_id == other.id
        assert moved.quantity == 7

    def test_rejects_existing_pair(self, db, ledger, warehouse, item):
        other = make_warehouse(db, name="Regional Hub", location="Chicago")
        stock = make_stock(db, warehouse, item, 7)
        make_stock(db, other, item, 3)

        with pytest.raises(DuplicateResourceError):
            ledger.update_location(stock.id, warehouse_id=other.id)

        db.expire_all()
        assert db.get(Stock, stock.id).warehouse_id == warehouse.id


def test_delete(db, ledger, warehouse, item):
    stock = make_stock(db, warehouse, item, 7)

    ledger.delete(stock.id)

    assert db.query(Stock).count() == 0


def test_concurrent_modification_raises_conflict(tmp_path):
    file_engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=file_engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

    setup = Session()
    stock = make_stock(setup, make_warehouse(setup), make_item(setup), 12)
    stock_id = stock.id
    setup.close()

    session_a, session_b = Session(), Session()
    ledger = StockLedger(session_a, notifier=RecordingNotifier(), threshold=10)

    def other_request_writes_first(session, flush_context, instances):
        row = session_b.get(Stock, stock_id)
        row.quantity = 40
        session_b.commit()

    # A가 읽은 뒤 쓰기 직전에 B가 먼저 commit
    event.listen(session_a, "before_flush", other_request_writes_first, once=True)

    try:
        with pytest.raises(ConcurrencyConflictError):
            ledger.adjust_quantity(stock_id, -5)
        assert ledger.notifier.events == []

        session_a.expire_all()
        assert session_a.get(Stock, stock_id).quantity == 40
    finally:
        session_a.close()
        session_b.close()
        file_engine.dispose()
