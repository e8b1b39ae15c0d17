"""TransferEngine: 원자적 창고 간 이동"""

import pytest
from sqlalchemy import event
from sqlalchemy.orm import sessionmaker

from inventory_api.database import Base, build_engine
from inventory_api.exceptions import (
    ConcurrencyConflictError,
    InsufficientQuantityError,
    InvalidRequestError,
    NotFoundError,
)
from inventory_api.ledger import StockLedger, TransferEngine
from inventory_api.models import Stock, StockTransfer

from conftest import RecordingNotifier, make_item, make_stock, make_warehouse


@pytest.fixture
def setup(db):
    w1 = make_warehouse(db, name="Main Warehouse", location="New York")
    w2 = make_warehouse(db, name="Secondary Warehouse", location="Los Angeles")
    item = make_item(db)
    return w1, w2, item


@pytest.fixture
def engine(db, notifier):
    return TransferEngine(StockLedger(db, notifier=notifier, threshold=10))


def _stock(db, warehouse_id, item_id):
    db.expire_all()
    return (
        db.query(Stock)
        .filter(Stock.warehouse_id == warehouse_id, Stock.inventory_item_id == item_id)
        .first()
    )


def test_transfer_creates_destination_stock(db, engine, setup):
    w1, w2, item = setup
    make_stock(db, w1, item, 15)

    record = engine.transfer(w1.id, w2.id, item.id, 5)

    assert _stock(db, w1.id, item.id).quantity == 10
    assert _stock(db, w2.id, item.id).quantity == 5
    assert record.quantity == 5
    assert record.from_warehouse_id == w1.id
    assert record.to_warehouse_id == w2.id
    assert record.transferred_at is not None
    assert db.query(StockTransfer).count() == 1


def test_transfer_conserves_total(db, engine, setup):
    w1, w2, item = setup
    make_stock(db, w1, item, 40)
    make_stock(db, w2, item, 7)

    engine.transfer(w1.id, w2.id, item.id, 13)
    engine.transfer(w2.id, w1.id, item.id, 4)

    source, destination = _stock(db, w1.id, item.id), _stock(db, w2.id, item.id)
    assert (source.quantity, destination.quantity) == (31, 16)
    assert source.quantity + destination.quantity == 47


def test_insufficient_quantity_leaves_state_unchanged(db, engine, notifier, setup):
    w1, w2, item = setup
    make_stock(db, w1, item, 15)

    with pytest.raises(InsufficientQuantityError) as exc_info:
        engine.transfer(w1.id, w2.id, item.id, 20)

    assert exc_info.value.requested == 20
    assert exc_info.value.available == 15
    assert _stock(db, w1.id, item.id).quantity == 15
    assert _stock(db, w2.id, item.id) is None
    assert db.query(StockTransfer).count() == 0
    assert notifier.events == []


def test_missing_source_stock_is_insufficient(db, engine, setup):
    w1, w2, item = setup

    with pytest.raises(InsufficientQuantityError) as exc_info:
        engine.transfer(w1.id, w2.id, item.id, 1)

    assert exc_info.value.available == 0


def test_exact_quantity_empties_source(db, engine, setup):
    w1, w2, item = setup
    make_stock(db, w1, item, 15)

    engine.transfer(w1.id, w2.id, item.id, 15)

    assert _stock(db, w1.id, item.id).quantity == 0
    assert _stock(db, w2.id, item.id).quantity == 15


@pytest.mark.parametrize("quantity", [0, -3])
def test_non_positive_quantity_rejected(engine, setup, quantity):
    w1, w2, item = setup
    with pytest.raises(InvalidRequestError):
        engine.transfer(w1.id, w2.id, item.id, quantity)


def test_same_warehouse_rejected(db, engine, setup):
    w1, _, item = setup
    make_stock(db, w1, item, 15)

    with pytest.raises(InvalidRequestError):
        engine.transfer(w1.id, w1.id, item.id, 5)

    assert db.query(StockTransfer).count() == 0


def test_source_crossing_threshold_notifies_after_commit(db, engine, notifier, setup):
    w1, w2, item = setup
    make_stock(db, w1, item, 15)

    engine.transfer(w1.id, w2.id, item.id, 7)

    # 출고 15 → 8 (엣지), 입고 0 → 7 은 원래 임계치 미만이라 알림 없음
    assert notifier.quantities == [8]
    snapshot, _ = notifier.events[0]
    assert snapshot.warehouse_id == w1.id


def test_history_queries(db, engine, setup):
    w1, w2, item = setup
    other_item = make_item(db, sku="MOUSE-001", name="Mouse", price=29.99)
    make_stock(db, w1, item, 30)
    make_stock(db, w1, other_item, 30)

    first = engine.transfer(w1.id, w2.id, item.id, 1)
    second = engine.transfer(w1.id, w2.id, other_item.id, 2)
    third = engine.transfer(w2.id, w1.id, item.id, 1)

    assert [t.id for t in engine.item_history_query(item.id)] == [third.id, first.id]
    assert {t.id for t in engine.query(w2.id)} == {first.id, second.id, third.id}
    assert engine.get(second.id).quantity == 2

    with pytest.raises(NotFoundError):
        engine.get(999)


# ── 두 세션 경합 (파일 SQLite: 세션마다 별도 커넥션) ──

@pytest.fixture
def race(tmp_path):
    """출고 15 / 입고 0 재고를 커밋해 두고 (Session 팩토리, ids) 반환"""
    file_engine = build_engine(f"sqlite:///{tmp_path / 'transfer_race.db'}")
    Base.metadata.create_all(bind=file_engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

    setup = Session()
    w1 = make_warehouse(setup, name="Main Warehouse", location="New York")
    w2 = make_warehouse(setup, name="Secondary Warehouse", location="Los Angeles")
    item = make_item(setup)
    make_stock(setup, w1, item, 15)
    make_stock(setup, w2, item, 0)
    ids = (w1.id, w2.id, item.id)
    setup.close()

    yield Session, ids
    file_engine.dispose()


def _final_state(Session, item_id):
    session = Session()
    try:
        quantities = [
            s.quantity
            for s in session.query(Stock)
            .filter(Stock.inventory_item_id == item_id)
            .order_by(Stock.warehouse_id)
        ]
        return quantities, session.query(StockTransfer).count()
    finally:
        session.close()


def _engine_for(session):
    return TransferEngine(StockLedger(session, notifier=RecordingNotifier(), threshold=10))


def test_competing_transfer_committed_first_loses_nothing(race):
    Session, (w1, w2, item) = race
    session_a, session_b = Session(), Session()

    def competing_transfer(session, flush_context, instances):
        _engine_for(session_b).transfer(w1, w2, item, 10)

    # A가 잔량 15를 확인한 뒤, 첫 쓰기 직전에 B의 이동이 먼저 commit
    event.listen(session_a, "before_flush", competing_transfer, once=True)

    try:
        with pytest.raises(ConcurrencyConflictError):
            _engine_for(session_a).transfer(w1, w2, item, 10)
    finally:
        session_a.close()
        session_b.close()

    assert _final_state(Session, item) == ([5, 10], 1)


def test_source_drained_after_lock_read_is_insufficient(race, monkeypatch):
    Session, (w1, w2, item) = race
    session_a, session_b = Session(), Session()
    engine = _engine_for(session_a)
    lock_pair = engine._lock_pair

    def lock_then_other_request_drains(*args):
        locked = lock_pair(*args)
        row = session_b.query(Stock).filter_by(warehouse_id=w1, inventory_item_id=item).one()
        row.quantity = 2
        session_b.commit()
        return locked

    monkeypatch.setattr(engine, "_lock_pair", lock_then_other_request_drains)

    try:
        with pytest.raises(InsufficientQuantityError) as exc_info:
            engine.transfer(w1, w2, item, 10)
    finally:
        session_a.close()
        session_b.close()

    assert exc_info.value.available == 2
    assert _final_state(Session, item) == ([2, 0], 0)
