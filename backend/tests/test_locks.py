"""
Tests for OrderLockManager - per-order write serialization.
"""

import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pos_api.models import Base, Order, Product
from pos_api.services.domain import MultiSelection, OrderAggregateService, PricingRules
from shared.infrastructure.db import enable_sqlite_foreign_keys
from shared.infrastructure.events import OrderChangeBus
from shared.infrastructure.locks import OrderLockManager
from shared.utils.exceptions import OrderBusyError


class TestOrderLockManager:
    def test_hold_serializes_same_order(self):
        locks = OrderLockManager(timeout=5)
        active = 0
        overlaps = []

        def work():
            nonlocal active
            with locks.hold(7):
                active += 1
                overlaps.append(active)
                time.sleep(0.01)
                active -= 1

        threads = [threading.Thread(target=work) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max(overlaps) == 1

    def test_different_orders_do_not_contend(self):
        locks = OrderLockManager(timeout=0.2)

        with locks.hold(1):
            with locks.hold(2):
                pass

    def test_timeout_raises_order_busy(self):
        locks = OrderLockManager(timeout=0.05)
        holding = threading.Event()
        release = threading.Event()

        def hold():
            with locks.hold(3):
                holding.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold)
        holder.start()
        holding.wait(timeout=5)
        try:
            with pytest.raises(OrderBusyError) as exc_info:
                with locks.hold(3):
                    pass
            assert exc_info.value.status_code == 409
        finally:
            release.set()
            holder.join()

    def test_hold_many_sorts_and_dedupes(self):
        locks = OrderLockManager(timeout=1)

        with locks.hold_many([9, 3, 7, 3]) as ordered:
            assert ordered == [3, 7, 9]

    def test_hold_many_releases_on_timeout(self):
        locks = OrderLockManager(timeout=0.05)
        holding = threading.Event()
        release = threading.Event()

        def hold():
            with locks.hold(5):
                holding.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold)
        holder.start()
        holding.wait(timeout=5)
        try:
            with pytest.raises(OrderBusyError):
                with locks.hold_many([1, 5]):
                    pass
        finally:
            release.set()
            holder.join()

        # Lock 1 was released when lock 5 timed out
        with locks.hold(1, timeout=0.05):
            pass

    def test_overlapping_bulk_holds_do_not_deadlock(self):
        locks = OrderLockManager(timeout=5)
        done = []

        def bulk(ids):
            for _ in range(50):
                with locks.hold_many(ids):
                    pass
            done.append(ids)

        a = threading.Thread(target=bulk, args=([1, 2, 3],))
        b = threading.Thread(target=bulk, args=([3, 2, 1],))
        a.start()
        b.start()
        a.join(timeout=10)
        b.join(timeout=10)

        assert len(done) == 2

    def test_unused_locks_are_cleaned(self):
        locks = OrderLockManager(timeout=1, cleanup_threshold=10)

        for order_id in range(25):
            with locks.hold(order_id):
                pass

        assert locks.lock_count <= 10
        assert locks.locks_cleaned_total >= 10


class TestConcurrentCartWrites:
    """Many threads increasing the same line through separate sessions."""

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'pos.db'}",
            connect_args={"check_same_thread": False, "timeout": 10},
        )
        enable_sqlite_foreign_keys(engine)
        Base.metadata.create_all(bind=engine)
        yield engine
        engine.dispose()

    def test_concurrent_increases_are_not_lost(self, file_engine):
        Session = sessionmaker(bind=file_engine, autoflush=False)
        with Session() as db:
            db.add(Product(id=1, name="Tea", price=10))
            db.add(Order(id=1))
            db.commit()

        locks = OrderLockManager(timeout=10)
        bus = OrderChangeBus()
        errors = []

        def increase():
            with Session() as db:
                service = OrderAggregateService(
                    db,
                    locks=locks,
                    bus=bus,
                    multi_selection=MultiSelection(),
                    pricing_rules=PricingRules(),
                    session_factory=Session,
                )
                result = service.increase_quantity(1, 1)
                if not result.success:
                    errors.append(result.message)

        threads = [threading.Thread(target=increase) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        with Session() as db:
            aggregate = OrderAggregateService(db, locks=locks, bus=bus, multi_selection=MultiSelection()).get_order(1)

        assert errors == []
        assert aggregate.quantity_of(1) == 10
        assert aggregate.price.total == 100
