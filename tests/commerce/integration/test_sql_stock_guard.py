"""Integration tests for the SQL stock guard on SQLite."""

import threading

import pytest
from commerce.stock.sql_adapter import SqlStockGuard


@pytest.fixture()
def guard(tmp_path):
    guard = SqlStockGuard(f"sqlite:///{tmp_path / 'stock.db'}")
    guard.create_table()
    yield guard
    guard.drop_table()
    guard.engine.dispose()


class TestSqlStockGuard:
    def test_decrement_within_stock(self, guard):
        guard.set_level("p1", 5)
        assert guard.decrement_stock("p1", 3) is True
        assert guard.available("p1") == 2

    def test_decrement_refused_when_short(self, guard):
        guard.set_level("p1", 2)
        assert guard.decrement_stock("p1", 3) is False
        assert guard.available("p1") == 2

    def test_unknown_product_is_refused(self, guard):
        assert guard.decrement_stock("ghost", 1) is False
        assert guard.available("ghost") is None

    def test_restock(self, guard):
        guard.set_level("p1", 0)
        guard.restock("p1", 4)
        assert guard.available("p1") == 4

    def test_restock_creates_missing_row(self, guard):
        guard.restock("p2", 1)
        assert guard.available("p2") == 1

    def test_set_level_overwrites(self, guard):
        guard.set_level("p1", 5)
        guard.set_level("p1", 1)
        assert guard.available("p1") == 1

    def test_negative_level_rejected(self, guard):
        with pytest.raises(ValueError):
            guard.set_level("p1", -1)

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, guard, quantity):
        guard.set_level("p1", 5)
        with pytest.raises(ValueError):
            guard.decrement_stock("p1", quantity)

    def test_concurrent_buyers_never_oversell(self, guard):
        guard.set_level("last-unit", 3)
        outcomes = []
        lock = threading.Lock()

        def buy():
            taken = guard.decrement_stock("last-unit", 1)
            with lock:
                outcomes.append(taken)

        threads = [threading.Thread(target=buy) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count(True) == 3
        assert guard.available("last-unit") == 0
