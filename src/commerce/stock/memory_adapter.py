"""In-memory stock guard — process-local levels behind a lock."""

import threading

from commerce.stock.port import StockGuard, check_quantity


class InMemoryStockGuard(StockGuard):
    """Stock levels kept in a dict; every check-and-decrement runs under one lock."""

    def __init__(self, levels: dict[str, int] | None = None):
        self._lock = threading.Lock()
        self._levels: dict[str, int] = dict(levels or {})

    def set_level(self, product_id: str, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("Stock level cannot be negative")
        with self._lock:
            self._levels[str(product_id)] = quantity

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        check_quantity(quantity)
        key = str(product_id)
        with self._lock:
            current = self._levels.get(key)
            if current is None or current < quantity:
                return False
            self._levels[key] = current - quantity
            return True

    def restock(self, product_id: str, quantity: int) -> None:
        check_quantity(quantity)
        key = str(product_id)
        with self._lock:
            self._levels[key] = self._levels.get(key, 0) + quantity

    def available(self, product_id: str) -> int | None:
        with self._lock:
            return self._levels.get(str(product_id))

    def reset(self) -> None:
        with self._lock:
            self._levels.clear()
