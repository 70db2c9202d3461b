"""Stock guard port — the only mutation path to product stock from checkout.

Implementations must make ``decrement_stock`` a single atomic
check-and-decrement at the storage layer. Callers treat a ``False`` result
as a normal "insufficient stock" branch, never as an error.
"""

from abc import ABC, abstractmethod


class StockGuard(ABC):
    """Abstract interface for atomic stock reservation."""

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement stock by ``quantity`` iff at least ``quantity`` units remain.

        Returns:
            True when the units were taken, False when stock was insufficient
            or the product is unknown.
        """
        ...

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> None:
        """Give back units taken earlier (compensation and cancellations)."""
        ...

    @abstractmethod
    def available(self, product_id: str) -> int | None:
        """Current stock level, or None when the product is not tracked."""
        ...


def check_quantity(quantity: int) -> None:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
        raise ValueError(f"Stock quantity must be a positive integer, got {quantity!r}")
