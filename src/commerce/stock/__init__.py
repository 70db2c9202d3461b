"""Stock guard factory.

Provides get_stock_guard() / set_stock_guard() to swap implementations:
- InMemoryStockGuard for development and testing
- SqlStockGuard when STOCK_GUARD=sql and DATABASE_URL are set
"""

from commerce.config import get_settings
from commerce.stock.memory_adapter import InMemoryStockGuard
from commerce.stock.port import StockGuard

_current_guard: StockGuard | None = None


def get_stock_guard() -> StockGuard:
    """Return the current stock guard, building it from settings on first use."""
    global _current_guard
    if _current_guard is None:
        settings = get_settings()
        if settings.stock_guard == "sql":
            if not settings.database_url:
                raise ValueError("STOCK_GUARD=sql requires DATABASE_URL")
            from commerce.stock.sql_adapter import SqlStockGuard

            _current_guard = SqlStockGuard(settings.database_url)
        else:
            _current_guard = InMemoryStockGuard()
    return _current_guard


def set_stock_guard(guard: StockGuard) -> None:
    """Override the active stock guard (useful for tests)."""
    global _current_guard
    _current_guard = guard


def reset_stock_guard() -> None:
    """Reset to the default guard."""
    global _current_guard
    _current_guard = None
