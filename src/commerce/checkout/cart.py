"""Client-side cart held by the checkout session.

The cart is not persisted; it mirrors what the storefront keeps in the
buyer's browser. Lines are grouped by store at checkout, one order per
store.
"""

from pydantic import BaseModel, Field


class CartItem(BaseModel):
    product_id: str
    name: str
    price: float = Field(ge=0)
    currency: str = "XOF"
    quantity: int = Field(ge=1, default=1)
    image: str | None = None
    store_id: str
    store_name: str | None = None
    store_slug: str | None = None
    slug: str | None = None
    max_stock: int | None = Field(default=None, ge=0)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class Cart:
    def __init__(self, items: list[CartItem] | None = None):
        self._items: list[CartItem] = []
        for item in items or []:
            self.add(item)

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    def _find(self, product_id: str) -> CartItem | None:
        return next((item for item in self._items if item.product_id == product_id), None)

    @staticmethod
    def _clamp(item: CartItem, quantity: int) -> int:
        if item.max_stock is not None:
            return min(quantity, item.max_stock)
        return quantity

    def add(self, item: CartItem) -> None:
        """Add a line, merging quantities for a product already in the cart."""
        existing = self._find(item.product_id)
        if existing is None:
            line = item.model_copy()
            line.quantity = self._clamp(line, line.quantity)
            if line.quantity > 0:
                self._items.append(line)
            return
        existing.quantity = self._clamp(existing, existing.quantity + item.quantity)

    def update_quantity(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        existing = self._find(product_id)
        if existing is not None:
            existing.quantity = self._clamp(existing, quantity)

    def remove(self, product_id: str) -> None:
        self._items = [item for item in self._items if item.product_id != product_id]

    def clear_store(self, store_id: str) -> None:
        self._items = [item for item in self._items if item.store_id != store_id]

    def clear(self) -> None:
        self._items = []

    def items_by_store(self) -> dict[str, list[CartItem]]:
        groups: dict[str, list[CartItem]] = {}
        for item in self._items:
            groups.setdefault(item.store_id, []).append(item)
        return groups

    @property
    def total(self) -> float:
        return sum(item.line_total for item in self._items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items
