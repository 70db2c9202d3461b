"""Tests for the client-side Cart: merging, clamping and per-store grouping."""

import pytest
from commerce.checkout.cart import Cart, CartItem
from pydantic import ValidationError as PydanticValidationError


def _item(product_id="prod-001", store_id="store-001", quantity=1, price=5000.0, max_stock=None):
    return CartItem(
        product_id=product_id,
        name=f"Product {product_id}",
        price=price,
        quantity=quantity,
        store_id=store_id,
        store_name=f"Store {store_id}",
        max_stock=max_stock,
    )


class TestCartItems:
    def test_add_merges_same_product(self):
        cart = Cart()
        cart.add(_item(quantity=1))
        cart.add(_item(quantity=2))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_add_clamps_to_max_stock(self):
        cart = Cart([_item(quantity=2, max_stock=3)])
        cart.add(_item(quantity=5, max_stock=3))
        assert cart.items[0].quantity == 3

    def test_new_line_clamped_to_zero_is_dropped(self):
        cart = Cart([_item(quantity=1, max_stock=0)])
        assert cart.is_empty

    def test_update_quantity(self):
        cart = Cart([_item(quantity=1, max_stock=4)])
        cart.update_quantity("prod-001", 10)
        assert cart.items[0].quantity == 4

    def test_update_to_zero_removes(self):
        cart = Cart([_item()])
        cart.update_quantity("prod-001", 0)
        assert cart.is_empty

    def test_remove(self):
        cart = Cart([_item("prod-001"), _item("prod-002")])
        cart.remove("prod-001")
        assert [item.product_id for item in cart.items] == ["prod-002"]

    def test_negative_price_rejected(self):
        with pytest.raises(PydanticValidationError):
            _item(price=-1)


class TestCartTotals:
    def test_total_and_count(self):
        cart = Cart([_item("prod-001", quantity=2, price=5000), _item("prod-002", quantity=1, price=2500)])
        assert cart.total == 12500
        assert cart.item_count == 3

    def test_empty_cart(self):
        cart = Cart()
        assert cart.is_empty
        assert cart.total == 0


class TestStoreGrouping:
    def test_items_grouped_by_store_in_insertion_order(self):
        cart = Cart(
            [
                _item("prod-001", store_id="store-b"),
                _item("prod-002", store_id="store-a"),
                _item("prod-003", store_id="store-b"),
            ]
        )
        groups = cart.items_by_store()
        assert list(groups) == ["store-b", "store-a"]
        assert [item.product_id for item in groups["store-b"]] == ["prod-001", "prod-003"]

    def test_clear_store(self):
        cart = Cart([_item("prod-001", store_id="store-a"), _item("prod-002", store_id="store-b")])
        cart.clear_store("store-a")
        assert list(cart.items_by_store()) == ["store-b"]

    def test_clear(self):
        cart = Cart([_item("prod-001"), _item("prod-002")])
        cart.clear()
        assert cart.is_empty
