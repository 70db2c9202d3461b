"""Application tests for abandoned cart capture, contact updates, completion and recovery."""

import json

import pytest
from commerce.abandoned_cart.abandoned_cart import AbandonedCart, AbandonedCartStatus
from commerce.abandoned_cart.capture import CaptureAbandonedCart, CompleteAbandonedCarts, UpdateAbandonedCartContact
from commerce.abandoned_cart.recovery import RecoverAbandonedCart
from commerce.coupon.coupon import Coupon
from commerce.coupon.redemption import RedeemCoupon
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

ITEMS = [{"product_id": "p1", "name": "Wax dress", "price": 15000, "quantity": 1}]


def _capture(session_id="sess-001", store_id="store-001", items=ITEMS, **contact):
    return current_domain.process(
        CaptureAbandonedCart(session_id=session_id, store_id=store_id, items=json.dumps(items), **contact),
        asynchronous=False,
    )


def _get(cart_id):
    return current_domain.repository_for(AbandonedCart).get(cart_id)


def _all():
    return current_domain.repository_for(AbandonedCart)._dao.query.all().items


class TestCapture:
    def test_one_row_per_session_and_store(self):
        first = _capture(store_id="store-001")
        second = _capture(store_id="store-002")
        again = _capture(store_id="store-001", items=ITEMS * 2)

        assert first == again
        assert first != second
        assert len(_all()) == 2
        assert _get(first).cart_total == 30000

    def test_closed_row_is_not_touched(self):
        cart_id = _capture()
        current_domain.process(CompleteAbandonedCarts(session_id="sess-001"), asynchronous=False)

        assert _capture(items=[]) == cart_id
        cart = _get(cart_id)
        assert cart.status == AbandonedCartStatus.COMPLETED.value
        assert cart.cart_total == 15000


class TestContact:
    def test_contact_patched_on_every_open_row(self):
        _capture(store_id="store-001")
        _capture(store_id="store-002")

        updated = current_domain.process(
            UpdateAbandonedCartContact(session_id="sess-001", customer_email="awa@example.com"),
            asynchronous=False,
        )

        assert updated == 2
        assert {cart.customer_email for cart in _all()} == {"awa@example.com"}

    def test_completed_rows_are_skipped(self):
        _capture()
        current_domain.process(CompleteAbandonedCarts(session_id="sess-001"), asynchronous=False)

        updated = current_domain.process(
            UpdateAbandonedCartContact(session_id="sess-001", customer_phone="+221770000000"),
            asynchronous=False,
        )
        assert updated == 0


class TestCompletion:
    def test_completes_all_rows_of_session(self):
        _capture(store_id="store-001")
        _capture(store_id="store-002")
        _capture(session_id="sess-other")

        completed = current_domain.process(CompleteAbandonedCarts(session_id="sess-001"), asynchronous=False)

        assert completed == 2
        statuses = {cart.session_id: cart.status for cart in _all() if cart.session_id == "sess-other"}
        assert statuses == {"sess-other": AbandonedCartStatus.ABANDONED.value}


class TestRecovery:
    def test_recover_with_discount_issues_single_use_coupon(self, email):
        cart_id = _capture(customer_email="awa@example.com", customer_name="Awa")

        result = current_domain.process(
            RecoverAbandonedCart(cart_id=cart_id, with_discount=True, discount_percent=15),
            asynchronous=False,
        )

        assert result["recovery_code"].startswith("RECOVER-")
        assert result["email_sent"] is True
        cart = _get(cart_id)
        assert cart.status == AbandonedCartStatus.RECOVERED.value
        assert cart.recovery_code == result["recovery_code"]

        coupon = current_domain.repository_for(Coupon)._dao.query.all().items[0]
        assert coupon.code == result["recovery_code"]
        assert coupon.store_id == "store-001"
        assert coupon.discount_value == 15
        assert coupon.max_uses == 1
        assert "15% off" in email.sent_emails[0]["body"]

    def test_recover_without_discount(self, email):
        cart_id = _capture(customer_email="awa@example.com")
        result = current_domain.process(RecoverAbandonedCart(cart_id=cart_id), asynchronous=False)

        assert result["recovery_code"] is None
        assert current_domain.repository_for(Coupon)._dao.query.all().items == []
        assert len(email.sent_emails) == 1

    def test_email_failure_still_recovers(self, email):
        email.configure(raise_error=True)
        cart_id = _capture(customer_email="awa@example.com")

        result = current_domain.process(RecoverAbandonedCart(cart_id=cart_id), asynchronous=False)

        assert result["email_sent"] is False
        assert _get(cart_id).status == AbandonedCartStatus.RECOVERED.value

    def test_no_email_address(self, email):
        cart_id = _capture()
        result = current_domain.process(RecoverAbandonedCart(cart_id=cart_id), asynchronous=False)
        assert result["email_sent"] is False
        assert email.sent_emails == []

    def test_recovered_cart_cannot_be_recovered_again(self):
        cart_id = _capture()
        current_domain.process(RecoverAbandonedCart(cart_id=cart_id, with_discount=True), asynchronous=False)

        with pytest.raises(ValidationError):
            current_domain.process(RecoverAbandonedCart(cart_id=cart_id, with_discount=True), asynchronous=False)
        assert len(current_domain.repository_for(Coupon)._dao.query.all().items) == 1


class TestCouponRedemption:
    def test_recovery_code_redeems_once(self):
        cart_id = _capture()
        code = current_domain.process(RecoverAbandonedCart(cart_id=cart_id, with_discount=True), asynchronous=False)[
            "recovery_code"
        ]

        result = current_domain.process(RedeemCoupon(store_id="store-001", code=code), asynchronous=False)
        assert result["discount_value"] == 10

        with pytest.raises(ValidationError):
            current_domain.process(RedeemCoupon(store_id="store-001", code=code), asynchronous=False)

    def test_code_is_store_scoped(self):
        cart_id = _capture()
        code = current_domain.process(RecoverAbandonedCart(cart_id=cart_id, with_discount=True), asynchronous=False)[
            "recovery_code"
        ]
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(RedeemCoupon(store_id="store-999", code=code), asynchronous=False)
