"""Application tests for the checkout session: delayed capture and debounced contact updates."""

from commerce.abandoned_cart.abandoned_cart import AbandonedCart, AbandonedCartStatus
from commerce.checkout.cart import Cart, CartItem
from commerce.checkout.session import CheckoutSession
from commerce.domain import commerce
from protean import current_domain


def _cart(*store_ids):
    return Cart(
        [
            CartItem(product_id=f"p-{store_id}", name="Wax dress", price=15000, store_id=store_id)
            for store_id in store_ids or ("store-001",)
        ]
    )


def _rows():
    return current_domain.repository_for(AbandonedCart)._dao.query.all().items


def _session(timers, cart=None):
    return CheckoutSession("sess-001", cart or _cart(), commerce, timers=timers)


class TestCapture:
    def test_nothing_recorded_before_delay(self, timers):
        session = _session(timers)
        assert session.start() is True
        timers.advance(1.9)
        assert _rows() == []

    def test_snapshot_per_store_after_delay(self, timers):
        session = _session(timers, _cart("store-001", "store-002"))
        session.start()
        timers.advance(2.0)

        rows = _rows()
        assert {row.store_id for row in rows} == {"store-001", "store-002"}
        assert all(row.status == AbandonedCartStatus.ABANDONED.value for row in rows)

    def test_empty_cart_is_not_captured(self, timers):
        session = _session(timers, Cart())
        assert session.start() is False
        assert timers.pending == 0

    def test_leaving_the_page_cancels_capture(self, timers):
        session = _session(timers)
        session.start()
        session.close()
        timers.advance(10)
        assert _rows() == []


class TestContactDebounce:
    def test_only_last_edit_is_written(self, timers, monkeypatch):
        session = _session(timers)
        session.start()
        timers.advance(2.0)

        processed = []
        original = commerce.process

        def recording_process(command, *args, **kwargs):
            processed.append(command)
            return original(command, *args, **kwargs)

        monkeypatch.setattr(commerce, "process", recording_process)

        session.update_contact(email="a@example.com")
        timers.advance(0.5)
        session.update_contact(email="aw@example.com")
        timers.advance(0.5)
        session.update_contact(email="awa@example.com", phone="+221770000000")
        timers.advance(1.5)

        assert len(processed) == 1
        row = _rows()[0]
        assert row.customer_email == "awa@example.com"
        assert row.customer_phone == "+221770000000"

    def test_blank_contact_schedules_nothing(self, timers):
        session = _session(timers)
        assert session.update_contact(email="", phone="") is False
        assert timers.pending == 0

    def test_contact_typed_before_capture_is_included(self, timers):
        session = _session(timers)
        session.start()
        session.update_contact(name="Awa")
        timers.advance(2.0)

        assert _rows()[0].customer_name == "Awa"


class TestCompletion:
    def test_mark_completed_closes_rows_and_timers(self, timers):
        session = _session(timers)
        session.start()
        timers.advance(2.0)
        session.update_contact(email="awa@example.com")

        session.mark_completed()
        timers.advance(5)

        row = _rows()[0]
        assert row.status == AbandonedCartStatus.COMPLETED.value
        assert row.customer_email is None
        assert session.closed
        assert session.update_contact(email="late@example.com") is False

    def test_recording_errors_never_escape(self, timers, monkeypatch):
        def broken_process(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(commerce, "process", broken_process)
        session = _session(timers)
        session.start()

        timers.advance(2.0)
        session.mark_completed()
