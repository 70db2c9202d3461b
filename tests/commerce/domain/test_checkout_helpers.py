"""Tests for the checkout building blocks that need no persistence."""

import threading

import pytest
from commerce.checkout.orchestrator import split_shipping
from commerce.checkout.result import CheckoutResult, LegOutcome, LegStatus, PlacedOrder
from commerce.checkout.side_effects import SideEffectQueue
from commerce.checkout.timers import ThreadingTimerFactory, TimerFactory, TimerHandle


class TestSplitShipping:
    def test_single_store_pays_full_fee(self):
        assert split_shipping(2500, 1) == 2500

    def test_even_split(self):
        assert split_shipping(3000, 3) == 1000

    def test_uneven_split_is_floored(self):
        assert split_shipping(1000, 3) == 333

    @pytest.mark.parametrize("fee, stores", [(1000, 3), (2500, 2), (1, 4), (0, 5), (999, 7)])
    def test_sum_never_exceeds_fee(self, fee, stores):
        assert split_shipping(fee, stores) * stores <= fee


def _placed(number, total):
    return PlacedOrder(order_id=f"id-{number}", order_number=number, store_id="s", total=total, tracking_token="t")


class TestCheckoutResult:
    def test_all_committed(self):
        result = CheckoutResult(
            legs=[
                LegOutcome("s1", "Store 1", LegStatus.COMMITTED, order=_placed("FX-1", 1000)),
                LegOutcome("s2", "Store 2", LegStatus.COMMITTED, order=_placed("FX-2", 2000)),
            ]
        )
        assert result.succeeded
        assert not result.partially_succeeded
        assert result.total == 3000
        assert result.message == "2 orders placed"

    def test_partial_success_names_placed_orders(self):
        result = CheckoutResult(
            legs=[
                LegOutcome("s1", "Store 1", LegStatus.COMMITTED, order=_placed("FX-1", 1000)),
                LegOutcome("s2", "Store 2", LegStatus.STOCK_CONFLICT, product_name="Wax dress"),
                LegOutcome("s3", "Store 3", LegStatus.NOT_ATTEMPTED),
            ]
        )
        assert result.partially_succeeded
        assert not result.succeeded
        assert result.failed_leg.store_id == "s2"
        assert result.message == "Insufficient stock for Wax dress. Orders already placed: FX-1"

    def test_nothing_placed(self):
        result = CheckoutResult(legs=[LegOutcome("s1", "Store 1", LegStatus.FAILED, error="db down")])
        assert result.orders == []
        assert not result.partially_succeeded
        assert result.message == "Your order could not be placed, please try again"


class TestSideEffectQueue:
    def test_tasks_run_on_drain(self):
        calls = []
        queue = SideEffectQueue()
        queue.submit("record", calls.append, "a")
        queue.submit("record", calls.append, "b")
        assert queue.pending == 2
        assert queue.drain() == 0
        assert calls == ["a", "b"]
        assert queue.stats() == {"record": {"succeeded": 2, "failed": 0}}

    def test_failure_is_collected_not_raised(self):
        def explode():
            raise RuntimeError("broker down")

        queue = SideEffectQueue()
        queue.submit("publish", explode, context={"order_id": "o-1"})
        assert queue.drain() == 1
        assert queue.failures[0].name == "publish"
        assert queue.failures[0].error == "broker down"
        assert queue.failures[0].context == {"order_id": "o-1"}

    def test_full_queue_drains_before_accepting(self):
        calls = []
        queue = SideEffectQueue(maxsize=2)
        for n in range(5):
            queue.submit("record", calls.append, n)
        queue.drain()
        assert calls == [0, 1, 2, 3, 4]


class TestTimers:
    def test_interfaces_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            TimerFactory()
        with pytest.raises(TypeError):
            TimerHandle()

    def test_threading_timer_fires(self):
        fired = threading.Event()
        ThreadingTimerFactory().schedule(0.01, fired.set)
        assert fired.wait(timeout=2)

    def test_threading_timer_can_be_cancelled(self):
        fired = threading.Event()
        handle = ThreadingTimerFactory().schedule(0.2, fired.set)
        handle.cancel()
        assert not fired.wait(timeout=0.4)

    def test_manual_clock_fires_only_when_due(self, timers):
        fired = []
        timers.schedule(2.0, lambda: fired.append("capture"))
        assert timers.advance(1.0) == 0
        assert timers.advance(1.0) == 1
        assert fired == ["capture"]
        assert timers.pending == 0

    def test_manual_clock_forgets_spent_timers(self, timers):
        for _ in range(50):
            timers.schedule(1.0, lambda: None).cancel()
            timers.schedule(1.0, lambda: None)
            timers.advance(1.0)
        assert timers._handles == []
