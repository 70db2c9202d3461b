"""Tests for the EscrowRecord aggregate: hold, release, refund and disputes."""

from datetime import UTC, datetime, timedelta

import pytest
from commerce.escrow.escrow import EscrowRecord, EscrowStatus
from commerce.escrow.events import EscrowDisputed, EscrowHeld, EscrowRefunded, EscrowReleased
from protean.exceptions import ValidationError


def _held(amount=10000.0, commission_rate=0.05, hold_days=7):
    escrow = EscrowRecord.hold(
        order_id="order-001",
        store_id="store-001",
        amount=amount,
        commission_rate=commission_rate,
        hold_days=hold_days,
    )
    escrow._events.clear()
    return escrow


class TestHold:
    def test_commission_and_net_amount(self):
        escrow = _held(amount=10000.0, commission_rate=0.05)
        assert escrow.commission_amount == 500.0
        assert escrow.net_amount == 9500.0
        assert escrow.status == EscrowStatus.HELD.value

    def test_commission_is_rounded_to_cents(self):
        escrow = _held(amount=333.33, commission_rate=0.05)
        assert escrow.commission_amount == 16.67
        assert escrow.net_amount == 316.66

    def test_release_date_is_after_hold_period(self):
        before = datetime.now(UTC)
        escrow = _held(hold_days=7)
        assert escrow.release_at >= before + timedelta(days=7)

    def test_hold_raises_event(self):
        escrow = EscrowRecord.hold(order_id="order-002", store_id="store-001", amount=500.0)
        assert isinstance(escrow._events[0], EscrowHeld)

    def test_due_for_release(self):
        escrow = _held(hold_days=7)
        assert escrow.is_due_for_release() is False
        assert escrow.is_due_for_release(datetime.now(UTC) + timedelta(days=8)) is True


class TestSettlement:
    def test_release(self):
        escrow = _held()
        escrow.release(reason="Receipt confirmed by buyer")
        assert escrow.status == EscrowStatus.RELEASED.value
        assert escrow.released_at is not None
        assert isinstance(escrow._events[-1], EscrowReleased)

    def test_refund(self):
        escrow = _held()
        escrow.refund(reason="Order cancelled")
        assert escrow.status == EscrowStatus.REFUNDED.value
        assert escrow.refunded_at is not None
        assert isinstance(escrow._events[-1], EscrowRefunded)

    def test_released_escrow_cannot_be_refunded(self):
        escrow = _held()
        escrow.release()
        with pytest.raises(ValidationError):
            escrow.refund()

    def test_refunded_escrow_cannot_be_released(self):
        escrow = _held()
        escrow.refund()
        with pytest.raises(ValidationError):
            escrow.release()

    def test_released_escrow_is_not_due(self):
        escrow = _held(hold_days=0)
        escrow.release()
        assert escrow.is_due_for_release(datetime.now(UTC) + timedelta(days=1)) is False


class TestDisputes:
    def test_dispute_blocks_release(self):
        escrow = _held()
        escrow.dispute("Item damaged")
        assert escrow.status == EscrowStatus.DISPUTED.value
        assert isinstance(escrow._events[-1], EscrowDisputed)
        with pytest.raises(ValidationError):
            escrow.release()

    def test_resolve_with_release(self):
        escrow = _held()
        escrow.dispute("Item damaged")
        escrow.resolve("release")
        assert escrow.status == EscrowStatus.RELEASED.value

    def test_resolve_with_refund(self):
        escrow = _held()
        escrow.dispute("Item damaged")
        escrow.resolve("refund", reason="Photos confirm damage")
        assert escrow.status == EscrowStatus.REFUNDED.value
        assert escrow.status_reason == "Photos confirm damage"

    def test_unknown_outcome(self):
        escrow = _held()
        escrow.dispute("Item damaged")
        with pytest.raises(ValidationError) as exc:
            escrow.resolve("split")
        assert "outcome" in exc.value.messages

    def test_only_disputed_escrow_can_be_resolved(self):
        with pytest.raises(ValidationError):
            _held().resolve("release")
