"""EscrowRecord aggregate — funds held for one online-paid order.

The platform keeps the buyer's payment until the buyer confirms receipt or
the hold period elapses, then pays the store its net amount (amount minus
commission). Cancelled orders are refunded from escrow.

State Machine:
    HELD → RELEASED
    HELD → REFUNDED
    HELD → DISPUTED → RELEASED | REFUNDED
"""

from datetime import timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce
from commerce.escrow.events import EscrowDisputed, EscrowHeld, EscrowRefunded, EscrowReleased
from commerce.shared.clock import is_due, utc_now

DEFAULT_COMMISSION_RATE = 0.05
DEFAULT_HOLD_DAYS = 7


class EscrowStatus(Enum):
    HELD = "held"
    RELEASED = "released"
    REFUNDED = "refunded"
    DISPUTED = "disputed"


class DisputeOutcome(Enum):
    RELEASE = "release"
    REFUND = "refund"


@commerce.aggregate
class EscrowRecord:
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="XOF")
    commission_rate = Float(default=DEFAULT_COMMISSION_RATE, min_value=0.0, max_value=1.0)
    commission_amount = Float(default=0.0)
    net_amount = Float(default=0.0)
    status = String(choices=EscrowStatus, default=EscrowStatus.HELD.value)
    status_reason = String(max_length=500)
    release_at = DateTime()
    released_at = DateTime()
    refunded_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def hold(
        cls,
        order_id,
        store_id,
        amount,
        currency="XOF",
        commission_rate=DEFAULT_COMMISSION_RATE,
        hold_days=DEFAULT_HOLD_DAYS,
    ):
        now = utc_now()
        commission_amount = round(amount * commission_rate, 2)
        escrow = cls(
            order_id=str(order_id),
            store_id=str(store_id),
            amount=amount,
            currency=currency,
            commission_rate=commission_rate,
            commission_amount=commission_amount,
            net_amount=round(amount - commission_amount, 2),
            status=EscrowStatus.HELD.value,
            release_at=now + timedelta(days=hold_days),
            created_at=now,
            updated_at=now,
        )
        escrow.raise_(
            EscrowHeld(
                escrow_id=str(escrow.id),
                order_id=str(order_id),
                store_id=str(store_id),
                amount=amount,
                commission_amount=escrow.commission_amount,
                net_amount=escrow.net_amount,
                release_at=escrow.release_at,
            )
        )
        return escrow

    @property
    def is_held(self):
        return self.status == EscrowStatus.HELD.value

    def is_due_for_release(self, now=None):
        return self.is_held and is_due(self.release_at, now)

    def _require(self, *allowed):
        if EscrowStatus(self.status) not in allowed:
            expected = " or ".join(state.value for state in allowed)
            raise ValidationError({"status": [f"Escrow is {self.status}, expected {expected}"]})

    def release(self, reason=None):
        self._require(EscrowStatus.HELD)
        self._release(reason)

    def refund(self, reason=None):
        self._require(EscrowStatus.HELD, EscrowStatus.DISPUTED)
        now = utc_now()
        self.status = EscrowStatus.REFUNDED.value
        self.status_reason = reason
        self.refunded_at = now
        self.updated_at = now

        self.raise_(
            EscrowRefunded(
                escrow_id=str(self.id),
                order_id=str(self.order_id),
                store_id=str(self.store_id),
                amount=self.amount,
                reason=reason,
                refunded_at=now,
            )
        )

    def dispute(self, reason):
        self._require(EscrowStatus.HELD)
        now = utc_now()
        self.status = EscrowStatus.DISPUTED.value
        self.status_reason = reason
        self.updated_at = now

        self.raise_(
            EscrowDisputed(
                escrow_id=str(self.id),
                order_id=str(self.order_id),
                store_id=str(self.store_id),
                reason=reason,
                disputed_at=now,
            )
        )

    def resolve(self, outcome, reason=None):
        self._require(EscrowStatus.DISPUTED)
        if outcome not in {o.value for o in DisputeOutcome}:
            raise ValidationError({"outcome": [f"Unknown dispute outcome: {outcome}"]})

        if outcome == DisputeOutcome.RELEASE.value:
            self._release(reason or "Dispute resolved for the store")
        else:
            self.refund(reason or "Dispute resolved for the buyer")

    def _release(self, reason):
        now = utc_now()
        self.status = EscrowStatus.RELEASED.value
        self.status_reason = reason
        self.released_at = now
        self.updated_at = now

        self.raise_(
            EscrowReleased(
                escrow_id=str(self.id),
                order_id=str(self.order_id),
                store_id=str(self.store_id),
                net_amount=self.net_amount,
                reason=reason,
                released_at=now,
            )
        )
