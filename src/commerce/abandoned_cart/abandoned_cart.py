"""AbandonedCart aggregate — snapshot of a checkout the buyer has not finished.

One row exists per checkout session and store. The snapshot is refreshed
while the buyer keeps editing, and contact details are patched in as they
are typed. Completing the checkout or a vendor recovery closes the row for
good: terminal rows ignore later captures and contact updates.

State Machine:
    ABANDONED → COMPLETED
    ABANDONED → RECOVERED
"""

import json
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text

from commerce.abandoned_cart.events import AbandonedCartCaptured, AbandonedCartCompleted, AbandonedCartRecovered
from commerce.domain import commerce
from commerce.shared.clock import utc_now


class AbandonedCartStatus(Enum):
    ABANDONED = "abandoned"
    COMPLETED = "completed"
    RECOVERED = "recovered"


def cart_total_of(items):
    return sum((item.get("price") or 0) * (item.get("quantity") or 0) for item in items)


@commerce.aggregate
class AbandonedCart:
    store_id = Identifier(required=True)
    session_id = String(required=True, max_length=100)
    customer_email = String(max_length=254)
    customer_phone = String(max_length=20)
    customer_name = String(max_length=200)
    cart_items = Text()  # JSON: list of cart lines
    cart_total = Float(default=0.0)
    currency = String(max_length=3, default="XOF")
    status = String(choices=AbandonedCartStatus, default=AbandonedCartStatus.ABANDONED.value)
    recovery_code = String(max_length=20)
    recovered_at = DateTime()
    completed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def capture(cls, session_id, store_id, items, currency="XOF", email=None, phone=None, name=None):
        now = utc_now()
        cart = cls(
            session_id=session_id,
            store_id=str(store_id),
            cart_items=json.dumps(items),
            cart_total=cart_total_of(items),
            currency=currency,
            customer_email=email or None,
            customer_phone=phone or None,
            customer_name=name or None,
            status=AbandonedCartStatus.ABANDONED.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            AbandonedCartCaptured(
                cart_id=str(cart.id),
                store_id=str(store_id),
                session_id=session_id,
                cart_total=cart.cart_total,
                captured_at=now,
            )
        )
        return cart

    @property
    def is_open(self):
        return self.status == AbandonedCartStatus.ABANDONED.value

    @property
    def snapshot_items(self):
        return json.loads(self.cart_items) if self.cart_items else []

    def refresh_snapshot(self, items, currency=None, email=None, phone=None, name=None):
        """Replace the cart contents. Returns False, changing nothing, on a closed row."""
        if not self.is_open:
            return False
        self.cart_items = json.dumps(items)
        self.cart_total = cart_total_of(items)
        self.currency = currency or self.currency
        self._patch_contact(email, phone, name)
        return True

    def update_contact(self, email=None, phone=None, name=None):
        if not self.is_open:
            return False
        self._patch_contact(email, phone, name)
        return True

    def _patch_contact(self, email, phone, name):
        self.customer_email = email or self.customer_email
        self.customer_phone = phone or self.customer_phone
        self.customer_name = name or self.customer_name
        self.updated_at = utc_now()

    def complete(self):
        if not self.is_open:
            return False
        now = utc_now()
        self.status = AbandonedCartStatus.COMPLETED.value
        self.completed_at = now
        self.updated_at = now
        self.raise_(AbandonedCartCompleted(cart_id=str(self.id), store_id=str(self.store_id), completed_at=now))
        return True

    def recover(self, recovery_code=None):
        if not self.is_open:
            raise ValidationError({"status": [f"Cart is already {self.status}"]})
        now = utc_now()
        self.status = AbandonedCartStatus.RECOVERED.value
        self.recovery_code = recovery_code
        self.recovered_at = now
        self.updated_at = now
        self.raise_(
            AbandonedCartRecovered(
                cart_id=str(self.id),
                store_id=str(self.store_id),
                with_discount=recovery_code is not None,
                recovered_at=now,
            )
        )
