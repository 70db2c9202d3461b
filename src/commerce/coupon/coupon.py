"""Coupon aggregate — store-scoped discount codes.

Recovery coupons are single-use percentage discounts issued when a vendor
recovers an abandoned cart.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from commerce.domain import commerce
from commerce.shared.clock import is_due, utc_now


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@commerce.aggregate
class Coupon:
    store_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount_type = String(choices=DiscountType, default=DiscountType.PERCENTAGE.value)
    discount_value = Float(required=True, min_value=0.0)
    max_uses = Integer(min_value=1)  # None means unlimited
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    expires_at = DateTime()
    created_at = DateTime()

    @invariant.post
    def usage_within_limit(self):
        if self.max_uses is not None and (self.used_count or 0) > self.max_uses:
            raise ValidationError({"used_count": ["Coupon used more times than allowed"]})

    @invariant.post
    def percentage_at_most_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.discount_value or 0) > 100:
            raise ValidationError({"discount_value": ["A percentage discount cannot exceed 100"]})

    @classmethod
    def issue(cls, store_id, code, discount_value, discount_type=DiscountType.PERCENTAGE.value, max_uses=None, expires_at=None):
        return cls(
            store_id=str(store_id),
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            max_uses=max_uses,
            used_count=0,
            is_active=True,
            expires_at=expires_at,
            created_at=utc_now(),
        )

    def is_redeemable(self, now=None):
        if not self.is_active or is_due(self.expires_at, now):
            return False
        return self.max_uses is None or (self.used_count or 0) < self.max_uses

    def redeem(self):
        if not self.is_redeemable():
            raise ValidationError({"code": [f"Coupon {self.code} can no longer be used"]})
        self.used_count = (self.used_count or 0) + 1

    def discount_for(self, amount):
        if self.discount_type == DiscountType.PERCENTAGE.value:
            return round(amount * self.discount_value / 100, 2)
        return min(self.discount_value, amount)
