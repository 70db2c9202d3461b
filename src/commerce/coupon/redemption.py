"""Coupon redemption command and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.coupon.coupon import Coupon
from commerce.domain import commerce


def find_coupon(store_id, code):
    coupons = current_domain.repository_for(Coupon)._dao.query.filter(store_id=str(store_id), code=code).all().items
    if not coupons:
        raise ObjectNotFoundError(f"Coupon {code} not found")
    return coupons[0]


@commerce.command(part_of="Coupon")
class RedeemCoupon:
    store_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@commerce.command_handler(part_of=Coupon)
class RedeemCouponHandler:
    @handle(RedeemCoupon)
    def redeem_coupon(self, command):
        coupon = find_coupon(command.store_id, command.code)
        coupon.redeem()
        current_domain.repository_for(Coupon).add(coupon)
        return {"code": coupon.code, "discount_type": coupon.discount_type, "discount_value": coupon.discount_value}
