"""Abandoned cart recovery — the vendor's "reach out to the buyer" action.

An optional single-use discount code is issued for the cart's store and a
recovery email is attempted. The email is best effort: the cart is marked
recovered whatever the provider answers.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, Integer
from protean.utils.globals import current_domain

from commerce.abandoned_cart.abandoned_cart import AbandonedCart
from commerce.channel import get_email_channel
from commerce.coupon.coupon import Coupon, DiscountType
from commerce.domain import commerce
from commerce.notification.templates import get_template
from commerce.shared.identifiers import generate_recovery_code

logger = structlog.get_logger(__name__)


def _send_recovery_email(cart, recovery_code, discount_percent):
    message = get_template("cart_recovery").render(
        {
            "customer_name": cart.customer_name,
            "items": cart.snapshot_items,
            "cart_total": cart.cart_total,
            "currency": cart.currency,
            "recovery_code": recovery_code,
            "discount_percent": discount_percent,
        }
    )
    try:
        result = get_email_channel().send(to=cart.customer_email, subject=message["subject"], body=message["body"])
    except Exception as exc:
        logger.warning("Recovery email failed", cart_id=str(cart.id), error=str(exc))
        return False

    if result.get("status") != "sent":
        logger.warning("Recovery email not sent", cart_id=str(cart.id), error=result.get("error"))
        return False
    return True


@commerce.command(part_of="AbandonedCart")
class RecoverAbandonedCart:
    cart_id = Identifier(required=True)
    with_discount = Boolean(default=False)
    discount_percent = Integer(default=10, min_value=1, max_value=100)


@commerce.command_handler(part_of=AbandonedCart)
class RecoverAbandonedCartHandler:
    @handle(RecoverAbandonedCart)
    def recover(self, command):
        repo = current_domain.repository_for(AbandonedCart)
        cart = repo.get(command.cart_id)

        discount_percent = command.discount_percent or 10
        recovery_code = generate_recovery_code() if command.with_discount else None

        cart.recover(recovery_code=recovery_code)
        repo.add(cart)

        if recovery_code:
            coupon = Coupon.issue(
                store_id=cart.store_id,
                code=recovery_code,
                discount_value=discount_percent,
                discount_type=DiscountType.PERCENTAGE.value,
                max_uses=1,
            )
            current_domain.repository_for(Coupon).add(coupon)

        email_sent = False
        if cart.customer_email:
            email_sent = _send_recovery_email(cart, recovery_code, discount_percent)

        logger.info(
            "Abandoned cart recovered",
            cart_id=str(cart.id),
            store_id=str(cart.store_id),
            with_discount=recovery_code is not None,
            email_sent=email_sent,
        )
        return {"cart_id": str(cart.id), "recovery_code": recovery_code, "email_sent": email_sent}
