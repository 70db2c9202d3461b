"""Domain events for the AbandonedCart aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="AbandonedCart")
class AbandonedCartCaptured:
    __version__ = 1

    cart_id = Identifier(required=True)
    store_id = Identifier(required=True)
    session_id = String(required=True)
    cart_total = Float(required=True)
    captured_at = DateTime(required=True)


@commerce.event(part_of="AbandonedCart")
class AbandonedCartCompleted:
    __version__ = 1

    cart_id = Identifier(required=True)
    store_id = Identifier(required=True)
    completed_at = DateTime(required=True)


@commerce.event(part_of="AbandonedCart")
class AbandonedCartRecovered:
    """The vendor reached out to the buyer, optionally with a discount code."""

    __version__ = 1

    cart_id = Identifier(required=True)
    store_id = Identifier(required=True)
    with_discount = Boolean(default=False)
    recovered_at = DateTime(required=True)
