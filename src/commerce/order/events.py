"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """An order was persisted for one vendor store during checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier()
    total = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new lifecycle status."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderPaymentStatusChanged:
    """The payment status of the order changed (paid, failed, refunded)."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    reason = String()
    changed_at = DateTime(required=True)
