"""Public order tracking by the unguessable tracking token."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.order.order import Order
from commerce.utils.logging import fingerprint


def find_order_by_tracking_token(token):
    """Return the redacted view of the order holding ``token``.

    Raises ObjectNotFoundError for unknown or empty tokens.
    """
    if not token:
        raise ObjectNotFoundError("Order not found")

    orders = current_domain.repository_for(Order)._dao.query.filter(tracking_token=token).all().items
    if not orders:
        raise ObjectNotFoundError(f"No order for tracking token {fingerprint(token)}")
    return orders[0].public_view()


def find_order_by_number_and_phone(order_number, phone):
    """Buyer lookup used when the tracking link is not at hand."""
    candidates = current_domain.repository_for(Order)._dao.query.filter(order_number=order_number).all().items
    normalized = "".join((phone or "").split())
    for order in candidates:
        if "".join((order.shipping_phone or "").split()) == normalized:
            return order
    raise ObjectNotFoundError(f"Order {order_number} not found")
