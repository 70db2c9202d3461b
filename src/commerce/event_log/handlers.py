"""Event handler registry — which side effects run for which event type.

Handlers receive the event envelope and work on repositories directly, so
they all share the processing unit of work. A handler raises to report
failure; the processor records the outcome and moves on to the next one.
Handlers must tolerate being run again for the same event.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.channel import get_email_channel
from commerce.config import get_settings
from commerce.escrow.management import open_escrow_for_order, refund_open_escrow, release_held_escrow
from commerce.notification.notification import StoreNotification, StoreNotificationType
from commerce.notification.templates import format_amount, get_template
from commerce.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from commerce.shared.errors import EmailDeliveryError
from commerce.stock import get_stock_guard

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------
def create_escrow(envelope):
    if envelope["payload"].get("payment_method") == PaymentMethod.COD.value:
        return
    open_escrow_for_order(envelope["aggregate_id"])


def release_escrow(envelope):
    release_held_escrow(envelope["aggregate_id"], reason="Delivery confirmed")


def refund_escrow(envelope):
    refund_open_escrow(envelope["aggregate_id"], reason=envelope["payload"].get("reason") or "Order cancelled")


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def decrement_stock(_envelope):
    """Stock is reserved during checkout; kept so the handler list stays explicit."""


def restock_cancelled_order(envelope):
    """Put a cancelled order's stock back.

    Runs at most once per event: the processor skips handlers that already
    succeeded. A line the guard cannot restore is logged for manual
    correction and does not fail the handler.
    """
    order = current_domain.repository_for(Order).get(envelope["aggregate_id"])
    guard = get_stock_guard()
    for item in order.items:
        try:
            guard.restock(str(item.product_id), item.quantity)
        except Exception as exc:
            logger.error(
                "Stock could not be restored",
                order_id=str(order.id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                error=str(exc),
            )
    logger.info("Cancelled order restocked", order_id=str(order.id), lines=len(order.items))


def update_payment_status(envelope):
    repo = current_domain.repository_for(Order)
    order = repo.get(envelope["aggregate_id"])
    if order.payment_status == PaymentStatus.PAID.value:
        return
    order.record_payment_success()
    repo.add(order)


def update_order_status(envelope):
    repo = current_domain.repository_for(Order)
    order = repo.get(envelope["aggregate_id"])
    if order.status != OrderStatus.NEW.value:
        return
    order.confirm()
    repo.add(order)


def send_confirmation_email(envelope):
    order = current_domain.repository_for(Order).get(envelope["aggregate_id"])
    if not order.shipping_email:
        return

    settings = get_settings()
    message = get_template("order_confirmation").render(
        {
            "order_number": order.order_number,
            "customer_name": order.customer_name,
            "store_name": envelope["payload"].get("store_name"),
            "currency": order.currency,
            "total": order.total,
            "items": [
                {"product_name": item.product_name, "quantity": item.quantity, "unit_price": item.unit_price}
                for item in order.items
            ],
            "tracking_url": f"{settings.storefront_url}/track?token={order.tracking_token}",
        }
    )
    result = get_email_channel().send(to=order.shipping_email, subject=message["subject"], body=message["body"])
    if result.get("status") != "sent":
        raise EmailDeliveryError(result.get("error") or "Confirmation email was not sent")


# ---------------------------------------------------------------------------
# Store inbox
# ---------------------------------------------------------------------------
def _notify_store(store_id, notification_type, title, body, details, dedupe_key):
    repo = current_domain.repository_for(StoreNotification)
    if repo._dao.query.filter(dedupe_key=dedupe_key).all().items:
        return
    repo.add(
        StoreNotification.create(
            store_id=store_id,
            notification_type=notification_type,
            title=title,
            body=body,
            details=details,
            dedupe_key=dedupe_key,
        )
    )


def create_store_notification(envelope):
    payload = envelope["payload"]
    order_number = payload.get("order_number", "")
    _notify_store(
        store_id=envelope["store_id"],
        notification_type=StoreNotificationType.NEW_ORDER.value,
        title=f"New order {order_number}",
        body=f"Total: {format_amount(payload.get('total'), payload.get('currency', 'XOF'))}",
        details={"order_id": envelope["aggregate_id"], "order_number": order_number},
        dedupe_key=f"{envelope['event_type']}:{envelope['aggregate_id']}:notification",
    )


def audit_store(envelope):
    payload = envelope["payload"]
    _notify_store(
        store_id=envelope["store_id"],
        notification_type=StoreNotificationType.AUDIT.value,
        title=f"{envelope['event_type']} for order {payload.get('order_number', envelope['aggregate_id'])}",
        body=None,
        details={"order_id": envelope["aggregate_id"], "event_type": envelope["event_type"]},
        dedupe_key=f"{envelope['event_type']}:{envelope['aggregate_id']}:audit",
    )


HANDLERS = {
    "escrow.create": create_escrow,
    "escrow.release": release_escrow,
    "escrow.refund": refund_escrow,
    "stock.decrement": decrement_stock,
    "stock.restock": restock_cancelled_order,
    "order.update_payment_status": update_payment_status,
    "order.update_status": update_order_status,
    "order.send_confirmation_email": send_confirmation_email,
    "store.create_notification": create_store_notification,
    "store.audit": audit_store,
}

HANDLER_MAP = {
    "order.created": ["escrow.create", "stock.decrement", "order.send_confirmation_email", "store.create_notification"],
    "payment.paid": ["order.update_payment_status", "order.update_status"],
    "delivery.confirmed": ["escrow.release", "store.audit"],
    "order.cancelled": ["stock.restock", "escrow.refund"],
}


def handlers_for(event_type):
    """Return ``(name, callable)`` pairs for the event type, in execution order."""
    return [(name, HANDLERS[name]) for name in HANDLER_MAP.get(event_type, [])]
