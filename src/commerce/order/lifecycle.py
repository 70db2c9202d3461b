"""Order lifecycle — vendor-driven status transitions.

Cancellation records ``order.cancelled`` in the same unit of work as the
status change; the caller dispatches the returned event id once the command
has committed. The reserved stock goes back through the ``stock.restock``
handler of that event, never before the cancellation is durable.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.event_log.recording import append_event
from commerce.order.order import Order

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ConfirmOrder:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class MarkOrderPacked:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class MarkOrderShipped:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class MarkOrderDelivered:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@commerce.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command(part_of="Order")
class OpenDispute:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@commerce.command(part_of="Order")
class ResolveOrderDispute:
    order_id = Identifier(required=True)
    in_favour_of_buyer = Boolean(required=True)
    reason = String(max_length=500)


@commerce.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ConfirmOrder)
    def confirm_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.confirm()
        repo.add(order)

    @handle(MarkOrderPacked)
    def mark_packed(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_packed()
        repo.add(order)

    @handle(MarkOrderShipped)
    def mark_shipped(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_shipped()
        repo.add(order)

    @handle(MarkOrderDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered()
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(command.reason)
        repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id), store_id=str(order.store_id))
        return append_event(
            event_type="order.cancelled",
            aggregate_id=order.id,
            store_id=order.store_id,
            aggregate_type="order",
            payload={
                "order_number": order.order_number,
                "payment_method": order.payment_method,
                "reason": command.reason,
            },
        )

    @handle(RefundOrder)
    def refund_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.refund(reason=command.reason)
        repo.add(order)

    @handle(OpenDispute)
    def open_dispute(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.open_dispute(command.reason)
        repo.add(order)

    @handle(ResolveOrderDispute)
    def resolve_dispute(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.resolve_dispute(command.in_favour_of_buyer, reason=command.reason)
        repo.add(order)
