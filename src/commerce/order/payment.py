"""Order payment outcome commands and handler.

Called when the payment provider reports the result of a checkout session.
A success records ``payment.paid`` so the event processor can confirm the
order; the returned event id is dispatched by the caller.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.event_log.recording import append_event
from commerce.order.order import Order, PaymentStatus


@commerce.command(part_of="Order")
class RecordPaymentSuccess:
    order_id = Identifier(required=True)
    payment_reference = String(max_length=255)


@commerce.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@commerce.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(RecordPaymentSuccess)
    def record_payment_success(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if order.payment_status != PaymentStatus.PAID.value:
            order.record_payment_success()
            repo.add(order)

        return append_event(
            event_type="payment.paid",
            aggregate_id=order.id,
            store_id=order.store_id,
            aggregate_type="order",
            payload={
                "order_number": order.order_number,
                "amount": order.total,
                "currency": order.currency,
                "payment_reference": command.payment_reference,
            },
        )

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_failure(command.reason)
        repo.add(order)
