"""Buyer receipt confirmation — releases the escrow and closes the order.

The buyer identifies the order either by id (from the tracking page) or by
order number plus the phone used at checkout. Only orders with a held
escrow can be confirmed this way; cash-on-delivery orders are settled by
the vendor.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.escrow.escrow import EscrowRecord
from commerce.escrow.management import find_escrow_for_order
from commerce.event_log.recording import append_event
from commerce.order.order import Order
from commerce.order.tracking import find_order_by_number_and_phone

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ConfirmReceipt:
    order_id = Identifier()
    order_number = String(max_length=50)
    phone = String(max_length=20)


@commerce.command_handler(part_of=Order)
class ConfirmReceiptHandler:
    @handle(ConfirmReceipt)
    def confirm_receipt(self, command):
        repo = current_domain.repository_for(Order)
        if command.order_id:
            order = repo.get(command.order_id)
        elif command.order_number and command.phone:
            order = find_order_by_number_and_phone(command.order_number, command.phone)
        else:
            raise ValidationError({"order_id": ["Provide the order id, or the order number and phone"]})

        escrow = find_escrow_for_order(order.id)
        if escrow is None or not escrow.is_held:
            raise ValidationError({"escrow": ["No held escrow found for this order"]})

        escrow.release(reason="Receipt confirmed by buyer")
        current_domain.repository_for(EscrowRecord).add(escrow)

        order.confirm_receipt()
        repo.add(order)

        event_id = append_event(
            event_type="delivery.confirmed",
            aggregate_id=order.id,
            store_id=order.store_id,
            aggregate_type="order",
            payload={"order_number": order.order_number, "escrow_id": str(escrow.id)},
        )
        logger.info("Receipt confirmed", order_id=str(order.id), escrow_id=str(escrow.id), net_amount=escrow.net_amount)
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "escrow_id": str(escrow.id),
            "net_amount": escrow.net_amount,
            "event_id": event_id,
        }
