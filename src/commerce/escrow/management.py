"""Escrow management — commands and handler.

The module-level helpers are shared with the event handlers, which must be
lenient (a missing or already settled escrow is a no-op there), while the
commands are strict and reject invalid requests.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.config import get_settings
from commerce.domain import commerce
from commerce.escrow.escrow import EscrowRecord, EscrowStatus
from commerce.order.order import Order, PaymentMethod

logger = structlog.get_logger(__name__)


def find_escrow_for_order(order_id):
    records = current_domain.repository_for(EscrowRecord)._dao.query.filter(order_id=str(order_id)).all().items
    return records[0] if records else None


def open_escrow_for_order(order_id, commission_rate=None, hold_days=None):
    """Hold the order's total in escrow.

    Returns the escrow id, or None for cash-on-delivery orders which never
    pass through the platform. Calling it twice for one order returns the
    existing record.
    """
    existing = find_escrow_for_order(order_id)
    if existing is not None:
        return str(existing.id)

    order = current_domain.repository_for(Order).get(order_id)
    if order.payment_method == PaymentMethod.COD.value:
        logger.info("Escrow skipped for cash on delivery", order_id=str(order_id))
        return None

    settings = get_settings()
    escrow = EscrowRecord.hold(
        order_id=order.id,
        store_id=order.store_id,
        amount=order.total,
        currency=order.currency,
        commission_rate=settings.escrow_commission_rate if commission_rate is None else commission_rate,
        hold_days=settings.escrow_hold_days if hold_days is None else hold_days,
    )
    current_domain.repository_for(EscrowRecord).add(escrow)
    logger.info(
        "Escrow held",
        order_id=str(order_id),
        escrow_id=str(escrow.id),
        amount=escrow.amount,
        commission_amount=escrow.commission_amount,
    )
    return str(escrow.id)


def release_held_escrow(order_id, reason):
    """Release the order's escrow when it is held. Returns True when released."""
    escrow = find_escrow_for_order(order_id)
    if escrow is None or not escrow.is_held:
        return False
    escrow.release(reason=reason)
    current_domain.repository_for(EscrowRecord).add(escrow)
    logger.info("Escrow released", order_id=str(order_id), escrow_id=str(escrow.id), net_amount=escrow.net_amount)
    return True


def refund_open_escrow(order_id, reason):
    """Refund a held or disputed escrow. Returns True when refunded."""
    escrow = find_escrow_for_order(order_id)
    if escrow is None or escrow.status not in (EscrowStatus.HELD.value, EscrowStatus.DISPUTED.value):
        return False
    escrow.refund(reason=reason)
    current_domain.repository_for(EscrowRecord).add(escrow)
    logger.info("Escrow refunded", order_id=str(order_id), escrow_id=str(escrow.id), amount=escrow.amount)
    return True


def _require_escrow(order_id):
    escrow = find_escrow_for_order(order_id)
    if escrow is None:
        raise ValidationError({"order_id": ["No escrow exists for this order"]})
    return escrow


@commerce.command(part_of="EscrowRecord")
class CreateEscrowForOrder:
    order_id = Identifier(required=True)
    commission_rate = Float(min_value=0.0, max_value=1.0)
    hold_days = Integer(min_value=0)


@commerce.command(part_of="EscrowRecord")
class ReleaseEscrow:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command(part_of="EscrowRecord")
class RefundEscrow:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@commerce.command(part_of="EscrowRecord")
class DisputeEscrow:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@commerce.command(part_of="EscrowRecord")
class ResolveDispute:
    order_id = Identifier(required=True)
    outcome = String(required=True, max_length=10)  # "release" or "refund"
    reason = String(max_length=500)


@commerce.command_handler(part_of=EscrowRecord)
class ManageEscrowHandler:
    @handle(CreateEscrowForOrder)
    def create_escrow(self, command):
        return open_escrow_for_order(command.order_id, command.commission_rate, command.hold_days)

    @handle(ReleaseEscrow)
    def release_escrow(self, command):
        repo = current_domain.repository_for(EscrowRecord)
        escrow = _require_escrow(command.order_id)
        escrow.release(reason=command.reason)
        repo.add(escrow)

    @handle(RefundEscrow)
    def refund_escrow(self, command):
        repo = current_domain.repository_for(EscrowRecord)
        escrow = _require_escrow(command.order_id)
        escrow.refund(reason=command.reason)
        repo.add(escrow)

    @handle(DisputeEscrow)
    def dispute_escrow(self, command):
        repo = current_domain.repository_for(EscrowRecord)
        escrow = _require_escrow(command.order_id)
        escrow.dispute(reason=command.reason)
        repo.add(escrow)

    @handle(ResolveDispute)
    def resolve_dispute(self, command):
        repo = current_domain.repository_for(EscrowRecord)
        escrow = _require_escrow(command.order_id)
        escrow.resolve(command.outcome, reason=command.reason)
        repo.add(escrow)
