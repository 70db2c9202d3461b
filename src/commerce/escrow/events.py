"""Domain events for the EscrowRecord aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="EscrowRecord")
class EscrowHeld:
    """Funds for an online-paid order are held until delivery is confirmed."""

    __version__ = 1

    escrow_id = Identifier(required=True)
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    commission_amount = Float(required=True)
    net_amount = Float(required=True)
    release_at = DateTime(required=True)


@commerce.event(part_of="EscrowRecord")
class EscrowReleased:
    __version__ = 1

    escrow_id = Identifier(required=True)
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    net_amount = Float(required=True)
    reason = String()
    released_at = DateTime(required=True)


@commerce.event(part_of="EscrowRecord")
class EscrowRefunded:
    __version__ = 1

    escrow_id = Identifier(required=True)
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String()
    refunded_at = DateTime(required=True)


@commerce.event(part_of="EscrowRecord")
class EscrowDisputed:
    __version__ = 1

    escrow_id = Identifier(required=True)
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    reason = String()
    disputed_at = DateTime(required=True)
