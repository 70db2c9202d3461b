"""Abandoned cart capture — commands and handler driven by the checkout page.

The checkout session captures a snapshot per store shortly after the buyer
lands on checkout, patches contact details as they are typed, and completes
the rows once orders were placed.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.abandoned_cart.abandoned_cart import AbandonedCart, AbandonedCartStatus
from commerce.domain import commerce

logger = structlog.get_logger(__name__)


def _rows_for_session(session_id, **filters):
    repo = current_domain.repository_for(AbandonedCart)
    return repo._dao.query.filter(session_id=session_id, **filters).all().items


@commerce.command(part_of="AbandonedCart")
class CaptureAbandonedCart:
    session_id = String(required=True, max_length=100)
    store_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of cart lines for this store
    currency = String(max_length=3, default="XOF")
    customer_email = String(max_length=254)
    customer_phone = String(max_length=20)
    customer_name = String(max_length=200)


@commerce.command(part_of="AbandonedCart")
class UpdateAbandonedCartContact:
    session_id = String(required=True, max_length=100)
    customer_email = String(max_length=254)
    customer_phone = String(max_length=20)
    customer_name = String(max_length=200)


@commerce.command(part_of="AbandonedCart")
class CompleteAbandonedCarts:
    session_id = String(required=True, max_length=100)


@commerce.command_handler(part_of=AbandonedCart)
class CaptureAbandonedCartHandler:
    @handle(CaptureAbandonedCart)
    def capture(self, command):
        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        repo = current_domain.repository_for(AbandonedCart)

        existing = _rows_for_session(command.session_id, store_id=str(command.store_id))
        if existing:
            cart = existing[0]
            if cart.refresh_snapshot(
                items,
                currency=command.currency,
                email=command.customer_email,
                phone=command.customer_phone,
                name=command.customer_name,
            ):
                repo.add(cart)
            else:
                logger.debug("Capture ignored for closed cart", cart_id=str(cart.id), status=cart.status)
            return str(cart.id)

        cart = AbandonedCart.capture(
            session_id=command.session_id,
            store_id=command.store_id,
            items=items,
            currency=command.currency or "XOF",
            email=command.customer_email,
            phone=command.customer_phone,
            name=command.customer_name,
        )
        repo.add(cart)
        logger.info("Abandoned cart captured", cart_id=str(cart.id), store_id=str(command.store_id))
        return str(cart.id)

    @handle(UpdateAbandonedCartContact)
    def update_contact(self, command):
        repo = current_domain.repository_for(AbandonedCart)
        updated = 0
        for cart in _rows_for_session(command.session_id, status=AbandonedCartStatus.ABANDONED.value):
            if cart.update_contact(
                email=command.customer_email,
                phone=command.customer_phone,
                name=command.customer_name,
            ):
                repo.add(cart)
                updated += 1
        return updated

    @handle(CompleteAbandonedCarts)
    def complete(self, command):
        repo = current_domain.repository_for(AbandonedCart)
        completed = 0
        for cart in _rows_for_session(command.session_id, status=AbandonedCartStatus.ABANDONED.value):
            if cart.complete():
                repo.add(cart)
                completed += 1
        if completed:
            logger.info("Abandoned carts completed", count=completed)
        return completed
