"""Checkout orchestrator — turns a multi-vendor cart into one order per store.

Each store is handled as an independent leg: stock is taken line by line
through the stock guard, then the order is persisted by its own
PlaceStoreOrder command. A leg that fails puts back the stock it took and
stops the checkout; legs committed before it stay committed and are
reported in the result, together with the legs never attempted.

Event emission and attribution run through the side-effect queue after the
leg has committed. Opening the payment session happens once, for the
combined total of the orders that were created.
"""

import json
import math

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.abandoned_cart.capture import CompleteAbandonedCarts
from commerce.checkout.cart import Cart, CartItem
from commerce.checkout.forms import CheckoutRequest, CustomerForm, DeliverySelection, validate_customer, validate_delivery
from commerce.checkout.result import CheckoutResult, LegOutcome, LegStatus, PlacedOrder
from commerce.checkout.side_effects import SideEffectQueue
from commerce.event_log.recording import publish_event
from commerce.order.attribution import RecordOrderAttribution
from commerce.order.placement import PlaceStoreOrder
from commerce.payment import get_payment_provider
from commerce.payment.port import requires_redirect
from commerce.shared.identifiers import generate_order_number, generate_tracking_token
from commerce.stock import get_stock_guard

logger = structlog.get_logger(__name__)


def split_shipping(fee, store_count):
    """Shipping charged to each store's order.

    A single store carries the whole fee; otherwise every store gets the
    floor of an equal share, so the sum never exceeds the combined fee.
    """
    if store_count <= 1:
        return fee
    return math.floor(fee / store_count)


class CheckoutOrchestrator:
    def __init__(self, stock_guard=None, payment_provider=None, side_effects=None):
        self.stock_guard = stock_guard or get_stock_guard()
        self.payment_provider = payment_provider or get_payment_provider()
        self.side_effects = side_effects or SideEffectQueue()

    def place(self, request: CheckoutRequest, cart: Cart) -> CheckoutResult:
        customer = validate_customer(request.customer)
        delivery = validate_delivery(request.delivery)
        if cart.is_empty:
            raise ValidationError({"cart": ["Your cart is empty"]})

        groups = cart.items_by_store()
        shipping_cost = split_shipping(delivery.shipping_fee, len(groups))
        payment_method = request.payment_method.value
        result = CheckoutResult()

        logger.info("Checkout started", store_count=len(groups), item_count=cart.item_count, payment_method=payment_method)

        store_ids = list(groups)
        for index, store_id in enumerate(store_ids):
            leg = self._place_leg(store_id, groups[store_id], customer, delivery, shipping_cost, request)
            result.legs.append(leg)

            if leg.status == LegStatus.COMMITTED:
                cart.clear_store(store_id)
                continue

            for remaining in store_ids[index + 1 :]:
                result.legs.append(
                    LegOutcome(
                        store_id=remaining,
                        store_name=groups[remaining][0].store_name,
                        status=LegStatus.NOT_ATTEMPTED,
                    )
                )
            break

        if result.orders and requires_redirect(payment_method):
            self._open_payment_session(result, customer, request, currency=groups[store_ids[0]][0].currency)

        if result.orders and request.session_id:
            self._complete_abandoned_carts(request.session_id)

        result.side_effect_failures = list(self.side_effects.failures)
        logger.info(
            "Checkout finished",
            orders=len(result.orders),
            succeeded=result.succeeded,
            partially_succeeded=result.partially_succeeded,
            payment_error=result.payment_error,
        )
        return result

    # -------------------------------------------------------------------
    # Store leg
    # -------------------------------------------------------------------
    def _place_leg(
        self,
        store_id: str,
        items: list[CartItem],
        customer: CustomerForm,
        delivery: DeliverySelection,
        shipping_cost: float,
        request: CheckoutRequest,
    ) -> LegOutcome:
        store_name = items[0].store_name
        taken: list[tuple[str, int]] = []

        for item in items:
            if not self.stock_guard.decrement_stock(item.product_id, item.quantity):
                self._put_back(taken)
                logger.warning(
                    "Insufficient stock",
                    store_id=store_id,
                    product_id=item.product_id,
                    requested=item.quantity,
                )
                return LegOutcome(
                    store_id=store_id,
                    store_name=store_name,
                    status=LegStatus.STOCK_CONFLICT,
                    product_name=item.name,
                )
            taken.append((item.product_id, item.quantity))

        order_number = generate_order_number()
        tracking_token = generate_tracking_token()
        currency = items[0].currency

        try:
            order_id = current_domain.process(
                PlaceStoreOrder(
                    store_id=store_id,
                    order_number=order_number,
                    tracking_token=tracking_token,
                    items=json.dumps(
                        [
                            {
                                "product_id": item.product_id,
                                "product_name": item.name,
                                "quantity": item.quantity,
                                "unit_price": item.price,
                            }
                            for item in items
                        ]
                    ),
                    customer=json.dumps(
                        {
                            "first_name": customer.first_name,
                            "last_name": customer.last_name,
                            "email": customer.email,
                            "phone": customer.phone,
                        }
                    ),
                    delivery=json.dumps(
                        {
                            "method": delivery.method.value,
                            "city": delivery.city,
                            "quarter": customer.quarter,
                            "address": customer.address,
                            "relay_point_id": delivery.relay_point_id,
                        }
                    ),
                    shipping_cost=shipping_cost,
                    currency=currency,
                    payment_method=request.payment_method.value,
                    notes=customer.notes,
                ),
                asynchronous=False,
            )
        except Exception as exc:
            self._put_back(taken)
            logger.exception("Order could not be persisted", store_id=store_id, order_number=order_number, error=str(exc))
            return LegOutcome(
                store_id=store_id,
                store_name=store_name,
                status=LegStatus.FAILED,
                error="Order could not be saved",
            )

        subtotal = sum(item.line_total for item in items)
        placed = PlacedOrder(
            order_id=order_id,
            order_number=order_number,
            store_id=store_id,
            total=subtotal + shipping_cost,
            tracking_token=tracking_token,
        )
        logger.info("Store order placed", order_id=order_id, order_number=order_number, store_id=store_id)

        self._queue_side_effects(placed, store_name, currency, items, customer, request)
        self.side_effects.drain()
        return LegOutcome(store_id=store_id, store_name=store_name, status=LegStatus.COMMITTED, order=placed)

    def _put_back(self, taken: list[tuple[str, int]]) -> None:
        for product_id, quantity in taken:
            try:
                self.stock_guard.restock(product_id, quantity)
            except Exception as exc:
                logger.error("Stock could not be restored", product_id=product_id, quantity=quantity, error=str(exc))

    def _queue_side_effects(
        self,
        placed: PlacedOrder,
        store_name,
        currency,
        items: list[CartItem],
        customer: CustomerForm,
        request: CheckoutRequest,
    ) -> None:
        context = {"order_id": placed.order_id, "store_id": placed.store_id}
        self.side_effects.submit(
            "order.created",
            publish_event,
            "order.created",
            placed.order_id,
            store_id=placed.store_id,
            aggregate_type="order",
            payload={
                "order_number": placed.order_number,
                "store_name": store_name,
                "total": placed.total,
                "currency": currency,
                "payment_method": request.payment_method.value,
                "tracking_token": placed.tracking_token,
                "customer_email": customer.email,
                "customer_name": " ".join(part for part in (customer.first_name, customer.last_name) if part),
                "items": [
                    {"product_id": item.product_id, "name": item.name, "quantity": item.quantity, "price": item.price}
                    for item in items
                ],
            },
            context=context,
        )

        attribution = request.attribution
        if attribution is not None and not attribution.is_empty:
            self.side_effects.submit(
                "order.attribution",
                current_domain.process,
                RecordOrderAttribution(
                    order_id=placed.order_id,
                    store_id=placed.store_id,
                    session_id=request.session_id,
                    utm_source=attribution.utm_source,
                    utm_medium=attribution.utm_medium,
                    utm_campaign=attribution.utm_campaign,
                    referrer=attribution.referrer,
                ),
                asynchronous=False,
                context=context,
            )

    # -------------------------------------------------------------------
    # After the legs
    # -------------------------------------------------------------------
    def _open_payment_session(self, result: CheckoutResult, customer: CustomerForm, request: CheckoutRequest, currency):
        try:
            session = self.payment_provider.create_session(
                amount=result.total,
                currency=currency,
                order_ids=[order.order_id for order in result.orders],
                customer_email=customer.email,
                success_url=request.success_url,
                cancel_url=request.cancel_url,
            )
        except Exception as exc:
            result.payment_error = str(exc)
            logger.warning("Payment session could not be created", orders=len(result.orders), error=str(exc))
            return

        result.payment_url = session.url
        result.payment_session_id = session.session_id

    def _complete_abandoned_carts(self, session_id: str) -> None:
        try:
            current_domain.process(CompleteAbandonedCarts(session_id=session_id), asynchronous=False)
        except Exception as exc:
            logger.warning("Abandoned carts could not be completed", error=str(exc))
