"""Order aggregate (CQRS) — one vendor store's share of a checkout.

A checkout spanning several stores produces one Order per store. Items are
immutable snapshots of the cart lines at checkout time, decoupled from
live product prices. The tracking token is an unauthenticated lookup
capability and must never appear in logs.

State Machine (8 states):
    NEW → CONFIRMED → PACKED → SHIPPED → DELIVERED
    NEW / CONFIRMED / PACKED → CANCELLED → REFUNDED
    SHIPPED / DELIVERED → DISPUTE → DELIVERED | REFUNDED
    DELIVERED → REFUNDED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from commerce.domain import commerce
from commerce.order.events import OrderPaymentStatusChanged, OrderPlaced, OrderStatusChanged


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    NEW = "new"
    CONFIRMED = "confirmed"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    DISPUTE = "dispute"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    COD = "cod"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryMethod(Enum):
    HOME = "home"
    RELAY = "relay"
    COLLECT = "collect"


class PaymentMethod(Enum):
    COD = "cod"
    WHATSAPP = "whatsapp"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"


_VALID_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.DISPUTE},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED, OrderStatus.DISPUTE},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.DISPUTE: {OrderStatus.DELIVERED, OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

# The buyer may confirm receipt before the vendor recorded every step
_RECEIPT_CONFIRMABLE_STATES = {
    OrderStatus.NEW,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.COD: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class OrderItem:
    """Snapshot of a cart line at order-creation time."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    store_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    customer_id = Identifier()
    items = HasMany(OrderItem)

    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="XOF")

    status = String(choices=OrderStatus, default=OrderStatus.NEW.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    tracking_token = String(required=True, max_length=64)

    shipping_first_name = String(required=True, max_length=100)
    shipping_last_name = String(max_length=100)
    shipping_email = String(max_length=254)
    shipping_phone = String(required=True, max_length=20)
    shipping_city = String(max_length=100)
    shipping_quarter = String(max_length=100)
    shipping_address = String(max_length=500)
    delivery_method = String(choices=DeliveryMethod, default=DeliveryMethod.HOME.value)
    relay_point_id = String(max_length=100)
    notes = Text()

    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        store_id,
        order_number,
        tracking_token,
        items_data,
        customer,
        delivery,
        shipping_cost=0.0,
        payment_method=PaymentMethod.COD.value,
        customer_id=None,
        notes=None,
        currency="XOF",
    ):
        """Create a NEW order for one store from its cart lines.

        Args:
            items_data: List of dicts with product_id, product_name, quantity, unit_price.
            customer: Dict with first_name, last_name, email, phone.
            delivery: Dict with method, city, quarter, address, relay_point_id.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        payment_status = PaymentStatus.COD.value if payment_method == PaymentMethod.COD.value else PaymentStatus.PENDING.value

        order = cls(
            store_id=store_id,
            order_number=order_number,
            customer_id=customer_id,
            currency=currency,
            shipping_cost=shipping_cost or 0.0,
            status=OrderStatus.NEW.value,
            payment_status=payment_status,
            payment_method=payment_method,
            tracking_token=tracking_token,
            shipping_first_name=customer["first_name"],
            shipping_last_name=customer.get("last_name"),
            shipping_email=customer.get("email"),
            shipping_phone=customer["phone"],
            shipping_city=delivery.get("city"),
            shipping_quarter=delivery.get("quarter"),
            shipping_address=delivery.get("address"),
            delivery_method=delivery.get("method", DeliveryMethod.HOME.value),
            relay_point_id=delivery.get("relay_point_id"),
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        for line in items_data:
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    total=line["unit_price"] * line["quantity"],
                )
            )
        order._recalculate_totals()

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                store_id=str(store_id),
                order_number=order_number,
                customer_id=str(customer_id) if customer_id else None,
                total=order.total,
                currency=currency,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _recalculate_totals(self):
        self.subtotal = sum(item.unit_price * item.quantity for item in self.items)
        self.total = self.subtotal + (self.shipping_cost or 0.0)

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _transition(self, target_status, reason=None):
        previous = self.status
        now = datetime.now(UTC)
        self.status = target_status.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                store_id=str(self.store_id),
                previous_status=previous,
                new_status=target_status.value,
                reason=reason,
                changed_at=now,
            )
        )

    def _set_payment_status(self, target, reason=None):
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"payment_status": [f"Cannot change payment status from {current.value} to {target.value}"]}
            )

        now = datetime.now(UTC)
        self.payment_status = target.value
        self.updated_at = now

        self.raise_(
            OrderPaymentStatusChanged(
                order_id=str(self.id),
                store_id=str(self.store_id),
                previous_status=current.value,
                new_status=target.value,
                reason=reason,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment lifecycle
    # -------------------------------------------------------------------
    def confirm(self):
        self._assert_can_transition(OrderStatus.CONFIRMED)
        self._transition(OrderStatus.CONFIRMED)

    def mark_packed(self):
        self._assert_can_transition(OrderStatus.PACKED)
        self._transition(OrderStatus.PACKED)

    def mark_shipped(self):
        self._assert_can_transition(OrderStatus.SHIPPED)
        self._transition(OrderStatus.SHIPPED)

    def mark_delivered(self):
        self._assert_can_transition(OrderStatus.DELIVERED)
        self._transition(OrderStatus.DELIVERED)

    def confirm_receipt(self):
        """Buyer confirmed the goods arrived.

        Returns False when the order was already delivered, so a repeated
        confirmation is harmless.
        """
        current = OrderStatus(self.status)
        if current == OrderStatus.DELIVERED:
            return False
        if current not in _RECEIPT_CONFIRMABLE_STATES:
            raise ValidationError({"status": [f"Receipt cannot be confirmed for a {current.value} order"]})

        self._transition(OrderStatus.DELIVERED, reason="Receipt confirmed by buyer")
        return True

    def cancel(self, reason):
        self._assert_can_transition(OrderStatus.CANCELLED)
        self.cancellation_reason = reason
        self._transition(OrderStatus.CANCELLED, reason=reason)

    def refund(self, reason=None):
        self._assert_can_transition(OrderStatus.REFUNDED)
        self._transition(OrderStatus.REFUNDED, reason=reason)
        if PaymentStatus(self.payment_status) == PaymentStatus.PAID:
            self._set_payment_status(PaymentStatus.REFUNDED, reason=reason)

    def open_dispute(self, reason):
        self._assert_can_transition(OrderStatus.DISPUTE)
        self._transition(OrderStatus.DISPUTE, reason=reason)

    def resolve_dispute(self, in_favour_of_buyer, reason=None):
        if OrderStatus(self.status) != OrderStatus.DISPUTE:
            raise ValidationError({"status": ["Only disputed orders can be resolved"]})

        if in_favour_of_buyer:
            self.refund(reason=reason or "Dispute resolved in favour of the buyer")
        else:
            self._transition(OrderStatus.DELIVERED, reason=reason or "Dispute resolved in favour of the seller")

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_success(self):
        self._set_payment_status(PaymentStatus.PAID)

    def record_payment_failure(self, reason):
        self._set_payment_status(PaymentStatus.FAILED, reason=reason)

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    @property
    def customer_name(self):
        return " ".join(part for part in (self.shipping_first_name, self.shipping_last_name) if part)

    def public_view(self):
        """Order details safe to show to anyone holding the tracking token."""
        return {
            "order_number": self.order_number,
            "status": self.status,
            "payment_status": self.payment_status,
            "delivery_method": self.delivery_method,
            "shipping_city": self.shipping_city,
            "currency": self.currency,
            "subtotal": self.subtotal,
            "shipping_cost": self.shipping_cost,
            "total": self.total,
            "items": [
                {"product_name": item.product_name, "quantity": item.quantity, "unit_price": item.unit_price}
                for item in self.items
            ],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
